"""SQLAlchemy declarative base and common utilities."""

from datetime import datetime
from enum import Enum

from sqlalchemy import DateTime, Enum as SQLEnum
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from stockrecon.core.business_day import utcnow


class Base(DeclarativeBase):
    """Base class for all models."""

    pass


def str_enum(enum_cls: type[Enum], length: int = 20) -> SQLEnum:
    """Store a str Enum by value in a VARCHAR column.

    Values rather than member names are persisted so raw SQL filters
    (such as partial index predicates) can match on ``'open'``.
    """
    return SQLEnum(
        enum_cls,
        native_enum=False,
        length=length,
        values_callable=lambda members: [m.value for m in members],
    )


class TimestampMixin:
    """Mixin for created_at and updated_at timestamps.

    Timestamps are set from Python in UTC so range filters compare consistently
    on every backend, SQLite included.
    """

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
        nullable=False,
    )
