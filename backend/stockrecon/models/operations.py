"""Operational models: reorder requests, settings and daily summaries."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

from sqlalchemy import JSON, Date, DateTime, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from stockrecon.core.business_day import utcnow
from stockrecon.db.base import Base, TimestampMixin, str_enum
from stockrecon.models.stock import Location


class ReorderStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    FULFILLED = "fulfilled"


class ReorderRequest(Base):
    __tablename__ = "reorder_requests"

    id: Mapped[int] = mapped_column(primary_key=True)
    ingredient_id: Mapped[int] = mapped_column(ForeignKey("ingredients.id"), nullable=False, index=True)
    location: Mapped[Location] = mapped_column(str_enum(Location), default=Location.SHOP, nullable=False)
    quantity: Mapped[Decimal] = mapped_column(Numeric(12, 3), nullable=False)
    unit: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    status: Mapped[ReorderStatus] = mapped_column(
        str_enum(ReorderStatus), default=ReorderStatus.PENDING, nullable=False
    )
    requested_by: Mapped[str] = mapped_column(String(100), nullable=False)
    requested_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False, index=True
    )
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)


class AppSetting(Base):
    """Key/value operational setting (e.g. ``shift_controls``)."""

    __tablename__ = "app_settings"

    id: Mapped[int] = mapped_column(primary_key=True)
    key: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    value: Mapped[Any] = mapped_column(JSON, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )


class DailySummary(Base, TimestampMixin):
    """Per-business-day rollup of sales, consumption, variance and activity."""

    __tablename__ = "daily_summaries"

    id: Mapped[int] = mapped_column(primary_key=True)
    summary_date: Mapped[date] = mapped_column(Date, unique=True, nullable=False)

    # Sales
    total_sales: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0"), nullable=False)
    cash_sales: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0"), nullable=False)
    card_sales: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0"), nullable=False)
    transaction_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    # Consumption
    total_consumption_cost: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0"), nullable=False)
    items_consumed: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    gross_margin: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0"), nullable=False)

    # Variance
    stock_variance_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    stock_variance_value: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0"), nullable=False)
    cash_variance: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0"), nullable=False)

    # Activity
    shifts_opened: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    dispatches_sent: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    dispatches_received: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    reorders_created: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
