"""Ingredient model."""

from __future__ import annotations

from decimal import Decimal
from typing import Optional

from sqlalchemy import Boolean, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from stockrecon.db.base import Base, TimestampMixin


class Ingredient(Base, TimestampMixin):
    """A stock-tracked ingredient. Never deleted, only deactivated."""

    __tablename__ = "ingredients"

    id: Mapped[int] = mapped_column(primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    unit: Mapped[str] = mapped_column(String(20), default="g", nullable=False)
    pos_ingredient_id: Mapped[Optional[str]] = mapped_column(
        String(100), unique=True, nullable=True
    )  # PosterPOS ingredient_id, used for stock lookups

    avg_cost: Mapped[Decimal] = mapped_column(Numeric(12, 4), default=Decimal("0"), nullable=False)
    last_cost: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 4), nullable=True)

    # Replenishment thresholds
    par_level: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 3), nullable=True)
    safety_stock: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 3), nullable=True)
    max_stock: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 3), nullable=True)
    lead_time_days: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    def deactivate(self) -> None:
        self.is_active = False
