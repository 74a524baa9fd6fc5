"""Daily stock reconciliation models."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from sqlalchemy import Date, DateTime, ForeignKey, Integer, Numeric, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from stockrecon.db.base import Base, TimestampMixin, str_enum
from stockrecon.models.stock import Location


class ReconciliationStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    ACKNOWLEDGED = "acknowledged"


class VarianceStatus(str, Enum):
    """Classification of actual vs expected closing stock."""

    MATCHED = "matched"  # within tolerance
    OVER = "over"        # surplus
    UNDER = "under"      # shortage


class DailyReconciliation(Base, TimestampMixin):
    """Header for one (date, location) stock reconciliation."""

    __tablename__ = "daily_reconciliations"
    __table_args__ = (
        UniqueConstraint("reconciliation_date", "location", name="uq_daily_reconciliation_date_location"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    reconciliation_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    location: Mapped[Location] = mapped_column(str_enum(Location), nullable=False)
    opening_count_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("stock_counts.id", ondelete="SET NULL"), nullable=True
    )
    closing_count_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("stock_counts.id", ondelete="SET NULL"), nullable=True
    )
    status: Mapped[ReconciliationStatus] = mapped_column(
        str_enum(ReconciliationStatus), default=ReconciliationStatus.PENDING, nullable=False
    )

    # Aggregates
    item_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    matched_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    over_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    under_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    total_variance_value: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0"), nullable=False)

    calculated_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    acknowledged_by: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    acknowledged_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    items: Mapped[list["ReconciliationItem"]] = relationship(
        "ReconciliationItem", back_populates="reconciliation", cascade="all, delete-orphan"
    )


class ReconciliationItem(Base):
    """Per-ingredient reconciliation line.

    expected_closing = opening_qty + received_qty - theoretical_usage
    variance = actual_closing - expected_closing
    """

    __tablename__ = "reconciliation_items"

    id: Mapped[int] = mapped_column(primary_key=True)
    reconciliation_id: Mapped[int] = mapped_column(
        ForeignKey("daily_reconciliations.id", ondelete="CASCADE"), nullable=False, index=True
    )
    ingredient_id: Mapped[int] = mapped_column(ForeignKey("ingredients.id"), nullable=False)
    ingredient_name: Mapped[str] = mapped_column(String(255), nullable=False)
    unit: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)

    opening_qty: Mapped[Decimal] = mapped_column(Numeric(12, 3), default=Decimal("0"), nullable=False)
    received_qty: Mapped[Decimal] = mapped_column(Numeric(12, 3), default=Decimal("0"), nullable=False)
    theoretical_usage: Mapped[Decimal] = mapped_column(Numeric(12, 4), default=Decimal("0"), nullable=False)
    expected_closing: Mapped[Decimal] = mapped_column(Numeric(12, 4), nullable=False)
    actual_closing: Mapped[Decimal] = mapped_column(Numeric(12, 3), default=Decimal("0"), nullable=False)
    variance: Mapped[Decimal] = mapped_column(Numeric(12, 4), nullable=False)
    variance_value: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0"), nullable=False)
    variance_status: Mapped[VarianceStatus] = mapped_column(str_enum(VarianceStatus), nullable=False)

    reconciliation: Mapped["DailyReconciliation"] = relationship(
        "DailyReconciliation", back_populates="items"
    )
