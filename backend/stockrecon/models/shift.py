"""Shift and expense models."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from sqlalchemy import JSON, DateTime, ForeignKey, Index, Numeric, String, Text, text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from stockrecon.core.business_day import utcnow
from stockrecon.db.base import Base, str_enum


class ShiftStatus(str, Enum):
    OPEN = "open"
    CLOSED = "closed"


class ExpenseType(str, Enum):
    SUPERMARKET = "supermarket"
    PETTY_CASH = "petty_cash"


class Shift(Base):
    """A trading shift. Transitions open -> closed only; closed is terminal."""

    __tablename__ = "shifts"
    __table_args__ = (
        # At most one open shift at a time
        Index(
            "uq_shifts_single_open",
            "status",
            unique=True,
            sqlite_where=text("status = 'open'"),
            postgresql_where=text("status = 'open'"),
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    status: Mapped[ShiftStatus] = mapped_column(
        str_enum(ShiftStatus), default=ShiftStatus.OPEN, nullable=False
    )

    # Opening
    opened_by: Mapped[str] = mapped_column(String(100), nullable=False)
    opened_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    opening_float: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    staff_on_duty: Mapped[list[str]] = mapped_column(JSON, default=list, nullable=False)
    opening_stock_count_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("stock_counts.id", ondelete="SET NULL"), nullable=True
    )

    # Closing
    closed_by: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    closed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    closing_cash: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2), nullable=True)
    cash_declared: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2), nullable=True)
    closing_stock_count_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("stock_counts.id", ondelete="SET NULL"), nullable=True
    )

    # Derived by cash reconciliation
    pos_cash_total: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2), nullable=True)
    pos_card_total: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2), nullable=True)
    expenses_total: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2), nullable=True)
    expected_cash: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2), nullable=True)
    cash_variance: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 2), nullable=True)

    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    expenses: Mapped[list["Expense"]] = relationship("Expense", back_populates="shift")

    @property
    def is_open(self) -> bool:
        return self.status == ShiftStatus.OPEN


class Expense(Base):
    """Cash paid out of the till during a shift."""

    __tablename__ = "expenses"

    id: Mapped[int] = mapped_column(primary_key=True)
    shift_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("shifts.id", ondelete="SET NULL"), nullable=True, index=True
    )
    expense_type: Mapped[ExpenseType] = mapped_column(
        str_enum(ExpenseType), default=ExpenseType.PETTY_CASH, nullable=False
    )
    category: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    description: Mapped[str] = mapped_column(String(500), nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    paid_by: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    paid_to: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    receipt_number: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False, index=True
    )

    shift: Mapped[Optional["Shift"]] = relationship("Shift", back_populates="expenses")
