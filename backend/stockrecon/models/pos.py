"""POS sync models: synced transactions, derived consumption, sync state."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from stockrecon.core.business_day import utcnow
from stockrecon.db.base import Base, str_enum


class PayType(str, Enum):
    """How a POS transaction was settled."""

    CASH = "cash"
    CARD = "card"
    MIXED = "mixed"
    OTHER = "other"


class SyncState(str, Enum):
    IDLE = "idle"
    SYNCING = "syncing"
    ERROR = "error"


class SyncType(str, Enum):
    TRANSACTIONS = "transactions"
    BACKFILL = "backfill"
    RECIPES = "recipes"


class SyncedTransaction(Base):
    """A closed POS sale imported once per external transaction id."""

    __tablename__ = "synced_transactions"

    id: Mapped[int] = mapped_column(primary_key=True)
    pos_transaction_id: Mapped[str] = mapped_column(
        String(100), unique=True, nullable=False
    )  # idempotency key
    transaction_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, index=True
    )
    total_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0"), nullable=False)
    pay_type: Mapped[PayType] = mapped_column(str_enum(PayType), default=PayType.OTHER, nullable=False)
    payed_cash: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0"), nullable=False)
    payed_card: Mapped[Decimal] = mapped_column(Numeric(12, 2), default=Decimal("0"), nullable=False)
    products: Mapped[list[dict[str, Any]]] = mapped_column(JSON, default=list, nullable=False)
    status: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)  # POS-side status, bookkeeping only
    synced_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)

    consumption: Mapped[list["CalculatedConsumption"]] = relationship(
        "CalculatedConsumption", back_populates="transaction"
    )


class CalculatedConsumption(Base):
    """Theoretical ingredient usage derived from one sold line item.

    Rows are append-only; name fields are snapshots taken at derivation time.
    """

    __tablename__ = "calculated_consumption"

    id: Mapped[int] = mapped_column(primary_key=True)
    transaction_id: Mapped[int] = mapped_column(
        ForeignKey("synced_transactions.id", ondelete="CASCADE"), nullable=False, index=True
    )
    ingredient_id: Mapped[int] = mapped_column(ForeignKey("ingredients.id"), nullable=False, index=True)
    ingredient_name: Mapped[str] = mapped_column(String(255), nullable=False)
    recipe_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("recipes.id", ondelete="SET NULL"), nullable=True
    )
    recipe_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    quantity_consumed: Mapped[Decimal] = mapped_column(Numeric(12, 4), nullable=False)
    unit: Mapped[str] = mapped_column(String(20), nullable=False)
    is_modifier: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    cost_at_time: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 4), nullable=True)
    calculated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False, index=True
    )

    transaction: Mapped["SyncedTransaction"] = relationship(
        "SyncedTransaction", back_populates="consumption"
    )


class SyncStatus(Base):
    """Persisted progress record for one kind of sync job."""

    __tablename__ = "sync_status"

    id: Mapped[int] = mapped_column(primary_key=True)
    sync_type: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    status: Mapped[SyncState] = mapped_column(str_enum(SyncState), default=SyncState.IDLE, nullable=False)
    last_sync_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    last_sync_timestamp: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)  # unix seconds watermark
    records_synced: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    error_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )
