"""Stock count sessions, dispatches and the inventory movement ledger."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from sqlalchemy import Date, DateTime, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from stockrecon.core.business_day import utcnow
from stockrecon.db.base import Base, str_enum


class Location(str, Enum):
    """Physical sites that hold stock."""

    STORE = "store"  # central store, buys and prepares
    SHOP = "shop"    # kiosk that sells


class CountType(str, Enum):
    OPENING = "opening"
    CLOSING = "closing"


class CountStatus(str, Enum):
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class DispatchStatus(str, Enum):
    IN_TRANSIT = "in_transit"
    RECEIVED = "received"
    CANCELLED = "cancelled"


class MovementType(str, Enum):
    """Kinds of inventory ledger entries."""

    SALE = "sale"
    PURCHASE = "purchase"
    DISPATCH_OUT = "dispatch_out"
    DISPATCH_IN = "dispatch_in"
    WASTAGE = "wastage"
    ADJUSTMENT = "adjustment"
    LOCAL_BUY = "local_buy"


class StockCount(Base):
    """An opening or closing physical count session at one location."""

    __tablename__ = "stock_counts"

    id: Mapped[int] = mapped_column(primary_key=True)
    location: Mapped[Location] = mapped_column(str_enum(Location), nullable=False, index=True)
    count_type: Mapped[CountType] = mapped_column(str_enum(CountType), nullable=False)
    counted_by: Mapped[str] = mapped_column(String(100), nullable=False)
    shift_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("shifts.id", ondelete="SET NULL", use_alter=True, name="fk_stock_counts_shift_id"), nullable=True
    )
    status: Mapped[CountStatus] = mapped_column(
        str_enum(CountStatus), default=CountStatus.IN_PROGRESS, nullable=False
    )
    count_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    started_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    item_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    items: Mapped[list["StockCountItem"]] = relationship(
        "StockCountItem", back_populates="count", cascade="all, delete-orphan"
    )


class StockCountItem(Base):
    """One counted line. References an ingredient or a free-text item name."""

    __tablename__ = "stock_count_items"

    id: Mapped[int] = mapped_column(primary_key=True)
    stock_count_id: Mapped[int] = mapped_column(
        ForeignKey("stock_counts.id", ondelete="CASCADE"), nullable=False, index=True
    )
    ingredient_id: Mapped[Optional[int]] = mapped_column(ForeignKey("ingredients.id"), nullable=True)
    item_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    counted_quantity: Mapped[Decimal] = mapped_column(Numeric(12, 3), nullable=False)
    unit: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    count: Mapped["StockCount"] = relationship("StockCount", back_populates="items")


class Dispatch(Base):
    """A transfer of stock from one location to another."""

    __tablename__ = "dispatches"

    id: Mapped[int] = mapped_column(primary_key=True)
    from_location: Mapped[Location] = mapped_column(str_enum(Location), default=Location.STORE, nullable=False)
    to_location: Mapped[Location] = mapped_column(str_enum(Location), default=Location.SHOP, nullable=False)
    status: Mapped[DispatchStatus] = mapped_column(
        str_enum(DispatchStatus), default=DispatchStatus.IN_TRANSIT, nullable=False, index=True
    )
    dispatched_by: Mapped[str] = mapped_column(String(100), nullable=False)
    dispatched_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)
    received_by: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    received_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True, index=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    items: Mapped[list["DispatchItem"]] = relationship(
        "DispatchItem", back_populates="dispatch", cascade="all, delete-orphan"
    )


class DispatchItem(Base):
    __tablename__ = "dispatch_items"

    id: Mapped[int] = mapped_column(primary_key=True)
    dispatch_id: Mapped[int] = mapped_column(
        ForeignKey("dispatches.id", ondelete="CASCADE"), nullable=False, index=True
    )
    ingredient_id: Mapped[Optional[int]] = mapped_column(ForeignKey("ingredients.id"), nullable=True)
    item_name: Mapped[str] = mapped_column(String(255), nullable=False)
    unit: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    quantity_sent: Mapped[Decimal] = mapped_column(Numeric(12, 3), nullable=False)
    quantity_received: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 3), nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    dispatch: Mapped["Dispatch"] = relationship("Dispatch", back_populates="items")


class InventoryMovement(Base):
    """Append-only ledger entry. Deductions are negative, additions positive."""

    __tablename__ = "inventory_movements"

    id: Mapped[int] = mapped_column(primary_key=True)
    ingredient_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("ingredients.id"), nullable=True, index=True
    )
    item_name: Mapped[str] = mapped_column(String(255), nullable=False)
    location: Mapped[Location] = mapped_column(str_enum(Location), nullable=False, index=True)
    movement_type: Mapped[MovementType] = mapped_column(str_enum(MovementType), nullable=False)
    quantity: Mapped[Decimal] = mapped_column(Numeric(12, 3), nullable=False)
    unit: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    reference_type: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)  # dispatch, shift, transaction
    reference_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    performed_by: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    cost_per_unit: Mapped[Optional[Decimal]] = mapped_column(Numeric(12, 4), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False, index=True
    )
