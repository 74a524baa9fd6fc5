"""Dispatch schemas."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field

from stockrecon.models.stock import DispatchStatus, Location
from stockrecon.schemas.base import CamelModel


class DispatchItemIn(CamelModel):
    ingredient_id: Optional[int] = None
    item_name: Optional[str] = Field(default=None, max_length=255)
    quantity: Decimal = Field(gt=0)
    unit: Optional[str] = None
    notes: Optional[str] = None


class DispatchCreate(CamelModel):
    dispatched_by: str = Field(min_length=1, max_length=100)
    from_location: Location = Location.STORE
    to_location: Location = Location.SHOP
    items: List[DispatchItemIn] = Field(min_length=1)
    notes: Optional[str] = None


class ReceiptItem(CamelModel):
    item_id: int
    quantity_received: Decimal = Field(ge=0)


class DispatchConfirm(CamelModel):
    received_by: str = Field(min_length=1, max_length=100)
    items: Optional[List[ReceiptItem]] = None


class DispatchItemResponse(BaseModel):
    id: int
    ingredient_id: Optional[int] = None
    item_name: str
    unit: Optional[str] = None
    quantity_sent: Decimal
    quantity_received: Optional[Decimal] = None
    notes: Optional[str] = None

    model_config = {"from_attributes": True}


class DispatchResponse(BaseModel):
    id: int
    from_location: Location
    to_location: Location
    status: DispatchStatus
    dispatched_by: str
    dispatched_at: datetime
    received_by: Optional[str] = None
    received_at: Optional[datetime] = None
    notes: Optional[str] = None
    items: List[DispatchItemResponse] = []

    model_config = {"from_attributes": True}
