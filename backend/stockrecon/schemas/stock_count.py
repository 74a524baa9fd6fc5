"""Stock count session schemas."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field, model_validator

from stockrecon.models.stock import CountStatus, CountType, Location
from stockrecon.schemas.base import CamelModel


class StockCountCreate(CamelModel):
    location: Location
    count_type: CountType
    counted_by: str = Field(min_length=1, max_length=100)
    shift_id: Optional[int] = None
    count_date: Optional[date] = None
    notes: Optional[str] = None


class StockCountItemIn(CamelModel):
    ingredient_id: Optional[int] = None
    item_name: Optional[str] = Field(default=None, max_length=255)
    counted_quantity: Decimal = Field(ge=0)
    unit: Optional[str] = None
    notes: Optional[str] = None

    @model_validator(mode="after")
    def check_reference(self):
        if self.ingredient_id is None and not (self.item_name and self.item_name.strip()):
            raise ValueError("ingredient_id or item_name is required")
        return self


class StockCountItemsAdd(CamelModel):
    items: List[StockCountItemIn] = Field(min_length=1)


class StockCountItemResponse(BaseModel):
    id: int
    ingredient_id: Optional[int] = None
    item_name: Optional[str] = None
    counted_quantity: Decimal
    unit: Optional[str] = None
    notes: Optional[str] = None

    model_config = {"from_attributes": True}


class StockCountResponse(BaseModel):
    id: int
    location: Location
    count_type: CountType
    counted_by: str
    shift_id: Optional[int] = None
    status: CountStatus
    count_date: date
    started_at: datetime
    completed_at: Optional[datetime] = None
    item_count: int
    items: List[StockCountItemResponse] = []

    model_config = {"from_attributes": True}
