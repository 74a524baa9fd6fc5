"""Shift and cash reconciliation schemas."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field

from stockrecon.models.shift import ShiftStatus
from stockrecon.schemas.base import CamelModel


class ShiftOpen(CamelModel):
    opened_by: str = Field(min_length=1, max_length=100)
    opening_float: Decimal = Field(ge=0)
    opening_stock_count_id: Optional[int] = None
    staff_on_duty: List[str] = []


class ShiftClose(CamelModel):
    closed_by: str = Field(min_length=1, max_length=100)
    closing_cash: Decimal = Field(ge=0)
    cash_declared: Optional[Decimal] = Field(default=None, ge=0)
    closing_stock_count_id: Optional[int] = None


class ShiftResponse(BaseModel):
    id: int
    status: ShiftStatus
    opened_by: str
    opened_at: datetime
    opening_float: Decimal
    staff_on_duty: List[str] = []
    opening_stock_count_id: Optional[int] = None
    closed_by: Optional[str] = None
    closed_at: Optional[datetime] = None
    closing_cash: Optional[Decimal] = None
    cash_declared: Optional[Decimal] = None
    closing_stock_count_id: Optional[int] = None
    pos_cash_total: Optional[Decimal] = None
    pos_card_total: Optional[Decimal] = None
    expenses_total: Optional[Decimal] = None
    expected_cash: Optional[Decimal] = None
    cash_variance: Optional[Decimal] = None

    model_config = {"from_attributes": True}


class CashReconciliationResponse(BaseModel):
    success: bool
    shift_id: Optional[int] = None
    opening_float: Decimal
    pos_cash_total: Decimal
    pos_card_total: Decimal
    expenses_total: Decimal
    expected_cash: Decimal
    actual_cash: Decimal
    variance: Decimal

    model_config = {"from_attributes": True}
