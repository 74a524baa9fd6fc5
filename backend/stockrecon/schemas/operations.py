"""Expense, ingredient, wastage, reorder, report and settings schemas."""

from __future__ import annotations

import datetime as dt
from datetime import date, datetime
from decimal import Decimal
from typing import Any, List, Optional

from pydantic import BaseModel, Field

from stockrecon.models.operations import ReorderStatus
from stockrecon.models.shift import ExpenseType
from stockrecon.models.stock import Location, MovementType
from stockrecon.schemas.base import CamelModel


# Expenses

class ExpenseCreate(CamelModel):
    description: str = Field(min_length=1, max_length=500)
    amount: Decimal = Field(gt=0)
    expense_type: ExpenseType = ExpenseType.PETTY_CASH
    shift_id: Optional[int] = None
    category: Optional[str] = None
    paid_by: Optional[str] = None
    paid_to: Optional[str] = None
    receipt_number: Optional[str] = None
    notes: Optional[str] = None


class ExpenseResponse(BaseModel):
    id: int
    shift_id: Optional[int] = None
    expense_type: ExpenseType
    category: Optional[str] = None
    description: str
    amount: Decimal
    paid_by: Optional[str] = None
    paid_to: Optional[str] = None
    receipt_number: Optional[str] = None
    created_at: datetime

    model_config = {"from_attributes": True}


# Ingredients and ledger

class IngredientResponse(BaseModel):
    id: int
    name: str
    unit: str
    pos_ingredient_id: Optional[str] = None
    avg_cost: Decimal
    par_level: Optional[Decimal] = None
    safety_stock: Optional[Decimal] = None
    max_stock: Optional[Decimal] = None
    lead_time_days: Optional[int] = None
    is_active: bool

    model_config = {"from_attributes": True}


class ParUpdate(CamelModel):
    par_level: Optional[Decimal] = Field(default=None, ge=0)
    safety_stock: Optional[Decimal] = Field(default=None, ge=0)
    max_stock: Optional[Decimal] = Field(default=None, ge=0)
    lead_time_days: Optional[int] = Field(default=None, ge=0)


class MovementResponse(BaseModel):
    id: int
    ingredient_id: Optional[int] = None
    item_name: str
    location: Location
    movement_type: MovementType
    quantity: Decimal
    unit: Optional[str] = None
    reference_type: Optional[str] = None
    reference_id: Optional[int] = None
    notes: Optional[str] = None
    performed_by: Optional[str] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class WastageItem(CamelModel):
    ingredient_id: Optional[int] = None
    item_name: Optional[str] = None
    quantity: Decimal = Field(gt=0)
    unit: Optional[str] = None
    reason: Optional[str] = None


class WastageRequest(CamelModel):
    items: List[WastageItem] = Field(min_length=1)
    shift_id: Optional[int] = None
    performed_by: Optional[str] = None
    location: Location = Location.SHOP


class LedgerBatchResponse(BaseModel):
    success: bool
    count: int
    errors: List[str] = []


# Reorders

class ReorderCreate(CamelModel):
    ingredient_id: int
    quantity: Decimal = Field(gt=0)
    requested_by: str = Field(min_length=1, max_length=100)
    location: Location = Location.SHOP
    unit: Optional[str] = None
    notes: Optional[str] = None


class ReorderResponse(BaseModel):
    id: int
    ingredient_id: int
    location: Location
    quantity: Decimal
    unit: Optional[str] = None
    status: ReorderStatus
    requested_by: str
    requested_at: datetime
    notes: Optional[str] = None

    model_config = {"from_attributes": True}


# Reports

class DailySummaryResponse(BaseModel):
    summary_date: date
    total_sales: Decimal
    cash_sales: Decimal
    card_sales: Decimal
    transaction_count: int
    total_consumption_cost: Decimal
    items_consumed: int
    gross_margin: Decimal
    stock_variance_count: int
    stock_variance_value: Decimal
    cash_variance: Decimal
    shifts_opened: int
    dispatches_sent: int
    dispatches_received: int
    reorders_created: int

    model_config = {"from_attributes": True}


class DailySummaryGenerate(CamelModel):
    date: Optional[dt.date] = None


class SettingUpdate(BaseModel):
    value: Any
