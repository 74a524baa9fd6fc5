"""Reconciliation schemas."""

from __future__ import annotations

import datetime as dt
from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field

from stockrecon.models.reconciliation import ReconciliationStatus, VarianceStatus
from stockrecon.models.stock import Location
from stockrecon.schemas.base import CamelModel


class ReconciliationCalculate(CamelModel):
    """Omitted count ids default to the latest completed count of that day."""

    date: dt.date
    location: Location
    opening_stock_count_id: Optional[int] = None
    closing_stock_count_id: Optional[int] = None


class ReconciliationAcknowledge(CamelModel):
    acknowledged_by: str = Field(min_length=1, max_length=100)


class ReconciliationOutcomeResponse(BaseModel):
    success: bool
    reconciliation_id: Optional[int] = None
    item_count: int
    matched_count: int
    over_count: int
    under_count: int
    total_variance_value: Decimal
    errors: List[str] = []


class ReconciliationItemResponse(BaseModel):
    id: int
    ingredient_id: int
    ingredient_name: str
    unit: Optional[str] = None
    opening_qty: Decimal
    received_qty: Decimal
    theoretical_usage: Decimal
    expected_closing: Decimal
    actual_closing: Decimal
    variance: Decimal
    variance_value: Decimal
    variance_status: VarianceStatus

    model_config = {"from_attributes": True}


class ReconciliationResponse(BaseModel):
    id: int
    reconciliation_date: date
    location: Location
    opening_count_id: Optional[int] = None
    closing_count_id: Optional[int] = None
    status: ReconciliationStatus
    item_count: int
    matched_count: int
    over_count: int
    under_count: int
    total_variance_value: Decimal
    calculated_at: Optional[datetime] = None
    acknowledged_by: Optional[str] = None
    acknowledged_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class ReconciliationDetailResponse(ReconciliationResponse):
    items: List[ReconciliationItemResponse] = []
