"""Synced transaction and consumption schemas."""

from __future__ import annotations

import datetime as dt
from datetime import date, datetime
from decimal import Decimal
from typing import Any, List, Optional

from pydantic import BaseModel

from stockrecon.models.pos import PayType


class TransactionResponse(BaseModel):
    id: int
    pos_transaction_id: str
    transaction_date: datetime
    total_amount: Decimal
    pay_type: PayType
    payed_cash: Decimal
    payed_card: Decimal
    products: List[Any] = []
    synced_at: datetime

    model_config = {"from_attributes": True}


class TransactionSummary(BaseModel):
    date: dt.date
    transaction_count: int
    total_sales: Decimal
    cash_sales: Decimal
    card_sales: Decimal


class ConsumptionTotal(BaseModel):
    ingredient_id: int
    ingredient_name: str
    unit: Optional[str] = None
    quantity: Decimal
    cost: Decimal
