"""Shift lifecycle routes: open, close, current shift and cash reconciliation."""

from typing import Optional

from fastapi import APIRouter, Query, status

from stockrecon.core.responses import list_response
from stockrecon.db.session import DbSession
from stockrecon.schemas.shift import (
    CashReconciliationResponse,
    ShiftClose,
    ShiftOpen,
    ShiftResponse,
)
from stockrecon.services.cash_reconciliation_service import CashReconciliationService
from stockrecon.services.shift_service import ShiftService

router = APIRouter()


@router.get("")
def list_shifts(
    db: DbSession,
    status_filter: Optional[str] = Query(None, alias="status"),
    limit: int = Query(20, ge=1, le=200),
):
    shifts = ShiftService(db).list_shifts(status=status_filter, limit=limit)
    return list_response([ShiftResponse.model_validate(s) for s in shifts])


@router.get("/current", response_model=Optional[ShiftResponse])
def get_current_shift(db: DbSession):
    """The open shift, or null when none is open."""
    return ShiftService(db).get_current_shift()


@router.post("/open", response_model=ShiftResponse, status_code=status.HTTP_201_CREATED)
def open_shift(body: ShiftOpen, db: DbSession):
    return ShiftService(db).open_shift(
        opened_by=body.opened_by,
        opening_float=body.opening_float,
        opening_stock_count_id=body.opening_stock_count_id,
        staff_on_duty=body.staff_on_duty,
    )


@router.post("/{shift_id}/close", response_model=ShiftResponse)
def close_shift(shift_id: int, body: ShiftClose, db: DbSession):
    """Close the shift; cash is reconciled and the day's summary refreshed."""
    return ShiftService(db).close_shift(
        shift_id,
        closed_by=body.closed_by,
        closing_cash=body.closing_cash,
        closing_stock_count_id=body.closing_stock_count_id,
        cash_declared=body.cash_declared,
    )


@router.post("/{shift_id}/cash-reconciliation", response_model=CashReconciliationResponse)
def reconcile_cash(shift_id: int, db: DbSession):
    """Recompute expected cash and variance for a shift."""
    return CashReconciliationService(db).calculate(shift_id)
