"""Daily stock reconciliation routes."""

from datetime import date, timedelta
from typing import Optional

from fastapi import APIRouter, Query

from stockrecon.core.business_day import business_date
from stockrecon.core.exceptions import ValidationFailed
from stockrecon.core.responses import list_response
from stockrecon.db.session import DbSession
from stockrecon.models.stock import Location
from stockrecon.schemas.reconciliation import (
    ReconciliationAcknowledge,
    ReconciliationCalculate,
    ReconciliationDetailResponse,
    ReconciliationItemResponse,
    ReconciliationOutcomeResponse,
    ReconciliationResponse,
)
from stockrecon.services.reconciliation_service import ReconciliationService

router = APIRouter()


@router.post("/calculate", response_model=ReconciliationOutcomeResponse)
def calculate_reconciliation(body: ReconciliationCalculate, db: DbSession):
    """Calculate (or recalculate) one day at one location.

    Count ids default to the latest completed opening and closing counts of
    that day.
    """
    service = ReconciliationService(db)
    opening_id, closing_id = service.resolve_count_ids(
        body.date,
        body.location.value,
        body.opening_stock_count_id,
        body.closing_stock_count_id,
    )
    outcome = service.calculate_daily_reconciliation(
        body.date, body.location.value, opening_id, closing_id
    )
    return outcome.to_dict()


@router.get("")
def list_reconciliations(
    db: DbSession,
    from_date: Optional[date] = Query(None, alias="from"),
    to_date: Optional[date] = Query(None, alias="to"),
    location: Optional[Location] = None,
):
    """Reconciliation headers in a date range (default: the last 7 days)."""
    end = to_date or business_date()
    start = from_date or end - timedelta(days=6)
    if start > end:
        raise ValidationFailed("'from' must not be after 'to'")
    headers = ReconciliationService(db).get_reconciliations(
        start, end, location.value if location else None
    )
    return list_response([ReconciliationResponse.model_validate(h) for h in headers])


@router.get("/{reconciliation_id}", response_model=ReconciliationDetailResponse)
def get_reconciliation(reconciliation_id: int, db: DbSession):
    return ReconciliationService(db).get(reconciliation_id)


@router.get("/{reconciliation_id}/variance")
def get_variance_items(reconciliation_id: int, db: DbSession):
    """Only over/under items, largest loss first."""
    items = ReconciliationService(db).get_variance_items(reconciliation_id)
    return list_response([ReconciliationItemResponse.model_validate(i) for i in items])


@router.post("/{reconciliation_id}/acknowledge", response_model=ReconciliationResponse)
def acknowledge_reconciliation(reconciliation_id: int, body: ReconciliationAcknowledge, db: DbSession):
    return ReconciliationService(db).acknowledge(reconciliation_id, body.acknowledged_by)
