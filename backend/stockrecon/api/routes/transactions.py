"""Synced sales and derived ingredient consumption."""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Query

from stockrecon.core.business_day import business_date, day_window
from stockrecon.core.responses import list_response, paginated_response
from stockrecon.db.session import DbSession
from stockrecon.schemas.transaction import ConsumptionTotal, TransactionResponse, TransactionSummary
from stockrecon.services.consumption_service import get_consumption_totals
from stockrecon.services.transaction_service import TransactionQueryService

router = APIRouter()


@router.get("/transactions")
def list_transactions(
    db: DbSession,
    day: Optional[date] = Query(None, alias="date"),
    from_date: Optional[date] = Query(None, alias="from"),
    to_date: Optional[date] = Query(None, alias="to"),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
):
    """Transactions for one business day (``date``) or a ``from``/``to`` range."""
    start = day or from_date
    end = day or to_date
    rows, total = TransactionQueryService(db).list_transactions(start, end, limit=limit, offset=skip)
    return paginated_response(
        [TransactionResponse.model_validate(t) for t in rows], total, skip=skip, limit=limit
    )


@router.get("/transactions/summary", response_model=TransactionSummary)
def transaction_summary(db: DbSession, day: Optional[date] = Query(None, alias="date")):
    return TransactionQueryService(db).summary(day)


@router.get("/consumption")
def consumption_totals(db: DbSession, day: Optional[date] = Query(None, alias="date")):
    """Ingredient consumption per ingredient for a business day."""
    start, end = day_window(day or business_date())
    totals = get_consumption_totals(db, start, end)
    return list_response([ConsumptionTotal(**row) for row in totals])
