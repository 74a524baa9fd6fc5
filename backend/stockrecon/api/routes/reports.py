"""Reporting routes: daily summary, below-PAR stock and variance history."""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Query

from stockrecon.core.business_day import business_date
from stockrecon.core.exceptions import NotFoundError
from stockrecon.core.responses import list_response
from stockrecon.db.session import DbSession
from stockrecon.models.stock import Location
from stockrecon.schemas.operations import DailySummaryGenerate, DailySummaryResponse
from stockrecon.services.daily_summary_service import DailySummaryService
from stockrecon.services.reconciliation_service import ReconciliationService
from stockrecon.services.reorder_service import ReorderService

router = APIRouter()


@router.get("/daily-summary", response_model=DailySummaryResponse)
def get_daily_summary(db: DbSession, day: Optional[date] = Query(None, alias="date")):
    day = day or business_date()
    summary = DailySummaryService(db).get(day)
    if summary is None:
        raise NotFoundError(f"No summary generated for {day.isoformat()}")
    return summary


@router.post("/daily-summary/generate", response_model=DailySummaryResponse)
def generate_daily_summary(body: DailySummaryGenerate, db: DbSession):
    """Recompute the summary; defaults to the current business day."""
    return DailySummaryService(db).generate(body.date or business_date())


@router.get("/below-par")
def below_par(db: DbSession, location: Location = Location.SHOP):
    return list_response(ReorderService(db).below_par(location.value))


@router.get("/variance-history")
def variance_history(
    db: DbSession,
    days: int = Query(7, ge=1, le=90),
    location: Optional[Location] = None,
):
    history = ReconciliationService(db).get_variance_history(days, location.value if location else None)
    return list_response(history)
