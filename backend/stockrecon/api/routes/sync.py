"""PosterPOS sync routes: manual sync, backfill, scheduler control and status."""

import logging

from fastapi import APIRouter, Request

from stockrecon.api.deps import Notifier, PosClient
from stockrecon.core.config import settings
from stockrecon.core.rate_limit import limiter
from stockrecon.db.session import DbSession
from stockrecon.schemas.sync import (
    BackfillRequest,
    BackfillResponse,
    RecipeSyncResponse,
    SyncResultResponse,
    SyncStatusResponse,
)
from stockrecon.services.recipe_sync_service import RecipeSyncService
from stockrecon.services.scheduler_service import scheduler
from stockrecon.services.sync_jobs import SALES_SYNC_TASK, register_sales_sync
from stockrecon.services.sync_status_service import SyncStatusService
from stockrecon.services.transaction_sync_service import TransactionSyncService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/status", response_model=SyncStatusResponse)
def get_sync_status(db: DbSession, pos: PosClient):
    """Persisted state of every sync type plus the scheduler."""
    return {
        "pos_configured": pos is not None and pos.is_configured,
        "scheduler": scheduler.get_status(),
        "syncs": SyncStatusService(db).snapshot(),
    }


@router.post("/transactions", response_model=SyncResultResponse)
@limiter.limit(settings.rate_limit_sync)
async def sync_transactions(request: Request, db: DbSession, pos: PosClient, notifier: Notifier):
    """Run one incremental sync from the stored watermark."""
    result = await TransactionSyncService(db, pos, notifier).sync_transactions()
    return result.to_dict()


@router.post("/recipes", response_model=RecipeSyncResponse)
@limiter.limit(settings.rate_limit_sync)
async def sync_recipes(request: Request, db: DbSession, pos: PosClient):
    result = await RecipeSyncService(db, pos).sync_recipes()
    return result.to_dict()


@router.post("/backfill", response_model=BackfillResponse)
@limiter.limit(settings.rate_limit_sync)
async def backfill(request: Request, body: BackfillRequest, db: DbSession, pos: PosClient):
    """Refresh recipes, then re-import the last N days of transactions.

    Existing transactions are skipped; the incremental watermark is untouched.
    """
    recipes = await RecipeSyncService(db, pos).sync_recipes()
    # Historical sales are not announced
    transactions = await TransactionSyncService(db, pos).backfill_transactions(body.days)
    return {"recipes": recipes.to_dict(), "transactions": transactions.to_dict()}


@router.post("/start")
async def start_scheduler(pos: PosClient):
    """Start the periodic sales sync."""
    if pos is None or not pos.is_configured:
        return {"started": False, "running": scheduler.is_running, "reason": "PosterPOS not configured"}
    if SALES_SYNC_TASK not in scheduler.get_status()["tasks"]:
        register_sales_sync(scheduler)
    started = scheduler.start()
    return {"started": started, "running": scheduler.is_running}


@router.post("/stop")
async def stop_scheduler():
    stopped = scheduler.stop()
    if stopped:
        logger.info("Periodic sales sync stopped")
    return {"stopped": stopped, "running": scheduler.is_running}
