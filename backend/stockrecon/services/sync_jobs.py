"""Scheduled jobs that run outside a request (periodic POS sales sync)."""

import asyncio
import logging

from stockrecon.core.config import settings
from stockrecon.db.session import SessionLocal
from stockrecon.services.notification_service import get_notifier
from stockrecon.services.pos import get_pos_client
from stockrecon.services.scheduler_service import TaskScheduler, scheduler
from stockrecon.services.transaction_sync_service import TransactionSyncService

logger = logging.getLogger(__name__)

SALES_SYNC_TASK = "sales_sync"


async def run_sales_sync() -> None:
    """One incremental sync cycle on its own session.

    Session work runs in worker threads so the loop stays free for requests.
    """
    db = SessionLocal()
    try:
        service = TransactionSyncService(db, get_pos_client(), get_notifier())
        result = await service.sync_transactions()
        if result.transactions_synced:
            logger.info(f"Scheduled sync imported {result.transactions_synced} transactions")
    finally:
        await asyncio.to_thread(db.close)


def register_sales_sync(target: TaskScheduler = scheduler) -> None:
    target.add_task(SALES_SYNC_TASK, run_sales_sync, settings.sync_interval_seconds)
