"""Sync request and response schemas."""

from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from stockrecon.core.config import settings
from stockrecon.schemas.base import CamelModel


class BackfillRequest(CamelModel):
    days: int = Field(default_factory=lambda: settings.default_backfill_days, ge=1, le=365)


class SyncResultResponse(BaseModel):
    success: bool
    transactions_synced: int
    duplicates_skipped: int
    consumption_records_created: int
    errors: List[str] = []


class RecipeSyncResponse(BaseModel):
    success: bool
    recipes_upserted: int
    ingredients_upserted: int
    lines_upserted: int
    errors: List[str] = []


class BackfillResponse(BaseModel):
    recipes: RecipeSyncResponse
    transactions: SyncResultResponse


class SyncStatusEntry(BaseModel):
    status: str
    last_sync_at: Optional[datetime] = None
    last_sync_timestamp: Optional[int] = None
    records_synced: int = 0
    error_message: Optional[str] = None


class SyncStatusResponse(BaseModel):
    pos_configured: bool
    scheduler: dict
    syncs: Dict[str, SyncStatusEntry]
