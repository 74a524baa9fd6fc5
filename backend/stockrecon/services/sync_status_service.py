"""Persisted sync state per sync type (transactions, backfill, recipes)."""

import logging
from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from stockrecon.core.business_day import utcnow
from stockrecon.models.pos import SyncState, SyncStatus, SyncType

logger = logging.getLogger(__name__)

_UNSET: Any = object()


class SyncStatusService:
    """Reads and updates SyncStatus rows. Every update is committed immediately
    so progress is visible to other sessions while a sync is running."""

    def __init__(self, db: Session):
        self.db = db

    def get(self, sync_type: SyncType | str) -> SyncStatus:
        """Return the status row for a sync type, creating it on first use."""
        key = SyncType(sync_type).value
        status = self.db.query(SyncStatus).filter(SyncStatus.sync_type == key).first()
        if status is not None:
            return status

        savepoint = self.db.begin_nested()
        try:
            status = SyncStatus(sync_type=key, status=SyncState.IDLE, records_synced=0)
            self.db.add(status)
            savepoint.commit()
        except IntegrityError:
            # Created concurrently by another session
            savepoint.rollback()
            status = self.db.query(SyncStatus).filter(SyncStatus.sync_type == key).one()
        self.db.commit()
        return status

    def update(
        self,
        sync_type: SyncType | str,
        *,
        status: Optional[SyncState] = None,
        last_sync_at: Optional[datetime] = None,
        last_sync_timestamp: Optional[int] = None,
        records_synced: Optional[int] = None,
        error_message: Optional[str] = _UNSET,
    ) -> SyncStatus:
        record = self.get(sync_type)
        if status is not None:
            record.status = status
        if last_sync_at is not None:
            record.last_sync_at = last_sync_at
        if last_sync_timestamp is not None:
            record.last_sync_timestamp = last_sync_timestamp
        if records_synced is not None:
            record.records_synced = records_synced
        if error_message is not _UNSET:
            record.error_message = error_message
        record.updated_at = utcnow()
        self.db.commit()
        return record

    def get_watermark(self) -> Optional[int]:
        return self.get(SyncType.TRANSACTIONS).last_sync_timestamp

    def snapshot(self) -> Dict[str, Dict[str, Any]]:
        """All sync status rows keyed by sync type."""
        result = {}
        for sync_type in SyncType:
            record = self.get(sync_type)
            result[sync_type.value] = {
                "status": record.status.value,
                "last_sync_at": record.last_sync_at.isoformat() if record.last_sync_at else None,
                "last_sync_timestamp": record.last_sync_timestamp,
                "records_synced": record.records_synced,
                "error_message": record.error_message,
            }
        return result
