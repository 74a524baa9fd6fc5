# Services module

from stockrecon.services.reconciliation_service import (
    ReconciliationConfig,
    ReconciliationService,
    classify_variance,
)
from stockrecon.services.transaction_sync_service import SyncResult, TransactionSyncService

__all__ = [
    "ReconciliationConfig",
    "ReconciliationService",
    "classify_variance",
    "SyncResult",
    "TransactionSyncService",
]
