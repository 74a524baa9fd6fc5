"""POS transaction ingestion.

Imports closed PosterPOS transactions into ``synced_transactions`` exactly once
per external transaction id and derives their ingredient consumption in the
same unit of work.

Two entry points:
- ``sync_transactions``: incremental, driven by the persisted watermark
  (newest close timestamp seen). Runs every few minutes.
- ``backfill_transactions``: re-reads the last N days. Safe to repeat because
  ingestion is idempotent, and never moves the incremental watermark.
"""

import asyncio
import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime, timedelta, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from stockrecon.core.config import settings
from stockrecon.core.exceptions import ValidationFailed
from stockrecon.models.pos import PayType, SyncedTransaction, SyncState, SyncType
from stockrecon.services.consumption_service import ConsumptionDeriver
from stockrecon.services.notification_service import TelegramNotifier
from stockrecon.services.pos.poster_client import PosterClient, parse_close_date
from stockrecon.services.sync_status_service import SyncStatusService

logger = logging.getLogger(__name__)

PAY_TYPES = {"0": PayType.CASH, "1": PayType.CARD, "2": PayType.MIXED}


@dataclass
class SyncResult:
    success: bool = True
    transactions_synced: int = 0
    duplicates_skipped: int = 0
    consumption_records_created: int = 0
    errors: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def from_cents(value: Any) -> Decimal:
    """Poster money fields are integer cents."""
    if value is None or value == "":
        return Decimal("0")
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError):
        return Decimal("0")
    if not amount.is_finite():
        return Decimal("0")
    return amount / 100


def map_pay_type(value: Any) -> PayType:
    return PAY_TYPES.get(str(value) if value is not None else "", PayType.OTHER)


def close_timestamp(raw: Dict[str, Any]) -> int:
    return int(parse_close_date(raw.get("date_close")).timestamp())


def format_sale_message(raw: Dict[str, Any], total: Decimal) -> str:
    products = raw.get("products") or []
    pay_type = map_pay_type(raw.get("pay_type")).value.capitalize()
    return (
        f"🧾 *Sale #{raw.get('transaction_id')}*\n"
        f"💰 {settings.currency_label} {total:.2f}\n"
        f"📦 {len(products)} items | 💳 {pay_type}"
    )


class TransactionSyncService:
    """Idempotent POS transaction ingestion with consumption derivation."""

    def __init__(
        self,
        db: Session,
        pos_client: Optional[PosterClient],
        notifier: Optional[TelegramNotifier] = None,
    ):
        self.db = db
        self.pos_client = pos_client
        self.notifier = notifier
        self.status = SyncStatusService(db)

    @property
    def _pos_available(self) -> bool:
        return self.pos_client is not None and self.pos_client.is_configured

    # ------------------------------------------------------------------
    # Single transaction
    # ------------------------------------------------------------------

    def _exists(self, pos_transaction_id: str) -> bool:
        return (
            self.db.query(SyncedTransaction.id)
            .filter(SyncedTransaction.pos_transaction_id == pos_transaction_id)
            .first()
        ) is not None

    def _insert(self, raw: Dict[str, Any]) -> Optional[int]:
        """Insert one transaction and its consumption.

        Returns the number of consumption rows created, or None when the
        transaction was already present. Commits on success.
        """
        tx_id = raw.get("transaction_id")
        if tx_id is None or tx_id == "":
            raise ValueError("transaction has no transaction_id")
        pos_transaction_id = str(tx_id)

        if self._exists(pos_transaction_id):
            return None

        products = raw.get("products") or []
        synced_tx = SyncedTransaction(
            pos_transaction_id=pos_transaction_id,
            transaction_date=parse_close_date(raw.get("date_close")),
            total_amount=from_cents(raw.get("payed_sum") or raw.get("sum")),
            pay_type=map_pay_type(raw.get("pay_type")),
            payed_cash=from_cents(raw.get("payed_cash")),
            payed_card=from_cents(raw.get("payed_card")),
            products=products if isinstance(products, list) else [],
            status=str(raw["status"]) if raw.get("status") is not None else None,
        )

        savepoint = self.db.begin_nested()
        try:
            self.db.add(synced_tx)
            self.db.flush()
        except IntegrityError:
            savepoint.rollback()
            if not self._exists(pos_transaction_id):
                raise
            # Inserted concurrently since the existence check
            self.db.commit()
            return None
        savepoint.commit()

        try:
            created = ConsumptionDeriver(self.db).derive_for_transaction(synced_tx)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        return created

    async def _notify(self, raw: Dict[str, Any]) -> None:
        if self.notifier is None:
            return
        closed_at = parse_close_date(raw.get("date_close"))
        max_age = timedelta(minutes=settings.sale_notification_max_age_minutes)
        if datetime.now(timezone.utc) - closed_at > max_age:
            return
        total = from_cents(raw.get("payed_sum") or raw.get("sum"))
        try:
            await self.notifier.send_message(format_sale_message(raw, total))
        except Exception as e:
            logger.warning(f"Sale notification failed for {raw.get('transaction_id')}: {e}")

    async def ingest_transaction(self, raw: Dict[str, Any]) -> bool:
        """Ingest one raw POS transaction. Returns False for a duplicate."""
        created = await asyncio.to_thread(self._insert, raw)
        if created is None:
            return False
        await self._notify(raw)
        return True

    async def _process(self, raw: Dict[str, Any], result: SyncResult) -> None:
        """Ingest into a batch result; failures go to ``result.errors``."""
        try:
            created = await asyncio.to_thread(self._insert, raw)
        except Exception as e:
            await asyncio.to_thread(self.db.rollback)
            message = f"Transaction {raw.get('transaction_id')}: {e}"
            logger.error(f"Failed to ingest POS transaction: {message}")
            result.errors.append(message)
            return

        if created is None:
            result.duplicates_skipped += 1
            return

        result.transactions_synced += 1
        result.consumption_records_created += created
        await self._notify(raw)

    # ------------------------------------------------------------------
    # Batches
    # ------------------------------------------------------------------

    async def _set_status(self, sync_type: SyncType, **fields: Any) -> None:
        await asyncio.to_thread(self.status.update, sync_type, **fields)

    async def sync_transactions(self) -> SyncResult:
        """Incremental sync from the persisted watermark.

        The watermark moves to the newest close time seen in the batch, failed
        transactions included. Their ids are reported in ``errors``; a backfill
        picks them up again.
        """
        result = SyncResult()
        if not self._pos_available:
            logger.info("PosterPOS not configured, skipping sync")
            return result

        await self._set_status(SyncType.TRANSACTIONS, status=SyncState.SYNCING)
        watermark = await asyncio.to_thread(self.status.get_watermark)

        try:
            if watermark:
                logger.info(
                    f"Fetching transactions since {datetime.fromtimestamp(watermark, tz=timezone.utc).isoformat()}"
                )
                transactions = await self.pos_client.get_transactions_since(watermark)
            else:
                logger.info("Initial sync: fetching today's transactions")
                transactions = await self.pos_client.get_todays_transactions()
        except Exception as e:
            logger.error(f"Transaction sync failed: {e}", exc_info=True)
            result.success = False
            result.errors.append(str(e))
            await self._set_status(SyncType.TRANSACTIONS, status=SyncState.ERROR, error_message=str(e))
            return result

        logger.info(f"Found {len(transactions)} transactions to process")

        for raw in sorted(transactions, key=close_timestamp):
            await self._process(raw, result)
            ts = close_timestamp(raw)
            if watermark is None or ts > watermark:
                watermark = ts
                await self._set_status(SyncType.TRANSACTIONS, last_sync_timestamp=ts)

        await self._set_status(
            SyncType.TRANSACTIONS,
            status=SyncState.IDLE,
            last_sync_at=datetime.now(timezone.utc),
            records_synced=result.transactions_synced,
            error_message="; ".join(result.errors) if result.errors else None,
        )
        logger.info(
            f"Sync complete: {result.transactions_synced} transactions, "
            f"{result.duplicates_skipped} duplicates, "
            f"{result.consumption_records_created} consumption records"
        )
        return result

    async def backfill_transactions(self, days: int) -> SyncResult:
        """Re-import the last ``days`` days without touching the watermark."""
        if days < 1:
            raise ValidationFailed("days must be at least 1")

        result = SyncResult()
        if not self._pos_available:
            logger.info("PosterPOS not configured, skipping backfill")
            return result

        await self._set_status(SyncType.BACKFILL, status=SyncState.SYNCING)
        since = datetime.now(timezone.utc) - timedelta(days=days)
        logger.info(f"Starting backfill for last {days} days (since {since.isoformat()})")

        try:
            transactions = await self.pos_client.get_transactions_since(int(since.timestamp()))
        except Exception as e:
            logger.error(f"Backfill failed: {e}", exc_info=True)
            result.success = False
            result.errors.append(str(e))
            await self._set_status(SyncType.BACKFILL, status=SyncState.ERROR, error_message=str(e))
            return result

        for raw in sorted(transactions, key=close_timestamp):
            await self._process(raw, result)

        await self._set_status(
            SyncType.BACKFILL,
            status=SyncState.IDLE,
            last_sync_at=datetime.now(timezone.utc),
            records_synced=result.transactions_synced,
            error_message="; ".join(result.errors) if result.errors else None,
        )
        logger.info(f"Backfill complete: {result.transactions_synced} new transactions imported")
        return result
