"""Per-business-day rollup of sales, consumption, variance and activity."""

import logging
from datetime import date
from decimal import Decimal
from typing import Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from stockrecon.core.business_day import day_window
from stockrecon.models.operations import DailySummary, ReorderRequest
from stockrecon.models.pos import CalculatedConsumption, SyncedTransaction
from stockrecon.models.reconciliation import DailyReconciliation, ReconciliationItem, VarianceStatus
from stockrecon.models.shift import Shift
from stockrecon.models.stock import Dispatch, DispatchStatus

logger = logging.getLogger(__name__)


def _dec(value) -> Decimal:
    return Decimal(str(value or 0))


class DailySummaryService:
    def __init__(self, db: Session):
        self.db = db

    def get(self, summary_date: date) -> Optional[DailySummary]:
        return self.db.query(DailySummary).filter(DailySummary.summary_date == summary_date).first()

    def generate(self, summary_date: date) -> DailySummary:
        """Recompute and upsert the summary for one business day."""
        start, end = day_window(summary_date)
        logger.info(f"Generating daily summary for {summary_date.isoformat()}")

        total_sales, cash_sales, card_sales, tx_count = (
            self.db.query(
                func.sum(SyncedTransaction.total_amount),
                func.sum(SyncedTransaction.payed_cash),
                func.sum(SyncedTransaction.payed_card),
                func.count(SyncedTransaction.id),
            )
            .filter(
                SyncedTransaction.transaction_date >= start,
                SyncedTransaction.transaction_date < end,
            )
            .one()
        )

        consumption_cost, items_consumed = (
            self.db.query(
                func.sum(CalculatedConsumption.cost_at_time),
                func.count(CalculatedConsumption.id),
            )
            .filter(
                CalculatedConsumption.calculated_at >= start,
                CalculatedConsumption.calculated_at < end,
            )
            .one()
        )

        variance_value = (
            self.db.query(func.sum(DailyReconciliation.total_variance_value))
            .filter(DailyReconciliation.reconciliation_date == summary_date)
            .scalar()
        )
        variance_count = (
            self.db.query(func.count(ReconciliationItem.id))
            .join(DailyReconciliation, DailyReconciliation.id == ReconciliationItem.reconciliation_id)
            .filter(
                DailyReconciliation.reconciliation_date == summary_date,
                ReconciliationItem.variance_status != VarianceStatus.MATCHED,
            )
            .scalar()
        )

        cash_variance = (
            self.db.query(func.sum(Shift.cash_variance))
            .filter(Shift.closed_at >= start, Shift.closed_at < end)
            .scalar()
        )
        shifts_opened = (
            self.db.query(func.count(Shift.id))
            .filter(Shift.opened_at >= start, Shift.opened_at < end)
            .scalar()
        )
        dispatches_sent = (
            self.db.query(func.count(Dispatch.id))
            .filter(Dispatch.dispatched_at >= start, Dispatch.dispatched_at < end)
            .scalar()
        )
        dispatches_received = (
            self.db.query(func.count(Dispatch.id))
            .filter(
                Dispatch.status == DispatchStatus.RECEIVED,
                Dispatch.received_at >= start,
                Dispatch.received_at < end,
            )
            .scalar()
        )
        reorders_created = (
            self.db.query(func.count(ReorderRequest.id))
            .filter(ReorderRequest.requested_at >= start, ReorderRequest.requested_at < end)
            .scalar()
        )

        values = {
            "total_sales": _dec(total_sales),
            "cash_sales": _dec(cash_sales),
            "card_sales": _dec(card_sales),
            "transaction_count": tx_count or 0,
            "total_consumption_cost": _dec(consumption_cost),
            "items_consumed": items_consumed or 0,
            "stock_variance_count": variance_count or 0,
            "stock_variance_value": _dec(variance_value),
            "cash_variance": _dec(cash_variance),
            "shifts_opened": shifts_opened or 0,
            "dispatches_sent": dispatches_sent or 0,
            "dispatches_received": dispatches_received or 0,
            "reorders_created": reorders_created or 0,
        }
        values["gross_margin"] = values["total_sales"] - values["total_consumption_cost"]

        summary = self.get(summary_date)
        if summary is None:
            savepoint = self.db.begin_nested()
            try:
                summary = DailySummary(summary_date=summary_date, **values)
                self.db.add(summary)
                self.db.flush()
                savepoint.commit()
            except IntegrityError:
                savepoint.rollback()
                summary = self.get(summary_date)
                if summary is None:
                    raise
        for key, value in values.items():
            setattr(summary, key, value)
        self.db.commit()
        self.db.refresh(summary)
        return summary
