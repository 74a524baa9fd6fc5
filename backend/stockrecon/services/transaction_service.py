"""Read-side queries over synced POS transactions."""

from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Session

from stockrecon.core.business_day import business_date, day_window
from stockrecon.core.exceptions import ValidationFailed
from stockrecon.models.pos import SyncedTransaction


class TransactionQueryService:
    def __init__(self, db: Session):
        self.db = db

    def list_transactions(
        self,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        limit: int = 100,
        offset: int = 0,
    ) -> Tuple[List[SyncedTransaction], int]:
        """Transactions closed within [start_date, end_date], newest first.

        Defaults to the current business day. Returns the page and the total
        matching count.
        """
        start_date = start_date or business_date()
        end_date = end_date or start_date
        if end_date < start_date:
            raise ValidationFailed("end date must not be before start date")
        start, _ = day_window(start_date)
        _, end = day_window(end_date)

        query = self.db.query(SyncedTransaction).filter(
            SyncedTransaction.transaction_date >= start,
            SyncedTransaction.transaction_date < end,
        )
        total = query.count()
        rows = (
            query.order_by(SyncedTransaction.transaction_date.desc())
            .offset(offset)
            .limit(limit)
            .all()
        )
        return rows, total

    def summary(self, day: Optional[date] = None) -> Dict[str, Any]:
        day = day or business_date()
        start, end = day_window(day)
        total_sales, cash_sales, card_sales, count = (
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
        return {
            "date": day,
            "transaction_count": count or 0,
            "total_sales": Decimal(str(total_sales or 0)),
            "cash_sales": Decimal(str(cash_sales or 0)),
            "card_sales": Decimal(str(card_sales or 0)),
        }
