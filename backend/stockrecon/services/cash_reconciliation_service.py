"""Shift cash reconciliation.

    expected_cash = opening_float + pos_cash_sales - expenses
    variance = declared_cash - expected_cash
"""

import logging
from dataclasses import asdict, dataclass
from decimal import Decimal
from typing import Any, Dict, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from stockrecon.core.business_day import utcnow
from stockrecon.models.pos import SyncedTransaction
from stockrecon.models.shift import Expense, Shift

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


@dataclass
class CashReconciliationResult:
    success: bool = False
    shift_id: Optional[int] = None
    opening_float: Decimal = ZERO
    pos_cash_total: Decimal = ZERO
    pos_card_total: Decimal = ZERO
    expenses_total: Decimal = ZERO
    expected_cash: Decimal = ZERO
    actual_cash: Decimal = ZERO
    variance: Decimal = ZERO

    def to_dict(self) -> Dict[str, Any]:
        return {
            key: float(value) if isinstance(value, Decimal) else value
            for key, value in asdict(self).items()
        }


class CashReconciliationService:
    def __init__(self, db: Session):
        self.db = db

    def calculate(self, shift_id: int, commit: bool = True) -> CashReconciliationResult:
        """Compute and persist the cash position of a shift.

        A missing shift yields a zeroed result with ``success=False``.
        """
        result = CashReconciliationResult(shift_id=shift_id)
        shift = self.db.query(Shift).filter(Shift.id == shift_id).first()
        if shift is None:
            logger.warning(f"Cash reconciliation requested for unknown shift {shift_id}")
            return result

        window_end = shift.closed_at or utcnow()
        cash_total, card_total = (
            self.db.query(
                func.coalesce(func.sum(SyncedTransaction.payed_cash), 0),
                func.coalesce(func.sum(SyncedTransaction.payed_card), 0),
            )
            .filter(
                SyncedTransaction.transaction_date >= shift.opened_at,
                SyncedTransaction.transaction_date <= window_end,
            )
            .one()
        )
        expenses_total = (
            self.db.query(func.coalesce(func.sum(Expense.amount), 0))
            .filter(Expense.shift_id == shift.id)
            .scalar()
        )

        declared = shift.cash_declared if shift.cash_declared is not None else shift.closing_cash

        result.opening_float = Decimal(shift.opening_float or 0)
        result.pos_cash_total = Decimal(str(cash_total))
        result.pos_card_total = Decimal(str(card_total))
        result.expenses_total = Decimal(str(expenses_total))
        result.actual_cash = Decimal(declared or 0)
        result.expected_cash = result.opening_float + result.pos_cash_total - result.expenses_total
        result.variance = result.actual_cash - result.expected_cash
        result.success = True

        shift.pos_cash_total = result.pos_cash_total
        shift.pos_card_total = result.pos_card_total
        shift.expenses_total = result.expenses_total
        shift.expected_cash = result.expected_cash
        shift.cash_variance = result.variance
        if commit:
            self.db.commit()

        logger.info(
            f"Cash reconciliation for shift {shift.id}: expected {result.expected_cash}, "
            f"declared {result.actual_cash}, variance {result.variance}"
        )
        return result
