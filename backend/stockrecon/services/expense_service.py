"""Shift-linked cash expenses."""

import logging
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any, List, Optional

from sqlalchemy.orm import Session

from stockrecon.core.business_day import business_date, day_window, utcnow
from stockrecon.core.exceptions import NotFoundError, ValidationFailed
from stockrecon.models.shift import Expense, ExpenseType, Shift, ShiftStatus

logger = logging.getLogger(__name__)


class ExpenseService:
    def __init__(self, db: Session):
        self.db = db

    def create_expense(
        self,
        description: str,
        amount: Any,
        expense_type: str = ExpenseType.PETTY_CASH.value,
        shift_id: Optional[int] = None,
        category: Optional[str] = None,
        paid_by: Optional[str] = None,
        paid_to: Optional[str] = None,
        receipt_number: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> Expense:
        """Record an expense against ``shift_id`` or, when omitted, the open shift."""
        if not description or not description.strip():
            raise ValidationFailed("description is required")
        try:
            value = Decimal(str(amount))
        except (InvalidOperation, ValueError):
            raise ValidationFailed(f"Invalid amount: {amount!r}")
        if not value.is_finite() or value <= 0:
            raise ValidationFailed("amount must be positive")
        try:
            kind = ExpenseType(expense_type)
        except ValueError as e:
            raise ValidationFailed(str(e))

        if shift_id is not None:
            if self.db.query(Shift.id).filter(Shift.id == shift_id).first() is None:
                raise NotFoundError(f"Shift {shift_id} not found")
        else:
            open_shift = self.db.query(Shift).filter(Shift.status == ShiftStatus.OPEN).first()
            shift_id = open_shift.id if open_shift else None

        expense = Expense(
            shift_id=shift_id,
            expense_type=kind,
            category=category,
            description=description.strip(),
            amount=value,
            paid_by=paid_by,
            paid_to=paid_to,
            receipt_number=receipt_number,
            notes=notes,
            created_at=utcnow(),
        )
        self.db.add(expense)
        self.db.commit()
        self.db.refresh(expense)
        logger.info(f"Expense {expense.id} of {value} recorded (shift {shift_id})")
        return expense

    def list_for_day(self, day: Optional[date] = None) -> List[Expense]:
        start, end = day_window(day or business_date())
        return (
            self.db.query(Expense)
            .filter(Expense.created_at >= start, Expense.created_at < end)
            .order_by(Expense.created_at.desc())
            .all()
        )
