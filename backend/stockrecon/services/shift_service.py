"""Shift lifecycle: open -> closed.

At most one shift is open at a time. Operational controls (AppSetting
``shift_controls``) can require an opening count, a closing count and a
cash declaration before the corresponding transition is allowed.
"""

import logging
from decimal import Decimal, InvalidOperation
from typing import Any, List, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from stockrecon.core.business_day import business_date, utcnow
from stockrecon.core.exceptions import (
    ConflictError,
    ControlGateError,
    NotFoundError,
    ValidationFailed,
)
from stockrecon.models.shift import Shift, ShiftStatus
from stockrecon.models.stock import StockCount
from stockrecon.services.cash_reconciliation_service import CashReconciliationService
from stockrecon.services.daily_summary_service import DailySummaryService
from stockrecon.services.settings_service import SettingsService

logger = logging.getLogger(__name__)


def _money(value: Any, label: str) -> Decimal:
    if value is None:
        raise ValidationFailed(f"{label} is required")
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValidationFailed(f"Invalid {label}: {value!r}")
    if not amount.is_finite() or amount < 0:
        raise ValidationFailed(f"{label} must be zero or more")
    return amount


class ShiftService:
    def __init__(self, db: Session):
        self.db = db
        self.settings = SettingsService(db)

    def get(self, shift_id: int) -> Shift:
        shift = self.db.query(Shift).filter(Shift.id == shift_id).first()
        if shift is None:
            raise NotFoundError(f"Shift {shift_id} not found")
        return shift

    def get_current_shift(self) -> Optional[Shift]:
        return (
            self.db.query(Shift)
            .filter(Shift.status == ShiftStatus.OPEN)
            .order_by(Shift.opened_at.desc())
            .first()
        )

    def list_shifts(self, status: Optional[str] = None, limit: int = 20) -> List[Shift]:
        query = self.db.query(Shift)
        if status:
            try:
                query = query.filter(Shift.status == ShiftStatus(status))
            except ValueError as e:
                raise ValidationFailed(str(e))
        return query.order_by(Shift.opened_at.desc(), Shift.id.desc()).limit(limit).all()

    def _require_count(self, count_id: Optional[int]) -> Optional[StockCount]:
        if count_id is None:
            return None
        count = self.db.query(StockCount).filter(StockCount.id == count_id).first()
        if count is None:
            raise ValidationFailed(f"Stock count {count_id} not found")
        return count

    def open_shift(
        self,
        opened_by: str,
        opening_float: Any,
        opening_stock_count_id: Optional[int] = None,
        staff_on_duty: Optional[List[str]] = None,
    ) -> Shift:
        if not opened_by or not opened_by.strip():
            raise ValidationFailed("opened_by is required")
        float_amount = _money(opening_float, "opening_float")

        controls = self.settings.shift_controls()
        if controls.get("require_opening_count") and opening_stock_count_id is None:
            raise ControlGateError(
                "An opening stock count is required before opening a shift",
                code="COUNT_REQUIRED",
            )
        count = self._require_count(opening_stock_count_id)

        current = self.get_current_shift()
        if current is not None:
            raise ConflictError(f"Shift {current.id} opened by {current.opened_by} is still open")

        shift = Shift(
            status=ShiftStatus.OPEN,
            opened_by=opened_by.strip(),
            opened_at=utcnow(),
            opening_float=float_amount,
            staff_on_duty=list(staff_on_duty or []),
            opening_stock_count_id=opening_stock_count_id,
        )
        savepoint = self.db.begin_nested()
        try:
            self.db.add(shift)
            self.db.flush()
            savepoint.commit()
        except IntegrityError:
            # Lost the race against another open
            savepoint.rollback()
            self.db.rollback()
            raise ConflictError("Another shift is already open")

        if count is not None and count.shift_id is None:
            count.shift_id = shift.id
        self.db.commit()
        self.db.refresh(shift)
        logger.info(f"Shift {shift.id} opened by {shift.opened_by} with float {shift.opening_float}")
        return shift

    def close_shift(
        self,
        shift_id: int,
        closed_by: str,
        closing_cash: Any,
        closing_stock_count_id: Optional[int] = None,
        cash_declared: Any = None,
    ) -> Shift:
        """Close an open shift, reconcile its cash and refresh the day's summary."""
        shift = self.get(shift_id)
        if shift.status != ShiftStatus.OPEN:
            raise ConflictError(f"Shift {shift_id} is already closed")
        if not closed_by or not closed_by.strip():
            raise ValidationFailed("closed_by is required")
        closing_amount = _money(closing_cash, "closing_cash")
        declared_amount = _money(cash_declared, "cash_declared") if cash_declared is not None else None

        controls = self.settings.shift_controls()
        if controls.get("require_closing_count") and closing_stock_count_id is None:
            raise ControlGateError(
                "A closing stock count is required before closing the shift",
                code="COUNT_REQUIRED",
            )
        if controls.get("require_cash_declaration") and declared_amount is None:
            raise ControlGateError(
                "A cash declaration is required before closing the shift",
                code="DECLARATION_REQUIRED",
            )
        count = self._require_count(closing_stock_count_id)

        shift.status = ShiftStatus.CLOSED
        shift.closed_by = closed_by.strip()
        shift.closed_at = utcnow()
        shift.closing_cash = closing_amount
        shift.cash_declared = declared_amount
        shift.closing_stock_count_id = closing_stock_count_id
        if count is not None and count.shift_id is None:
            count.shift_id = shift.id
        self.db.flush()

        CashReconciliationService(self.db).calculate(shift.id, commit=False)
        self.db.commit()
        self.db.refresh(shift)
        logger.info(f"Shift {shift.id} closed by {shift.closed_by}, cash variance {shift.cash_variance}")

        try:
            DailySummaryService(self.db).generate(business_date(shift.closed_at))
        except SQLAlchemyError as e:
            # The close itself is committed; the summary can be regenerated on demand
            self.db.rollback()
            logger.error(f"Daily summary after closing shift {shift.id} failed: {e}", exc_info=True)
        return shift
