"""Reconciliation service: compare expected vs counted closing stock.

Formula, per ingredient and business day:
    expected_closing = opening + received - theoretical_usage
    variance = actual_closing - expected_closing

The result is persisted once per (date, location) and recomputed in place when
recalculated; readers only ever query the stored rows.
"""

import logging
from dataclasses import asdict, dataclass, field
from datetime import date, timedelta
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from stockrecon.core.business_day import business_date, day_window, utcnow
from stockrecon.core.config import settings
from stockrecon.core.exceptions import ConflictError, NotFoundError, ValidationFailed
from stockrecon.models.ingredient import Ingredient
from stockrecon.models.pos import CalculatedConsumption
from stockrecon.models.reconciliation import (
    DailyReconciliation,
    ReconciliationItem,
    ReconciliationStatus,
    VarianceStatus,
)
from stockrecon.models.stock import CountType, Dispatch, DispatchItem, DispatchStatus, Location
from stockrecon.services.stock_count_service import StockCountService

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


class ReconciliationConfig:
    """Configuration for reconciliation thresholds."""

    def __init__(self, tolerance: Optional[Decimal] = None):
        self.tolerance = settings.variance_tolerance if tolerance is None else Decimal(tolerance)


def classify_variance(variance: Decimal, tolerance: Decimal) -> VarianceStatus:
    """Within the tolerance band (inclusive) is matched."""
    if variance > tolerance:
        return VarianceStatus.OVER
    if variance < -tolerance:
        return VarianceStatus.UNDER
    return VarianceStatus.MATCHED


@dataclass
class ReconciliationOutcome:
    success: bool = True
    reconciliation_id: Optional[int] = None
    item_count: int = 0
    matched_count: int = 0
    over_count: int = 0
    under_count: int = 0
    total_variance_value: Decimal = ZERO
    errors: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["total_variance_value"] = float(self.total_variance_value)
        return data


class ReconciliationService:
    """Service for reconciling counted stock against theoretical usage."""

    def __init__(self, db: Session, config: Optional[ReconciliationConfig] = None):
        self.db = db
        self.config = config or ReconciliationConfig()

    # ------------------------------------------------------------------
    # Input maps
    # ------------------------------------------------------------------

    def get_received_quantities(self, day: date, location: Location) -> Dict[int, Decimal]:
        """Quantities received at ``location`` from dispatches received that day."""
        if location != Location.SHOP:
            return {}
        start, end = day_window(day)
        rows = (
            self.db.query(
                DispatchItem.ingredient_id,
                func.sum(func.coalesce(DispatchItem.quantity_received, 0)),
            )
            .join(Dispatch, Dispatch.id == DispatchItem.dispatch_id)
            .filter(
                Dispatch.status == DispatchStatus.RECEIVED,
                Dispatch.to_location == location,
                Dispatch.received_at >= start,
                Dispatch.received_at < end,
                DispatchItem.ingredient_id.isnot(None),
            )
            .group_by(DispatchItem.ingredient_id)
            .all()
        )
        return {ingredient_id: Decimal(str(total or 0)) for ingredient_id, total in rows}

    def get_theoretical_usage(self, day: date) -> Dict[int, Decimal]:
        """Derived consumption per ingredient for the business day."""
        start, end = day_window(day)
        rows = (
            self.db.query(
                CalculatedConsumption.ingredient_id,
                func.sum(CalculatedConsumption.quantity_consumed),
            )
            .filter(
                CalculatedConsumption.calculated_at >= start,
                CalculatedConsumption.calculated_at < end,
            )
            .group_by(CalculatedConsumption.ingredient_id)
            .all()
        )
        return {ingredient_id: Decimal(str(total or 0)) for ingredient_id, total in rows}

    # ------------------------------------------------------------------
    # Header
    # ------------------------------------------------------------------

    def _upsert_header(
        self,
        day: date,
        location: Location,
        opening_count_id: Optional[int],
        closing_count_id: Optional[int],
    ) -> DailyReconciliation:
        def find() -> Optional[DailyReconciliation]:
            return (
                self.db.query(DailyReconciliation)
                .filter(
                    DailyReconciliation.reconciliation_date == day,
                    DailyReconciliation.location == location,
                )
                .first()
            )

        header = find()
        if header is None:
            savepoint = self.db.begin_nested()
            try:
                header = DailyReconciliation(reconciliation_date=day, location=location)
                self.db.add(header)
                self.db.flush()
                savepoint.commit()
            except IntegrityError:
                # Created concurrently for the same (date, location)
                savepoint.rollback()
                header = find()
                if header is None:
                    raise

        if header.status == ReconciliationStatus.ACKNOWLEDGED:
            raise ConflictError(
                f"Reconciliation for {location.value} on {day.isoformat()} is already acknowledged"
            )

        header.opening_count_id = opening_count_id
        header.closing_count_id = closing_count_id
        header.status = ReconciliationStatus.PENDING
        self.db.flush()
        return header

    # ------------------------------------------------------------------
    # Calculation
    # ------------------------------------------------------------------

    def resolve_count_ids(
        self,
        day: date,
        location: str,
        opening_count_id: Optional[int] = None,
        closing_count_id: Optional[int] = None,
    ) -> Tuple[int, int]:
        """Fill in missing count ids with the day's latest completed counts."""
        try:
            site = Location(location)
        except ValueError as e:
            raise ValidationFailed(str(e))

        if opening_count_id is None:
            count = StockCountService.latest_completed(self.db, site, CountType.OPENING, day)
            if count is None:
                raise ValidationFailed(
                    f"No completed opening count for {site.value} on {day.isoformat()}"
                )
            opening_count_id = count.id
        if closing_count_id is None:
            count = StockCountService.latest_completed(self.db, site, CountType.CLOSING, day)
            if count is None:
                raise ValidationFailed(
                    f"No completed closing count for {site.value} on {day.isoformat()}"
                )
            closing_count_id = count.id
        return opening_count_id, closing_count_id

    def calculate_daily_reconciliation(
        self,
        day: date,
        location: str,
        opening_count_id: Optional[int],
        closing_count_id: Optional[int],
    ) -> ReconciliationOutcome:
        """Calculate and persist the reconciliation for one (date, location).

        Raises ConflictError if that reconciliation was already acknowledged.
        Any other failure to write the header returns ``success=False`` with
        no item writes.
        """
        try:
            location = Location(location)
        except ValueError as e:
            raise ValidationFailed(str(e))

        outcome = ReconciliationOutcome()

        try:
            header = self._upsert_header(day, location, opening_count_id, closing_count_id)
        except ConflictError:
            self.db.rollback()
            raise
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Reconciliation header write failed for {location.value} {day}: {e}")
            outcome.success = False
            outcome.errors.append(f"Failed to create reconciliation: {e}")
            return outcome

        outcome.reconciliation_id = header.id

        opening = StockCountService.quantities_by_ingredient(self.db, opening_count_id)
        closing = StockCountService.quantities_by_ingredient(self.db, closing_count_id)
        received = self.get_received_quantities(day, location)
        usage = self.get_theoretical_usage(day)

        ingredient_ids = set(opening) | set(closing) | set(received) | set(usage)
        ingredients = {
            ing.id: ing
            for ing in self.db.query(Ingredient).filter(Ingredient.id.in_(ingredient_ids)).all()
        } if ingredient_ids else {}

        # Replace the item set inside the current transaction
        self.db.query(ReconciliationItem).filter(
            ReconciliationItem.reconciliation_id == header.id
        ).delete(synchronize_session=False)

        total_value = ZERO
        for ingredient_id in sorted(ingredient_ids):
            ingredient = ingredients.get(ingredient_id)
            opening_qty = opening.get(ingredient_id, ZERO)
            received_qty = received.get(ingredient_id, ZERO)
            usage_qty = usage.get(ingredient_id, ZERO)
            actual = closing.get(ingredient_id, ZERO)

            expected = opening_qty + received_qty - usage_qty
            variance = actual - expected
            avg_cost = Decimal(ingredient.avg_cost or 0) if ingredient else ZERO
            variance_value = variance * avg_cost
            status = classify_variance(variance, self.config.tolerance)

            savepoint = self.db.begin_nested()
            try:
                self.db.add(ReconciliationItem(
                    reconciliation_id=header.id,
                    ingredient_id=ingredient_id,
                    ingredient_name=ingredient.name if ingredient else "Unknown",
                    unit=ingredient.unit if ingredient else None,
                    opening_qty=opening_qty,
                    received_qty=received_qty,
                    theoretical_usage=usage_qty,
                    expected_closing=expected,
                    actual_closing=actual,
                    variance=variance,
                    variance_value=variance_value,
                    variance_status=status,
                ))
                self.db.flush()
                savepoint.commit()
            except SQLAlchemyError as e:
                savepoint.rollback()
                logger.error(f"Reconciliation {header.id}: item for ingredient {ingredient_id} failed: {e}")
                outcome.errors.append(f"Ingredient {ingredient_id}: {e}")
                continue

            outcome.item_count += 1
            if status == VarianceStatus.OVER:
                outcome.over_count += 1
            elif status == VarianceStatus.UNDER:
                outcome.under_count += 1
            else:
                outcome.matched_count += 1
            total_value += variance_value

        outcome.total_variance_value = total_value

        header.status = ReconciliationStatus.COMPLETED
        header.item_count = outcome.item_count
        header.matched_count = outcome.matched_count
        header.over_count = outcome.over_count
        header.under_count = outcome.under_count
        header.total_variance_value = total_value
        header.calculated_at = utcnow()
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Reconciliation {header.id} commit failed: {e}", exc_info=True)
            raise

        logger.info(
            f"Reconciliation {header.id} ({location.value} {day}): {outcome.item_count} items, "
            f"{outcome.over_count} over, {outcome.under_count} under"
        )
        return outcome

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get(self, reconciliation_id: int) -> DailyReconciliation:
        header = (
            self.db.query(DailyReconciliation)
            .filter(DailyReconciliation.id == reconciliation_id)
            .first()
        )
        if header is None:
            raise NotFoundError(f"Reconciliation {reconciliation_id} not found")
        return header

    def get_reconciliations(
        self, start: date, end: date, location: Optional[str] = None
    ) -> List[DailyReconciliation]:
        query = self.db.query(DailyReconciliation).filter(
            DailyReconciliation.reconciliation_date >= start,
            DailyReconciliation.reconciliation_date <= end,
        )
        if location:
            query = query.filter(DailyReconciliation.location == Location(location))
        return query.order_by(DailyReconciliation.reconciliation_date.desc()).all()

    def get_variance_items(self, reconciliation_id: int) -> List[ReconciliationItem]:
        """Non-matched items, largest loss first."""
        self.get(reconciliation_id)
        return (
            self.db.query(ReconciliationItem)
            .filter(
                ReconciliationItem.reconciliation_id == reconciliation_id,
                ReconciliationItem.variance_status != VarianceStatus.MATCHED,
            )
            .order_by(ReconciliationItem.variance_value.asc())
            .all()
        )

    def acknowledge(self, reconciliation_id: int, acknowledged_by: str) -> DailyReconciliation:
        if not acknowledged_by or not acknowledged_by.strip():
            raise ValidationFailed("acknowledged_by is required")
        header = self.get(reconciliation_id)
        if header.status == ReconciliationStatus.PENDING:
            raise ConflictError(f"Reconciliation {reconciliation_id} has not been calculated")
        header.status = ReconciliationStatus.ACKNOWLEDGED
        header.acknowledged_by = acknowledged_by.strip()
        header.acknowledged_at = utcnow()
        self.db.commit()
        self.db.refresh(header)
        return header

    def get_variance_history(self, days: int = 7, location: Optional[str] = None) -> List[Dict[str, Any]]:
        """Per-day variance totals over the last ``days`` business days."""
        end = business_date()
        start = end - timedelta(days=max(days, 1) - 1)
        return [
            {
                "date": header.reconciliation_date.isoformat(),
                "location": header.location.value,
                "status": header.status.value,
                "item_count": header.item_count,
                "over_count": header.over_count,
                "under_count": header.under_count,
                "total_variance_value": float(header.total_variance_value or 0),
            }
            for header in self.get_reconciliations(start, end, location)
        ]
