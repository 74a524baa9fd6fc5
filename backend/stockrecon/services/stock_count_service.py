"""Stock count service - opening and closing physical count sessions per location.

A count session is created ``in_progress``, receives item lines, and is then
completed. Completed sessions are the opening and closing figures the
reconciliation engine compares against theoretical usage.
"""

import logging
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from stockrecon.core.business_day import business_date, utcnow
from stockrecon.core.config import settings
from stockrecon.core.exceptions import ConflictError, NotFoundError, ValidationFailed
from stockrecon.models.ingredient import Ingredient
from stockrecon.models.stock import CountStatus, CountType, Location, StockCount, StockCountItem

logger = logging.getLogger(__name__)


def _quantity(value: Any) -> Decimal:
    try:
        quantity = Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        raise ValidationFailed(f"Invalid counted quantity: {value!r}")
    if not quantity.is_finite() or quantity < 0:
        raise ValidationFailed(f"Counted quantity must be zero or more, got {value!r}")
    return quantity


class StockCountService:
    """Centralised service for stock count session operations."""

    # ------------------------------------------------------------------
    # create_count
    # ------------------------------------------------------------------
    @staticmethod
    def create_count(
        db: Session,
        location: str,
        count_type: str,
        counted_by: str,
        shift_id: Optional[int] = None,
        count_date: Optional[date] = None,
        notes: Optional[str] = None,
    ) -> StockCount:
        """Open a new count session.

        Args:
            db: SQLAlchemy database session.
            location: ``store`` or ``shop``.
            count_type: ``opening`` or ``closing``.
            counted_by: Name of the person counting.
            shift_id: Optional shift the count belongs to.
            count_date: Business date of the count (defaults to today).

        Raises:
            ValidationFailed: On an unknown location/type or a blank counter.
        """
        try:
            location_value = Location(location)
            type_value = CountType(count_type)
        except ValueError as e:
            raise ValidationFailed(str(e))
        if not counted_by or not counted_by.strip():
            raise ValidationFailed("counted_by is required")

        count = StockCount(
            location=location_value,
            count_type=type_value,
            counted_by=counted_by.strip(),
            shift_id=shift_id,
            status=CountStatus.IN_PROGRESS,
            count_date=count_date or business_date(),
            started_at=utcnow(),
            notes=notes,
        )
        db.add(count)
        db.commit()
        db.refresh(count)
        logger.info(f"Stock count {count.id} started: {type_value.value} at {location_value.value}")
        return count

    @staticmethod
    def get_count(db: Session, count_id: int) -> StockCount:
        count = db.query(StockCount).filter(StockCount.id == count_id).first()
        if count is None:
            raise NotFoundError(f"Stock count {count_id} not found")
        return count

    # ------------------------------------------------------------------
    # add_items
    # ------------------------------------------------------------------
    @staticmethod
    def add_items(db: Session, count_id: int, items: List[Dict[str, Any]]) -> List[StockCountItem]:
        """Add counted lines to an in-progress session.

        Each item carries ``counted_quantity`` plus either ``ingredient_id`` or a
        free-text ``item_name``. Counting an ingredient already in the session
        replaces the earlier figure.
        """
        count = StockCountService.get_count(db, count_id)
        if count.status != CountStatus.IN_PROGRESS:
            raise ConflictError(f"Stock count {count_id} is already completed")

        existing = {item.ingredient_id: item for item in count.items if item.ingredient_id is not None}
        saved: List[StockCountItem] = []

        for raw in items:
            ingredient_id = raw.get("ingredient_id")
            item_name = (raw.get("item_name") or "").strip() or None
            if ingredient_id is None and item_name is None:
                raise ValidationFailed("Each item needs an ingredient_id or an item_name")
            quantity = _quantity(raw.get("counted_quantity"))

            if ingredient_id is not None:
                ingredient = db.query(Ingredient).filter(Ingredient.id == ingredient_id).first()
                if ingredient is None:
                    raise ValidationFailed(f"Unknown ingredient {ingredient_id}")
                item = existing.get(ingredient.id)
                if item is None:
                    item = StockCountItem(ingredient_id=ingredient.id)
                    count.items.append(item)
                    existing[ingredient.id] = item
                item.item_name = item_name or ingredient.name
                item.unit = raw.get("unit") or ingredient.unit
            else:
                item = StockCountItem(item_name=item_name, unit=raw.get("unit"))
                count.items.append(item)

            item.counted_quantity = quantity
            item.notes = raw.get("notes")
            saved.append(item)

        db.commit()
        return saved

    # ------------------------------------------------------------------
    # complete_count
    # ------------------------------------------------------------------
    @staticmethod
    def complete_count(db: Session, count_id: int) -> StockCount:
        """Close a session for edits and record its item count.

        A second completed session of the same type at the same location on
        the same day is rejected when ``ENFORCE_UNIQUE_DAILY_COUNTS`` is set,
        otherwise it is allowed and logged.
        """
        count = StockCountService.get_count(db, count_id)
        if count.status != CountStatus.IN_PROGRESS:
            raise ConflictError(f"Stock count {count_id} is already completed")

        duplicate = (
            db.query(StockCount.id)
            .filter(
                StockCount.id != count.id,
                StockCount.location == count.location,
                StockCount.count_type == count.count_type,
                StockCount.count_date == count.count_date,
                StockCount.status == CountStatus.COMPLETED,
            )
            .first()
        )
        if duplicate is not None:
            message = (
                f"A completed {count.count_type.value} count already exists for "
                f"{count.location.value} on {count.count_date.isoformat()}"
            )
            if settings.enforce_unique_daily_counts:
                raise ConflictError(message)
            logger.warning(f"{message} (stock count {duplicate.id}); completing {count.id} anyway")

        count.status = CountStatus.COMPLETED
        count.completed_at = utcnow()
        count.item_count = len(count.items)
        db.commit()
        db.refresh(count)
        logger.info(f"Stock count {count.id} completed with {count.item_count} items")
        return count

    # ------------------------------------------------------------------
    # queries used by reconciliation
    # ------------------------------------------------------------------
    @staticmethod
    def latest_completed(
        db: Session, location: Location, count_type: CountType, count_date: date
    ) -> Optional[StockCount]:
        return (
            db.query(StockCount)
            .filter(
                StockCount.location == location,
                StockCount.count_type == count_type,
                StockCount.count_date == count_date,
                StockCount.status == CountStatus.COMPLETED,
            )
            .order_by(StockCount.completed_at.desc(), StockCount.id.desc())
            .first()
        )

    @staticmethod
    def quantities_by_ingredient(db: Session, count_id: Optional[int]) -> Dict[int, Decimal]:
        """Counted quantity per ingredient id; free-text lines are ignored."""
        if count_id is None:
            return {}
        totals: Dict[int, Decimal] = {}
        rows = (
            db.query(StockCountItem.ingredient_id, StockCountItem.counted_quantity)
            .filter(
                StockCountItem.stock_count_id == count_id,
                StockCountItem.ingredient_id.isnot(None),
            )
            .all()
        )
        for ingredient_id, quantity in rows:
            totals[ingredient_id] = totals.get(ingredient_id, Decimal("0")) + Decimal(quantity)
        return totals
