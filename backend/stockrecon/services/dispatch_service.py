"""Store to shop dispatches."""

import logging
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session, selectinload

from stockrecon.core.business_day import utcnow
from stockrecon.core.exceptions import ConflictError, NotFoundError, ValidationFailed
from stockrecon.models.ingredient import Ingredient
from stockrecon.models.stock import Dispatch, DispatchItem, DispatchStatus, Location
from stockrecon.services.ledger_service import LedgerService

logger = logging.getLogger(__name__)


def _positive(value: Any, label: str) -> Decimal:
    try:
        quantity = Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        raise ValidationFailed(f"Invalid {label}: {value!r}")
    if not quantity.is_finite() or quantity < 0:
        raise ValidationFailed(f"{label} must be zero or more")
    return quantity


class DispatchService:
    """Creates dispatches (ledger ``dispatch_out``) and confirms receipt
    (ledger ``dispatch_in``). Received quantities feed the shop reconciliation."""

    def __init__(self, db: Session):
        self.db = db
        self.ledger = LedgerService(db)

    def get(self, dispatch_id: int) -> Dispatch:
        dispatch = (
            self.db.query(Dispatch)
            .options(selectinload(Dispatch.items))
            .filter(Dispatch.id == dispatch_id)
            .first()
        )
        if dispatch is None:
            raise NotFoundError(f"Dispatch {dispatch_id} not found")
        return dispatch

    def create_dispatch(
        self,
        dispatched_by: str,
        items: List[Dict[str, Any]],
        from_location: str = Location.STORE.value,
        to_location: str = Location.SHOP.value,
        notes: Optional[str] = None,
    ) -> Dispatch:
        if not dispatched_by or not dispatched_by.strip():
            raise ValidationFailed("dispatched_by is required")
        if not items:
            raise ValidationFailed("A dispatch needs at least one item")
        try:
            origin, destination = Location(from_location), Location(to_location)
        except ValueError as e:
            raise ValidationFailed(str(e))
        if origin == destination:
            raise ValidationFailed("from_location and to_location must differ")

        dispatch = Dispatch(
            from_location=origin,
            to_location=destination,
            status=DispatchStatus.IN_TRANSIT,
            dispatched_by=dispatched_by.strip(),
            dispatched_at=utcnow(),
            notes=notes,
        )
        for raw in items:
            ingredient = None
            if raw.get("ingredient_id") is not None:
                ingredient = self.db.query(Ingredient).filter(Ingredient.id == raw["ingredient_id"]).first()
                if ingredient is None:
                    raise ValidationFailed(f"Unknown ingredient {raw['ingredient_id']}")
            name = raw.get("item_name") or (ingredient.name if ingredient else None)
            if not name:
                raise ValidationFailed("Each dispatch item needs an ingredient_id or an item_name")
            quantity = _positive(raw.get("quantity"), "quantity")
            if quantity == 0:
                raise ValidationFailed(f"Dispatch quantity for {name} must be positive")
            dispatch.items.append(DispatchItem(
                ingredient_id=ingredient.id if ingredient else None,
                item_name=name,
                unit=raw.get("unit") or (ingredient.unit if ingredient else None),
                quantity_sent=quantity,
                notes=raw.get("notes"),
            ))

        self.db.add(dispatch)
        self.db.flush()
        self.ledger.record_dispatch(dispatch, "sent", performed_by=dispatch.dispatched_by)
        logger.info(f"Dispatch {dispatch.id} sent with {len(dispatch.items)} items")
        return self.get(dispatch.id)

    def confirm_receipt(
        self,
        dispatch_id: int,
        received_by: str,
        items: Optional[List[Dict[str, Any]]] = None,
    ) -> Dispatch:
        """Mark an in-transit dispatch received.

        ``items`` optionally lists ``{"item_id", "quantity_received"}`` per
        dispatch item; anything not listed is received as sent.
        """
        if not received_by or not received_by.strip():
            raise ValidationFailed("received_by is required")
        dispatch = self.get(dispatch_id)
        if dispatch.status != DispatchStatus.IN_TRANSIT:
            raise ConflictError(f"Dispatch {dispatch_id} is {dispatch.status.value}, not in transit")

        overrides: Dict[int, Decimal] = {}
        for raw in items or []:
            overrides[int(raw["item_id"])] = _positive(raw.get("quantity_received"), "quantity_received")
        unknown = set(overrides) - {item.id for item in dispatch.items}
        if unknown:
            raise ValidationFailed(f"Items {sorted(unknown)} do not belong to dispatch {dispatch_id}")

        for item in dispatch.items:
            item.quantity_received = overrides.get(item.id, item.quantity_sent)

        dispatch.status = DispatchStatus.RECEIVED
        dispatch.received_by = received_by.strip()
        dispatch.received_at = utcnow()
        self.db.flush()
        self.ledger.record_dispatch(dispatch, "received", performed_by=dispatch.received_by)
        logger.info(f"Dispatch {dispatch.id} received by {dispatch.received_by}")
        return self.get(dispatch.id)

    def list_pending(self, to_location: Optional[str] = None) -> List[Dispatch]:
        query = (
            self.db.query(Dispatch)
            .options(selectinload(Dispatch.items))
            .filter(Dispatch.status == DispatchStatus.IN_TRANSIT)
        )
        if to_location:
            query = query.filter(Dispatch.to_location == Location(to_location))
        return query.order_by(Dispatch.dispatched_at.asc()).all()
