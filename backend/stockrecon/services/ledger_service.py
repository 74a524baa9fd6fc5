"""Inventory movement ledger.

Append-only record of every stock change per location. Deductions (sale,
dispatch_out, wastage) are stored negative, additions (purchase,
dispatch_in, local_buy) positive; adjustments keep the sign they are given.
Current stock at a location is the sum of its movements.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from stockrecon.core.exceptions import ValidationFailed
from stockrecon.models.ingredient import Ingredient
from stockrecon.models.stock import Dispatch, InventoryMovement, Location, MovementType

logger = logging.getLogger(__name__)

DEDUCTIONS = {MovementType.SALE, MovementType.DISPATCH_OUT, MovementType.WASTAGE}
ADDITIONS = {MovementType.PURCHASE, MovementType.DISPATCH_IN, MovementType.LOCAL_BUY}


@dataclass
class MovementRecord:
    item_name: str
    location: Location
    movement_type: MovementType
    quantity: Decimal
    ingredient_id: Optional[int] = None
    unit: Optional[str] = None
    reference_type: Optional[str] = None
    reference_id: Optional[int] = None
    notes: Optional[str] = None
    performed_by: Optional[str] = None
    cost_per_unit: Optional[Decimal] = None


def signed_quantity(movement_type: MovementType, quantity: Decimal) -> Decimal:
    quantity = Decimal(quantity)
    if movement_type in DEDUCTIONS:
        return -abs(quantity)
    if movement_type in ADDITIONS:
        return abs(quantity)
    return quantity


class LedgerService:
    def __init__(self, db: Session):
        self.db = db

    def record_movement(self, record: MovementRecord) -> InventoryMovement:
        """Add one movement to the session. The caller owns the commit."""
        movement = InventoryMovement(
            ingredient_id=record.ingredient_id,
            item_name=record.item_name,
            location=Location(record.location),
            movement_type=MovementType(record.movement_type),
            quantity=signed_quantity(MovementType(record.movement_type), record.quantity),
            unit=record.unit,
            reference_type=record.reference_type,
            reference_id=record.reference_id,
            notes=record.notes,
            performed_by=record.performed_by,
            cost_per_unit=record.cost_per_unit,
        )
        self.db.add(movement)
        logger.debug(
            f"Ledger: {movement.movement_type.value} {movement.quantity} {movement.unit or ''} "
            f"of {movement.item_name} at {movement.location.value}"
        )
        return movement

    def record_movements(self, records: List[MovementRecord]) -> Dict[str, Any]:
        """Record several movements, each in its own savepoint, and commit."""
        count = 0
        errors: List[str] = []
        for record in records:
            savepoint = self.db.begin_nested()
            try:
                self.record_movement(record)
                self.db.flush()
                savepoint.commit()
                count += 1
            except SQLAlchemyError as e:
                savepoint.rollback()
                logger.error(f"Ledger movement failed for {record.item_name}: {e}")
                errors.append(f"{record.item_name}: {e}")
        self.db.commit()
        return {"success": not errors, "count": count, "errors": errors}

    def record_dispatch(self, dispatch: Dispatch, phase: str, performed_by: Optional[str] = None) -> Dict[str, Any]:
        """Ledger entries for a dispatch leaving its origin (``sent``) or
        arriving at its destination (``received``)."""
        if phase not in ("sent", "received"):
            raise ValidationFailed(f"Unknown dispatch phase: {phase}")
        sent = phase == "sent"
        records = []
        for item in dispatch.items:
            quantity = item.quantity_sent if sent else (item.quantity_received or Decimal("0"))
            if not quantity:
                continue
            records.append(MovementRecord(
                ingredient_id=item.ingredient_id,
                item_name=item.item_name,
                location=dispatch.from_location if sent else dispatch.to_location,
                movement_type=MovementType.DISPATCH_OUT if sent else MovementType.DISPATCH_IN,
                quantity=quantity,
                unit=item.unit,
                reference_type="dispatch",
                reference_id=dispatch.id,
                performed_by=performed_by,
            ))
        return self.record_movements(records)

    def record_wastage(
        self,
        items: List[Dict[str, Any]],
        shift_id: Optional[int] = None,
        performed_by: Optional[str] = None,
        location: Location = Location.SHOP,
    ) -> Dict[str, Any]:
        records = []
        for item in items:
            ingredient = None
            if item.get("ingredient_id") is not None:
                ingredient = self.db.query(Ingredient).filter(Ingredient.id == item["ingredient_id"]).first()
                if ingredient is None:
                    raise ValidationFailed(f"Unknown ingredient {item['ingredient_id']}")
            name = item.get("item_name") or (ingredient.name if ingredient else None)
            if not name:
                raise ValidationFailed("Each wastage item needs an ingredient_id or an item_name")
            quantity = Decimal(str(item.get("quantity", 0)))
            if quantity <= 0:
                raise ValidationFailed(f"Wastage quantity for {name} must be positive")
            records.append(MovementRecord(
                ingredient_id=ingredient.id if ingredient else None,
                item_name=name,
                location=location,
                movement_type=MovementType.WASTAGE,
                quantity=quantity,
                unit=item.get("unit") or (ingredient.unit if ingredient else None),
                reference_type="shift" if shift_id else None,
                reference_id=shift_id,
                notes=item.get("reason"),
                performed_by=performed_by,
                cost_per_unit=ingredient.avg_cost if ingredient else None,
            ))
        return self.record_movements(records)

    def get_item_history(self, ingredient_id: int, limit: int = 50) -> List[InventoryMovement]:
        return (
            self.db.query(InventoryMovement)
            .filter(InventoryMovement.ingredient_id == ingredient_id)
            .order_by(InventoryMovement.created_at.desc(), InventoryMovement.id.desc())
            .limit(limit)
            .all()
        )

    def get_movements_by_reference(self, reference_type: str, reference_id: int) -> List[InventoryMovement]:
        return (
            self.db.query(InventoryMovement)
            .filter(
                InventoryMovement.reference_type == reference_type,
                InventoryMovement.reference_id == reference_id,
            )
            .order_by(InventoryMovement.created_at.asc(), InventoryMovement.id.asc())
            .all()
        )

    def calculate_stock(self, ingredient_id: int, location: Optional[str] = None) -> Decimal:
        query = self.db.query(func.coalesce(func.sum(InventoryMovement.quantity), 0)).filter(
            InventoryMovement.ingredient_id == ingredient_id
        )
        if location:
            query = query.filter(InventoryMovement.location == Location(location))
        return Decimal(str(query.scalar()))

    def stock_by_ingredient(self, location: str) -> Dict[int, Decimal]:
        rows = (
            self.db.query(InventoryMovement.ingredient_id, func.sum(InventoryMovement.quantity))
            .filter(
                InventoryMovement.location == Location(location),
                InventoryMovement.ingredient_id.isnot(None),
            )
            .group_by(InventoryMovement.ingredient_id)
            .all()
        )
        return {ingredient_id: Decimal(str(total or 0)) for ingredient_id, total in rows}
