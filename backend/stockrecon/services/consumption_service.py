"""Theoretical ingredient consumption derived from POS sales.

Each sold line item is exploded through its recipe (matched on the POS
product id). Base recipe lines always apply; modifier lines apply only when
the customer selected that modification. Derivation runs exactly once, when
the transaction is first ingested, and rows are never updated afterwards.
Each consumption row is mirrored by a negative ``sale`` movement in the
shop ledger.
"""

import logging
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Iterable, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session, selectinload

from stockrecon.core.business_day import utcnow
from stockrecon.models.pos import CalculatedConsumption, SyncedTransaction
from stockrecon.models.recipe import Recipe, RecipeIngredient
from stockrecon.models.stock import Location, MovementType
from stockrecon.services.ledger_service import LedgerService, MovementRecord

logger = logging.getLogger(__name__)


def sold_quantity(line_item: Dict[str, Any]) -> Decimal:
    """Quantity sold on a line item; defaults to 1 when absent or unparseable."""
    raw = line_item.get("num", line_item.get("quantity"))
    if raw is None or raw == "":
        return Decimal("1")
    try:
        quantity = Decimal(str(raw))
    except (InvalidOperation, ValueError):
        return Decimal("1")
    if not quantity.is_finite() or quantity <= 0:
        return Decimal("1")
    return quantity


def selected_modification_ids(line_item: Dict[str, Any]) -> Iterable[str]:
    for modification in line_item.get("modifications") or []:
        if not isinstance(modification, dict):
            continue
        mod_id = modification.get("dish_modification_id") or modification.get("modification_id")
        if mod_id:
            yield str(mod_id)


class ConsumptionDeriver:
    """Creates CalculatedConsumption rows for a newly ingested transaction."""

    def __init__(self, db: Session):
        self.db = db
        self.ledger = LedgerService(db)
        self._recipes: Dict[str, Optional[Recipe]] = {}

    def _recipe_for(self, pos_product_id: str) -> Optional[Recipe]:
        if pos_product_id not in self._recipes:
            self._recipes[pos_product_id] = (
                self.db.query(Recipe)
                .options(selectinload(Recipe.lines).selectinload(RecipeIngredient.ingredient))
                .filter(Recipe.pos_product_id == pos_product_id)
                .first()
            )
        return self._recipes[pos_product_id]

    def _record(
        self,
        synced_tx: SyncedTransaction,
        recipe: Recipe,
        line: RecipeIngredient,
        quantity: Decimal,
        is_modifier: bool,
    ) -> CalculatedConsumption:
        consumed = Decimal(line.quantity) * quantity
        ingredient = line.ingredient
        avg_cost = Decimal(ingredient.avg_cost or 0)
        record = CalculatedConsumption(
            transaction_id=synced_tx.id,
            ingredient_id=ingredient.id,
            ingredient_name=ingredient.name,
            recipe_id=recipe.id,
            recipe_name=recipe.name,
            quantity_consumed=consumed,
            unit=line.unit,
            is_modifier=is_modifier,
            cost_at_time=consumed * avg_cost,
            calculated_at=utcnow(),
        )
        self.db.add(record)
        self.ledger.record_movement(MovementRecord(
            ingredient_id=ingredient.id,
            item_name=ingredient.name,
            location=Location.SHOP,
            movement_type=MovementType.SALE,
            quantity=consumed,
            unit=line.unit,
            reference_type="transaction",
            reference_id=synced_tx.id,
            cost_per_unit=avg_cost,
        ))
        return record

    def derive_for_transaction(self, synced_tx: SyncedTransaction) -> int:
        """Insert consumption rows for every line item; returns the number created.

        Line items without a matching recipe are skipped silently, as are
        selected modifiers with no matching modifier line.
        """
        created = 0
        for line_item in synced_tx.products or []:
            if not isinstance(line_item, dict):
                continue
            product_id = line_item.get("product_id")
            if product_id is None or product_id == "":
                continue

            recipe = self._recipe_for(str(product_id))
            if recipe is None:
                logger.debug(f"No recipe for POS product {product_id}, skipping")
                continue

            quantity = sold_quantity(line_item)

            for line in recipe.base_lines:
                self._record(synced_tx, recipe, line, quantity, is_modifier=False)
                created += 1

            for mod_id in selected_modification_ids(line_item):
                line = recipe.modifier_line(mod_id)
                if line is None:
                    continue
                self._record(synced_tx, recipe, line, quantity, is_modifier=True)
                created += 1

        self.db.flush()
        return created


def get_consumption_totals(db: Session, start, end) -> list[dict]:
    """Consumption per ingredient for calculated_at in [start, end)."""
    rows = (
        db.query(
            CalculatedConsumption.ingredient_id,
            CalculatedConsumption.ingredient_name,
            CalculatedConsumption.unit,
            func.sum(CalculatedConsumption.quantity_consumed).label("quantity"),
            func.sum(CalculatedConsumption.cost_at_time).label("cost"),
        )
        .filter(
            CalculatedConsumption.calculated_at >= start,
            CalculatedConsumption.calculated_at < end,
        )
        .group_by(
            CalculatedConsumption.ingredient_id,
            CalculatedConsumption.ingredient_name,
            CalculatedConsumption.unit,
        )
        .order_by(CalculatedConsumption.ingredient_name)
        .all()
    )
    return [
        {
            "ingredient_id": row.ingredient_id,
            "ingredient_name": row.ingredient_name,
            "unit": row.unit,
            "quantity": Decimal(str(row.quantity or 0)),
            "cost": Decimal(str(row.cost or 0)),
        }
        for row in rows
    ]
