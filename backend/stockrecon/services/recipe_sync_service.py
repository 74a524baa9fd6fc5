"""Recipe catalog sync from PosterPOS tech cards."""

import asyncio
import logging
from dataclasses import asdict, dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from stockrecon.core.business_day import utcnow
from stockrecon.models.ingredient import Ingredient
from stockrecon.models.pos import SyncState, SyncType
from stockrecon.models.recipe import Recipe, RecipeIngredient
from stockrecon.services.pos.poster_client import PosterClient
from stockrecon.services.sync_status_service import SyncStatusService

logger = logging.getLogger(__name__)


@dataclass
class RecipeSyncResult:
    success: bool = True
    recipes_upserted: int = 0
    ingredients_upserted: int = 0
    lines_upserted: int = 0
    errors: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _decimal(*values: Any) -> Decimal:
    """First value that parses as a positive decimal, else 0."""
    for value in values:
        if value is None or value == "":
            continue
        try:
            number = Decimal(str(value))
        except (InvalidOperation, ValueError):
            continue
        if number.is_finite() and number > 0:
            return number
    return Decimal("0")


class RecipeSyncService:
    """Upserts recipes, ingredients and recipe lines from POS products.

    Recipes are keyed on ``pos_product_id`` and ingredients on
    ``pos_ingredient_id``; rerunning the sync updates in place.
    """

    def __init__(self, db: Session, pos_client: Optional[PosterClient]):
        self.db = db
        self.pos_client = pos_client
        self.status = SyncStatusService(db)

    def _upsert_ingredient(self, pos_ingredient_id: Any, name: Optional[str], unit: Optional[str]) -> Ingredient:
        key = str(pos_ingredient_id)
        ingredient = (
            self.db.query(Ingredient).filter(Ingredient.pos_ingredient_id == key).first()
        )
        if ingredient is None:
            ingredient = Ingredient(pos_ingredient_id=key, name=name or f"Ingredient #{key}", unit=unit or "g")
            self.db.add(ingredient)
            self.db.flush()
        else:
            if name:
                ingredient.name = name
            if unit:
                ingredient.unit = unit
        return ingredient

    def _upsert_line(
        self,
        recipe: Recipe,
        ingredient: Ingredient,
        quantity: Decimal,
        unit: str,
        position: int,
        modification_id: Optional[str] = None,
        modifier_group: Optional[str] = None,
    ) -> RecipeIngredient:
        for line in recipe.lines:
            if line.ingredient_id == ingredient.id and line.pos_modification_id == modification_id:
                break
        else:
            line = RecipeIngredient(ingredient=ingredient, pos_modification_id=modification_id)
            recipe.lines.append(line)
        line.quantity = quantity
        line.unit = unit
        line.is_modifier = modification_id is not None
        line.modifier_group = modifier_group
        line.position = position
        return line

    def _sync_product(self, product: Dict[str, Any]) -> Tuple[int, int]:
        """Upsert one product; returns (ingredients, lines) touched."""
        pos_product_id = str(product["product_id"])
        recipe = self.db.query(Recipe).filter(Recipe.pos_product_id == pos_product_id).first()
        if recipe is None:
            recipe = Recipe(pos_product_id=pos_product_id, name=product.get("product_name") or pos_product_id)
            self.db.add(recipe)
        recipe.name = product.get("product_name") or recipe.name
        recipe.category = product.get("category_name") or product.get("menu_category_name")
        recipe.last_synced_at = utcnow()

        ingredients = lines = 0
        position = 0
        for ing in product.get("ingredients") or []:
            if not ing.get("ingredient_id"):
                continue
            ingredient = self._upsert_ingredient(
                ing["ingredient_id"], ing.get("ingredient_name"), ing.get("ingredient_unit")
            )
            ingredients += 1
            self._upsert_line(
                recipe,
                ingredient,
                _decimal(ing.get("structure_netto"), ing.get("structure_brutto")),
                ing.get("structure_unit") or ing.get("ingredient_unit") or "g",
                position,
            )
            lines += 1
            position += 1

        for group in product.get("group_modifications") or []:
            for mod in group.get("modifications") or []:
                mod_id = mod.get("dish_modification_id")
                if not mod.get("ingredient_id") or not mod_id:
                    continue
                ingredient = self._upsert_ingredient(
                    mod["ingredient_id"], mod.get("ingredient_name") or mod.get("name"), mod.get("ingredient_unit")
                )
                ingredients += 1
                self._upsert_line(
                    recipe,
                    ingredient,
                    _decimal(mod.get("netto"), mod.get("brutto")),
                    mod.get("ingredient_unit") or "g",
                    position,
                    modification_id=str(mod_id),
                    modifier_group=group.get("name"),
                )
                lines += 1
                position += 1
        return ingredients, lines

    def _apply_products(self, products: List[Dict[str, Any]], result: RecipeSyncResult) -> None:
        """Upsert every product in its own savepoint; counts only committed ones."""
        for product in products:
            if product.get("product_id") is None:
                continue
            savepoint = self.db.begin_nested()
            try:
                ingredients, lines = self._sync_product(product)
                self.db.flush()
                savepoint.commit()
            except Exception as e:
                savepoint.rollback()
                message = f"Product {product.get('product_id')}: {e}"
                logger.error(f"Recipe sync error: {message}")
                result.errors.append(message)
                continue
            result.recipes_upserted += 1
            result.ingredients_upserted += ingredients
            result.lines_upserted += lines
        self.db.commit()

    async def sync_recipes(self) -> RecipeSyncResult:
        result = RecipeSyncResult()
        if self.pos_client is None or not self.pos_client.is_configured:
            logger.info("PosterPOS not configured, skipping recipe sync")
            return result

        await asyncio.to_thread(self.status.update, SyncType.RECIPES, status=SyncState.SYNCING)
        try:
            products = await self.pos_client.get_all_products_with_recipes()
        except Exception as e:
            logger.error(f"Recipe sync failed: {e}", exc_info=True)
            result.success = False
            result.errors.append(str(e))
            await asyncio.to_thread(
                self.status.update, SyncType.RECIPES, status=SyncState.ERROR, error_message=str(e)
            )
            return result

        await asyncio.to_thread(self._apply_products, products, result)

        await asyncio.to_thread(
            self.status.update,
            SyncType.RECIPES,
            status=SyncState.IDLE,
            last_sync_at=utcnow(),
            records_synced=result.recipes_upserted,
            error_message="; ".join(result.errors) if result.errors else None,
        )
        logger.info(
            f"Recipe sync complete: {result.recipes_upserted} recipes, "
            f"{result.ingredients_upserted} ingredients"
        )
        return result
