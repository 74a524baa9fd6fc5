"""Ingredient catalog queries and PAR threshold updates."""

import logging
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from stockrecon.core.exceptions import NotFoundError, ValidationFailed
from stockrecon.models.ingredient import Ingredient

logger = logging.getLogger(__name__)

PAR_FIELDS = ("par_level", "safety_stock", "max_stock")


class IngredientService:
    def __init__(self, db: Session):
        self.db = db

    def get(self, ingredient_id: int) -> Ingredient:
        ingredient = self.db.query(Ingredient).filter(Ingredient.id == ingredient_id).first()
        if ingredient is None:
            raise NotFoundError(f"Ingredient {ingredient_id} not found")
        return ingredient

    def list_ingredients(self, search: Optional[str] = None, include_inactive: bool = False) -> List[Ingredient]:
        query = self.db.query(Ingredient)
        if not include_inactive:
            query = query.filter(Ingredient.is_active.is_(True))
        if search:
            query = query.filter(Ingredient.name.ilike(f"%{search}%"))
        return query.order_by(Ingredient.name).all()

    def update_par(self, ingredient_id: int, values: Dict[str, Any]) -> Ingredient:
        """Update PAR thresholds; only the keys present are changed."""
        ingredient = self.get(ingredient_id)
        try:
            self._apply_par(ingredient, values)
        except ValidationFailed:
            self.db.rollback()
            raise
        self.db.commit()
        self.db.refresh(ingredient)
        logger.info(f"PAR thresholds updated for ingredient {ingredient.id}")
        return ingredient

    @staticmethod
    def _apply_par(ingredient: Ingredient, values: Dict[str, Any]) -> None:
        for name in PAR_FIELDS:
            if name not in values:
                continue
            raw = values[name]
            if raw is None:
                setattr(ingredient, name, None)
                continue
            try:
                amount = Decimal(str(raw))
            except (InvalidOperation, ValueError):
                raise ValidationFailed(f"Invalid {name}: {raw!r}")
            if not amount.is_finite() or amount < 0:
                raise ValidationFailed(f"{name} must be zero or more")
            setattr(ingredient, name, amount)
        if "lead_time_days" in values:
            lead = values["lead_time_days"]
            if lead is not None and int(lead) < 0:
                raise ValidationFailed("lead_time_days must be zero or more")
            ingredient.lead_time_days = None if lead is None else int(lead)

        if (
            ingredient.max_stock is not None
            and ingredient.par_level is not None
            and ingredient.max_stock < ingredient.par_level
        ):
            raise ValidationFailed("max_stock cannot be below par_level")
