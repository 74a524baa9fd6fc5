"""Reorder requests and the below-PAR report."""

import logging
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from stockrecon.core.business_day import utcnow
from stockrecon.core.config import settings
from stockrecon.core.exceptions import ValidationFailed
from stockrecon.models.ingredient import Ingredient
from stockrecon.models.operations import ReorderRequest, ReorderStatus
from stockrecon.models.stock import Location
from stockrecon.services.ledger_service import LedgerService

logger = logging.getLogger(__name__)


class ReorderConfig:
    """Configuration for below-PAR detection."""

    def __init__(self, par_alert_ratio: Optional[Decimal] = None):
        self.par_alert_ratio = (
            settings.par_alert_ratio if par_alert_ratio is None else Decimal(par_alert_ratio)
        )


class ReorderService:
    def __init__(self, db: Session, config: Optional[ReorderConfig] = None):
        self.db = db
        self.config = config or ReorderConfig()

    def create_request(
        self,
        ingredient_id: int,
        quantity: Any,
        requested_by: str,
        location: str = Location.SHOP.value,
        unit: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> ReorderRequest:
        if not requested_by or not requested_by.strip():
            raise ValidationFailed("requested_by is required")
        ingredient = self.db.query(Ingredient).filter(Ingredient.id == ingredient_id).first()
        if ingredient is None:
            raise ValidationFailed(f"Unknown ingredient {ingredient_id}")
        try:
            amount = Decimal(str(quantity))
        except (InvalidOperation, ValueError):
            raise ValidationFailed(f"Invalid quantity: {quantity!r}")
        if not amount.is_finite() or amount <= 0:
            raise ValidationFailed("quantity must be positive")
        try:
            site = Location(location)
        except ValueError as e:
            raise ValidationFailed(str(e))

        request = ReorderRequest(
            ingredient_id=ingredient.id,
            location=site,
            quantity=amount,
            unit=unit or ingredient.unit,
            status=ReorderStatus.PENDING,
            requested_by=requested_by.strip(),
            requested_at=utcnow(),
            notes=notes,
        )
        self.db.add(request)
        self.db.commit()
        self.db.refresh(request)
        logger.info(f"Reorder request {request.id}: {amount} {request.unit} of {ingredient.name}")
        return request

    def list_requests(self, status: Optional[str] = None, limit: int = 50) -> List[ReorderRequest]:
        query = self.db.query(ReorderRequest)
        if status:
            try:
                query = query.filter(ReorderRequest.status == ReorderStatus(status))
            except ValueError as e:
                raise ValidationFailed(str(e))
        return query.order_by(ReorderRequest.requested_at.desc()).limit(limit).all()

    def below_par(self, location: str = Location.SHOP.value) -> List[Dict[str, Any]]:
        """Active ingredients whose ledger stock is under ``par_level * par_alert_ratio``.

        Suggested quantity tops up to ``max_stock`` when set, otherwise to PAR.
        """
        stock = LedgerService(self.db).stock_by_ingredient(location)
        ingredients = (
            self.db.query(Ingredient)
            .filter(Ingredient.is_active.is_(True), Ingredient.par_level.isnot(None))
            .order_by(Ingredient.name)
            .all()
        )
        report = []
        for ingredient in ingredients:
            par = Decimal(ingredient.par_level)
            threshold = par * self.config.par_alert_ratio
            current = stock.get(ingredient.id, Decimal("0"))
            if current >= threshold:
                continue
            target = Decimal(ingredient.max_stock) if ingredient.max_stock is not None else par
            report.append({
                "ingredient_id": ingredient.id,
                "name": ingredient.name,
                "unit": ingredient.unit,
                "current_stock": float(current),
                "par_level": float(par),
                "threshold": float(threshold),
                "suggested_quantity": float(max(target - current, Decimal("0"))),
            })
        return report
