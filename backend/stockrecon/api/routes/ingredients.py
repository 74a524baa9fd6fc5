"""Ingredient catalog, PAR thresholds, movement history and wastage."""

from typing import Optional

from fastapi import APIRouter, Query

from stockrecon.core.responses import list_response
from stockrecon.db.session import DbSession
from stockrecon.schemas.operations import (
    IngredientResponse,
    LedgerBatchResponse,
    MovementResponse,
    ParUpdate,
    WastageRequest,
)
from stockrecon.services.ingredient_service import IngredientService
from stockrecon.services.ledger_service import LedgerService

router = APIRouter()


@router.get("/ingredients")
def list_ingredients(
    db: DbSession,
    search: Optional[str] = None,
    include_inactive: bool = False,
):
    ingredients = IngredientService(db).list_ingredients(search=search, include_inactive=include_inactive)
    return list_response([IngredientResponse.model_validate(i) for i in ingredients])


@router.put("/ingredients/{ingredient_id}/par", response_model=IngredientResponse)
def update_par_levels(ingredient_id: int, body: ParUpdate, db: DbSession):
    """Only the thresholds present in the body are changed."""
    return IngredientService(db).update_par(ingredient_id, body.model_dump(exclude_unset=True))


@router.get("/ingredients/{ingredient_id}/movements")
def get_ingredient_movements(
    ingredient_id: int,
    db: DbSession,
    limit: int = Query(50, ge=1, le=500),
):
    IngredientService(db).get(ingredient_id)
    movements = LedgerService(db).get_item_history(ingredient_id, limit=limit)
    return list_response([MovementResponse.model_validate(m) for m in movements])


@router.post("/stock/wastage", response_model=LedgerBatchResponse)
def record_wastage(body: WastageRequest, db: DbSession):
    return LedgerService(db).record_wastage(
        [item.model_dump() for item in body.items],
        shift_id=body.shift_id,
        performed_by=body.performed_by,
        location=body.location,
    )
