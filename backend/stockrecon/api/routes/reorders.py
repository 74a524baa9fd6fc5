"""Reorder requests raised from the shop."""

from typing import Optional

from fastapi import APIRouter, Query, status

from stockrecon.core.responses import list_response
from stockrecon.db.session import DbSession
from stockrecon.schemas.operations import ReorderCreate, ReorderResponse
from stockrecon.services.reorder_service import ReorderService

router = APIRouter()


@router.post("", response_model=ReorderResponse, status_code=status.HTTP_201_CREATED)
def create_reorder(body: ReorderCreate, db: DbSession):
    return ReorderService(db).create_request(
        ingredient_id=body.ingredient_id,
        quantity=body.quantity,
        requested_by=body.requested_by,
        location=body.location.value,
        unit=body.unit,
        notes=body.notes,
    )


@router.get("")
def list_reorders(
    db: DbSession,
    status_filter: Optional[str] = Query(None, alias="status"),
    limit: int = Query(50, ge=1, le=200),
):
    requests = ReorderService(db).list_requests(status=status_filter, limit=limit)
    return list_response([ReorderResponse.model_validate(r) for r in requests])
