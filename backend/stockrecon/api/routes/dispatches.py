"""Store to shop dispatch routes."""

from typing import Optional

from fastapi import APIRouter, status

from stockrecon.core.responses import list_response
from stockrecon.db.session import DbSession
from stockrecon.models.stock import Location
from stockrecon.schemas.dispatch import DispatchConfirm, DispatchCreate, DispatchResponse
from stockrecon.services.dispatch_service import DispatchService

router = APIRouter()


@router.post("", response_model=DispatchResponse, status_code=status.HTTP_201_CREATED)
def create_dispatch(body: DispatchCreate, db: DbSession):
    """Send items; stock leaves the origin immediately."""
    return DispatchService(db).create_dispatch(
        dispatched_by=body.dispatched_by,
        items=[item.model_dump() for item in body.items],
        from_location=body.from_location.value,
        to_location=body.to_location.value,
        notes=body.notes,
    )


@router.get("/pending")
def list_pending_dispatches(db: DbSession, to_location: Optional[Location] = None):
    dispatches = DispatchService(db).list_pending(to_location.value if to_location else None)
    return list_response([DispatchResponse.model_validate(d) for d in dispatches])


@router.post("/{dispatch_id}/confirm", response_model=DispatchResponse)
def confirm_dispatch(dispatch_id: int, body: DispatchConfirm, db: DbSession):
    items = [item.model_dump() for item in body.items] if body.items else None
    return DispatchService(db).confirm_receipt(dispatch_id, body.received_by, items)
