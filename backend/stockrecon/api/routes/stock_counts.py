"""Opening/closing stock count sessions."""

from fastapi import APIRouter, status

from stockrecon.db.session import DbSession
from stockrecon.schemas.stock_count import StockCountCreate, StockCountItemsAdd, StockCountResponse
from stockrecon.services.stock_count_service import StockCountService

router = APIRouter()


@router.post("", response_model=StockCountResponse, status_code=status.HTTP_201_CREATED)
def create_stock_count(body: StockCountCreate, db: DbSession):
    return StockCountService.create_count(
        db,
        location=body.location.value,
        count_type=body.count_type.value,
        counted_by=body.counted_by,
        shift_id=body.shift_id,
        count_date=body.count_date,
        notes=body.notes,
    )


@router.get("/{count_id}", response_model=StockCountResponse)
def get_stock_count(count_id: int, db: DbSession):
    return StockCountService.get_count(db, count_id)


@router.post("/{count_id}/items", response_model=StockCountResponse)
def add_stock_count_items(count_id: int, body: StockCountItemsAdd, db: DbSession):
    """Record counted lines; recounting an ingredient replaces its figure."""
    StockCountService.add_items(db, count_id, [item.model_dump() for item in body.items])
    count = StockCountService.get_count(db, count_id)
    db.refresh(count)
    return count


@router.post("/{count_id}/complete", response_model=StockCountResponse)
def complete_stock_count(count_id: int, db: DbSession):
    return StockCountService.complete_count(db, count_id)
