"""Shift expenses (supermarket runs, petty cash)."""

from fastapi import APIRouter, status

from stockrecon.core.responses import list_response
from stockrecon.db.session import DbSession
from stockrecon.schemas.operations import ExpenseCreate, ExpenseResponse
from stockrecon.services.expense_service import ExpenseService

router = APIRouter()


@router.post("", response_model=ExpenseResponse, status_code=status.HTTP_201_CREATED)
def create_expense(body: ExpenseCreate, db: DbSession):
    """Record an expense; without a shift id it attaches to the open shift."""
    return ExpenseService(db).create_expense(
        description=body.description,
        amount=body.amount,
        expense_type=body.expense_type.value,
        shift_id=body.shift_id,
        category=body.category,
        paid_by=body.paid_by,
        paid_to=body.paid_to,
        receipt_number=body.receipt_number,
        notes=body.notes,
    )


@router.get("/today")
def list_todays_expenses(db: DbSession):
    expenses = ExpenseService(db).list_for_day()
    return list_response([ExpenseResponse.model_validate(e) for e in expenses])
