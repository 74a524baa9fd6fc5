"""API routes."""

from fastapi import APIRouter

from stockrecon.api.routes import (
    dispatches,
    expenses,
    ingredients,
    reconciliation,
    reorders,
    reports,
    settings,
    shifts,
    stock_counts,
    sync,
    transactions,
)

api_router = APIRouter()

# POS integration
api_router.include_router(sync.router, prefix="/sync", tags=["sync"])
api_router.include_router(transactions.router, tags=["transactions"])

# Shift operations
api_router.include_router(shifts.router, prefix="/shifts", tags=["shifts"])
api_router.include_router(stock_counts.router, prefix="/stock-counts", tags=["stock-counts"])
api_router.include_router(expenses.router, prefix="/expenses", tags=["expenses"])
api_router.include_router(dispatches.router, prefix="/dispatches", tags=["dispatches"])

# Stock control
api_router.include_router(reconciliation.router, prefix="/reconciliation", tags=["reconciliation"])
# /ingredients/* and /stock/wastage
api_router.include_router(ingredients.router, tags=["ingredients", "stock"])
api_router.include_router(reorders.router, prefix="/reorders", tags=["reorders"])

# Reporting and configuration
api_router.include_router(reports.router, prefix="/reports", tags=["reports"])
api_router.include_router(settings.router, prefix="/settings", tags=["settings"])
