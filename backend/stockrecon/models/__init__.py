"""SQLAlchemy models."""

from stockrecon.models.ingredient import Ingredient
from stockrecon.models.recipe import Recipe, RecipeIngredient
from stockrecon.models.pos import (
    CalculatedConsumption,
    PayType,
    SyncedTransaction,
    SyncState,
    SyncStatus,
    SyncType,
)
from stockrecon.models.stock import (
    CountStatus,
    CountType,
    Dispatch,
    DispatchItem,
    DispatchStatus,
    InventoryMovement,
    Location,
    MovementType,
    StockCount,
    StockCountItem,
)
from stockrecon.models.shift import Expense, ExpenseType, Shift, ShiftStatus
from stockrecon.models.reconciliation import (
    DailyReconciliation,
    ReconciliationItem,
    ReconciliationStatus,
    VarianceStatus,
)
from stockrecon.models.operations import AppSetting, DailySummary, ReorderRequest, ReorderStatus

__all__ = [
    "Ingredient",
    "Recipe",
    "RecipeIngredient",
    "SyncedTransaction",
    "CalculatedConsumption",
    "SyncStatus",
    "SyncState",
    "SyncType",
    "PayType",
    "StockCount",
    "StockCountItem",
    "CountType",
    "CountStatus",
    "Location",
    "Dispatch",
    "DispatchItem",
    "DispatchStatus",
    "InventoryMovement",
    "MovementType",
    "Shift",
    "ShiftStatus",
    "Expense",
    "ExpenseType",
    "DailyReconciliation",
    "ReconciliationItem",
    "ReconciliationStatus",
    "VarianceStatus",
    "AppSetting",
    "DailySummary",
    "ReorderRequest",
    "ReorderStatus",
]
