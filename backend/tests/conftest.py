"""Pytest configuration and fixtures."""

import os

# Settings are read at import time; keep tests off any real POS, bot or database
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["SYNC_ENABLED"] = "false"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["POSTER_API_URL"] = ""
os.environ["POSTER_API_TOKEN"] = ""
os.environ["TELEGRAM_BOT_TOKEN"] = ""
os.environ["TELEGRAM_CHAT_ID"] = ""
os.environ["TIMEZONE"] = "UTC"

from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, Generator, List, Optional

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from stockrecon.api.deps import notifier as notifier_dependency
from stockrecon.api.deps import pos_client as pos_client_dependency
from stockrecon.db.base import Base
from stockrecon.db.session import configure_sqlite, get_db
from stockrecon.main import app
# Import all models to ensure they're registered with Base.metadata
from stockrecon.models import Ingredient, Recipe, RecipeIngredient
from stockrecon.services.notification_service import NotificationResult
from stockrecon.services.pos.poster_client import parse_close_date

# Use in-memory SQLite for tests
TEST_DATABASE_URL = "sqlite:///:memory:"


def close_ms(dt: Optional[datetime] = None) -> str:
    """Poster-style close time (unix milliseconds as a string)."""
    dt = dt or datetime.now(timezone.utc)
    return str(int(dt.timestamp() * 1000))


def make_transaction(tx_id, products=None, payed_sum=0, payed_cash=0, payed_card=0,
                     pay_type="1", closed_at: Optional[datetime] = None) -> Dict[str, Any]:
    """Raw transaction as returned by dash.getTransactions (money in cents)."""
    return {
        "transaction_id": str(tx_id),
        "date_close": close_ms(closed_at),
        "payed_sum": str(payed_sum),
        "payed_cash": str(payed_cash),
        "payed_card": str(payed_card),
        "pay_type": pay_type,
        "status": "2",
        "products": products or [],
    }


class FakePosClient:
    """In-memory stand-in for PosterClient."""

    is_configured = True

    def __init__(self, transactions: Optional[List[Dict[str, Any]]] = None,
                 products: Optional[List[Dict[str, Any]]] = None):
        self.transactions = list(transactions or [])
        self.products = list(products or [])
        self.error: Optional[Exception] = None
        self.calls: List[tuple] = []

    def _check(self):
        if self.error is not None:
            raise self.error

    async def get_todays_transactions(self):
        self.calls.append(("today",))
        self._check()
        return list(self.transactions)

    async def get_transactions_since(self, timestamp: int):
        self.calls.append(("since", timestamp))
        self._check()
        return [
            tx for tx in self.transactions
            if int(parse_close_date(tx.get("date_close")).timestamp()) > timestamp
        ]

    async def get_all_products_with_recipes(self):
        self.calls.append(("products",))
        self._check()
        return list(self.products)


class FakeNotifier:
    is_configured = True

    def __init__(self, fail: bool = False):
        self.messages: List[str] = []
        self.fail = fail

    async def send_message(self, text: str) -> NotificationResult:
        if self.fail:
            raise RuntimeError("telegram down")
        self.messages.append(text)
        return NotificationResult(success=True, sent_at=datetime.now(timezone.utc))


@pytest.fixture(scope="function")
def db_engine():
    """Create a test database engine."""
    engine = create_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    configure_sqlite(engine)
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture(scope="function")
def db_session(db_engine) -> Generator[Session, None, None]:
    """Create a test database session."""
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def fake_pos() -> FakePosClient:
    return FakePosClient()


@pytest.fixture
def fake_notifier() -> FakeNotifier:
    return FakeNotifier()


@pytest.fixture(scope="function")
def client(db_session: Session, fake_pos, fake_notifier) -> Generator[TestClient, None, None]:
    """Create a test client with database, POS and notifier overrides."""
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[pos_client_dependency] = lambda: fake_pos
    app.dependency_overrides[notifier_dependency] = lambda: fake_notifier
    # Don't raise server exceptions so we can test error status codes
    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def ingredients(db_session: Session) -> Dict[str, Ingredient]:
    """Milk, coffee beans and syrup with known average costs."""
    rows = {
        "milk": Ingredient(name="Milk", unit="ml", pos_ingredient_id="101", avg_cost=Decimal("0.05")),
        "coffee": Ingredient(name="Coffee Beans", unit="g", pos_ingredient_id="102", avg_cost=Decimal("2")),
        "syrup": Ingredient(name="Vanilla Syrup", unit="ml", pos_ingredient_id="103", avg_cost=Decimal("0.10")),
    }
    db_session.add_all(rows.values())
    db_session.commit()
    for row in rows.values():
        db_session.refresh(row)
    return rows


@pytest.fixture
def latte_recipe(db_session: Session, ingredients) -> Recipe:
    """POS product 10: 200 ml milk + 18 g coffee, optional 10 ml syrup (modification 555)."""
    recipe = Recipe(pos_product_id="10", name="Latte")
    recipe.lines = [
        RecipeIngredient(ingredient=ingredients["milk"], quantity=Decimal("200"), unit="ml", position=0),
        RecipeIngredient(ingredient=ingredients["coffee"], quantity=Decimal("18"), unit="g", position=1),
        RecipeIngredient(
            ingredient=ingredients["syrup"], quantity=Decimal("10"), unit="ml", position=2,
            is_modifier=True, pos_modification_id="555", modifier_group="Extras",
        ),
    ]
    db_session.add(recipe)
    db_session.commit()
    db_session.refresh(recipe)
    return recipe
