"""Tests for opening and closing stock count sessions."""

from datetime import timedelta
from decimal import Decimal

import pytest

from stockrecon.core.business_day import business_date
from stockrecon.core.config import settings
from stockrecon.core.exceptions import ConflictError, NotFoundError, ValidationFailed
from stockrecon.models.stock import CountStatus, CountType, Location
from stockrecon.services.stock_count_service import StockCountService


@pytest.fixture
def count(db_session):
    return StockCountService.create_count(db_session, "shop", "closing", "Asha")


class TestCreateCount:
    def test_new_count_is_in_progress_for_today(self, count):
        assert count.status == CountStatus.IN_PROGRESS
        assert count.count_type == CountType.CLOSING
        assert count.location == Location.SHOP
        assert count.count_date == business_date()

    @pytest.mark.parametrize("location, count_type, counted_by", [
        ("garage", "closing", "Asha"),
        ("shop", "midday", "Asha"),
        ("shop", "closing", "   "),
    ])
    def test_invalid_input(self, db_session, location, count_type, counted_by):
        with pytest.raises(ValidationFailed):
            StockCountService.create_count(db_session, location, count_type, counted_by)


class TestAddItems:
    def test_recounting_an_ingredient_replaces_quantity(self, db_session, count, ingredients):
        milk = ingredients["milk"]

        StockCountService.add_items(db_session, count.id, [{"ingredient_id": milk.id, "counted_quantity": 500}])
        StockCountService.add_items(db_session, count.id, [{"ingredient_id": milk.id, "counted_quantity": 450}])

        refreshed = StockCountService.get_count(db_session, count.id)
        assert len(refreshed.items) == 1
        assert refreshed.items[0].counted_quantity == Decimal("450")
        assert refreshed.items[0].item_name == "Milk"
        assert refreshed.items[0].unit == "ml"

    def test_free_text_items_are_kept_but_not_reconciled(self, db_session, count, ingredients):
        StockCountService.add_items(db_session, count.id, [
            {"item_name": "Paper cups", "counted_quantity": "120", "unit": "pcs"},
            {"ingredient_id": ingredients["coffee"].id, "counted_quantity": "250.5"},
        ])

        quantities = StockCountService.quantities_by_ingredient(db_session, count.id)

        assert quantities == {ingredients["coffee"].id: Decimal("250.5")}

    @pytest.mark.parametrize("item", [
        {"counted_quantity": 1},
        {"item_name": "Cups", "counted_quantity": -1},
        {"item_name": "Cups", "counted_quantity": "lots"},
        {"ingredient_id": 999, "counted_quantity": 1},
    ])
    def test_invalid_items(self, db_session, count, item):
        with pytest.raises(ValidationFailed):
            StockCountService.add_items(db_session, count.id, [item])

    def test_completed_count_is_read_only(self, db_session, count, ingredients):
        StockCountService.complete_count(db_session, count.id)

        with pytest.raises(ConflictError):
            StockCountService.add_items(db_session, count.id, [
                {"ingredient_id": ingredients["milk"].id, "counted_quantity": 1},
            ])

    def test_unknown_count(self, db_session):
        with pytest.raises(NotFoundError):
            StockCountService.add_items(db_session, 404, [])


class TestCompleteCount:
    def test_complete_records_item_count(self, db_session, count, ingredients):
        StockCountService.add_items(db_session, count.id, [
            {"ingredient_id": ingredients["milk"].id, "counted_quantity": 1},
            {"ingredient_id": ingredients["coffee"].id, "counted_quantity": 2},
        ])

        completed = StockCountService.complete_count(db_session, count.id)

        assert completed.status == CountStatus.COMPLETED
        assert completed.item_count == 2
        assert completed.completed_at is not None

    def test_completing_twice_is_a_conflict(self, db_session, count):
        StockCountService.complete_count(db_session, count.id)
        with pytest.raises(ConflictError):
            StockCountService.complete_count(db_session, count.id)

    def test_second_daily_count_is_allowed_by_default(self, db_session, count):
        StockCountService.complete_count(db_session, count.id)
        second = StockCountService.create_count(db_session, "shop", "closing", "Ben")

        completed = StockCountService.complete_count(db_session, second.id)

        assert completed.status == CountStatus.COMPLETED
        latest = StockCountService.latest_completed(db_session, Location.SHOP, CountType.CLOSING, business_date())
        assert latest.id == second.id

    def test_second_daily_count_rejected_when_enforced(self, db_session, count, monkeypatch):
        monkeypatch.setattr(settings, "enforce_unique_daily_counts", True)
        StockCountService.complete_count(db_session, count.id)
        second = StockCountService.create_count(db_session, "shop", "closing", "Ben")

        with pytest.raises(ConflictError):
            StockCountService.complete_count(db_session, second.id)

    def test_uniqueness_is_per_day_location_and_type(self, db_session, count, monkeypatch):
        monkeypatch.setattr(settings, "enforce_unique_daily_counts", True)
        StockCountService.complete_count(db_session, count.id)
        others = [
            StockCountService.create_count(db_session, "store", "closing", "Ben"),
            StockCountService.create_count(db_session, "shop", "opening", "Ben"),
            StockCountService.create_count(
                db_session, "shop", "closing", "Ben", count_date=business_date() - timedelta(days=1)
            ),
        ]

        for other in others:
            assert StockCountService.complete_count(db_session, other.id).status == CountStatus.COMPLETED
