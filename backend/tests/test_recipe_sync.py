"""Tests for syncing recipes (tech cards) from the POS."""

import threading
from decimal import Decimal

import pytest

from conftest import FakePosClient
from stockrecon.core.exceptions import PosterAPIError
from stockrecon.models.ingredient import Ingredient
from stockrecon.models.pos import SyncState, SyncType
from stockrecon.models.recipe import Recipe
from stockrecon.services.recipe_sync_service import RecipeSyncService
from stockrecon.services.sync_status_service import SyncStatusService


def cappuccino(milk_netto="150"):
    return {
        "product_id": "20",
        "product_name": "Cappuccino",
        "category_name": "Coffee",
        "ingredients": [
            {"ingredient_id": "101", "ingredient_name": "Milk", "ingredient_unit": "ml",
             "structure_netto": milk_netto, "structure_brutto": "160"},
            {"ingredient_id": "102", "ingredient_name": "Coffee Beans", "ingredient_unit": "g",
             "structure_netto": "0", "structure_brutto": "18"},
            {"ingredient_name": "no id"},
        ],
        "group_modifications": [
            {
                "name": "Milk choice",
                "modifications": [
                    {"dish_modification_id": 31, "ingredient_id": "104", "name": "Oat milk",
                     "ingredient_unit": "ml", "netto": "150"},
                    {"dish_modification_id": 32, "name": "No ingredient"},
                ],
            },
        ],
    }


class TestRecipeSync:
    @pytest.mark.asyncio
    async def test_products_become_recipes(self, db_session):
        result = await RecipeSyncService(db_session, FakePosClient(products=[cappuccino()])).sync_recipes()

        assert result.success is True
        assert result.recipes_upserted == 1
        assert result.lines_upserted == 3
        recipe = db_session.query(Recipe).filter(Recipe.pos_product_id == "20").one()
        assert recipe.name == "Cappuccino"
        assert recipe.category == "Coffee"
        lines = {line.ingredient.name: line for line in recipe.lines}
        assert lines["Milk"].quantity == Decimal("150")
        # netto of zero falls back to brutto
        assert lines["Coffee Beans"].quantity == Decimal("18")
        assert lines["Oat milk"].is_modifier is True
        assert lines["Oat milk"].pos_modification_id == "31"
        assert lines["Oat milk"].modifier_group == "Milk choice"

    @pytest.mark.asyncio
    async def test_rerun_updates_in_place(self, db_session):
        await RecipeSyncService(db_session, FakePosClient(products=[cappuccino()])).sync_recipes()

        await RecipeSyncService(db_session, FakePosClient(products=[cappuccino("180")])).sync_recipes()

        assert db_session.query(Recipe).count() == 1
        assert db_session.query(Ingredient).count() == 3
        recipe = db_session.query(Recipe).one()
        db_session.refresh(recipe)
        assert len(recipe.lines) == 3
        milk = next(line for line in recipe.lines if line.ingredient.name == "Milk")
        assert milk.quantity == Decimal("180")

    @pytest.mark.asyncio
    async def test_existing_ingredients_are_matched_by_pos_id(self, db_session, ingredients):
        await RecipeSyncService(db_session, FakePosClient(products=[cappuccino()])).sync_recipes()

        recipe = db_session.query(Recipe).one()
        milk_line = next(line for line in recipe.lines if line.ingredient.pos_ingredient_id == "101")
        assert milk_line.ingredient_id == ingredients["milk"].id

    @pytest.mark.asyncio
    async def test_status_is_recorded(self, db_session):
        await RecipeSyncService(db_session, FakePosClient(products=[cappuccino()])).sync_recipes()

        status = SyncStatusService(db_session).get(SyncType.RECIPES)
        assert status.status == SyncState.IDLE
        assert status.records_synced == 1
        assert status.last_sync_at is not None

    @pytest.mark.asyncio
    async def test_pos_failure_is_reported(self, db_session):
        pos = FakePosClient()
        pos.error = PosterAPIError("PosterPOS request failed: timeout")

        result = await RecipeSyncService(db_session, pos).sync_recipes()

        assert result.success is False
        assert SyncStatusService(db_session).get(SyncType.RECIPES).status == SyncState.ERROR

    @pytest.mark.asyncio
    async def test_unconfigured_pos_is_skipped(self, db_session):
        result = await RecipeSyncService(db_session, None).sync_recipes()

        assert result.success is True
        assert result.recipes_upserted == 0

    @pytest.mark.asyncio
    async def test_rolled_back_product_is_not_counted(self, db_session):
        broken = {
            "product_id": "99",
            "product_name": "Hot chocolate",
            "ingredients": [
                {"ingredient_id": "201", "ingredient_name": "Cocoa", "ingredient_unit": "g",
                 "structure_netto": "20"},
                "not a tech card line",
            ],
        }
        pos = FakePosClient(products=[cappuccino(), broken])

        result = await RecipeSyncService(db_session, pos).sync_recipes()

        assert result.recipes_upserted == 1
        assert result.ingredients_upserted == 3
        assert result.lines_upserted == 3
        assert len(result.errors) == 1
        assert result.errors[0].startswith("Product 99:")
        assert db_session.query(Recipe).filter(Recipe.pos_product_id == "99").count() == 0
        assert db_session.query(Ingredient).filter(Ingredient.pos_ingredient_id == "201").count() == 0
        assert SyncStatusService(db_session).get(SyncType.RECIPES).records_synced == 1

    @pytest.mark.asyncio
    async def test_database_work_runs_off_the_event_loop(self, db_session, monkeypatch):
        loop_thread = threading.get_ident()
        apply_threads = []
        original_apply = RecipeSyncService._apply_products

        def recording_apply(self, products, result):
            apply_threads.append(threading.get_ident())
            return original_apply(self, products, result)

        monkeypatch.setattr(RecipeSyncService, "_apply_products", recording_apply)

        result = await RecipeSyncService(db_session, FakePosClient(products=[cappuccino()])).sync_recipes()

        assert result.recipes_upserted == 1
        assert len(apply_threads) == 1
        assert apply_threads[0] != loop_thread
