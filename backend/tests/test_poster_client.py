"""Tests for the PosterPOS client and the Telegram notifier (httpx mocked)."""

import json
from datetime import date, datetime, timezone

import httpx
import pytest

from stockrecon.core.exceptions import PosterAPIError
from stockrecon.services.notification_service import TelegramNotifier
from stockrecon.services.pos.poster_client import PosterClient, parse_close_date


def poster(handler, base_url="https://cafe.joinposter.com/api"):
    return PosterClient(base_url=base_url, token="secret", transport=httpx.MockTransport(handler))


class TestParseCloseDate:
    def test_milliseconds(self):
        assert parse_close_date("1700000000000") == datetime.fromtimestamp(1700000000, tz=timezone.utc)

    def test_seconds(self):
        assert parse_close_date(1700000000) == datetime.fromtimestamp(1700000000, tz=timezone.utc)

    def test_local_string_uses_business_timezone(self):
        parsed = parse_close_date("2024-03-01 12:00:00", tz_name="Africa/Nairobi")
        assert parsed == datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc)

    @pytest.mark.parametrize("value", [None, "", "yesterday"])
    def test_garbage_falls_back_to_now(self, value):
        before = datetime.now(timezone.utc)
        assert parse_close_date(value) >= before


class TestPosterClient:
    def test_unconfigured(self):
        client = PosterClient(base_url="", token="")
        assert client.is_configured is False

    @pytest.mark.asyncio
    async def test_unconfigured_request_raises(self):
        with pytest.raises(PosterAPIError):
            await PosterClient(base_url="", token="").get_products()

    @pytest.mark.asyncio
    async def test_get_transactions_sends_token_and_range(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["path"] = request.url.path
            seen["params"] = dict(request.url.params)
            return httpx.Response(200, json={"response": [{"transaction_id": "1"}]})

        rows = await poster(handler).get_transactions(date(2024, 3, 1), date(2024, 3, 2))

        assert rows == [{"transaction_id": "1"}]
        assert seen["path"] == "/api/dash.getTransactions"
        assert seen["params"]["token"] == "secret"
        assert seen["params"]["dateFrom"] == "20240301"
        assert seen["params"]["dateTo"] == "20240302"
        assert seen["params"]["include_products"] == "true"

    @pytest.mark.asyncio
    async def test_transactions_since_filters_by_close_time(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"response": [
                {"transaction_id": "old", "date_close": "1700000000000"},
                {"transaction_id": "new", "date_close": "1700000100000"},
            ]})

        rows = await poster(handler).get_transactions_since(1700000000)

        assert [r["transaction_id"] for r in rows] == ["new"]

    @pytest.mark.asyncio
    async def test_http_error_status(self):
        client = poster(lambda request: httpx.Response(502, text="bad gateway"))

        with pytest.raises(PosterAPIError) as exc_info:
            await client.get_products()

        assert exc_info.value.status_code == 502

    @pytest.mark.asyncio
    async def test_api_level_error(self):
        client = poster(lambda request: httpx.Response(200, json={"error": {"code": 10, "message": "Bad token"}}))

        with pytest.raises(PosterAPIError, match="Bad token"):
            await client.get_products()

    @pytest.mark.asyncio
    async def test_network_failure(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("unreachable", request=request)

        with pytest.raises(PosterAPIError):
            await poster(handler).get_products()

    @pytest.mark.asyncio
    async def test_products_with_recipes_skips_plain_products(self):
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path.endswith("menu.getProducts"):
                return httpx.Response(200, json={"response": [{"product_id": "1"}, {"product_id": "2"}]})
            product_id = request.url.params["product_id"]
            detail = {"product_id": product_id}
            if product_id == "1":
                detail["ingredients"] = [{"ingredient_id": "101"}]
            return httpx.Response(200, json={"response": detail})

        products = await poster(handler, base_url="https://cafe.joinposter.com").get_all_products_with_recipes()

        assert [p["product_id"] for p in products] == ["1"]

    @pytest.mark.asyncio
    async def test_stock_levels_are_normalized(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"response": [
                {"ingredient_id": 101, "ingredient_name": "Milk", "ingredient_left": "12.5", "ingredient_unit": "l"},
            ]})

        levels = await poster(handler).get_stock_levels()

        assert levels == [{"ingredient_id": "101", "ingredient_name": "Milk", "stock_count": 12.5, "unit": "l"}]


class TestTelegramNotifier:
    @pytest.mark.asyncio
    async def test_send_message(self):
        sent = {}

        def handler(request: httpx.Request) -> httpx.Response:
            sent["path"] = request.url.path
            sent["body"] = json.loads(request.content)
            return httpx.Response(200, json={"ok": True})

        notifier = TelegramNotifier("bot-token", "42", transport=httpx.MockTransport(handler))
        result = await notifier.send_message("*Sale*")

        assert result.success is True
        assert sent["path"] == "/botbot-token/sendMessage"
        assert sent["body"] == {"chat_id": "42", "text": "*Sale*", "parse_mode": "Markdown"}

    @pytest.mark.asyncio
    async def test_failure_is_reported_not_raised(self):
        notifier = TelegramNotifier(
            "bot-token", "42", transport=httpx.MockTransport(lambda request: httpx.Response(403))
        )

        result = await notifier.send_message("hello")

        assert result.success is False
        assert "403" in result.error

    @pytest.mark.asyncio
    async def test_unconfigured(self):
        result = await TelegramNotifier("", "").send_message("hello")
        assert result.success is False
