"""PosterPOS API client.

Thin async wrapper around the Poster REST API
(``https://{account}.joinposter.com/api/{method}?token=...``).

Only the calls the sync services need are exposed:
- closed transactions for a date range (with line items)
- products and their tech cards (recipes)
- ingredients and storage leftovers
"""

import logging
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional
from zoneinfo import ZoneInfo

import httpx

from stockrecon.core.business_day import business_date
from stockrecon.core.config import settings
from stockrecon.core.exceptions import PosterAPIError

logger = logging.getLogger(__name__)


def _ymd(day: date) -> str:
    return day.strftime("%Y%m%d")


def parse_close_date(value: Any, tz_name: Optional[str] = None) -> datetime:
    """Parse a Poster close time into an aware UTC datetime.

    Accepts unix seconds, unix milliseconds (values above 1e12) or a
    ``YYYY-MM-DD HH:MM:SS`` string in the business timezone. Anything else
    falls back to now so one bad row never fails a batch.
    """
    if value is None or value == "":
        return datetime.now(timezone.utc)

    try:
        number = float(value)
    except (TypeError, ValueError):
        number = None
    if number is not None and number > 0:
        seconds = number / 1000 if number > 1e12 else number
        try:
            return datetime.fromtimestamp(seconds, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            logger.warning("Out of range Poster close date %r, using now", value)
            return datetime.now(timezone.utc)

    try:
        parsed = datetime.fromisoformat(str(value).strip().replace(" ", "T"))
    except ValueError:
        logger.warning("Unparseable Poster close date %r, using now", value)
        return datetime.now(timezone.utc)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=ZoneInfo(tz_name or settings.timezone))
    return parsed.astimezone(timezone.utc)


class PosterClient:
    """PosterPOS REST API gateway using httpx."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        token: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        base_url = base_url or settings.poster_api_url or ""
        # Accept both the account URL and the URL ending in /api
        self._base_url = base_url.rstrip("/").removesuffix("/api")
        self._token = token or settings.poster_api_token or ""
        self._timeout = timeout or settings.poster_timeout_seconds
        self._transport = transport
        self._configured = bool(self._base_url and self._token)

        if not self._configured:
            logger.warning(
                "PosterPOS not configured. Set POSTER_API_URL and "
                "POSTER_API_TOKEN environment variables."
            )

    @property
    def is_configured(self) -> bool:
        return self._configured

    def _require_configured(self) -> None:
        if not self._configured:
            raise PosterAPIError("PosterPOS is not configured.")

    async def _request(self, method: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """Call a Poster API method and return its ``response`` payload."""
        self._require_configured()
        query: Dict[str, Any] = {"token": self._token}
        if params:
            query.update(params)

        logger.debug("PosterPOS request: %s", method)
        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                resp = await client.get(f"{self._base_url}/api/{method}", params=query)
        except httpx.HTTPError as e:
            logger.error("PosterPOS request %s failed: %s", method, e)
            raise PosterAPIError(f"PosterPOS request failed: {e}") from e

        if resp.status_code >= 400:
            logger.error("PosterPOS %s returned %s: %s", method, resp.status_code, resp.text[:500])
            raise PosterAPIError(
                f"PosterPOS API error: {resp.status_code}", status_code=resp.status_code
            )

        try:
            data = resp.json()
        except ValueError as e:
            raise PosterAPIError(f"PosterPOS returned invalid JSON for {method}") from e

        if isinstance(data, dict) and data.get("error"):
            error = data["error"]
            message = error.get("message") if isinstance(error, dict) else error
            raise PosterAPIError(f"PosterPOS API error: {message}")

        return data.get("response") if isinstance(data, dict) else data

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    async def get_transactions(self, date_from: date, date_to: date) -> List[Dict[str, Any]]:
        """Closed transactions (with products) between two business dates inclusive."""
        response = await self._request(
            "dash.getTransactions",
            {
                "dateFrom": _ymd(date_from),
                "dateTo": _ymd(date_to),
                "include_products": "true",
                "status": 2,  # closed only
            },
        )
        return list(response or [])

    async def get_todays_transactions(self) -> List[Dict[str, Any]]:
        today = business_date()
        return await self.get_transactions(today, today)

    async def get_transactions_since(self, timestamp: int) -> List[Dict[str, Any]]:
        """Transactions closed strictly after a unix-seconds timestamp."""
        since = datetime.fromtimestamp(timestamp, tz=timezone.utc)
        transactions = await self.get_transactions(business_date(since), business_date())
        return [
            tx for tx in transactions
            if int(parse_close_date(tx.get("date_close")).timestamp()) > timestamp
        ]

    # ------------------------------------------------------------------
    # Menu / recipes
    # ------------------------------------------------------------------

    async def get_products(self) -> List[Dict[str, Any]]:
        return list(await self._request("menu.getProducts") or [])

    async def get_product(self, product_id: str) -> Dict[str, Any]:
        """Single product including its tech card and modifier groups."""
        return await self._request("menu.getProduct", {"product_id": product_id}) or {}

    async def get_all_products_with_recipes(self) -> List[Dict[str, Any]]:
        """Products that carry a tech card (ingredients or modifier groups)."""
        products = await self.get_products()
        with_recipes = []
        for product in products:
            product_id = product.get("product_id")
            if product_id is None:
                continue
            detail = await self.get_product(str(product_id))
            if detail.get("ingredients") or detail.get("group_modifications"):
                with_recipes.append(detail)
        logger.info(
            "PosterPOS: %d of %d products have recipes", len(with_recipes), len(products)
        )
        return with_recipes

    async def get_ingredients(self) -> List[Dict[str, Any]]:
        return list(await self._request("menu.getIngredients") or [])

    async def get_stock_levels(self) -> List[Dict[str, Any]]:
        """Current storage leftovers, normalized to ingredient id / name / amount / unit."""
        leftovers = await self._request("storage.getStorageLeftovers") or []
        return [
            {
                "ingredient_id": str(row.get("ingredient_id")),
                "ingredient_name": row.get("ingredient_name"),
                "stock_count": float(row.get("ingredient_left") or 0),
                "unit": row.get("ingredient_unit") or "units",
            }
            for row in leftovers
        ]

