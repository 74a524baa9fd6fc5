"""Telegram notifications for sales and operational alerts."""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

import httpx

from stockrecon.core.config import settings

logger = logging.getLogger(__name__)

TELEGRAM_API_BASE = "https://api.telegram.org"


@dataclass
class NotificationResult:
    """Result of a notification attempt."""
    success: bool
    error: Optional[str] = None
    sent_at: Optional[datetime] = None


class TelegramNotifier:
    """Sends Markdown messages to a single Telegram chat via the Bot API."""

    def __init__(
        self,
        bot_token: Optional[str] = None,
        chat_id: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._bot_token = bot_token or settings.telegram_bot_token or ""
        self._chat_id = chat_id or settings.telegram_chat_id or ""
        self._transport = transport
        self._configured = bool(self._bot_token and self._chat_id)

    @property
    def is_configured(self) -> bool:
        return self._configured

    async def send_message(self, text: str) -> NotificationResult:
        """Send a message. Errors are reported in the result, never raised."""
        if not self._configured:
            logger.debug("Telegram not configured, dropping message")
            return NotificationResult(success=False, error="Telegram not configured")

        try:
            async with httpx.AsyncClient(timeout=15.0, transport=self._transport) as client:
                resp = await client.post(
                    f"{TELEGRAM_API_BASE}/bot{self._bot_token}/sendMessage",
                    json={"chat_id": self._chat_id, "text": text, "parse_mode": "Markdown"},
                )
        except httpx.HTTPError as e:
            logger.error(f"Telegram send failed: {e}")
            return NotificationResult(success=False, error=str(e))

        if resp.status_code != 200:
            logger.error(f"Telegram send failed: {resp.status_code} - {resp.text[:200]}")
            return NotificationResult(success=False, error=f"Telegram error: {resp.status_code}")

        return NotificationResult(success=True, sent_at=datetime.now(timezone.utc))


def get_notifier() -> Optional[TelegramNotifier]:
    if not settings.telegram_configured:
        return None
    return TelegramNotifier()
