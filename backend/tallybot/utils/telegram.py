"""Telegram Bot API sender.

Every reply carries the same reply keyboard so the Total / Checkout /
Reset buttons stay visible. Send failures are logged, never raised.
"""

from __future__ import annotations

from typing import Any

import httpx
import structlog

from tallybot.config import settings

logger = structlog.get_logger()

SEND_TIMEOUT = 10.0

TOTAL_BUTTON = "📊 Total"
CHECKOUT_BUTTON = "🛍️ Checkout"
RESET_BUTTON = "🔄 Reset"


def build_keyboard(persistent: bool = False) -> dict[str, Any]:
    keyboard: dict[str, Any] = {
        "keyboard": [
            [{"text": TOTAL_BUTTON}, {"text": CHECKOUT_BUTTON}],
            [{"text": RESET_BUTTON}],
        ],
        "resize_keyboard": True,
        "one_time_keyboard": False,
    }
    if persistent:
        keyboard["is_persistent"] = True
    return keyboard


async def send_message(
    chat_id: int,
    text: str,
    *,
    persistent: bool = False,
    client: httpx.AsyncClient | None = None,
) -> bool:
    """Send ``text`` to ``chat_id``. Returns False on any failure."""
    url = f"{settings.telegram_api_base}/bot{settings.telegram_bot_token}/sendMessage"
    payload = {
        "chat_id": chat_id,
        "text": text,
        "parse_mode": "HTML",
        "reply_markup": build_keyboard(persistent),
    }

    try:
        if client is None:
            async with httpx.AsyncClient() as http_client:
                resp = await http_client.post(url, json=payload, timeout=SEND_TIMEOUT)
        else:
            resp = await client.post(url, json=payload, timeout=SEND_TIMEOUT)
    except httpx.HTTPError as exc:
        logger.error("telegram_send_failed", chat_id=chat_id, error_type=type(exc).__name__)
        return False

    if resp.status_code >= 400:
        logger.error(
            "telegram_api_error",
            chat_id=chat_id,
            status=resp.status_code,
            body=resp.text[:200],
        )
        return False
    return True
