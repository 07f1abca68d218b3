"""Telegram webhook: command dispatch and expense logging.

Commands (slash form or keyboard button):
    /start              welcome text with the catalog
    /total    📊 Total     today's running totals
    /checkout 🛍️ Checkout  summary, then reset
    /reset    🔄 Reset     clear today's totals

Any other text is treated as an expense message and run through the
extraction pipeline. Handled updates always answer {"ok": true} so that
Telegram does not redeliver them.
"""

from __future__ import annotations

import structlog
from fastapi import APIRouter

from tallybot import ledger
from tallybot.config import settings
from tallybot.extraction.errors import ExtractionExhausted
from tallybot.extraction.orchestrator import ExtractionOrchestrator
from tallybot.models.contracts import ExtractionConfig, TelegramUpdate
from tallybot.utils.store import get_store
from tallybot.utils.telegram import (
    CHECKOUT_BUTTON,
    RESET_BUTTON,
    TOTAL_BUTTON,
    send_message,
)

logger = structlog.get_logger()

router = APIRouter(tags=["telegram"])

ACCESS_DENIED = "🚫 Access denied. You are not authorized to use this bot."

_orchestrator: ExtractionOrchestrator | None = None


def get_orchestrator() -> ExtractionOrchestrator:
    global _orchestrator  # noqa: PLW0603
    if _orchestrator is None:
        _orchestrator = ExtractionOrchestrator(ExtractionConfig.from_settings(settings))
    return _orchestrator


def _is_authorized(user_id: int) -> bool:
    allowed = settings.allowed_user_id_set
    return not allowed or user_id in allowed


@router.post("/telegram")
async def telegram_webhook(update: TelegramUpdate) -> dict:
    store = get_store()
    await store.initialize_catalog()

    message = update.message
    if (
        message is None
        or message.chat is None
        or message.from_user is None
        or not message.text
        or not message.text.strip()
    ):
        return {"ok": True}

    chat_id = message.chat.id
    user_id = message.from_user.id
    text = message.text.strip()

    if not _is_authorized(user_id):
        logger.warning("telegram_unauthorized_user", user_id=user_id)
        await send_message(chat_id, ACCESS_DENIED)
        return {"ok": True}

    structlog.contextvars.bind_contextvars(chat_id=chat_id)
    logger.info("telegram_message_received", user_id=user_id, text_length=len(text))

    if text == "/start":
        await handle_start(chat_id)
    elif text in ("/total", TOTAL_BUTTON):
        await handle_total(chat_id)
    elif text in ("/checkout", CHECKOUT_BUTTON):
        await handle_checkout(chat_id)
    elif text in ("/reset", RESET_BUTTON):
        await handle_reset(chat_id)
    else:
        await process_expense(chat_id, text)
    return {"ok": True}


async def handle_start(chat_id: int) -> None:
    catalog = await get_store().get_catalog()
    await send_message(chat_id, ledger.render_welcome(catalog), persistent=True)


async def process_expense(chat_id: int, text: str) -> None:
    store = get_store()
    catalog = await store.get_catalog()

    try:
        result = await get_orchestrator().parse(text, catalog)
    except ExtractionExhausted:
        await send_message(chat_id, f"Could not understand. {ledger.USAGE_HINT}")
        return

    totals = await store.get_totals(chat_id)
    receipt = ledger.apply_items(totals, result.items, catalog)
    saved = await store.set_totals(chat_id, receipt.totals)

    logger.info(
        "expense_recorded",
        items=len(result.items),
        total_cost=receipt.total_cost,
        saved=saved,
    )
    await send_message(chat_id, ledger.render_receipt(receipt))
    if not saved:
        await send_message(chat_id, "⚠️ Warning: Data may not have been saved properly.")


async def handle_total(chat_id: int) -> None:
    store = get_store()
    catalog = await store.get_catalog()
    totals = await store.get_totals(chat_id)
    await send_message(chat_id, ledger.render_total(totals, catalog))


async def handle_checkout(chat_id: int) -> None:
    store = get_store()
    catalog = await store.get_catalog()
    totals = await store.get_totals(chat_id)
    await send_message(chat_id, ledger.render_checkout(totals, catalog))
    if totals:
        await store.reset_totals(chat_id)
        logger.info("checkout_completed", items=len(totals))


async def handle_reset(chat_id: int) -> None:
    if await get_store().reset_totals(chat_id):
        await send_message(chat_id, "🔄 Your daily expenses have been reset.")
    else:
        await send_message(chat_id, "❌ Error resetting expenses.")
