"""Redis-backed storage for the item catalog and per-chat running totals.

Keys:
    config           -> {"chai": 10, "samosa": 15, ...}
    user:{chat_id}   -> {"chai": 3, "samosa": 1, ...}

Values are JSON strings. Storage failures are logged and turned into
safe defaults ({} or False) so that a flaky Redis never breaks a reply.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from typing import Any

import redis.asyncio as redis
import structlog
from redis.asyncio.retry import Retry
from redis.backoff import ExponentialBackoff
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import RedisError
from redis.exceptions import TimeoutError as RedisTimeoutError

from tallybot.config import settings
from tallybot.models.contracts import DEFAULT_CATALOG

logger = structlog.get_logger()

CATALOG_KEY = "config"
TOTALS_KEY_TEMPLATE = "user:{chat_id}"

RETRIES = 2


def _build_client() -> redis.Redis:
    """Create a Redis client with 2 retries and exponential backoff."""
    return redis.from_url(
        settings.redis_url,
        decode_responses=True,
        retry=Retry(ExponentialBackoff(cap=1.0, base=0.05), RETRIES),
        retry_on_error=[RedisConnectionError, RedisTimeoutError],
    )


def _decode(raw: str | None) -> dict[str, Any]:
    if not raw:
        return {}
    value = json.loads(raw)
    return value if isinstance(value, dict) else {}


class LedgerStore:
    def __init__(self, client: redis.Redis | None = None) -> None:
        self._client = client

    @property
    def client(self) -> redis.Redis:
        if self._client is None:
            self._client = _build_client()
        return self._client

    async def ping(self) -> bool:
        try:
            return bool(await self.client.ping())
        except RedisError as exc:
            logger.debug("redis_ping_failed", error=str(exc))
            return False

    async def initialize_catalog(self) -> None:
        """Seed the default catalog unless one is already stored."""
        try:
            created = await self.client.set(CATALOG_KEY, json.dumps(DEFAULT_CATALOG), nx=True)
        except RedisError as exc:
            logger.error("redis_catalog_init_failed", error=str(exc))
            return
        if created:
            logger.info("redis_catalog_initialized", items=len(DEFAULT_CATALOG))

    async def get_catalog(self) -> dict[str, float]:
        """Return item -> price. Entries with non-numeric prices are skipped."""
        try:
            raw = await self.client.get(CATALOG_KEY)
            stored = _decode(raw)
        except (RedisError, json.JSONDecodeError) as exc:
            logger.error("redis_get_catalog_failed", error=str(exc))
            return {}
        return {
            str(name).lower(): price
            for name, price in stored.items()
            if isinstance(price, (int, float)) and not isinstance(price, bool)
        }

    async def get_totals(self, chat_id: int) -> dict[str, int]:
        key = TOTALS_KEY_TEMPLATE.format(chat_id=chat_id)
        try:
            stored = _decode(await self.client.get(key))
        except (RedisError, json.JSONDecodeError) as exc:
            logger.error("redis_get_totals_failed", chat_id=chat_id, error=str(exc))
            return {}
        return {
            name: qty
            for name, qty in stored.items()
            if isinstance(qty, int) and not isinstance(qty, bool)
        }

    async def set_totals(self, chat_id: int, totals: Mapping[str, int]) -> bool:
        key = TOTALS_KEY_TEMPLATE.format(chat_id=chat_id)
        try:
            await self.client.set(key, json.dumps(dict(totals)))
        except RedisError as exc:
            logger.error("redis_set_totals_failed", chat_id=chat_id, error=str(exc))
            return False
        return True

    async def reset_totals(self, chat_id: int) -> bool:
        return await self.set_totals(chat_id, {})


_store: LedgerStore | None = None


def get_store() -> LedgerStore:
    """Lazy-init singleton store."""
    global _store  # noqa: PLW0603
    if _store is None:
        _store = LedgerStore()
    return _store


def reset_store() -> None:
    """Drop the singleton store (for testing)."""
    global _store  # noqa: PLW0603
    _store = None
