"""Shared fixtures: in-process ASGI client and an in-memory ledger store."""

from __future__ import annotations

from collections.abc import Mapping

import pytest
from httpx import ASGITransport, AsyncClient

from tallybot.models.contracts import DEFAULT_CATALOG


class FakeStore:
    """In-memory stand-in for LedgerStore with the same async surface."""

    def __init__(self, catalog: Mapping[str, float] | None = None) -> None:
        self.catalog: dict[str, float] | None = dict(catalog) if catalog is not None else None
        self.totals: dict[int, dict[str, int]] = {}
        self.fail_writes = False
        self.healthy = True

    async def ping(self) -> bool:
        return self.healthy

    async def initialize_catalog(self) -> None:
        if self.catalog is None:
            self.catalog = dict(DEFAULT_CATALOG)

    async def get_catalog(self) -> dict[str, float]:
        return dict(self.catalog or {})

    async def get_totals(self, chat_id: int) -> dict[str, int]:
        return dict(self.totals.get(chat_id, {}))

    async def set_totals(self, chat_id: int, totals: Mapping[str, int]) -> bool:
        if self.fail_writes:
            return False
        self.totals[chat_id] = dict(totals)
        return True

    async def reset_totals(self, chat_id: int) -> bool:
        return await self.set_totals(chat_id, {})


@pytest.fixture
def fake_store() -> FakeStore:
    return FakeStore()


@pytest.fixture
async def client():
    from tallybot.main import app

    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
