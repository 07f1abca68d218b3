"""Two-stage item extraction: regex first, Gemini second, regex again.

1. Deterministic parse. Any hit is returned immediately; the LLM is not called.
2. LLM parse. A non-empty validated answer is returned.
3. On LLM failure or an empty answer, the deterministic parse runs again
   as a recovery attempt. If that is empty too, ExtractionExhausted.

Stateless per call, so one orchestrator can serve concurrent requests.
"""

from __future__ import annotations

import time
from collections.abc import Mapping
from typing import Protocol

import structlog

from tallybot.extraction.deterministic import parse_deterministic
from tallybot.extraction.errors import ExtractionExhausted, UpstreamError
from tallybot.extraction.gemini import GeminiItemExtractor
from tallybot.models.contracts import DEFAULT_CATALOG, ExtractionConfig, ParsedItem, ParseResult

logger = structlog.get_logger("tallybot.extraction")


class ItemExtractor(Protocol):
    async def extract(self, text: str, catalog: Mapping[str, float]) -> list[ParsedItem]: ...


class ExtractionOrchestrator:
    def __init__(
        self,
        config: ExtractionConfig | None = None,
        llm: ItemExtractor | None = None,
    ) -> None:
        self.config = config or ExtractionConfig()
        self._llm: ItemExtractor = llm or GeminiItemExtractor(self.config)

    async def parse(self, text: str, catalog: Mapping[str, float] | None = None) -> ParseResult:
        """Extract ``{item, quantity}`` entries from ``text``.

        An empty or missing ``catalog`` falls back to ``DEFAULT_CATALOG``.
        Raises ExtractionExhausted when no stage finds any item.
        """
        effective = dict(catalog) if catalog else dict(DEFAULT_CATALOG)

        items = parse_deterministic(text, effective)
        if items:
            logger.info("deterministic_parse_hit", items=len(items))
            return ParseResult(items=items)

        started = time.monotonic()
        logger.info("llm_parse_attempt", model=self.config.model)
        try:
            items = await self._llm.extract(text, effective)
        except UpstreamError as exc:
            logger.warning(
                "llm_parse_failed",
                error_type=type(exc).__name__,
                elapsed_ms=round((time.monotonic() - started) * 1000),
            )
            items = []
        else:
            if items:
                logger.info(
                    "llm_parse_succeeded",
                    items=len(items),
                    elapsed_ms=round((time.monotonic() - started) * 1000),
                )
                return ParseResult(items=items)
            logger.info("llm_parse_empty")

        # Recovery pass. Same inputs as step 1, kept as a separate stage.
        items = parse_deterministic(text, effective)
        if items:
            logger.info("fallback_recovery_hit", items=len(items))
            return ParseResult(items=items)

        logger.warning("extraction_exhausted", text_length=len(text))
        raise ExtractionExhausted(text)
