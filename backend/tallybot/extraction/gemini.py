"""LLM stage of item extraction (Gemini).

Builds a catalog-constrained prompt, calls Gemini under a hard timeout,
pulls the first JSON object out of the free-form answer and filters it
down to valid catalog entries.

Every failure is raised as an ``UpstreamError`` subclass; deciding what
to do about it is the orchestrator's job.
"""

from __future__ import annotations

import asyncio
import json
import math
from collections.abc import Mapping
from typing import Any

import aiohttp
import httpx
import structlog
from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from tallybot.extraction.errors import (
    UpstreamMalformed,
    UpstreamTimeout,
    UpstreamUnavailable,
)
from tallybot.extraction.synonyms import SYNONYMS
from tallybot.models.contracts import ExtractionConfig, ParsedItem

log = structlog.get_logger("tallybot.gemini")

EXTRACTION_PROMPT = """\
You are a smart assistant that extracts item names and quantities from user messages for daily expense tracking.
Messages may be in English, romanized Hindi, or a mix of both.

Known items (name: price):
{catalog_lines}

Rules:
1. Extract item names and quantities only.
2. Only use the exact item names listed above. Ignore any item that is not listed.
3. If no quantity is given for an item, use 1.
4. If the quantity is 0, leave that item out.
5. Ignore filler and request phrasing such as "please", "give me", "get me", "add", "I had", "mujhe", "de do", "bhaiya", "chahiye".
6. Convert number words to digits. English: one=1, two=2, three=3, four=4, five=5. Hindi: ek=1, do=2, teen=3, char=4, paanch=5, chheh=6, saat=7, aath=8, nau=9, das=10.
7. Map these alternate names to the listed item: {synonym_lines}

Examples:
Input: "2 chai" -> {{"items": [{{"item": "chai", "quantity": 2}}]}}
Input: "ek samosa aur do chai" -> {{"items": [{{"item": "samosa", "quantity": 1}}, {{"item": "chai", "quantity": 2}}]}}
Input: "give me three chips please" -> {{"items": [{{"item": "chips", "quantity": 3}}]}}

Respond ONLY with a single JSON object of this shape and nothing else:
{{"items": [{{"item": "<name>", "quantity": <number>}}]}}

User input: "{text}"
"""


def build_prompt(text: str, catalog: Mapping[str, float]) -> str:
    """Fill the extraction prompt with the catalog, synonyms and raw text."""
    catalog_lines = "\n".join(f"- {name}: ₹{price:g}" for name, price in catalog.items())
    synonym_lines = ", ".join(
        f"{alias} -> {canonical}" for alias, canonical in SYNONYMS.items() if canonical in catalog
    )
    return EXTRACTION_PROMPT.format(
        catalog_lines=catalog_lines,
        synonym_lines=synonym_lines or "none",
        text=text,
    )


def _strip_code_fence(text: str) -> str:
    """Remove a surrounding markdown code fence (```json ... ```), if any."""
    text = text.strip()
    if not text.startswith("```"):
        return text
    text = text.removeprefix("```")
    for lang in ("json", "JSON"):
        text = text.removeprefix(lang)
    text = text.lstrip("\n")
    return text.rsplit("```", 1)[0].strip()


def extract_json_object(text: str) -> dict[str, Any]:
    """Parse the first balanced ``{...}`` object found in ``text``.

    The brace walk skips braces inside JSON strings, so preamble,
    postamble and later objects do not leak into the parsed span.

    Raises UpstreamMalformed when no object is found or it fails to parse.
    """
    text = _strip_code_fence(text)
    start = text.find("{")
    if start == -1:
        raise UpstreamMalformed("No JSON object in model output")

    depth = 0
    in_string = False
    escape_next = False
    for i in range(start, len(text)):
        ch = text[i]
        if escape_next:
            escape_next = False
            continue
        if in_string:
            if ch == "\\":
                escape_next = True
            elif ch == '"':
                in_string = False
            continue
        if ch == '"':
            in_string = True
        elif ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
            if depth == 0:
                try:
                    parsed = json.loads(text[start : i + 1])
                except json.JSONDecodeError as exc:
                    raise UpstreamMalformed(f"Invalid JSON in model output: {exc}") from exc
                if not isinstance(parsed, dict):
                    raise UpstreamMalformed("Model output JSON is not an object")
                return parsed

    raise UpstreamMalformed("Unbalanced JSON object in model output")


def _coerce_quantity(value: Any) -> int | None:
    """Return a positive whole quantity, or None if ``value`` is unusable."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if isinstance(value, float):
        if not math.isfinite(value) or not value.is_integer():
            return None
        value = int(value)
    return value if value > 0 else None


def filter_items(payload: dict[str, Any], catalog: Mapping[str, float]) -> list[ParsedItem]:
    """Validate the payload shape and keep only usable entries.

    A missing or non-list ``items`` field rejects the whole payload.
    Individual bad entries (unknown item, non-numeric or non-positive
    quantity, wrong type) are dropped and the rest kept. Item names must
    match catalog keys exactly; the first entry for an item wins.
    """
    entries = payload.get("items")
    if not isinstance(entries, list):
        raise UpstreamMalformed("Model output has no 'items' list")

    items: list[ParsedItem] = []
    seen: set[str] = set()
    dropped = 0
    for entry in entries:
        if not isinstance(entry, dict):
            dropped += 1
            continue
        name = entry.get("item")
        quantity = _coerce_quantity(entry.get("quantity"))
        if not isinstance(name, str) or not name or name not in catalog or quantity is None:
            dropped += 1
            continue
        if name in seen:
            dropped += 1
            continue
        seen.add(name)
        items.append(ParsedItem(item=name, quantity=quantity))

    if dropped:
        log.warning("llm_entries_dropped", dropped=dropped, kept=len(items))
    return items


def extract_text(response: types.GenerateContentResponse) -> str:
    """Join all text parts of the first candidate."""
    if not response.candidates:
        return ""
    content = response.candidates[0].content
    if content is None or content.parts is None:
        return ""
    return "\n".join(part.text for part in content.parts if part.text is not None)


class GeminiItemExtractor:
    """Calls Gemini with deterministic decoding and validates its answer."""

    def __init__(self, config: ExtractionConfig, client: genai.Client | None = None) -> None:
        self._config = config
        self._client = client

    def _get_client(self) -> genai.Client:
        if self._client is None:
            self._client = genai.Client(api_key=self._config.api_key)
        return self._client

    def _generation_config(self) -> types.GenerateContentConfig:
        return types.GenerateContentConfig(
            temperature=self._config.temperature,
            top_k=self._config.top_k,
            top_p=self._config.top_p,
            max_output_tokens=self._config.max_output_tokens,
        )

    async def _generate(self, prompt: str) -> str:
        if not self._config.api_key:
            raise UpstreamUnavailable("Gemini API key is not configured")

        client = self._get_client()
        try:
            response = await asyncio.wait_for(
                client.aio.models.generate_content(
                    model=self._config.model,
                    contents=prompt,
                    config=self._generation_config(),
                ),
                timeout=self._config.timeout_seconds,
            )
        except asyncio.TimeoutError as exc:
            raise UpstreamTimeout(
                f"Gemini did not respond within {self._config.timeout_ms}ms"
            ) from exc
        except genai_errors.APIError as exc:
            raise UpstreamUnavailable(f"Gemini API error: {exc.code}", status_code=exc.code) from exc
        except genai_errors.UnknownApiResponseError as exc:
            raise UpstreamMalformed("Gemini returned a non-JSON response body") from exc
        except (httpx.HTTPError, aiohttp.ClientError) as exc:
            # the SDK uses aiohttp for async calls when it is installed
            raise UpstreamUnavailable(f"Gemini transport error: {type(exc).__name__}") from exc
        return extract_text(response)

    async def extract(self, text: str, catalog: Mapping[str, float]) -> list[ParsedItem]:
        """Return validated items for ``text``; raise UpstreamError on failure."""
        content = await self._generate(build_prompt(text, catalog))
        if not content.strip():
            raise UpstreamMalformed("No content in Gemini response")
        payload = extract_json_object(content)
        return filter_items(payload, catalog)
