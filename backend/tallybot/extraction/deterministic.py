"""Regex fallback parser: ``<qty> <word>`` scanning restricted to the catalog.

Pure and synchronous. Used as the fast path before the LLM is consulted
and again as the recovery step after an LLM failure.

Only ASCII decimal digits are understood as quantities; number words ("two",
"do", "teen") are left to the LLM stage.
"""

from __future__ import annotations

import re
from collections.abc import Iterable

import structlog

from tallybot.extraction.synonyms import normalize_token
from tallybot.models.contracts import DEFAULT_CATALOG, ParsedItem

logger = structlog.get_logger("tallybot.deterministic")

# Tried in order; the first one with any match is the only one used.
# Each captures an optional quantity (group 1) and a word (group 2).
QUANTITY_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"(?:([0-9]+)\s+)?(\w+)"),  # "2 chai"
    re.compile(r"(?:([0-9]+)\s*x\s*)?(\w+)"),  # "2 x chai", "2x chai"
    re.compile(r"(?:([0-9]+)\s*of\s*)?(\w+)"),  # "2 of chai"
)


def _first_matching_pattern(text: str) -> list[re.Match[str]]:
    for pattern in QUANTITY_PATTERNS:
        matches = list(pattern.finditer(text))
        if matches:
            return matches
    return []


def parse_deterministic(text: str, catalog: Iterable[str] | None = None) -> list[ParsedItem]:
    """Extract ``(item, quantity)`` pairs from ``text``.

    Rules:
    - Words are synonym-normalized and lowercased, then kept only if they
      are catalog keys (``DEFAULT_CATALOG`` when ``catalog`` is empty).
    - A missing quantity defaults to 1; an explicit quantity of 0 drops
      the match instead of defaulting it.
    - The first mention of an item wins; later mentions are ignored.

    Never raises. Text without catalog items yields an empty list.
    """
    known = set(catalog) if catalog else set(DEFAULT_CATALOG)
    if not text:
        return []

    items: list[ParsedItem] = []
    seen: set[str] = set()
    for match in _first_matching_pattern(text):
        raw_qty, word = match.group(1), match.group(2)
        name = normalize_token(word.lower()).lower()
        if name not in known or name in seen:
            continue
        try:
            quantity = int(raw_qty) if raw_qty else 1
        except ValueError:
            # digit string past the int conversion limit
            continue
        if quantity <= 0:
            continue
        seen.add(name)
        items.append(ParsedItem(item=name, quantity=quantity))

    logger.debug("deterministic_parse", matched=len(items))
    return items
