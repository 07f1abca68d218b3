"""Tests for the regex fallback parser and the synonym normalizer."""

from __future__ import annotations

import pytest

from tallybot.extraction.deterministic import QUANTITY_PATTERNS, parse_deterministic
from tallybot.extraction.synonyms import SYNONYMS, normalize_token
from tallybot.models.contracts import DEFAULT_CATALOG, ParsedItem

CATALOG = {"chai": 10, "chips": 10, "choti": 10, "connect": 15, "samosa": 15}


def _pairs(items: list[ParsedItem]) -> list[tuple[str, int]]:
    return [(i.item, i.quantity) for i in items]


class TestNormalizeToken:
    def test_maps_synonym_to_canonical(self):
        assert normalize_token("tea") == "chai"
        assert normalize_token("samosas") == "samosa"

    def test_unknown_token_unchanged(self):
        assert normalize_token("coffee") == "coffee"

    def test_canonical_name_unchanged(self):
        assert normalize_token("chai") == "chai"

    def test_table_is_read_only(self):
        with pytest.raises(TypeError):
            SYNONYMS["coffee"] = "chai"  # type: ignore[index]

    def test_every_target_is_a_default_item(self):
        assert set(SYNONYMS.values()) <= set(DEFAULT_CATALOG)


class TestParseDeterministic:
    def test_quantity_and_item(self):
        assert _pairs(parse_deterministic("2 chai", CATALOG)) == [("chai", 2)]

    def test_filler_words_ignored(self):
        assert _pairs(parse_deterministic("give me 3 chips", CATALOG)) == [("chips", 3)]

    def test_missing_quantity_defaults_to_one(self):
        assert _pairs(parse_deterministic("get me connect", CATALOG)) == [("connect", 1)]

    def test_unknown_words_dropped(self):
        assert _pairs(parse_deterministic("unknown_item and 2 chai", CATALOG)) == [("chai", 2)]

    def test_multiple_items_keep_text_order(self):
        result = parse_deterministic("1 samosa and 1 chai", CATALOG)
        assert _pairs(result) == [("samosa", 1), ("chai", 1)]

    def test_first_occurrence_wins(self):
        assert _pairs(parse_deterministic("2 chai and 3 chai", CATALOG)) == [("chai", 2)]

    def test_zero_quantity_is_dropped_not_defaulted(self):
        assert parse_deterministic("0 chai", CATALOG) == []

    def test_dropped_zero_does_not_block_later_mention(self):
        assert _pairs(parse_deterministic("0 chai and 2 chai", CATALOG)) == [("chai", 2)]

    def test_leading_zeros(self):
        assert _pairs(parse_deterministic("007 samosa", CATALOG)) == [("samosa", 7)]

    def test_case_insensitive(self):
        assert _pairs(parse_deterministic("2 CHAI and 1 Samosa", CATALOG)) == [
            ("chai", 2),
            ("samosa", 1),
        ]

    def test_synonyms_resolved_before_catalog_check(self):
        result = parse_deterministic("2 tea and 3 samosas", CATALOG)
        assert _pairs(result) == [("chai", 2), ("samosa", 3)]

    def test_synonym_and_canonical_deduplicate(self):
        assert _pairs(parse_deterministic("2 tea and 1 chai", CATALOG)) == [("chai", 2)]

    def test_number_words_not_understood(self):
        """Only digits count; "two" is just an unknown word."""
        assert _pairs(parse_deterministic("two chai", CATALOG)) == [("chai", 1)]

    def test_first_pattern_shadows_x_pattern(self):
        """'2 x chai': the plain pattern matches first, so 2 binds to 'x'."""
        assert _pairs(parse_deterministic("2 x chai", CATALOG)) == [("chai", 1)]

    @pytest.mark.parametrize("text", ["\u0663 chai", "\u0969 chai"])
    def test_non_ascii_digits_are_not_quantities(self, text):
        """Arabic-Indic and Devanagari digits are plain words, not counts."""
        assert _pairs(parse_deterministic(text, CATALOG)) == [("chai", 1)]

    def test_digit_glued_to_word_is_not_a_quantity(self):
        assert parse_deterministic("2chai", CATALOG) == []

    def test_catalog_restricts_matches(self):
        result = parse_deterministic("2 chai and 1 coffee", {"coffee": 20})
        assert _pairs(result) == [("coffee", 1)]

    @pytest.mark.parametrize("catalog", [None, {}])
    def test_missing_catalog_uses_default(self, catalog):
        assert _pairs(parse_deterministic("2 choti", catalog)) == [("choti", 2)]

    @pytest.mark.parametrize("text", ["", "just checking", "!!! ???", "   "])
    def test_no_items(self, text):
        assert parse_deterministic(text, CATALOG) == []

    def test_oversized_number_does_not_raise(self):
        assert parse_deterministic("9" * 5000 + " chai", CATALOG) == []

    def test_repeat_runs_are_identical(self):
        text = "2 chai, 1 samosa, 3 tea and 4 chips"
        first = parse_deterministic(text, CATALOG)
        assert first == parse_deterministic(text, CATALOG)
        assert _pairs(first) == [("chai", 2), ("samosa", 1), ("chips", 4)]

    def test_pattern_priority_order(self):
        assert [p.pattern for p in QUANTITY_PATTERNS] == [
            r"(?:([0-9]+)\s+)?(\w+)",
            r"(?:([0-9]+)\s*x\s*)?(\w+)",
            r"(?:([0-9]+)\s*of\s*)?(\w+)",
        ]
