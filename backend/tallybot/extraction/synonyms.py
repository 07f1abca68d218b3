"""Surface-form synonyms for catalog item names.

Fixed data, independent of the stored catalog. Keys are lowercase
surface forms (plurals, spelling variants, English or Hindi words);
values are canonical item names.
"""

from __future__ import annotations

from types import MappingProxyType

SYNONYMS: MappingProxyType[str, str] = MappingProxyType(
    {
        # chai
        "tea": "chai",
        "teas": "chai",
        "chay": "chai",
        "chaay": "chai",
        "chaai": "chai",
        "chaa": "chai",
        "chais": "chai",
        # chips
        "chip": "chips",
        "crisps": "chips",
        "wafer": "chips",
        "wafers": "chips",
        # samosa
        "samosas": "samosa",
        "samose": "samosa",
        "samosey": "samosa",
        "somasa": "samosa",
        # choti / connect
        "chotis": "choti",
        "connects": "connect",
    }
)


def normalize_token(token: str) -> str:
    """Return the canonical name for ``token``, or ``token`` itself."""
    return SYNONYMS.get(token, token)
