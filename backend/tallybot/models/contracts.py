"""Tallybot contract models.

Shared by the extraction pipeline, the ledger, and the webhook API.
Catalogs are plain ``dict[str, float]`` mappings and are not modelled here.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

# Matching universe when the stored catalog is missing or empty.
DEFAULT_CATALOG: dict[str, float] = {
    "chai": 10,
    "chips": 10,
    "choti": 10,
    "connect": 15,
    "samosa": 15,
}


# === Extraction ===


class ParsedItem(BaseModel):
    """One extracted line: a catalog key and a positive whole quantity."""

    model_config = ConfigDict(frozen=True)

    item: str = Field(min_length=1)
    quantity: int = Field(gt=0)


class ParseResult(BaseModel):
    """Extracted items in the order they first appeared in the source text."""

    items: list[ParsedItem] = []


class ExtractionConfig(BaseModel):
    """Explicit configuration for the LLM stage of the extraction pipeline.

    Built once per process from ``Settings`` (see ``from_settings``) and
    passed to the orchestrator, instead of reading the environment on
    every call.
    """

    model_config = ConfigDict(frozen=True)

    api_key: str = ""
    model: str = "gemini-2.0-flash"
    timeout_ms: int = Field(default=8000, gt=0)
    temperature: float = 0.1
    top_k: int = 1
    top_p: float = 1.0
    max_output_tokens: int = 150

    @property
    def timeout_seconds(self) -> float:
        return self.timeout_ms / 1000

    @classmethod
    def from_settings(cls, settings) -> ExtractionConfig:  # noqa: ANN001
        return cls(
            api_key=settings.gemini_api_key,
            model=settings.gemini_model,
            timeout_ms=settings.gemini_timeout_ms,
        )


# === Telegram webhook ===


class TelegramChat(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: int


class TelegramUser(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: int


class TelegramMessage(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    chat: TelegramChat | None = None
    from_user: TelegramUser | None = Field(default=None, alias="from")
    text: str | None = None


class TelegramUpdate(BaseModel):
    model_config = ConfigDict(extra="ignore")

    update_id: int | None = None
    message: TelegramMessage | None = None


# === API ===


class ErrorResponse(BaseModel):
    error: str
    message: str
    retryable: bool = False
