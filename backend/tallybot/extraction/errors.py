"""Failure taxonomy for item extraction.

Only ``ExtractionExhausted`` leaves the orchestrator. Upstream errors are
raised by the LLM stage and absorbed (and logged) by the orchestrator,
which then falls back to the deterministic parser.
"""

from __future__ import annotations


class ExtractionError(Exception):
    """Base class for every extraction failure."""


class UpstreamError(ExtractionError):
    """The generative model could not produce a usable answer."""


class UpstreamTimeout(UpstreamError):
    """The model did not answer within the configured timeout."""


class UpstreamUnavailable(UpstreamError):
    """No credential, a transport failure, or a non-success status."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class UpstreamMalformed(UpstreamError):
    """The model answered, but no valid ``{"items": [...]}`` object was found."""


class ExtractionExhausted(ExtractionError):
    """Neither the deterministic nor the LLM stage produced any items."""

    def __init__(self, text: str) -> None:
        super().__init__("Failed to parse input with both LLM and fallback methods")
        self.text = text
