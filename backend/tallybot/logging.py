"""structlog setup for the webhook process.

Events go to stdout, rendered for humans in development and as JSON lines
elsewhere. ``LOG_FILE`` appends a copy of every line to a file. The bot
token is masked wherever it shows up in an event, since Telegram URLs
embed it.
"""

from __future__ import annotations

import logging
import sys
from typing import IO, Any

import structlog

from tallybot.config import settings

_MASK = "***"


def _resolve_level(name: str) -> int:
    return logging.getLevelNamesMapping().get(name.upper(), logging.INFO)


def _mask_bot_token(_logger: Any, _method: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    token = settings.telegram_bot_token
    if not token:
        return event_dict
    for key, value in event_dict.items():
        if isinstance(value, str) and token in value:
            event_dict[key] = value.replace(token, _MASK)
    return event_dict


class _TeeWriter:
    """File-like sink for PrintLogger: stdout plus an append-only log file.

    A log file that cannot be opened or written is dropped with one
    warning on stderr; stdout output is unaffected.
    """

    def __init__(self, file_path: str) -> None:
        self._file: IO[str] | None = None
        try:
            self._file = open(file_path, "a")  # noqa: SIM115
        except OSError as exc:
            # structlog is not configured yet
            print(
                f"WARNING: Could not open log file {file_path!r}: {exc}. "
                "Logging to stdout only.",
                file=sys.stderr,
            )

    def _disable_file(self, op: str) -> None:
        self._file = None
        print(f"WARNING: Log file {op} failed. File logging disabled.", file=sys.stderr)

    def write(self, data: str) -> None:
        sys.stdout.write(data)
        if self._file is None:
            return
        try:
            self._file.write(data)
            self._file.flush()
        except (OSError, ValueError):
            self._disable_file("write")

    def flush(self) -> None:
        sys.stdout.flush()
        if self._file is None:
            return
        try:
            self._file.flush()
        except (OSError, ValueError):
            self._disable_file("flush")


def configure_logging() -> None:
    if settings.environment == "development":
        renderer: structlog.types.Processor = structlog.dev.ConsoleRenderer()
    else:
        renderer = structlog.processors.JSONRenderer()

    sink = _TeeWriter(settings.log_file) if settings.log_file else None
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            _mask_bot_token,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(_resolve_level(settings.log_level)),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sink),  # type: ignore[arg-type]
        cache_logger_on_first_use=True,
    )
