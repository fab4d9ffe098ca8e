"""Structured runtime logging utilities.

Responsibilities:
- Emit concise, deterministic event lines for page processing, synthesis, and playback.
- Route all output through `loguru` with a single configurable sink.
"""

from __future__ import annotations

import sys
from typing import TextIO

from loguru import logger as _loguru_logger


def _sanitize_context_value(value: object) -> str:
    """Convert context values into stable, shell-safe tokens."""

    raw = str(value).strip()
    if not raw:
        return "none"
    return "".join(
        character if character.isalnum() or character in {"-", "_", ".", ":", "/"} else "_"
        for character in raw
    )


def _format_context(context: dict[str, object]) -> str:
    """Serialize context key/value pairs in deterministic key order."""

    if not context:
        return ""
    tokens = [
        f"{key}={_sanitize_context_value(context[key])}"
        for key in sorted(context.keys())
    ]
    return " " + " ".join(tokens)


class RunLogger:
    """Emit deterministic event logs for read-aloud activity.

    Context values never carry API keys or full sentence text; callers pass
    positions, lengths, and error kinds instead.
    """

    def __init__(self, sink: TextIO | None = None, level: str = "INFO") -> None:
        """Initialize logger sink and configure deterministic formatting."""

        self._sink = sink or sys.stderr
        _loguru_logger.remove()
        _loguru_logger.add(self._sink, format="{message}", level=level, colorize=False)

    def _emit(self, level: str, event: str, stage: str, **context: object) -> None:
        """Emit one structured runtime log line."""

        line = f"[tts] level={level} stage={stage} event={event}{_format_context(context)}"
        _loguru_logger.log(level, line)

    def debug(self, stage: str, event: str, **context: object) -> None:
        self._emit("DEBUG", event, stage, **context)

    def info(self, stage: str, event: str, **context: object) -> None:
        self._emit("INFO", event, stage, **context)

    def warning(self, stage: str, event: str, **context: object) -> None:
        self._emit("WARNING", event, stage, **context)

    def error(self, stage: str, event: str, **context: object) -> None:
        """Emit an error event without sensitive payload details."""

        self._emit("ERROR", event, stage, **context)


_default_logger: RunLogger | None = None


def default_run_logger() -> RunLogger:
    """Return the lazily created process-wide logger writing to stderr."""

    global _default_logger
    if _default_logger is None:
        _default_logger = RunLogger()
    return _default_logger
