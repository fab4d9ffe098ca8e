"""Per-page text retrieval with caching.

Responsibilities:
- Define the text-extraction capability interface.
- Cache successful per-page fragment lists keyed by document locator and page.
- Degrade extraction failures to an empty page instead of raising.
"""

from __future__ import annotations

import asyncio
from typing import Protocol

from ..models.datatypes import TextFragment
from ..telemetry.logger import RunLogger, default_run_logger


class TextExtractor(Protocol):
    """Capability returning ordered text fragments for one document page."""

    def extract_page_fragments(self, locator: str, page_number: int) -> list[TextFragment]:
        """Return fragments for a 1-based page of the document at `locator`."""


class TextSource:
    """Caching front for a `TextExtractor`.

    Only non-empty results are cached, so a page that failed to extract is
    retried the next time it becomes visible.
    """

    def __init__(self, extractor: TextExtractor, run_logger: RunLogger | None = None) -> None:
        self.extractor = extractor
        self._cache: dict[tuple[str, int], list[TextFragment]] = {}
        self._logger = run_logger

    @property
    def logger(self) -> RunLogger:
        return self._logger or default_run_logger()

    def is_cached(self, locator: str, page_number: int) -> bool:
        return (locator, page_number) in self._cache

    async def get_fragments(self, locator: str, page_number: int) -> list[TextFragment]:
        """Return cached or freshly extracted fragments; `[]` when extraction fails."""

        cache_key = (locator, page_number)
        cached = self._cache.get(cache_key)
        if cached is not None:
            return cached

        try:
            fragments = await asyncio.to_thread(
                self.extractor.extract_page_fragments, locator, page_number
            )
        except Exception as exc:
            self.logger.error(
                "extract",
                "failure",
                page=page_number,
                error_type=type(exc).__name__,
            )
            return []

        if not fragments:
            self.logger.warning("extract", "empty_page", page=page_number)
            return []

        self._cache[cache_key] = list(fragments)
        return self._cache[cache_key]
