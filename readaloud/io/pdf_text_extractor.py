"""PDF text-extraction capability.

Responsibilities:
- Read one PDF page with `pypdf` and report its text runs in content-stream order.
- Attach each run's rendering position taken from the text matrix.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from pypdf import PdfReader
from pypdf.errors import PdfReadError

from ..models.datatypes import TextFragment


class PdfExtractionError(RuntimeError):
    """Raised when text extraction from PDF cannot be completed."""


class PdfTextExtractor:
    """Extractor for text-based PDFs using `pypdf` text visitors."""

    def __init__(self) -> None:
        self._readers: dict[str, PdfReader] = {}

    def page_count(self, locator: str) -> int:
        """Return the number of pages of the PDF at `locator`."""

        return len(self._reader(locator).pages)

    def extract_page_fragments(self, locator: str, page_number: int) -> list[TextFragment]:
        """Extract ordered text fragments of a 1-based page.

        Raises:
            PdfExtractionError: If the file is missing, unreadable, or the page
                number is out of range.
        """

        reader = self._reader(locator)
        if page_number < 1 or page_number > len(reader.pages):
            raise PdfExtractionError(
                f"Page {page_number} is out of range for `{locator}` "
                f"({len(reader.pages)} pages)."
            )

        fragments: list[TextFragment] = []

        def _visit(
            text: str,
            cm: list[float],
            tm: list[float],
            font_dict: Any,
            font_size: Any,
        ) -> None:
            _ = (cm, font_dict, font_size)
            if not text or not text.strip():
                return
            x = float(tm[4]) if len(tm) > 5 else 0.0
            y = float(tm[5]) if len(tm) > 5 else 0.0
            fragments.append(TextFragment(text=text.replace("\n", " "), x=x, y=y))

        try:
            reader.pages[page_number - 1].extract_text(visitor_text=_visit)
        except PdfReadError as exc:
            raise PdfExtractionError(
                f"Failed to read page {page_number} of `{locator}`: {exc}"
            ) from exc
        return fragments

    def _reader(self, locator: str) -> PdfReader:
        """Open and memoize a reader for the document locator."""

        reader = self._readers.get(locator)
        if reader is not None:
            return reader

        pdf_path = Path(locator)
        if not pdf_path.exists():
            raise PdfExtractionError(f"Input PDF not found: {pdf_path}")
        try:
            reader = PdfReader(str(pdf_path))
        except PdfReadError as exc:
            raise PdfExtractionError(f"Failed to open PDF `{pdf_path}`: {exc}") from exc
        self._readers[locator] = reader
        return reader
