"""Input adapters.

Includes the PDF text-extraction capability and the caching per-page text source.
"""

from .pdf_text_extractor import PdfExtractionError, PdfTextExtractor
from .text_source import TextExtractor, TextSource

__all__ = ["PdfExtractionError", "PdfTextExtractor", "TextExtractor", "TextSource"]
