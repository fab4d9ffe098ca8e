"""Sentence alignment against rendered page elements.

This package discovers leaf elements, aligns sentences to them, and keeps the
resulting append-only sentence index.
"""

from .aligner import align_sentences
from .dom import DomCapability, ElementNode, HeadlessDom, Renderer, build_text_layer
from .sentence_index import SentenceIndex

__all__ = [
    "DomCapability",
    "ElementNode",
    "HeadlessDom",
    "Renderer",
    "SentenceIndex",
    "align_sentences",
    "build_text_layer",
]
