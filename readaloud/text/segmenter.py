"""Sentence segmentation of per-page raw text.

Responsibilities:
- Join extracted text fragments into one raw page string.
- Split raw page text into trimmed, non-empty sentence strings.
"""

from __future__ import annotations

import re
from typing import Iterable

from ..models.datatypes import TextFragment

# Boundary right after terminal punctuation; the whitespace run is consumed.
_SENTENCE_BOUNDARY_RE = re.compile(r"(?<=[.?!])\s+")


def join_fragments(fragments: Iterable[TextFragment]) -> str:
    """Concatenate fragment texts with single spaces."""

    return " ".join(fragment.text for fragment in fragments)


def split_sentences(raw_text: str) -> list[str]:
    """Split raw text into sentences at `.`, `?`, or `!` followed by whitespace.

    Examples:
        >>> split_sentences("Hello world. This is a test!")
        ['Hello world.', 'This is a test!']
    """

    sentences: list[str] = []
    for piece in _SENTENCE_BOUNDARY_RE.split(raw_text):
        trimmed = piece.strip()
        if trimmed:
            sentences.append(trimmed)
    return sentences
