"""Text processing stages.

Includes sentence segmentation of page text, word-respecting chunking for
synthesis requests, and page selection parsing.
"""

from .chunking import WordChunker, split_into_chunks
from .page_selection import format_page_selection, parse_page_selection
from .segmenter import join_fragments, split_sentences

__all__ = [
    "WordChunker",
    "format_page_selection",
    "join_fragments",
    "parse_page_selection",
    "split_into_chunks",
    "split_sentences",
]
