"""Word-respecting text chunking for remote synthesis requests.

Responsibilities:
- Split sentence text into request-sized chunks without breaking words.
- Keep chunk order so synthesized payloads can be concatenated back in sequence.
"""

from __future__ import annotations


class WordChunker:
    """Greedily pack whole words into chunks of bounded length."""

    def __init__(self, max_length: int) -> None:
        """Initialize chunker with the maximum chunk length in characters."""

        if max_length <= 0:
            raise ValueError("`max_length` must be a positive integer.")
        self.max_length = max_length

    def split(self, text: str) -> list[str]:
        """Split text into chunks of at most `max_length` characters.

        Words are separated by single spaces inside a chunk. A single word longer
        than `max_length` is emitted as its own chunk rather than broken apart.

        Args:
            text: Source text; any whitespace run counts as a word separator.

        Returns:
            Ordered chunk list, empty for blank input.
        """

        chunks: list[str] = []
        current = ""
        for word in text.split():
            candidate = f"{current} {word}" if current else word
            if len(candidate) <= self.max_length:
                current = candidate
                continue
            if current:
                chunks.append(current)
            current = word
        if current:
            chunks.append(current)
        return chunks


def split_into_chunks(text: str, max_length: int) -> list[str]:
    """Split text into word-respecting chunks of at most `max_length` characters."""

    return WordChunker(max_length).split(text)
