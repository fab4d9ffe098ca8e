"""Append-only sentence index for the active document.

Responsibilities:
- Hold aligned sentences in reading order, addressed by integer position.
- Resolve which sentence owns a clicked element.
"""

from __future__ import annotations

from typing import Iterable, Iterator

from ..models.datatypes import Element, Sentence


class SentenceIndex:
    """Ordered, append-only collection of aligned sentences.

    Positions are assigned by the index at append time, so a sentence's
    `position` always equals its offset in the index.
    """

    def __init__(self) -> None:
        self._sentences: list[Sentence] = []
        self._owner_positions: dict[int, int] = {}

    def __len__(self) -> int:
        return len(self._sentences)

    def __getitem__(self, position: int) -> Sentence:
        if position < 0:
            raise IndexError("Sentence positions are non-negative.")
        return self._sentences[position]

    def __iter__(self) -> Iterator[Sentence]:
        return iter(self._sentences)

    @property
    def next_position(self) -> int:
        """Position the next appended sentence will receive."""

        return len(self._sentences)

    def contains_position(self, position: int) -> bool:
        return 0 <= position < len(self._sentences)

    def extend(self, sentences: Iterable[Sentence]) -> list[Sentence]:
        """Append sentences, renumbering them to their index positions."""

        appended: list[Sentence] = []
        for sentence in sentences:
            if not sentence.elements:
                continue
            position = len(self._sentences)
            if sentence.position != position:
                sentence = Sentence(
                    text=sentence.text,
                    elements=sentence.elements,
                    position=position,
                )
            self._sentences.append(sentence)
            for element in sentence.elements:
                self._owner_positions.setdefault(id(element), position)
            appended.append(sentence)
        return appended

    def position_of(self, element: Element) -> int | None:
        """Return the position of the first sentence owning `element`."""

        return self._owner_positions.get(id(element))
