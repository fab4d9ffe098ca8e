"""Sentence-to-element alignment.

Responsibilities:
- Attribute every non-whitespace character of each sentence to the leaf element
  that renders it, without knowing exact text offsets.
- Produce `Sentence` records for sentences that own at least one element.

The scan runs once across the whole page: the element and character cursors
carry over from one sentence to the next and only ever move forward. Ownership
is therefore monotonic and non-overlapping, and a mismatch in one sentence can
shift the start of the following ones.
"""

from __future__ import annotations

from typing import Sequence

from ..models.datatypes import Element, Sentence


def align_sentences(
    elements: Sequence[Element],
    sentence_texts: Sequence[str],
    start_position: int = 0,
) -> list[Sentence]:
    """Map sentences to the leaf elements that render them.

    For each non-whitespace sentence character the character cursor walks the
    current element's text: an equal character commits the element as an owner
    and consumes it; any other character is skipped as noise. An exhausted
    element advances the element cursor and resets the character cursor.

    Args:
        elements: Leaf elements of one page in document order.
        sentence_texts: Sentences of the same page in reading order.
        start_position: Position assigned to the first kept sentence.

    Returns:
        Sentences with a non-empty owner tuple, numbered consecutively from
        `start_position`. Sentences that own no element are omitted.
    """

    element_texts = [element.text for element in elements]
    element_cursor = 0
    char_cursor = 0
    aligned: list[Sentence] = []

    for raw_sentence in sentence_texts:
        sentence_text = raw_sentence.strip()
        if not sentence_text:
            continue

        owners: dict[int, Element] = {}
        for character in sentence_text:
            if character.isspace():
                continue
            while element_cursor < len(elements):
                element_text = element_texts[element_cursor]
                if char_cursor < len(element_text):
                    matched = element_text[char_cursor] == character
                    char_cursor += 1
                    if matched:
                        owners.setdefault(element_cursor, elements[element_cursor])
                        break
                else:
                    element_cursor += 1
                    char_cursor = 0

        if not owners:
            continue
        aligned.append(
            Sentence(
                text=sentence_text,
                elements=tuple(owners.values()),
                position=start_position + len(aligned),
            )
        )
    return aligned
