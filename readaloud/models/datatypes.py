"""Core datatypes shared across readaloud modules.

Responsibilities:
- Represent immutable records exchanged between extraction, alignment, and playback.
- Provide explicit typing for element handles supplied by the host DOM.

Key types:
- `TextFragment`, `Element`, `Sentence`, and `PlaybackState`.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, runtime_checkable


@dataclass(frozen=True, slots=True)
class TextFragment:
    """One ordered run of page text reported by the text-extraction capability.

    Attributes:
        text: Fragment text as extracted.
        x: Horizontal rendering position in page user space.
        y: Vertical rendering position in page user space.
    """

    text: str
    x: float = 0.0
    y: float = 0.0


@runtime_checkable
class Element(Protocol):
    """Opaque handle of a rendered display element.

    Handles are compared and hashed by identity; only `text` is read.
    """

    @property
    def text(self) -> str:
        """Full text content rendered by the element."""


@dataclass(frozen=True, slots=True, eq=False)
class Sentence:
    """A spoken unit paired with the leaf elements that render it.

    Attributes:
        text: Trimmed, non-empty sentence text.
        elements: Unique owner elements in first-match order; never empty.
        position: 0-based index within the sentence index.
    """

    text: str
    elements: tuple[Element, ...]
    position: int


@dataclass(frozen=True, slots=True)
class PlaybackState:
    """Read-only snapshot of the playback controller state.

    Attributes:
        enabled: Whether read-aloud controls are active.
        speaking: Whether a sentence is playing or paused mid-sentence.
        paused: Whether the current sentence is suspended.
        current_position: Index of the current sentence.
    """

    enabled: bool = False
    speaking: bool = False
    paused: bool = False
    current_position: int = 0

    @property
    def status(self) -> str:
        """Return `idle`, `speaking`, or `paused`."""

        if not self.speaking:
            return "idle"
        return "paused" if self.paused else "speaking"
