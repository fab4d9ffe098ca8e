"""Session-scoped audio cache for remote synthesis.

Responsibilities:
- Build content-addressed cache keys from sentence text and voice name.
- Reuse synthesized clips for repeated sentences within one session.
- Track basic cache telemetry (hits/misses) for diagnostics.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from hashlib import sha256

from .audio import AudioClip


@dataclass(slots=True)
class AudioCache:
    """In-memory cache keyed by text hash and voice name.

    Entries are never evicted; the owning session clears the cache on close.
    """

    entries: dict[str, AudioClip] = field(default_factory=dict)
    hits: int = 0
    misses: int = 0

    @staticmethod
    def make_key(text: str, voice_name: str) -> str:
        """Build the `<sha256 hex>-<voice>` key for a sentence and voice."""

        text_hash = sha256(text.encode("utf-8")).hexdigest()
        return f"{text_hash}-{voice_name}"

    def get(self, cache_key: str) -> AudioClip | None:
        """Return cached clip for key and update hit/miss telemetry counters."""

        if cache_key in self.entries:
            self.hits += 1
            return self.entries[cache_key]
        self.misses += 1
        return None

    def set(self, cache_key: str, clip: AudioClip) -> None:
        """Store a clip under a cache key, keeping the first clip on repeated writes."""

        self.entries.setdefault(cache_key, clip)

    def clear(self) -> None:
        self.entries.clear()

    def hit_rate(self) -> float:
        """Return cache hit rate for current cache lifecycle."""

        total = self.hits + self.misses
        if total == 0:
            return 0.0
        return self.hits / float(total)

    def __contains__(self, cache_key: object) -> bool:
        return cache_key in self.entries

    def __len__(self) -> int:
        return len(self.entries)
