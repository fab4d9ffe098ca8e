"""Playback control for read-aloud sessions."""

from .controller import DEFAULT_PREFETCH_COUNT, PlaybackController, PlaybackSession

__all__ = ["DEFAULT_PREFETCH_COUNT", "PlaybackController", "PlaybackSession"]
