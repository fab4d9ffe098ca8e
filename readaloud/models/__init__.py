"""Shared datatypes for extraction, alignment, and playback."""

from .datatypes import Element, PlaybackState, Sentence, TextFragment

__all__ = ["Element", "PlaybackState", "Sentence", "TextFragment"]
