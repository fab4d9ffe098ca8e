"""Text-to-speech providers, voices, and audio handles.

This package contains the remote and local synthesis strategies used by the
playback controller, together with the session audio cache and voice tiers.
"""

from .audio import AudioClip, Utterance
from .cache import AudioCache
from .voices import VoiceProfile, VoiceTier

__all__ = ["AudioCache", "AudioClip", "Utterance", "VoiceProfile", "VoiceTier"]
