"""Voice profile and pricing tier models for remote synthesis.

Responsibilities:
- Represent the selected provider voice and its language code.
- Hold the static priced tier table and resolve a voice name to its tier.
"""

from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping

from ..errors import PricingLookupError

DEFAULT_VOICE_NAME = "en-US-Wavenet-D"
DEFAULT_TIER_NAME = "Standard"


@dataclass(frozen=True, slots=True)
class VoiceProfile:
    """Declarative voice profile used by the synthesis request.

    Attributes:
        name: Provider-native voice name (for example `en-US-Wavenet-D`).
        language_code: BCP-47 language code sent alongside the voice name.
    """

    name: str
    language_code: str

    @classmethod
    def from_voice_name(cls, name: str) -> VoiceProfile:
        """Derive the language code from the first two dash-separated name parts."""

        normalized = name.strip()
        if not normalized:
            raise ValueError("Voice name must be a non-empty string.")
        parts = normalized.split("-")
        language_code = "-".join(parts[:2]) if len(parts) >= 2 else normalized
        return cls(name=normalized, language_code=language_code)


@dataclass(frozen=True, slots=True)
class VoiceTier:
    """Named pricing/quality class of synthesis voices.

    Attributes:
        name: Display name of the tier.
        price_per_million_chars: USD price per one million synthesized characters.
        description: Short human-readable description.
        free_tier: Monthly free character allowance label.
        sku: Billing SKU identifier.
    """

    name: str
    price_per_million_chars: float
    description: str = ""
    free_tier: str = ""
    sku: str = ""


VOICE_TIERS: Mapping[str, VoiceTier] = MappingProxyType(
    {
        "Standard": VoiceTier(
            "Standard",
            4.00,
            "Basic, robotic-sounding synthesis.",
            "4 million",
            "9D01-5995-B545",
        ),
        "WaveNet": VoiceTier(
            "WaveNet",
            16.00,
            "High-fidelity, natural-sounding voices.",
            "1 million",
            "FEBD-04B6-769B",
        ),
        "Neural2": VoiceTier(
            "Neural2",
            16.00,
            "Next-generation high-fidelity voices.",
            "1 million",
            "FEBD-04B6-769B",
        ),
        "Polyglot": VoiceTier(
            "Polyglot",
            16.00,
            "Voices designed to speak multiple languages fluently.",
            "1 million",
            "FEBD-04B6-769B",
        ),
        "Chirp 3: HD": VoiceTier(
            "Chirp 3: HD",
            30.00,
            "High-definition voices for superior audio clarity.",
            "1 million",
            "F977-2280-6F1B",
        ),
        "Studio": VoiceTier(
            "Studio",
            160.00,
            "Highest-quality, most expressive voices.",
            "1 million",
            "84AB-48C0-F9C3",
        ),
    }
)

# Checked in order; first substring match wins.
_TIER_PATTERNS: tuple[tuple[str, str], ...] = (
    ("Studio", "Studio"),
    ("Neural2", "Neural2"),
    ("Wavenet", "WaveNet"),
    ("Polyglot", "Polyglot"),
    ("Chirp", "Chirp 3: HD"),
)


def tier_name_for_voice(voice_name: str) -> str:
    """Return the tier name a voice belongs to, defaulting to `Standard`."""

    for pattern, tier_name in _TIER_PATTERNS:
        if pattern in voice_name:
            return tier_name
    return DEFAULT_TIER_NAME


def resolve_voice_tier(
    voice_name: str,
    tiers: Mapping[str, VoiceTier] = VOICE_TIERS,
) -> VoiceTier:
    """Resolve the priced tier for a voice name.

    Raises:
        PricingLookupError: If the matched tier has no entry in `tiers`.
    """

    tier_name = tier_name_for_voice(voice_name)
    tier = tiers.get(tier_name)
    if tier is None:
        raise PricingLookupError(
            f"Pricing not found for voice `{voice_name}` (tier `{tier_name}`)."
        )
    return tier
