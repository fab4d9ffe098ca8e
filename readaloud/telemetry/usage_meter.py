"""Cost accounting for remote speech synthesis.

Responsibilities:
- Price synthesized character counts by the voice's tier.
- Add each call's cost to the persisted running total in the key-value store.
- Keep an in-memory session counter for summaries.

The persisted total is updated with a plain read-modify-write. Calls made from
one event loop never interleave because `record` does not yield; separate
processes sharing a store may still drop each other's increments.
"""

from __future__ import annotations

from typing import Mapping

from ..errors import PricingLookupError
from ..parsing import coerce_amount
from ..storage import TOTAL_COST_STORE_KEY, KeyValueStore
from ..tts.voices import VOICE_TIERS, VoiceTier, resolve_voice_tier
from .logger import RunLogger, default_run_logger

_CHARACTERS_PER_PRICE_UNIT = 1_000_000


class UsageMeter:
    """Convert synthesized characters into a running USD total."""

    def __init__(
        self,
        store: KeyValueStore,
        tiers: Mapping[str, VoiceTier] = VOICE_TIERS,
        run_logger: RunLogger | None = None,
    ) -> None:
        self.store = store
        self.tiers = tiers
        self.session_cost_usd = 0.0
        self.session_characters = 0
        self._logger = run_logger

    @property
    def logger(self) -> RunLogger:
        return self._logger or default_run_logger()

    @staticmethod
    def cost_for(characters: int, tier: VoiceTier) -> float:
        """Return the USD cost of `characters` at the tier's per-million price."""

        return characters / _CHARACTERS_PER_PRICE_UNIT * tier.price_per_million_chars

    def record(self, characters: int, voice_name: str) -> float | None:
        """Record one synthesis call and return its cost, or `None` when unpriced."""

        try:
            tier = resolve_voice_tier(voice_name, self.tiers)
        except PricingLookupError:
            self.logger.error("usage", "pricing_lookup_failed", voice=voice_name)
            return None

        call_cost = self.cost_for(max(0, characters), tier)
        current_total = coerce_amount(self.store.get(TOTAL_COST_STORE_KEY))
        new_total = current_total + call_cost
        self.store.set(TOTAL_COST_STORE_KEY, new_total)

        self.session_cost_usd += call_cost
        self.session_characters += max(0, characters)
        self.logger.info(
            "usage",
            "recorded",
            characters=characters,
            tier=tier.name,
            cost_usd=f"{call_cost:.6f}",
            total_usd=f"{new_total:.6f}",
        )
        return call_cost

    def total_cost_usd(self) -> float:
        """Return the persisted running total."""

        return coerce_amount(self.store.get(TOTAL_COST_STORE_KEY))

    def reset(self) -> None:
        """Zero the persisted running total."""

        self.store.set(TOTAL_COST_STORE_KEY, 0.0)

    def summary(self) -> dict[str, float]:
        """Return a summary dictionary for CLI reporting."""

        return {
            "session_characters": float(self.session_characters),
            "session_cost_usd": self.session_cost_usd,
            "total_cost_usd": self.total_cost_usd(),
        }
