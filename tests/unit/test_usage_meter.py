"""Unit tests for voice tiers and cost accounting."""

from __future__ import annotations

import io

import pytest

from readaloud.storage import TOTAL_COST_STORE_KEY, InMemoryKeyValueStore
from readaloud.telemetry.usage_meter import UsageMeter
from readaloud.tts.voices import VOICE_TIERS, VoiceProfile, tier_name_for_voice


@pytest.mark.parametrize(
    ("voice_name", "expected_tier"),
    [
        ("en-US-Standard-A", "Standard"),
        ("en-US-Wavenet-D", "WaveNet"),
        ("en-US-Neural2-F", "Neural2"),
        ("en-US-Polyglot-1", "Polyglot"),
        ("en-US-Chirp3-HD-Aoede", "Chirp 3: HD"),
        ("en-US-Studio-O", "Studio"),
        ("en-US-Studio-Neural2-X", "Studio"),
        ("en-US-Unknown-Z", "Standard"),
    ],
)
def test_tier_name_for_voice_uses_first_matching_pattern(voice_name: str, expected_tier: str) -> None:
    assert tier_name_for_voice(voice_name) == expected_tier


def test_voice_profile_derives_language_code_from_name() -> None:
    """The language code is the first two dash-separated voice name parts."""

    assert VoiceProfile.from_voice_name(" en-GB-Neural2-A ") == VoiceProfile(
        name="en-GB-Neural2-A", language_code="en-GB"
    )
    assert VoiceProfile.from_voice_name("custom").language_code == "custom"
    with pytest.raises(ValueError):
        VoiceProfile.from_voice_name("  ")


def test_two_million_premium_characters_cost_thirty_two_dollars() -> None:
    """WaveNet and Neural2 are priced at $16 per million characters."""

    store = InMemoryKeyValueStore()
    meter = UsageMeter(store)

    assert meter.record(1_000_000, "en-US-Wavenet-D") == pytest.approx(16.0)
    assert meter.record(1_000_000, "en-US-Neural2-F") == pytest.approx(16.0)
    assert meter.total_cost_usd() == pytest.approx(32.0)
    assert store.get(TOTAL_COST_STORE_KEY) == pytest.approx(32.0)


def test_record_adds_to_previously_persisted_total() -> None:
    """The running total survives across meters sharing a store."""

    store = InMemoryKeyValueStore({TOTAL_COST_STORE_KEY: "1.5"})
    meter = UsageMeter(store)

    meter.record(250_000, "en-US-Standard-B")

    assert meter.total_cost_usd() == pytest.approx(2.5)
    assert meter.summary() == {
        "session_characters": 250_000.0,
        "session_cost_usd": pytest.approx(1.0),
        "total_cost_usd": pytest.approx(2.5),
    }


def test_unpriced_tier_is_logged_and_leaves_total_unchanged(run_logger, log_sink: io.StringIO) -> None:  # type: ignore[no-untyped-def]
    """A tier missing from the pricing table is reported, never charged."""

    tiers = {name: tier for name, tier in VOICE_TIERS.items() if name != "Studio"}
    store = InMemoryKeyValueStore({TOTAL_COST_STORE_KEY: 3.0})
    meter = UsageMeter(store, tiers=tiers, run_logger=run_logger)

    assert meter.record(10_000, "en-US-Studio-O") is None
    assert meter.total_cost_usd() == pytest.approx(3.0)
    assert meter.session_characters == 0
    assert "event=pricing_lookup_failed" in log_sink.getvalue()


def test_reset_zeroes_persisted_total() -> None:
    store = InMemoryKeyValueStore({TOTAL_COST_STORE_KEY: 9.75})
    meter = UsageMeter(store)

    meter.reset()

    assert meter.total_cost_usd() == 0.0
    assert store.get(TOTAL_COST_STORE_KEY) == 0.0
