"""Unit tests for the sentence playback state machine."""

from __future__ import annotations

import asyncio

from readaloud.errors import SynthesisError
from readaloud.models.datatypes import PlaybackState
from readaloud.playback.controller import PlaybackController
from readaloud.tts.audio import Pyttsx3SpeechEngine
from readaloud.tts.provider import LocalSynthesis

_TEXTS = ["First sentence.", "Second one!", "Third?", "Fourth.", "Fifth."]


def _controller(make_index, provider, dom, run_logger, **kwargs) -> PlaybackController:  # type: ignore[no-untyped-def]
    """Build an activated controller over the default sentence texts."""

    controller = PlaybackController(
        make_index(kwargs.pop("texts", _TEXTS)),
        provider,
        dom,
        run_logger=run_logger,
        **kwargs,
    )
    controller.activate()
    return controller


def test_play_runs_every_sentence_in_order_then_returns_to_idle(
    make_index, scripted_provider, recording_dom, run_logger
) -> None:  # type: ignore[no-untyped-def]
    """Sentences should be spoken 0..N-1 strictly in order and end in Idle at position 0."""

    scripted_provider.auto_finish = True
    controller = _controller(
        make_index, scripted_provider, recording_dom, run_logger, texts=_TEXTS[:3]
    )

    async def _scenario() -> None:
        controller.play()
        await controller.wait_until_idle()
        await controller.drain()

    asyncio.run(_scenario())

    assert scripted_provider.played == _TEXTS[:3]
    assert controller.completed_sentences == 3
    assert controller.state == PlaybackState(
        enabled=True, speaking=False, paused=False, current_position=0
    )
    assert recording_dom.highlighted_elements() == []


def test_sentence_start_highlights_owners_and_scrolls_to_first_owner(
    make_index, scripted_provider, recording_dom, run_logger
) -> None:  # type: ignore[no-untyped-def]
    """Starting a sentence should clear old highlights before marking the new owners."""

    controller = _controller(make_index, scripted_provider, recording_dom, run_logger)

    async def _scenario() -> None:
        controller.play()
        await controller.drain()

    asyncio.run(_scenario())

    first_owner = controller.index[0].elements[0]
    assert recording_dom.event_log[:2] == ["clear", f"highlight:{_TEXTS[0]}"]
    assert recording_dom.highlighted_elements() == [first_owner]
    assert "tts-highlight" in first_owner.classes
    assert recording_dom.scrolled_to == [first_owner]


def test_next_at_last_sentence_is_a_no_op(
    make_index, scripted_provider, recording_dom, run_logger
) -> None:  # type: ignore[no-untyped-def]
    """`next` from position N-1 should leave the playing state untouched."""

    controller = _controller(make_index, scripted_provider, recording_dom, run_logger)
    last = len(_TEXTS) - 1

    async def _scenario() -> bool:
        controller.play()
        await controller.drain()
        assert controller.seek(last) is True
        await controller.drain()
        return controller.next()

    moved = asyncio.run(_scenario())

    assert moved is False
    assert controller.state.speaking is True
    assert controller.state.current_position == last
    assert scripted_provider.played == [_TEXTS[0], _TEXTS[last]]


def test_previous_at_first_sentence_is_a_no_op(
    make_index, scripted_provider, recording_dom, run_logger
) -> None:  # type: ignore[no-untyped-def]
    """`previous` from position 0 should not stop or restart playback."""

    controller = _controller(make_index, scripted_provider, recording_dom, run_logger)

    async def _scenario() -> bool:
        controller.play()
        await controller.drain()
        return controller.previous()

    assert asyncio.run(_scenario()) is False
    assert "cancel" not in scripted_provider.event_log
    assert controller.state.current_position == 0


def test_next_and_previous_move_one_sentence(
    make_index, scripted_provider, recording_dom, run_logger
) -> None:  # type: ignore[no-untyped-def]
    """`next` and `previous` should restart playback one sentence away."""

    controller = _controller(make_index, scripted_provider, recording_dom, run_logger)

    async def _scenario() -> None:
        controller.play()
        await controller.drain()
        assert controller.next() is True
        await controller.drain()
        assert controller.next() is True
        await controller.drain()
        assert controller.previous() is True
        await controller.drain()

    asyncio.run(_scenario())

    assert scripted_provider.played == [_TEXTS[0], _TEXTS[1], _TEXTS[2], _TEXTS[1]]
    assert controller.state.current_position == 1


def test_seek_out_of_range_leaves_state_unchanged(
    make_index, scripted_provider, recording_dom, run_logger
) -> None:  # type: ignore[no-untyped-def]
    """Seeking past either end should neither stop nor move playback."""

    controller = _controller(make_index, scripted_provider, recording_dom, run_logger)

    async def _scenario() -> None:
        controller.play()
        await controller.drain()

    asyncio.run(_scenario())
    before = controller.state
    log_length = len(scripted_provider.event_log)

    assert controller.seek(len(_TEXTS)) is False
    assert controller.seek(-1) is False
    assert controller.state == before
    assert len(scripted_provider.event_log) == log_length


def test_seek_stops_current_sentence_before_starting_target(
    make_index, scripted_provider, recording_dom, run_logger
) -> None:  # type: ignore[no-untyped-def]
    """Seek should cancel audio and clear highlights before highlighting the target."""

    controller = _controller(make_index, scripted_provider, recording_dom, run_logger)

    async def _scenario() -> None:
        controller.play()
        await controller.drain()
        scripted_provider.event_log.clear()
        assert controller.seek(3) is True
        await controller.drain()

    asyncio.run(_scenario())

    log = scripted_provider.event_log
    assert log[0] == "cancel"
    assert log[1] == "clear"
    assert log.index("cancel") < log.index(f"highlight:{_TEXTS[3]}")
    assert log[-1] == f"play:{_TEXTS[3]}"
    assert controller.state.current_position == 3


def test_stale_completion_after_seek_is_ignored(
    make_index, scripted_provider, recording_dom, run_logger, log_sink
) -> None:  # type: ignore[no-untyped-def]
    """An end callback from a superseded sentence must not advance playback."""

    controller = _controller(make_index, scripted_provider, recording_dom, run_logger)

    async def _scenario() -> None:
        controller.play()
        await controller.drain()
        stale_end = scripted_provider.pending_end
        controller.seek(2)
        await controller.drain()
        assert stale_end is not None
        stale_end()

    asyncio.run(_scenario())

    assert controller.state.current_position == 2
    assert scripted_provider.played == [_TEXTS[0], _TEXTS[2]]
    assert "event=stale_completion" in log_sink.getvalue()


def test_stale_synthesis_result_is_never_played(
    make_index, scripted_provider, recording_dom, run_logger
) -> None:  # type: ignore[no-untyped-def]
    """Audio finished after `stop` must not start playback."""

    controller = _controller(make_index, scripted_provider, recording_dom, run_logger)

    async def _scenario() -> None:
        controller.play()
        controller.stop()
        await controller.drain()

    asyncio.run(_scenario())

    assert scripted_provider.prepared == [_TEXTS[0]]
    assert scripted_provider.played == []
    assert controller.state.speaking is False


def test_pause_and_play_resume_the_same_sentence(
    make_index, scripted_provider, recording_dom, run_logger
) -> None:  # type: ignore[no-untyped-def]
    """Pause should suspend the handle and play should resume it without restarting."""

    controller = _controller(make_index, scripted_provider, recording_dom, run_logger)

    async def _scenario() -> None:
        controller.play()
        await controller.drain()
        controller.pause()
        assert controller.state.paused is True
        assert controller.state.speaking is True
        controller.play()
        await controller.drain()

    asyncio.run(_scenario())

    assert scripted_provider.event_log.count("pause") == 1
    assert scripted_provider.event_log.count("resume") == 1
    assert scripted_provider.played == [_TEXTS[0]]
    assert controller.state.paused is False


def test_pause_is_ignored_while_idle(
    make_index, scripted_provider, recording_dom, run_logger
) -> None:  # type: ignore[no-untyped-def]
    """Pause outside of Speaking should be a no-op."""

    controller = _controller(make_index, scripted_provider, recording_dom, run_logger)

    controller.pause()

    assert controller.state.paused is False
    assert scripted_provider.event_log == []


def test_play_is_ignored_while_disabled_or_empty(
    make_index, scripted_provider, recording_dom, run_logger
) -> None:  # type: ignore[no-untyped-def]
    """Playback controls should do nothing until activated or when no sentences exist."""

    disabled = PlaybackController(
        make_index(_TEXTS), scripted_provider, recording_dom, run_logger=run_logger
    )
    disabled.play()
    assert disabled.seek(1) is False
    assert disabled.state.speaking is False

    empty = PlaybackController(
        make_index([]), scripted_provider, recording_dom, run_logger=run_logger
    )
    empty.activate()
    empty.play()
    assert empty.state.speaking is False
    assert scripted_provider.prepared == []


def test_deactivate_stops_playback_and_disables(
    make_index, scripted_provider, recording_dom, run_logger
) -> None:  # type: ignore[no-untyped-def]
    """Deactivation should force Idle and keep `not enabled => not speaking`."""

    controller = _controller(make_index, scripted_provider, recording_dom, run_logger)

    async def _scenario() -> None:
        controller.play()
        await controller.drain()
        controller.next()
        controller.deactivate()
        await controller.drain()

    asyncio.run(_scenario())

    assert controller.state == PlaybackState(
        enabled=False, speaking=False, paused=False, current_position=0
    )
    assert recording_dom.highlighted_elements() == []


def test_toggle_flips_activation(
    make_index, scripted_provider, recording_dom, run_logger
) -> None:  # type: ignore[no-untyped-def]
    """Toggle should alternate between enabled and disabled."""

    controller = PlaybackController(
        make_index(_TEXTS), scripted_provider, recording_dom, run_logger=run_logger
    )

    assert controller.toggle() is True
    assert controller.state.enabled is True
    assert controller.toggle() is False
    assert controller.state.enabled is False


def test_seek_is_ignored_while_annotation_tool_is_active(
    make_index, scripted_provider, recording_dom, run_logger
) -> None:  # type: ignore[no-untyped-def]
    """Clicks made with the highlighter or eraser must not move playback."""

    tool_active = {"value": True}
    controller = _controller(
        make_index,
        scripted_provider,
        recording_dom,
        run_logger,
        is_annotation_tool_active=lambda: tool_active["value"],
    )

    assert controller.seek(2) is False
    assert scripted_provider.event_log == []

    tool_active["value"] = False

    async def _scenario() -> bool:
        moved = controller.seek(2)
        await controller.drain()
        return moved

    assert asyncio.run(_scenario()) is True
    assert scripted_provider.played == [_TEXTS[2]]


def test_synthesis_failure_stops_playback_and_keeps_error(
    make_index, scripted_provider, recording_dom, run_logger, log_sink
) -> None:  # type: ignore[no-untyped-def]
    """A failed current sentence should be logged and force Idle without retrying."""

    scripted_provider.fail_texts = {_TEXTS[0]}
    controller = _controller(make_index, scripted_provider, recording_dom, run_logger)

    async def _scenario() -> None:
        controller.play()
        await controller.wait_until_idle()
        await controller.drain()

    asyncio.run(_scenario())

    assert isinstance(controller.last_error, SynthesisError)
    assert controller.state.speaking is False
    assert scripted_provider.prepared == [_TEXTS[0]]
    assert scripted_provider.played == []
    assert "event=synthesis_failed" in log_sink.getvalue()
    assert "failure_kind=transport" in log_sink.getvalue()
    assert "message=cannot_synthesize_First_sentence." in log_sink.getvalue()


def test_play_raising_stops_playback_and_keeps_error(
    make_index, scripted_provider, recording_dom, run_logger, log_sink
) -> None:  # type: ignore[no-untyped-def]
    """A provider that cannot start playback must not leave the controller Speaking."""

    scripted_provider.play_errors = {_TEXTS[0]: OSError("disk full")}
    controller = _controller(make_index, scripted_provider, recording_dom, run_logger)

    async def _scenario() -> None:
        controller.play()
        await asyncio.wait_for(controller.wait_until_idle(), timeout=2)
        await controller.drain()

    asyncio.run(_scenario())

    assert isinstance(controller.last_error, OSError)
    assert controller.state.status == "idle"
    assert controller.state.current_position == 0
    assert scripted_provider.played == [_TEXTS[0]]
    assert recording_dom.highlighted_elements() == []
    assert "event=playback_failed" in log_sink.getvalue()
    assert "error_type=OSError" in log_sink.getvalue()
    assert "message=disk_full" in log_sink.getvalue()


def test_failure_reported_after_play_stops_playback(
    make_index, scripted_provider, recording_dom, run_logger, log_sink
) -> None:  # type: ignore[no-untyped-def]
    """An engine error delivered after `play` returned ends the run instead of hanging."""

    controller = _controller(make_index, scripted_provider, recording_dom, run_logger)

    async def _scenario() -> None:
        controller.play()
        await controller.drain()
        assert controller.state.status == "speaking"
        scripted_provider.fail(RuntimeError("run loop already started"))
        await asyncio.wait_for(controller.wait_until_idle(), timeout=2)

    asyncio.run(_scenario())

    assert isinstance(controller.last_error, RuntimeError)
    assert controller.state.status == "idle"
    assert controller.completed_sentences == 0
    assert scripted_provider.played == [_TEXTS[0]]
    assert "event=playback_failed" in log_sink.getvalue()


def test_on_device_driver_failure_returns_controller_to_idle(
    make_index, recording_dom, run_logger, log_sink
) -> None:  # type: ignore[no-untyped-def]
    """A speech driver that fails inside its run loop ends playback with the error kept."""

    class _FailingDriver:
        def say(self, text: str) -> None:
            return None

        def runAndWait(self) -> None:  # noqa: N802
            raise RuntimeError("run loop already started")

        def stop(self) -> None:
            return None

    provider = LocalSynthesis(Pyttsx3SpeechEngine(engine_factory=_FailingDriver))
    controller = _controller(make_index, provider, recording_dom, run_logger)

    async def _scenario() -> None:
        controller.play()
        await asyncio.wait_for(controller.wait_until_idle(), timeout=2)
        await controller.drain()

    asyncio.run(_scenario())

    assert isinstance(controller.last_error, RuntimeError)
    assert controller.state.status == "idle"
    assert controller.completed_sentences == 0
    assert "event=playback_failed" in log_sink.getvalue()


def test_stale_playback_failure_is_ignored(
    make_index, scripted_provider, recording_dom, run_logger
) -> None:  # type: ignore[no-untyped-def]
    """A failure from a sentence that was already skipped must not stop the new one."""

    controller = _controller(make_index, scripted_provider, recording_dom, run_logger)

    async def _scenario() -> None:
        controller.play()
        await controller.drain()
        stale_error = scripted_provider.pending_error
        controller.seek(2)
        await controller.drain()
        assert stale_error is not None
        stale_error(RuntimeError("late failure"))

    asyncio.run(_scenario())

    assert controller.last_error is None
    assert controller.state.status == "speaking"
    assert controller.state.current_position == 2


def test_prefetch_requests_next_sentences_without_playing_them(
    make_index, scripted_provider, recording_dom, run_logger
) -> None:  # type: ignore[no-untyped-def]
    """Each sentence start should prefetch up to `prefetch_count` following sentences."""

    controller = _controller(
        make_index, scripted_provider, recording_dom, run_logger, prefetch_count=3
    )

    async def _scenario() -> None:
        controller.play()
        await controller.drain()

    asyncio.run(_scenario())

    assert scripted_provider.prefetched == _TEXTS[1:4]
    assert scripted_provider.played == [_TEXTS[0]]
    assert controller.pending_prefetches == 0


def test_prefetch_stops_at_index_end_and_respects_provider_support(
    make_index, scripted_provider, recording_dom, run_logger
) -> None:  # type: ignore[no-untyped-def]
    """Prefetch should not run past the last sentence or for non-prefetching providers."""

    controller = _controller(make_index, scripted_provider, recording_dom, run_logger)

    async def _scenario() -> None:
        controller.play()
        await controller.drain()
        controller.seek(len(_TEXTS) - 2)
        await controller.drain()

    asyncio.run(_scenario())
    assert scripted_provider.prefetched[-1:] == [_TEXTS[-1]]

    scripted_provider.prefetched.clear()
    scripted_provider.supports_prefetch = False

    async def _replay() -> None:
        controller.seek(0)
        await controller.drain()

    asyncio.run(_replay())
    assert scripted_provider.prefetched == []


def test_prefetch_failure_is_logged_and_does_not_stop_playback(
    make_index, scripted_provider, recording_dom, run_logger, log_sink
) -> None:  # type: ignore[no-untyped-def]
    """Background prefetch errors should never surface to the playing sentence."""

    async def _failing_prefetch(text: str) -> None:
        raise SynthesisError(f"prefetch failed for {text}", failure_kind="quota_exceeded")

    scripted_provider.prefetch = _failing_prefetch  # type: ignore[method-assign]
    controller = _controller(make_index, scripted_provider, recording_dom, run_logger)

    async def _scenario() -> None:
        controller.play()
        await controller.drain()

    asyncio.run(_scenario())

    assert controller.state.speaking is True
    assert controller.last_error is None
    assert "event=prefetch_failed" in log_sink.getvalue()
