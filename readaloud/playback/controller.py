"""Sentence playback state machine.

Responsibilities:
- Own the playback session (enabled/speaking/paused/position) and expose only
  the user-facing operations: activate, deactivate, play, pause, stop, next,
  previous, and seek.
- Sequence sentences strictly: sentence `i + 1` starts only from sentence `i`'s
  completion callback.
- Prefetch upcoming sentences in background tasks that are never cancelled.
- Apply highlight and scroll side effects through the `Renderer` capability.

All operations must be called from the event loop thread. They change state
synchronously and enqueue synthesis work as tasks. Every sentence start bumps a
generation counter; completion callbacks and finished synthesis tasks act only
if their generation is still current, so late events after `stop` or `seek`
are ignored.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Callable

from ..alignment.dom import Renderer
from ..alignment.sentence_index import SentenceIndex
from ..models.datatypes import PlaybackState, Sentence
from ..telemetry.logger import RunLogger, default_run_logger
from ..tts.provider import AudioProvider

DEFAULT_PREFETCH_COUNT = 3


@dataclass(slots=True)
class PlaybackSession:
    """Mutable playback state owned by exactly one controller."""

    enabled: bool = False
    speaking: bool = False
    paused: bool = False
    position: int = 0
    generation: int = 0

    def snapshot(self) -> PlaybackState:
        """Return an immutable view of the session."""

        return PlaybackState(
            enabled=self.enabled,
            speaking=self.speaking,
            paused=self.paused,
            current_position=self.position,
        )


class PlaybackController:
    """Finite-state machine driving sentence-by-sentence read-aloud."""

    def __init__(
        self,
        index: SentenceIndex,
        provider: AudioProvider,
        renderer: Renderer,
        *,
        prefetch_count: int = DEFAULT_PREFETCH_COUNT,
        is_annotation_tool_active: Callable[[], bool] | None = None,
        run_logger: RunLogger | None = None,
    ) -> None:
        """Initialize controller collaborators and an idle, disabled session."""

        self.index = index
        self.provider = provider
        self.renderer = renderer
        self.prefetch_count = max(0, prefetch_count)
        self._is_annotation_tool_active = is_annotation_tool_active or (lambda: False)
        self._logger = run_logger
        self._session = PlaybackSession()
        self.completed_sentences = 0
        self.last_error: Exception | None = None
        self._speak_tasks: set[asyncio.Task[None]] = set()
        self._prefetch_tasks: set[asyncio.Task[None]] = set()
        self._idle = asyncio.Event()
        self._idle.set()

    @property
    def logger(self) -> RunLogger:
        return self._logger or default_run_logger()

    @property
    def state(self) -> PlaybackState:
        """Return the current playback state snapshot."""

        return self._session.snapshot()

    @property
    def pending_prefetches(self) -> int:
        """Return the number of prefetch tasks still running."""

        return len(self._prefetch_tasks)

    def activate(self) -> None:
        """Enable read-aloud controls without starting playback."""

        if self._session.enabled:
            return
        self._session.enabled = True
        self.logger.info("playback", "activated", sentences=len(self.index))

    def deactivate(self) -> None:
        """Stop any playback and disable read-aloud controls."""

        if not self._session.enabled:
            return
        self.stop()
        self._session.enabled = False
        self.logger.info("playback", "deactivated")

    def toggle(self) -> bool:
        """Flip activation and return whether controls are now enabled."""

        if self._session.enabled:
            self.deactivate()
        else:
            self.activate()
        return self._session.enabled

    def play(self) -> None:
        """Resume a paused sentence or start the sentence at the current position."""

        session = self._session
        if not session.enabled:
            self.logger.debug("playback", "play_ignored", reason="disabled")
            return
        if not len(self.index) or (session.speaking and not session.paused):
            return

        if session.paused:
            self.provider.resume()
            session.paused = False
            self.logger.info("playback", "resumed", position=session.position)
            return

        if not self.index.contains_position(session.position):
            return
        self.last_error = None
        session.speaking = True
        session.paused = False
        self._idle.clear()
        self._begin_sentence()

    def pause(self) -> None:
        """Suspend the current sentence; ignored unless actively speaking."""

        session = self._session
        if not session.speaking or session.paused:
            return
        self.provider.pause()
        session.paused = True
        self.logger.info("playback", "paused", position=session.position)

    def stop(self) -> None:
        """Cancel the playing audio, rewind to the first sentence, and clear highlights.

        Synthesis and prefetch requests already in flight keep running and only
        populate the cache.
        """

        session = self._session
        self.provider.cancel()
        was_speaking = session.speaking
        session.speaking = False
        session.paused = False
        session.position = 0
        session.generation += 1
        self.renderer.clear_highlight()
        self._idle.set()
        if was_speaking:
            self.logger.info("playback", "stopped")

    def next(self) -> bool:
        """Jump to the following sentence; no-op past the last one."""

        return self._jump(self._session.position + 1)

    def previous(self) -> bool:
        """Jump to the preceding sentence; no-op before the first one."""

        return self._jump(self._session.position - 1)

    def seek(self, position: int) -> bool:
        """Jump to a sentence chosen by clicking one of its elements.

        Ignored while the controller is disabled or while the host's
        highlighting or erasing tool is active.
        """

        if not self._session.enabled:
            return False
        if self._is_annotation_tool_active():
            self.logger.debug("playback", "seek_ignored", reason="annotation_tool_active")
            return False
        return self._jump(position)

    async def wait_until_idle(self) -> None:
        """Wait until playback stops or runs past the last sentence."""

        await self._idle.wait()

    async def drain(self, include_prefetch: bool = True) -> None:
        """Wait for tracked synthesis tasks, and optionally prefetches, to finish."""

        while self._speak_tasks or (include_prefetch and self._prefetch_tasks):
            pending = set(self._speak_tasks)
            if include_prefetch:
                pending |= self._prefetch_tasks
            await asyncio.gather(*pending, return_exceptions=True)

    def _jump(self, position: int) -> bool:
        if not self._session.enabled:
            return False
        if not self.index.contains_position(position):
            return False
        self.stop()
        self._session.position = position
        self.play()
        return True

    def _begin_sentence(self) -> None:
        """Highlight, prefetch ahead, and start synthesizing the current sentence."""

        session = self._session
        session.generation += 1
        generation = session.generation
        sentence = self.index[session.position]

        self.renderer.clear_highlight()
        self.renderer.highlight(sentence.elements)
        self.renderer.scroll_into_view(sentence.elements[0])
        self.logger.info(
            "playback",
            "sentence_start",
            position=sentence.position,
            characters=len(sentence.text),
        )

        self._schedule_prefetch(sentence.position)
        task = asyncio.get_running_loop().create_task(self._speak(sentence, generation))
        self._speak_tasks.add(task)
        task.add_done_callback(self._speak_tasks.discard)

    def _is_current(self, generation: int) -> bool:
        return self._session.speaking and self._session.generation == generation

    async def _speak(self, sentence: Sentence, generation: int) -> None:
        try:
            handle = await self.provider.prepare(sentence.text)
        except Exception as exc:
            self._fail(sentence, generation, "synthesis_failed", exc)
            return

        if not self._is_current(generation):
            self.logger.debug("playback", "stale_synthesis", position=sentence.position)
            return
        try:
            self.provider.play(
                handle,
                lambda: self._on_sentence_end(generation),
                lambda exc: self._fail(sentence, generation, "playback_failed", exc),
            )
        except Exception as exc:
            self._fail(sentence, generation, "playback_failed", exc)
            return
        if self._session.paused:
            self.provider.pause()

    def _fail(self, sentence: Sentence, generation: int, event: str, exc: Exception) -> None:
        """Log a synthesis or playback failure and stop if it belongs to the current run."""

        self.logger.error(
            "playback",
            event,
            position=sentence.position,
            error_type=type(exc).__name__,
            failure_kind=getattr(exc, "failure_kind", "unknown"),
            message=str(exc),
        )
        if self._is_current(generation):
            self.last_error = exc
            self.stop()

    def _on_sentence_end(self, generation: int) -> None:
        session = self._session
        if not self._is_current(generation):
            self.logger.debug("playback", "stale_completion", generation=generation)
            return
        self.completed_sentences += 1
        session.position += 1
        if session.position >= len(self.index):
            self.logger.info("playback", "finished", sentences=len(self.index))
            self.stop()
            return
        self._begin_sentence()

    def _schedule_prefetch(self, position: int) -> None:
        if not self.provider.supports_prefetch:
            return
        loop = asyncio.get_running_loop()
        for offset in range(1, self.prefetch_count + 1):
            target = position + offset
            if not self.index.contains_position(target):
                break
            task = loop.create_task(self._prefetch(self.index[target]))
            self._prefetch_tasks.add(task)
            task.add_done_callback(self._prefetch_tasks.discard)

    async def _prefetch(self, sentence: Sentence) -> None:
        try:
            await self.provider.prefetch(sentence.text)
        except Exception as exc:
            self.logger.warning(
                "playback",
                "prefetch_failed",
                position=sentence.position,
                error_type=type(exc).__name__,
            )
