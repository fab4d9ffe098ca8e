"""Shared pytest fixtures for the readaloud test suite."""

from __future__ import annotations

import asyncio
import io
from typing import Callable, Sequence

import pytest

from readaloud.alignment.dom import ElementNode, HeadlessDom
from readaloud.alignment.sentence_index import SentenceIndex
from readaloud.errors import SynthesisError
from readaloud.models.datatypes import Element, Sentence
from readaloud.telemetry.logger import RunLogger
from readaloud.tts.audio import EndCallback, ErrorCallback, Utterance


class ScriptedProvider:
    """Audio provider double that records calls and finishes clips on demand."""

    def __init__(self, event_log: list[str]) -> None:
        """Initialize recording state; clips end only via `finish()` unless `auto_finish`."""

        self.event_log = event_log
        self.supports_prefetch = True
        self.auto_finish = False
        self.fail_texts: set[str] = set()
        self.play_errors: dict[str, Exception] = {}
        self.prepared: list[str] = []
        self.played: list[str] = []
        self.prefetched: list[str] = []
        self.pending_end: EndCallback | None = None
        self.pending_error: ErrorCallback | None = None

    async def prepare(self, text: str) -> Utterance:
        self.prepared.append(text)
        self.event_log.append(f"prepare:{text}")
        if text in self.fail_texts:
            raise SynthesisError(f"cannot synthesize {text}", failure_kind="transport")
        return Utterance(text=text)

    def play(
        self, handle: Utterance, on_end: EndCallback, on_error: ErrorCallback | None = None
    ) -> None:
        self.played.append(handle.text)
        self.event_log.append(f"play:{handle.text}")
        if handle.text in self.play_errors:
            raise self.play_errors[handle.text]
        self.pending_end = on_end
        self.pending_error = on_error
        if self.auto_finish:
            asyncio.get_running_loop().call_soon(self.finish)

    def finish(self) -> None:
        on_end = self.pending_end
        self.pending_end = None
        if on_end is not None:
            on_end()

    def fail(self, error: Exception) -> None:
        """Report a failure of the playing clip after `play` returned."""

        on_error = self.pending_error
        self.pending_end = None
        self.pending_error = None
        if on_error is not None:
            on_error(error)

    def pause(self) -> None:
        self.event_log.append("pause")

    def resume(self) -> None:
        self.event_log.append("resume")

    def cancel(self) -> None:
        self.event_log.append("cancel")
        self.pending_end = None
        self.pending_error = None

    async def prefetch(self, text: str) -> None:
        self.prefetched.append(text)


class RecordingDom(HeadlessDom):
    """Headless DOM that also appends renderer side effects to an event log."""

    def __init__(self, event_log: list[str]) -> None:
        super().__init__()
        self.event_log = event_log

    def highlight(self, elements: Sequence[Element]) -> None:
        self.event_log.append("highlight:" + "|".join(element.text for element in elements))
        super().highlight(elements)

    def clear_highlight(self) -> None:
        self.event_log.append("clear")
        super().clear_highlight()


@pytest.fixture
def event_log() -> list[str]:
    """Provide the shared ordered log of provider and renderer calls."""

    return []


@pytest.fixture
def scripted_provider(event_log: list[str]) -> ScriptedProvider:
    """Provide a scripted audio provider writing to the shared event log."""

    return ScriptedProvider(event_log)


@pytest.fixture
def recording_dom(event_log: list[str]) -> RecordingDom:
    """Provide a headless DOM writing renderer calls to the shared event log."""

    return RecordingDom(event_log)


@pytest.fixture
def make_index() -> Callable[[Sequence[str]], SentenceIndex]:
    """Build a sentence index with one dedicated span element per sentence text."""

    def _make(texts: Sequence[str]) -> SentenceIndex:
        index = SentenceIndex()
        index.extend(
            Sentence(text=text, elements=(ElementNode(own_text=text),), position=position)
            for position, text in enumerate(texts)
        )
        return index

    return _make


@pytest.fixture
def log_sink() -> io.StringIO:
    """Provide an in-memory text sink for captured log lines."""

    return io.StringIO()


@pytest.fixture
def run_logger(log_sink: io.StringIO) -> RunLogger:
    """Provide a debug-level logger writing into `log_sink`."""

    return RunLogger(sink=log_sink, level="DEBUG")
