"""Playable audio handles and playback backends.

Responsibilities:
- Define the handles produced by remote (`AudioClip`) and local (`Utterance`) synthesis.
- Define the `AudioOutput` and `SpeechEngine` capabilities the providers drive.
- Provide a file-writing audio output and a `pyttsx3` on-device speech engine.

Completion callbacks are always invoked on the event loop thread.
"""

from __future__ import annotations

import asyncio
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Protocol

import pyttsx3

from ..telemetry.logger import RunLogger, default_run_logger

EndCallback = Callable[[], None]
ErrorCallback = Callable[[Exception], None]


@dataclass(frozen=True, slots=True)
class AudioClip:
    """Synthesized audio for one sentence.

    Attributes:
        data: Encoded audio bytes (chunk payloads concatenated in order).
        characters: Character count of the source text.
        mime_type: Audio container type.
    """

    data: bytes
    characters: int
    mime_type: str = "audio/mpeg"


@dataclass(frozen=True, slots=True)
class Utterance:
    """Text handed verbatim to an on-device speech engine."""

    text: str


class AudioOutput(Protocol):
    """Capability that plays synthesized clips and reports their end."""

    def play(self, clip: AudioClip, on_end: EndCallback) -> None:
        """Start playing `clip`; call `on_end` once it finishes."""

    def pause(self) -> None:
        """Suspend the current clip."""

    def resume(self) -> None:
        """Continue the suspended clip."""

    def stop(self) -> None:
        """Stop and discard the current clip without firing its end callback."""


class SpeechEngine(Protocol):
    """Capability that speaks raw text on-device and reports end-of-speech."""

    def speak(
        self, text: str, on_end: EndCallback, on_error: ErrorCallback | None = None
    ) -> None:
        """Start speaking `text`; call `on_end` once speech ends, or `on_error` if it fails."""

    def pause(self) -> None:
        """Suspend speech."""

    def resume(self) -> None:
        """Continue suspended speech."""

    def cancel(self) -> None:
        """Stop speech without firing the end callback."""


class FileAudioOutput:
    """Audio output that writes each clip to a numbered MP3 file.

    A clip "ends" on the next event loop iteration after it is written, unless
    the output is paused, in which case the end is delivered on `resume`.
    """

    def __init__(self, root: Path, name_prefix: str = "sentence") -> None:
        self.root = root
        self.name_prefix = name_prefix
        self.written: list[Path] = []
        self._pending_end: EndCallback | None = None
        self._end_handle: asyncio.Handle | None = None
        self._paused = False

    def play(self, clip: AudioClip, on_end: EndCallback) -> None:
        self.stop()
        self.root.mkdir(parents=True, exist_ok=True)
        path = self.root / f"{self.name_prefix}_{len(self.written):04d}.mp3"
        path.write_bytes(clip.data)
        self.written.append(path)
        self._pending_end = on_end
        self._schedule_end()

    def pause(self) -> None:
        self._paused = True
        if self._end_handle is not None:
            self._end_handle.cancel()
            self._end_handle = None

    def resume(self) -> None:
        self._paused = False
        if self._pending_end is not None and self._end_handle is None:
            self._schedule_end()

    def stop(self) -> None:
        if self._end_handle is not None:
            self._end_handle.cancel()
        self._end_handle = None
        self._pending_end = None
        self._paused = False

    def _schedule_end(self) -> None:
        if self._paused:
            return
        self._end_handle = asyncio.get_running_loop().call_soon(self._finish)

    def _finish(self) -> None:
        on_end = self._pending_end
        self._pending_end = None
        self._end_handle = None
        if on_end is not None:
            on_end()


class Pyttsx3SpeechEngine:
    """On-device speech through `pyttsx3`, run on one dedicated worker thread.

    The engine is created and driven on that worker only, so utterances run
    strictly one after another: a new `runAndWait` starts only once the
    previous one has returned. `pyttsx3` cannot suspend mid-utterance, so
    `pause` stops the engine and `resume` speaks the interrupted utterance
    again from its start.
    """

    def __init__(
        self,
        rate: int | None = None,
        voice_id: str | None = None,
        engine_factory: Callable[[], Any] | None = None,
        run_logger: RunLogger | None = None,
    ) -> None:
        self.rate = rate
        self.voice_id = voice_id
        self._engine_factory = engine_factory or pyttsx3.init
        self._engine: Any | None = None
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="pyttsx3")
        self._logger = run_logger
        self._text: str | None = None
        self._on_end: EndCallback | None = None
        self._on_error: ErrorCallback | None = None
        self._paused = False
        self._token = 0

    @property
    def logger(self) -> RunLogger:
        return self._logger or default_run_logger()

    def speak(
        self, text: str, on_end: EndCallback, on_error: ErrorCallback | None = None
    ) -> None:
        self.cancel()
        self._text = text
        self._on_end = on_end
        self._on_error = on_error
        self._start()

    def pause(self) -> None:
        if self._text is None or self._paused:
            return
        self._paused = True
        self._token += 1
        self._stop_engine()

    def resume(self) -> None:
        if not self._paused:
            return
        self._paused = False
        if self._text is not None:
            self._start()

    def cancel(self) -> None:
        self._token += 1
        self._text = None
        self._on_end = None
        self._on_error = None
        self._paused = False
        self._stop_engine()

    def _get_engine(self) -> Any:
        """Lazy load the `pyttsx3` engine and apply rate/voice settings.

        Only called from the worker thread.
        """

        if self._engine is None:
            engine = self._engine_factory()
            if self.rate is not None:
                engine.setProperty("rate", self.rate)
            if self.voice_id is not None:
                engine.setProperty("voice", self.voice_id)
            self._engine = engine
        return self._engine

    def _stop_engine(self) -> None:
        # `stop` only asks a running `runAndWait` loop to return.
        if self._engine is not None:
            self._engine.stop()

    def _start(self) -> None:
        text = self._text
        self._token += 1
        token = self._token

        def _run() -> None:
            if token != self._token:
                return
            engine = self._get_engine()
            engine.say(text)
            engine.runAndWait()

        future = asyncio.get_running_loop().run_in_executor(self._executor, _run)
        future.add_done_callback(lambda done: self._on_finished(token, done))

    def _on_finished(self, token: int, future: asyncio.Future[None]) -> None:
        if future.cancelled():
            return
        error = future.exception()
        if error is not None:
            self.logger.error(
                "local_tts",
                "speech_failed",
                error_type=type(error).__name__,
                message=str(error),
            )
        if token != self._token or self._paused:
            return
        on_end = self._on_end
        on_error = self._on_error
        self._text = None
        self._on_end = None
        self._on_error = None
        if error is None:
            if on_end is not None:
                on_end()
        elif on_error is not None and isinstance(error, Exception):
            on_error(error)
