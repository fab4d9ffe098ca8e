"""Audio provider strategies for sentence playback.

Responsibilities:
- Define the provider protocol the playback controller drives.
- Provide on-device (`LocalSynthesis`) and remote paid (`RemoteSynthesis`) strategies.
- Chunk, meter, cache, and concurrently request remote synthesis.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Protocol, Union

from ..telemetry.logger import RunLogger, default_run_logger
from ..text.chunking import WordChunker
from .audio import (
    AudioClip,
    AudioOutput,
    EndCallback,
    ErrorCallback,
    SpeechEngine,
    Utterance,
)
from .cache import AudioCache
from .google_client import GoogleSpeechClient
from .voices import VoiceProfile

if TYPE_CHECKING:
    from ..telemetry.usage_meter import UsageMeter

AudioHandle = Union[AudioClip, Utterance]

DEFAULT_MAX_CHUNK_CHARS = 4500


class AudioProvider(Protocol):
    """Protocol for sentence audio strategies."""

    supports_prefetch: bool

    async def prepare(self, text: str) -> AudioHandle:
        """Produce a playable handle for sentence text."""

    def play(
        self, handle: AudioHandle, on_end: EndCallback, on_error: ErrorCallback | None = None
    ) -> None:
        """Start playing a prepared handle.

        Calls `on_end` when it finishes. Failures detected after `play` returns
        are reported through `on_error`; earlier ones raise.
        """

    def pause(self) -> None:
        """Suspend the playing handle."""

    def resume(self) -> None:
        """Continue the suspended handle."""

    def cancel(self) -> None:
        """Stop the playing handle without firing its end callback."""

    async def prefetch(self, text: str) -> None:
        """Warm any cache for upcoming sentence text without playing it."""


class LocalSynthesis:
    """On-device strategy: text goes straight to the speech engine, unmetered."""

    supports_prefetch = False

    def __init__(self, engine: SpeechEngine) -> None:
        self.engine = engine

    async def prepare(self, text: str) -> Utterance:
        return Utterance(text=text)

    def play(
        self, handle: AudioHandle, on_end: EndCallback, on_error: ErrorCallback | None = None
    ) -> None:
        if not isinstance(handle, Utterance):
            raise TypeError("LocalSynthesis plays `Utterance` handles only.")
        self.engine.speak(handle.text, on_end, on_error)

    def pause(self) -> None:
        self.engine.pause()

    def resume(self) -> None:
        self.engine.resume()

    def cancel(self) -> None:
        self.engine.cancel()

    async def prefetch(self, text: str) -> None:
        return None


class RemoteSynthesis:
    """Remote paid strategy with chunked, cached, and metered synthesis.

    Identical `(text, voice)` requests are synthesized once: finished clips come
    from the cache and concurrent requests share one in-flight task. The full
    character count is charged before any chunk request is sent, so failed
    requests are still billed locally.
    """

    supports_prefetch = True

    def __init__(
        self,
        client: GoogleSpeechClient,
        output: AudioOutput,
        voice: VoiceProfile,
        *,
        cache: AudioCache | None = None,
        usage_meter: UsageMeter | None = None,
        max_chunk_chars: int = DEFAULT_MAX_CHUNK_CHARS,
        run_logger: RunLogger | None = None,
    ) -> None:
        """Initialize remote synthesis dependencies and chunking limits."""

        self.client = client
        self.output = output
        self.voice = voice
        self.cache = cache if cache is not None else AudioCache()
        self.usage_meter = usage_meter
        self.chunker = WordChunker(max_chunk_chars)
        self._logger = run_logger
        self._in_flight: dict[str, asyncio.Task[AudioClip]] = {}
        self.request_count = 0

    @property
    def logger(self) -> RunLogger:
        return self._logger or default_run_logger()

    async def prepare(self, text: str) -> AudioClip:
        return await self.synthesize(text)

    async def prefetch(self, text: str) -> None:
        await self.synthesize(text)

    async def synthesize(self, text: str) -> AudioClip:
        """Return the clip for `text` in the selected voice, synthesizing on a miss."""

        cache_key = AudioCache.make_key(text, self.voice.name)
        cached = self.cache.get(cache_key)
        if cached is not None:
            return cached

        pending = self._in_flight.get(cache_key)
        if pending is None:
            pending = asyncio.ensure_future(self._synthesize_uncached(text, cache_key))
            self._in_flight[cache_key] = pending
            pending.add_done_callback(lambda _done: self._in_flight.pop(cache_key, None))
        return await asyncio.shield(pending)

    async def _synthesize_uncached(self, text: str, cache_key: str) -> AudioClip:
        """Chunk text, meter it, request every chunk concurrently, and cache the result."""

        chunks = self.chunker.split(text)
        if not chunks:
            raise ValueError("Cannot synthesize blank text.")

        if self.usage_meter is not None:
            self.usage_meter.record(len(text), self.voice.name)

        self.logger.debug(
            "remote_tts",
            "synthesize_start",
            characters=len(text),
            chunks=len(chunks),
            voice=self.voice.name,
        )
        self.request_count += len(chunks)
        payloads = await asyncio.gather(
            *(asyncio.to_thread(self._request_chunk, chunk) for chunk in chunks)
        )
        clip = AudioClip(data=b"".join(payloads), characters=len(text))
        self.cache.set(cache_key, clip)
        return self.cache.entries[cache_key]

    def _request_chunk(self, chunk: str) -> bytes:
        return self.client.synthesize_speech(
            text=chunk,
            voice_name=self.voice.name,
            language_code=self.voice.language_code,
        )

    def play(
        self, handle: AudioHandle, on_end: EndCallback, on_error: ErrorCallback | None = None
    ) -> None:
        # Audio outputs raise from `play` itself; `on_error` goes unused.
        if not isinstance(handle, AudioClip):
            raise TypeError("RemoteSynthesis plays `AudioClip` handles only.")
        self.output.play(handle, on_end)

    def pause(self) -> None:
        self.output.pause()

    def resume(self) -> None:
        self.output.resume()

    def cancel(self) -> None:
        self.output.stop()
