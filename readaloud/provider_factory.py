"""Provider and session factory helpers.

Responsibilities:
- Select the audio provider strategy from resolved runtime settings.
- Assemble a complete `ReadAloudSession` without callers wiring collaborators by hand.

Notes:
- Remote synthesis is selected whenever an API key resolves; otherwise the
  on-device engine speaks the text.
"""

from __future__ import annotations

from typing import Callable

from .alignment.dom import HeadlessDom
from .alignment.sentence_index import SentenceIndex
from .config import ReadAloudConfig, ReadAloudRuntimeConfig
from .io.text_source import TextExtractor, TextSource
from .playback.controller import PlaybackController
from .session import ReadAloudSession
from .storage import KeyValueStore
from .telemetry.logger import RunLogger
from .telemetry.usage_meter import UsageMeter
from .tts.audio import AudioOutput, SpeechEngine
from .tts.cache import AudioCache
from .tts.google_client import GoogleSpeechClient
from .tts.provider import AudioProvider, LocalSynthesis, RemoteSynthesis
from .tts.voices import VoiceProfile


class ProviderFactory:
    """Factory for audio providers and fully wired sessions."""

    @staticmethod
    def create_speech_client(
        config: ReadAloudConfig, runtime: ReadAloudRuntimeConfig
    ) -> GoogleSpeechClient:
        """Create the remote synthesis HTTP client for the resolved API key."""

        return GoogleSpeechClient(
            api_key=runtime.api_key,
            base_url=config.endpoint_base_url,
            timeout_seconds=config.timeout_seconds,
        )

    @staticmethod
    def create_audio_provider(
        config: ReadAloudConfig,
        runtime: ReadAloudRuntimeConfig,
        *,
        output: AudioOutput | None = None,
        engine: SpeechEngine | None = None,
        usage_meter: UsageMeter | None = None,
        cache: AudioCache | None = None,
        run_logger: RunLogger | None = None,
    ) -> AudioProvider:
        """Create remote synthesis when an API key resolved, local speech otherwise."""

        if not runtime.uses_remote_synthesis:
            if engine is None:
                raise ValueError("Local synthesis requires a speech engine.")
            return LocalSynthesis(engine)

        if output is None:
            raise ValueError("Remote synthesis requires an audio output.")
        return RemoteSynthesis(
            ProviderFactory.create_speech_client(config, runtime),
            output,
            VoiceProfile.from_voice_name(runtime.voice_name),
            cache=cache,
            usage_meter=usage_meter,
            max_chunk_chars=runtime.max_chunk_chars,
            run_logger=run_logger,
        )

    @staticmethod
    def create_session(
        config: ReadAloudConfig,
        runtime: ReadAloudRuntimeConfig,
        *,
        extractor: TextExtractor,
        store: KeyValueStore,
        dom: HeadlessDom | None = None,
        output: AudioOutput | None = None,
        engine: SpeechEngine | None = None,
        is_annotation_tool_active: Callable[[], bool] | None = None,
        run_logger: RunLogger | None = None,
    ) -> ReadAloudSession:
        """Wire text source, DOM, provider, controller, and session together."""

        headless_dom = dom if dom is not None else HeadlessDom(config.highlight_class)
        cache = AudioCache()
        usage_meter = UsageMeter(store, run_logger=run_logger)
        provider = ProviderFactory.create_audio_provider(
            config,
            runtime,
            output=output,
            engine=engine,
            usage_meter=usage_meter,
            cache=cache,
            run_logger=run_logger,
        )
        controller = PlaybackController(
            SentenceIndex(),
            provider,
            headless_dom,
            prefetch_count=runtime.prefetch_count,
            is_annotation_tool_active=is_annotation_tool_active,
            run_logger=run_logger,
        )
        return ReadAloudSession(
            TextSource(extractor, run_logger=run_logger),
            headless_dom,
            headless_dom,
            controller,
            cache=cache if isinstance(provider, RemoteSynthesis) else None,
            usage_meter=usage_meter if isinstance(provider, RemoteSynthesis) else None,
            run_logger=run_logger,
        )
