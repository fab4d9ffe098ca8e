"""Command-line interface for read-aloud sessions.

Responsibilities:
- Expose user-facing commands for sentence alignment, playback, and usage.
- Convert CLI arguments into `ReadAloudConfig` and runtime sources.

Key public functions:
- `app`: Typer application instance.
- `main`: invoke the Typer application.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Annotated

import typer

from .alignment.dom import build_text_layer
from .cli_rendering import (
    echo_sentence_list,
    echo_tier_table,
    echo_usage_summary,
    exit_with_command_error,
)
from .cli_runtime import resolve_runtime_sources
from .config import ConfigLoader, ReadAloudConfig, ReadAloudRuntimeConfig
from .credentials import create_credential_store
from .errors import StageError, SynthesisError
from .io.pdf_text_extractor import PdfExtractionError, PdfTextExtractor
from .parsing import normalize_optional_string
from .provider_factory import ProviderFactory
from .session import ReadAloudSession
from .storage import DEFAULT_STORE_PATH, InMemoryKeyValueStore, JsonFileKeyValueStore
from .telemetry.logger import RunLogger
from .telemetry.usage_meter import UsageMeter
from .text.page_selection import format_page_selection, parse_page_selection
from .tts.audio import FileAudioOutput, Pyttsx3SpeechEngine
from .tts.voices import VOICE_TIERS, tier_name_for_voice

app = typer.Typer(
    name="readaloud",
    no_args_is_help=True,
    help="Read PDF pages aloud sentence by sentence.",
)


@dataclass(frozen=True, slots=True)
class ReadOutcome:
    """Counters reported after a `read` command finishes."""

    sentences: int
    completed: int
    audio_files: int
    cache_hit_rate: float | None
    usage: dict[str, float] | None


def _load_base_config(config_path: Path | None) -> ReadAloudConfig:
    """Load YAML config when requested, otherwise environment config; map failures."""

    if config_path is None:
        try:
            return ConfigLoader.from_env()
        except ValueError as exc:
            raise StageError(
                stage="config",
                detail=f"Invalid environment configuration: {exc}",
                hint="Fix `READALOUD_*` environment variables and rerun.",
            ) from exc

    try:
        return ConfigLoader.from_yaml(config_path)
    except FileNotFoundError as exc:
        raise StageError(
            stage="config",
            detail=f"Config file not found: `{config_path}`.",
            hint="Provide an existing path via `--config <path.yaml>`.",
        ) from exc
    except ValueError as exc:
        raise StageError(
            stage="config",
            detail=f"Invalid config file `{config_path}`: {exc}",
            hint="Fix config schema/values and rerun.",
        ) from exc


def _open_store(config: ReadAloudConfig, store_path: Path | None) -> JsonFileKeyValueStore:
    """Open the JSON key-value store from CLI override, config, or default path."""

    resolved = store_path or config.store_path or DEFAULT_STORE_PATH
    return JsonFileKeyValueStore(resolved)


def _resolve_pages(extractor: PdfTextExtractor, input_pdf: Path, pages: str | None) -> list[int]:
    """Resolve requested page numbers against the document page count."""

    try:
        page_count = extractor.page_count(str(input_pdf))
    except PdfExtractionError as exc:
        raise StageError(
            stage="extract",
            detail=str(exc),
            hint="Check that the input path points to a readable text-based PDF.",
        ) from exc
    try:
        return parse_page_selection(pages, page_count)
    except ValueError as exc:
        raise StageError(
            stage="config",
            detail=str(exc),
            hint="Use `--pages` syntax like `1`, `1,3`, `2-4`, or `1,3-5`.",
        ) from exc


async def _process_pages(
    session: ReadAloudSession, locator: str, page_numbers: list[int]
) -> None:
    """Render each page's text layer and align it into the session index."""

    for page_number in page_numbers:
        fragments = await session.text_source.get_fragments(locator, page_number)
        if not fragments:
            continue
        container = build_text_layer(fragments)
        await session.process_page(container, locator, page_number)


async def _read_pages(
    session: ReadAloudSession,
    output: FileAudioOutput,
    locator: str,
    page_numbers: list[int],
    start: int,
) -> ReadOutcome:
    """Align pages, play from `start` until playback returns to idle, and close."""

    await _process_pages(session, locator, page_numbers)
    controller = session.controller
    if not len(session.index):
        raise StageError(
            stage="align",
            detail="No sentences could be aligned on the selected pages.",
            hint="Pick pages that contain extractable text.",
        )
    if not session.index.contains_position(start):
        raise StageError(
            stage="playback",
            detail=f"Start sentence {start} is out of range 0-{len(session.index) - 1}.",
            hint="Run `readaloud sentences` to list sentence positions.",
        )

    session.activate()
    if start:
        controller.seek(start)
    else:
        controller.play()
    await controller.wait_until_idle()
    await controller.drain()

    error = controller.last_error
    if isinstance(error, SynthesisError):
        raise StageError(
            stage="synthesis",
            detail=str(error),
            hint="Check the API key, voice name, and network access, then rerun.",
        ) from error
    if error is not None:
        raise StageError(
            stage="playback",
            detail=f"{type(error).__name__}: {error}",
            hint="Check the audio output directory or the on-device speech engine, then rerun.",
        ) from error

    outcome = ReadOutcome(
        sentences=len(session.index),
        completed=controller.completed_sentences,
        audio_files=len(output.written),
        cache_hit_rate=session.cache.hit_rate() if session.cache is not None else None,
        usage=session.usage_meter.summary() if session.usage_meter is not None else None,
    )
    session.close()
    return outcome


@app.command("sentences")
def sentences_command(
    input_pdf: Annotated[Path, typer.Argument(help="Path to a text-based PDF.")],
    pages: Annotated[
        str | None,
        typer.Option("--pages", help="1-based pages to align, e.g. `1,3-5` (default: all)."),
    ] = None,
    config_file: Annotated[
        Path | None,
        typer.Option("--config", help="YAML config file path."),
    ] = None,
) -> None:
    """Extract, segment, and align sentences of PDF pages and list them."""

    try:
        config = _load_base_config(config_file)
        extractor = PdfTextExtractor()
        page_numbers = _resolve_pages(extractor, input_pdf, pages)
        run_logger = RunLogger()
        session = ProviderFactory.create_session(
            config,
            ReadAloudRuntimeConfig(voice_name=config.voice_name),
            extractor=extractor,
            store=InMemoryKeyValueStore(),
            engine=Pyttsx3SpeechEngine(run_logger=run_logger),
            run_logger=run_logger,
        )
        asyncio.run(_process_pages(session, str(input_pdf), page_numbers))
    except Exception as exc:
        exit_with_command_error("sentences", exc)

    echo_sentence_list(session.index)
    typer.echo(f"Pages: {format_page_selection(page_numbers)}")
    typer.echo(f"Sentences: {len(session.index)}")


@app.command("read")
def read_command(
    input_pdf: Annotated[Path, typer.Argument(help="Path to a text-based PDF.")],
    pages: Annotated[
        str | None,
        typer.Option("--pages", help="1-based pages to read, e.g. `1,3-5` (default: all)."),
    ] = None,
    out: Annotated[
        Path,
        typer.Option("--out", help="Directory for synthesized MP3 files."),
    ] = Path("out"),
    start: Annotated[
        int,
        typer.Option("--start", min=0, help="Sentence position to start reading from."),
    ] = 0,
    config_file: Annotated[
        Path | None,
        typer.Option("--config", help="YAML config file path."),
    ] = None,
    store_path: Annotated[
        Path | None,
        typer.Option("--store", help="JSON key-value store path (settings and usage)."),
    ] = None,
    voice: Annotated[
        str | None,
        typer.Option("--voice", help="Remote voice name, e.g. `en-US-Wavenet-D`."),
    ] = None,
    api_key: Annotated[
        str | None,
        typer.Option("--api-key", help="Google TTS API key for this run."),
    ] = None,
    prompt_api_key: Annotated[
        bool,
        typer.Option(
            "--prompt-api-key",
            help="Prompt for API key with hidden input (never echoed).",
        ),
    ] = False,
    store_api_key: Annotated[
        bool,
        typer.Option(
            "--store-api-key",
            help="Persist an API key entered in this run to secure credential storage.",
        ),
    ] = False,
    local: Annotated[
        bool,
        typer.Option("--local", help="Speak on-device with pyttsx3 even if an API key resolves."),
    ] = False,
) -> None:
    """Read selected PDF pages aloud sentence by sentence."""

    try:
        config = _load_base_config(config_file)
        store = _open_store(config, store_path)
        sources = resolve_runtime_sources(
            voice_name=voice,
            api_key=api_key,
            prompt_api_key=prompt_api_key,
            store_api_key=store_api_key,
            store=store,
            credential_store_factory=create_credential_store,
        )
        try:
            runtime = config.resolved_runtime(sources)
        except ValueError as exc:
            raise StageError(
                stage="config",
                detail=str(exc),
                hint="Fix the runtime value in CLI options, store, or environment.",
            ) from exc
        if local:
            runtime = replace(runtime, api_key=None)

        extractor = PdfTextExtractor()
        page_numbers = _resolve_pages(extractor, input_pdf, pages)
        run_logger = RunLogger()
        output = FileAudioOutput(out)
        session = ProviderFactory.create_session(
            config,
            runtime,
            extractor=extractor,
            store=store,
            output=output,
            engine=(
                None
                if runtime.uses_remote_synthesis
                else Pyttsx3SpeechEngine(run_logger=run_logger)
            ),
            run_logger=run_logger,
        )
        outcome = asyncio.run(
            _read_pages(session, output, str(input_pdf), page_numbers, start)
        )
    except Exception as exc:
        exit_with_command_error("read", exc)

    metadata = runtime.as_metadata()
    typer.echo(f"Synthesis: {metadata['synthesis']}")
    typer.echo(f"Voice: {metadata['voice_name']}")
    typer.echo(f"Sentences: {outcome.sentences}")
    typer.echo(f"Sentences read: {outcome.completed}")
    if runtime.uses_remote_synthesis:
        typer.echo(f"Audio files: {outcome.audio_files} in {out}")
    if outcome.cache_hit_rate is not None:
        typer.echo(f"Cache hit rate: {outcome.cache_hit_rate:.2f}")
    if outcome.usage is not None:
        echo_usage_summary(outcome.usage)


@app.command("usage")
def usage_command(
    store_path: Annotated[
        Path | None,
        typer.Option("--store", help="JSON key-value store path."),
    ] = None,
    config_file: Annotated[
        Path | None,
        typer.Option("--config", help="YAML config file path."),
    ] = None,
    reset: Annotated[
        bool,
        typer.Option("--reset", help="Reset the persisted usage total to zero."),
    ] = False,
) -> None:
    """Show or reset the running remote synthesis cost."""

    try:
        config = _load_base_config(config_file)
        meter = UsageMeter(_open_store(config, store_path), run_logger=RunLogger())
        if reset:
            meter.reset()
            typer.echo("Usage total reset.")
            return
        total = meter.total_cost_usd()
    except Exception as exc:
        exit_with_command_error("usage", exc)

    echo_usage_summary({"total_cost_usd": total})


@app.command("tiers")
def tiers_command(
    voice: Annotated[
        str | None,
        typer.Option("--voice", help="Show which tier prices this voice."),
    ] = None,
) -> None:
    """List voice tiers and their per-character pricing."""

    echo_tier_table(VOICE_TIERS)
    normalized_voice = normalize_optional_string(voice)
    if normalized_voice is not None:
        typer.echo(f"Voice `{normalized_voice}` tier: {tier_name_for_voice(normalized_voice)}")


@app.command("credentials")
def credentials_command(
    set_api_key: Annotated[
        bool,
        typer.Option(
            "--set-api-key",
            help="Prompt for API key with hidden input and store it securely.",
        ),
    ] = False,
    clear_api_key: Annotated[
        bool,
        typer.Option(
            "--clear-api-key",
            help="Clear stored API key from secure credential storage.",
        ),
    ] = False,
) -> None:
    """Manage the securely stored Google TTS API key."""

    if set_api_key and clear_api_key:
        exit_with_command_error(
            "credentials",
            StageError(
                stage="credentials",
                detail="`--set-api-key` and `--clear-api-key` cannot be used together.",
                hint="Run one credentials action per command invocation.",
            ),
        )

    credential_store = create_credential_store()
    if set_api_key:
        prompted_api_key = normalize_optional_string(
            typer.prompt(
                "Google TTS API key (hidden input)",
                default="",
                hide_input=True,
                show_default=False,
            )
        )
        if prompted_api_key is None:
            exit_with_command_error(
                "credentials",
                StageError(
                    stage="credentials",
                    detail="No API key entered.",
                    hint="Provide a non-empty API key when using `--set-api-key`.",
                ),
            )
        try:
            credential_store.set_api_key(prompted_api_key)
        except Exception as exc:
            exit_with_command_error(
                "credentials",
                StageError(
                    stage="credentials",
                    detail=f"Failed to store API key securely: {exc}",
                    hint="Install and configure a keyring backend and retry.",
                ),
            )
        typer.echo("API key stored in secure credential storage.")
        return

    if clear_api_key:
        if credential_store.clear_api_key():
            typer.echo("Stored API key cleared from secure credential storage.")
        else:
            typer.echo("No stored API key found in secure credential storage.")
        return

    availability = "available" if credential_store.is_available() else "unavailable"
    status = "present" if credential_store.get_api_key() is not None else "not set"
    typer.echo(f"Secure credential storage: {availability}")
    typer.echo(f"Stored Google TTS API key: {status}")


def main() -> None:
    """CLI entrypoint for console scripts."""
    app()


if __name__ == "__main__":
    main()
