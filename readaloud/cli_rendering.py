"""CLI output and error rendering helpers.

This module centralizes user-facing CLI presentation for command diagnostics,
sentence listings, voice tier tables, and usage summaries.
"""

from __future__ import annotations

from typing import Iterable, Mapping, NoReturn

import typer

from .errors import StageError
from .models.datatypes import Sentence
from .tts.voices import VoiceTier

_SENTENCE_PREVIEW_CHARS = 96


def exit_with_command_error(command_name: str, exc: Exception) -> NoReturn:
    """Print concise diagnostics for command failures and exit with code 1."""

    if isinstance(exc, StageError):
        typer.secho(
            f"{command_name} failed at stage `{exc.stage}`: {exc.detail}",
            fg=typer.colors.RED,
            err=True,
        )
        if exc.hint:
            typer.secho(f"Hint: {exc.hint}", fg=typer.colors.YELLOW, err=True)
    else:
        typer.secho(f"{command_name} failed: {exc}", fg=typer.colors.RED, err=True)
    raise typer.Exit(code=1) from exc


def echo_sentence_list(sentences: Iterable[Sentence]) -> None:
    """Print one `[position] text (elements=N)` row per sentence."""

    for sentence in sentences:
        text = sentence.text
        if len(text) > _SENTENCE_PREVIEW_CHARS:
            text = text[: _SENTENCE_PREVIEW_CHARS - 3] + "..."
        typer.echo(f"[{sentence.position}] {text} (elements={len(sentence.elements)})")


def echo_tier_table(tiers: Mapping[str, VoiceTier]) -> None:
    """Print voice tier pricing rows in table order."""

    for tier in tiers.values():
        typer.echo(
            f"{tier.name}: ${tier.price_per_million_chars:.2f} per 1M chars "
            f"(free tier: {tier.free_tier or 'none'}) - {tier.description}"
        )


def echo_usage_summary(summary: Mapping[str, float]) -> None:
    """Print session and persisted usage totals in USD."""

    if "session_characters" in summary:
        typer.echo(f"Characters synthesized: {int(summary['session_characters'])}")
    if "session_cost_usd" in summary:
        typer.echo(f"Session cost (USD): {summary['session_cost_usd']:.6f}")
    typer.echo(f"Total cost (USD): {summary['total_cost_usd']:.6f}")
