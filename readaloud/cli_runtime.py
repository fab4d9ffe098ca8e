"""CLI runtime resolution helpers.

This module assembles the four runtime value layers (CLI options, keyring,
viewer key-value store, environment) and handles hidden API-key entry and
optional keyring persistence, so command wiring stays declarative.
"""

from __future__ import annotations

from typing import Callable, Mapping, Protocol

import typer

from .config import ConfigLoader, RuntimeConfigSources
from .credentials import create_credential_store
from .errors import StageError
from .parsing import normalize_optional_string
from .storage import KeyValueStore, store_runtime_values

_API_KEY_PROMPT = "Google TTS API key (hidden; leave blank to skip)"


class CredentialStoreProtocol(Protocol):
    """Secure-storage operations needed while resolving runtime sources."""

    def get_api_key(self) -> str | None:
        """Return the stored API key, if any."""

    def set_api_key(self, api_key: str) -> None:
        """Save the API key in secure storage."""


def _prompt_hidden_api_key() -> str | None:
    """Ask for an API key without echoing it; blank input means no key."""

    return normalize_optional_string(
        typer.prompt(_API_KEY_PROMPT, default="", hide_input=True, show_default=False)
    )


def _persist_api_key(credential_store: CredentialStoreProtocol, api_key: str) -> None:
    """Save a key typed in this run, mapping backend failures to a stage error."""

    try:
        credential_store.set_api_key(api_key)
    except Exception as exc:
        raise StageError(
            stage="credentials",
            detail=f"Failed to store API key securely: {exc}",
            hint=(
                "Install and configure a keyring backend, or rerun without "
                "`--store-api-key` for one-off usage."
            ),
        ) from exc
    typer.echo("Stored API key in secure credential storage.")


def _read_store_layer(store: KeyValueStore) -> dict[str, str]:
    try:
        return store_runtime_values(store)
    except ValueError as exc:
        raise StageError(
            stage="config",
            detail=str(exc),
            hint="Fix or remove the key-value store file and rerun.",
        ) from exc


def resolve_runtime_sources(
    voice_name: str | None,
    api_key: str | None,
    prompt_api_key: bool,
    store_api_key: bool,
    store: KeyValueStore,
    env: Mapping[str, str] | None = None,
    credential_store_factory: Callable[[], CredentialStoreProtocol] = create_credential_store,
) -> RuntimeConfigSources:
    """Collect CLI, secure, store, and env mappings for runtime precedence.

    A key counts as typed in this run when it came from `--api-key` or the
    hidden prompt; only such keys are persisted with `store_api_key`.
    """

    cli_values = {
        key: normalized
        for key, normalized in (
            ("voice_name", normalize_optional_string(voice_name)),
            ("api_key", normalize_optional_string(api_key)),
        )
        if normalized is not None
    }
    if prompt_api_key and "api_key" not in cli_values:
        prompted = _prompt_hidden_api_key()
        if prompted is not None:
            cli_values["api_key"] = prompted

    credential_store = credential_store_factory()
    secure_values: dict[str, str] = {}
    stored_api_key = credential_store.get_api_key()
    if stored_api_key is not None:
        secure_values["api_key"] = stored_api_key

    if store_api_key and "api_key" in cli_values:
        _persist_api_key(credential_store, cli_values["api_key"])

    return RuntimeConfigSources(
        cli=cli_values,
        secure=secure_values,
        store=_read_store_layer(store),
        env=ConfigLoader.runtime_env(env),
    )
