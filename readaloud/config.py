"""Configuration model and loaders for read-aloud sessions.

Responsibilities:
- Define session configuration as a typed dataclass.
- Provide deterministic precedence resolution for runtime voice and credential settings.
- Provide loader entry points for file- and environment-based configuration.

Key types:
- `ReadAloudConfig`: normalized settings for one session.
- `ReadAloudRuntimeConfig`: resolved voice, credential, and tuning values.
- `RuntimeConfigSources`: optional value sources for precedence resolution.
- `ConfigLoader`: static construction helpers for `ReadAloudConfig`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import os
from pathlib import Path
from typing import Any, Mapping

import yaml

from .alignment.dom import DEFAULT_HIGHLIGHT_CLASS
from .parsing import (
    normalize_optional_string,
    parse_non_negative_int,
    parse_positive_float,
    parse_positive_int,
)
from .playback.controller import DEFAULT_PREFETCH_COUNT
from .tts.google_client import DEFAULT_ENDPOINT_BASE_URL
from .tts.provider import DEFAULT_MAX_CHUNK_CHARS
from .tts.voices import DEFAULT_VOICE_NAME

_DEFAULT_TIMEOUT_SECONDS = 30.0

ENV_VOICE_NAME = "READALOUD_VOICE_NAME"
ENV_API_KEY = "GOOGLE_TTS_API_KEY"
ENV_MAX_CHUNK_CHARS = "READALOUD_MAX_CHUNK_CHARS"
ENV_PREFETCH_COUNT = "READALOUD_PREFETCH_COUNT"
ENV_ENDPOINT_BASE_URL = "READALOUD_ENDPOINT_BASE_URL"
ENV_TIMEOUT_SECONDS = "READALOUD_TIMEOUT_SECONDS"
ENV_STORE_PATH = "READALOUD_STORE_PATH"
ENV_HIGHLIGHT_CLASS = "READALOUD_HIGHLIGHT_CLASS"


@dataclass(frozen=True, slots=True)
class RuntimeConfigSources:
    """Source mappings used for deterministic runtime value precedence.

    Attributes:
        cli: Values explicitly provided by CLI arguments.
        secure: Values loaded from secure local credential storage.
        store: Values read from the persisted key-value store (viewer settings).
        env: Values loaded from environment variables.
    """

    cli: Mapping[str, str] = field(default_factory=dict)
    secure: Mapping[str, str] = field(default_factory=dict)
    store: Mapping[str, str] = field(default_factory=dict)
    env: Mapping[str, str] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class ReadAloudRuntimeConfig:
    """Resolved runtime values for one session.

    Attributes:
        voice_name: Remote voice identifier (also selects the pricing tier).
        api_key: Remote synthesis API key; `None` selects on-device speech.
        max_chunk_chars: Upper bound for one remote synthesis request.
        prefetch_count: Number of upcoming sentences synthesized ahead.
    """

    voice_name: str
    api_key: str | None = None
    max_chunk_chars: int = DEFAULT_MAX_CHUNK_CHARS
    prefetch_count: int = DEFAULT_PREFETCH_COUNT

    @property
    def uses_remote_synthesis(self) -> bool:
        return self.api_key is not None

    def as_metadata(self) -> dict[str, str]:
        """Return non-secret runtime metadata safe to print or log."""

        return {
            "voice_name": self.voice_name,
            "synthesis": "remote" if self.uses_remote_synthesis else "local",
            "max_chunk_chars": str(self.max_chunk_chars),
            "prefetch_count": str(self.prefetch_count),
        }


@dataclass(slots=True)
class ReadAloudConfig:
    """Configuration for one read-aloud session.

    Attributes:
        voice_name: Default remote voice identifier.
        api_key: Optional remote synthesis API key.
        max_chunk_chars: Maximum characters per remote synthesis request.
        prefetch_count: Upcoming sentences to synthesize ahead of playback.
        endpoint_base_url: Base URL of the remote synthesis API.
        timeout_seconds: Per-request HTTP timeout.
        store_path: Optional JSON key-value store path shared with the viewer.
        highlight_class: CSS class applied to the spoken sentence's elements.
    """

    voice_name: str = DEFAULT_VOICE_NAME
    api_key: str | None = None
    max_chunk_chars: int = DEFAULT_MAX_CHUNK_CHARS
    prefetch_count: int = DEFAULT_PREFETCH_COUNT
    endpoint_base_url: str = DEFAULT_ENDPOINT_BASE_URL
    timeout_seconds: float = _DEFAULT_TIMEOUT_SECONDS
    store_path: Path | None = None
    highlight_class: str = DEFAULT_HIGHLIGHT_CLASS

    def validate(self) -> None:
        """Validate configuration values before a session is built."""

        self._require_non_empty(self.voice_name, "voice_name")
        self._require_non_empty(self.endpoint_base_url, "endpoint_base_url")
        self._require_non_empty(self.highlight_class, "highlight_class")
        parse_positive_int(self.max_chunk_chars, "max_chunk_chars")
        parse_non_negative_int(self.prefetch_count, "prefetch_count")
        parse_positive_float(self.timeout_seconds, "timeout_seconds")

    def resolved_runtime(
        self, sources: RuntimeConfigSources | None = None
    ) -> ReadAloudRuntimeConfig:
        """Resolve runtime settings with deterministic source precedence.

        Precedence for each key is:
        `cli` > `secure` > `store` > `env` > config field default.
        """

        resolved_sources = sources if sources is not None else RuntimeConfigSources()

        voice_name = self._resolve_runtime_value(
            key="voice_name",
            env_key=ENV_VOICE_NAME,
            default_value=self.voice_name,
            sources=resolved_sources,
        )
        api_key = self._resolve_optional_runtime_value(
            key="api_key",
            env_key=ENV_API_KEY,
            default_value=self.api_key,
            sources=resolved_sources,
        )
        max_chunk_chars = parse_positive_int(
            self._resolve_runtime_value(
                key="max_chunk_chars",
                env_key=ENV_MAX_CHUNK_CHARS,
                default_value=str(self.max_chunk_chars),
                sources=resolved_sources,
            ),
            "max_chunk_chars",
        )
        prefetch_count = parse_non_negative_int(
            self._resolve_runtime_value(
                key="prefetch_count",
                env_key=ENV_PREFETCH_COUNT,
                default_value=str(self.prefetch_count),
                sources=resolved_sources,
            ),
            "prefetch_count",
        )
        return ReadAloudRuntimeConfig(
            voice_name=voice_name,
            api_key=api_key,
            max_chunk_chars=max_chunk_chars,
            prefetch_count=prefetch_count,
        )

    def _resolve_runtime_value(
        self,
        key: str,
        env_key: str,
        default_value: str | None,
        sources: RuntimeConfigSources,
    ) -> str:
        """Resolve a runtime value from sources in deterministic precedence order."""

        resolved = self._resolve_optional_runtime_value(key, env_key, default_value, sources)
        if resolved is None:
            raise ValueError(
                f"`{key}` could not be resolved from CLI, secure storage, store, env, "
                "or defaults."
            )
        return resolved

    def _resolve_optional_runtime_value(
        self,
        key: str,
        env_key: str,
        default_value: str | None,
        sources: RuntimeConfigSources,
    ) -> str | None:
        """Resolve an optional runtime value from sources in deterministic order."""

        for mapping, lookup_key in (
            (sources.cli, key),
            (sources.secure, key),
            (sources.store, key),
            (sources.env, env_key),
        ):
            value = self._normalized_lookup(mapping, lookup_key)
            if value is not None:
                return value
        return normalize_optional_string(default_value)

    @staticmethod
    def _normalized_lookup(mapping: Mapping[str, str], key: str) -> str | None:
        """Return a stripped mapping value for a key or `None` when missing/blank."""

        if key not in mapping:
            return None
        return normalize_optional_string(mapping.get(key))

    @staticmethod
    def _require_non_empty(value: str, field_name: str) -> None:
        """Validate that string fields are not empty."""

        if not isinstance(value, str) or not value.strip():
            raise ValueError(f"`{field_name}` must be a non-empty string.")


class ConfigLoader:
    """Factory methods for creating `ReadAloudConfig` from external sources."""

    _SUPPORTED_YAML_KEYS = frozenset(
        {
            "voice_name",
            "api_key",
            "max_chunk_chars",
            "prefetch_count",
            "endpoint_base_url",
            "timeout_seconds",
            "store_path",
            "highlight_class",
        }
    )
    _RUNTIME_ENV_KEYS = frozenset(
        {
            ENV_VOICE_NAME,
            ENV_API_KEY,
            ENV_MAX_CHUNK_CHARS,
            ENV_PREFETCH_COUNT,
        }
    )

    @staticmethod
    def from_yaml(path: Path) -> ReadAloudConfig:
        """Create a validated config from a YAML file."""

        path_text = path.read_text(encoding="utf-8")
        payload = ConfigLoader._parse_yaml_payload(path_text, path)
        return ConfigLoader._build_config_from_mapping(payload, source_label=f"YAML `{path}`")

    @staticmethod
    def from_env(env: Mapping[str, str] | None = None) -> ReadAloudConfig:
        """Create a validated config from environment variables."""

        env_map: Mapping[str, str] = os.environ if env is None else env
        payload: dict[str, Any] = {}
        for key, env_key in (
            ("voice_name", ENV_VOICE_NAME),
            ("api_key", ENV_API_KEY),
            ("max_chunk_chars", ENV_MAX_CHUNK_CHARS),
            ("prefetch_count", ENV_PREFETCH_COUNT),
            ("endpoint_base_url", ENV_ENDPOINT_BASE_URL),
            ("timeout_seconds", ENV_TIMEOUT_SECONDS),
            ("store_path", ENV_STORE_PATH),
            ("highlight_class", ENV_HIGHLIGHT_CLASS),
        ):
            value = normalize_optional_string(env_map.get(env_key))
            if value is not None:
                payload[key] = value
        return ConfigLoader._build_config_from_mapping(payload, source_label="Environment")

    @staticmethod
    def runtime_env(env: Mapping[str, str] | None = None) -> dict[str, str]:
        """Return the non-blank environment values that take part in runtime precedence."""

        env_map: Mapping[str, str] = os.environ if env is None else env
        return {
            key: value
            for key, value in env_map.items()
            if key in ConfigLoader._RUNTIME_ENV_KEYS
            and normalize_optional_string(value) is not None
        }

    @staticmethod
    def _parse_yaml_payload(raw_text: str, path: Path) -> Mapping[str, Any]:
        """Parse YAML text and enforce a mapping root payload."""

        try:
            payload = yaml.safe_load(raw_text)
        except yaml.YAMLError as exc:
            raise ValueError(f"YAML config `{path}` could not be parsed: {exc}") from exc

        if payload is None:
            payload = {}
        if not isinstance(payload, Mapping):
            raise ValueError(f"YAML config `{path}` must contain a top-level mapping/object.")
        return payload

    @staticmethod
    def _build_config_from_mapping(
        payload: Mapping[str, Any], source_label: str
    ) -> ReadAloudConfig:
        """Build a validated config from a normalized mapping payload."""

        unknown = sorted(set(payload).difference(ConfigLoader._SUPPORTED_YAML_KEYS))
        if unknown:
            key_list = ", ".join(unknown)
            raise ValueError(f"{source_label} includes unsupported key(s): {key_list}.")

        config = ReadAloudConfig()
        voice_name = normalize_optional_string(payload.get("voice_name"))
        if voice_name is not None:
            config.voice_name = voice_name
        config.api_key = normalize_optional_string(payload.get("api_key"))
        endpoint_base_url = normalize_optional_string(payload.get("endpoint_base_url"))
        if endpoint_base_url is not None:
            config.endpoint_base_url = endpoint_base_url.rstrip("/")
        highlight_class = normalize_optional_string(payload.get("highlight_class"))
        if highlight_class is not None:
            config.highlight_class = highlight_class
        store_path = normalize_optional_string(payload.get("store_path"))
        if store_path is not None:
            config.store_path = Path(store_path)

        try:
            if payload.get("max_chunk_chars") is not None:
                config.max_chunk_chars = parse_positive_int(
                    payload["max_chunk_chars"], "max_chunk_chars"
                )
            if payload.get("prefetch_count") is not None:
                config.prefetch_count = parse_non_negative_int(
                    payload["prefetch_count"], "prefetch_count"
                )
            if payload.get("timeout_seconds") is not None:
                config.timeout_seconds = parse_positive_float(
                    payload["timeout_seconds"], "timeout_seconds"
                )
        except ValueError as exc:
            raise ValueError(f"{source_label} field {exc}") from exc

        config.validate()
        return config
