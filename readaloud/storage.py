"""Persisted key-value storage for read-aloud settings and usage totals.

Responsibilities:
- Define the minimal `get`/`set` interface the core reads and writes through.
- Provide in-memory and JSON-file implementations for headless runs.

Key names mirror the viewer's settings page so both can share one store.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Protocol

API_KEY_STORE_KEY = "googleTtsApiKey"
VOICE_NAME_STORE_KEY = "selectedVoiceName"
TOTAL_COST_STORE_KEY = "totalTtsCost"

DEFAULT_STORE_PATH = Path.home() / ".readaloud" / "store.json"


class KeyValueStore(Protocol):
    """Interface of the external persisted key-value store."""

    def get(self, key: str) -> Any | None:
        """Return the stored value for `key`, or `None` when missing."""

    def set(self, key: str, value: Any) -> None:
        """Persist `value` under `key`."""


class InMemoryKeyValueStore:
    """Process-local store used by tests and throwaway sessions."""

    def __init__(self, initial: dict[str, Any] | None = None) -> None:
        self._values: dict[str, Any] = dict(initial or {})

    def get(self, key: str) -> Any | None:
        return self._values.get(key)

    def set(self, key: str, value: Any) -> None:
        self._values[key] = value


class JsonFileKeyValueStore:
    """Filesystem-backed store persisting one JSON object.

    Every `get` re-reads the file, so read-modify-write callers see values written
    by other processes, without any locking between them.
    """

    def __init__(self, path: Path) -> None:
        """Initialize the store with the JSON file location."""

        self.path = path

    def get(self, key: str) -> Any | None:
        return self._load().get(key)

    def set(self, key: str, value: Any) -> None:
        payload = self._load()
        payload[key] = value
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(
            json.dumps(payload, ensure_ascii=False, indent=2, sort_keys=True),
            encoding="utf-8",
        )

    def _load(self) -> dict[str, Any]:
        """Load the JSON object, treating a missing file as an empty store."""

        if not self.path.exists():
            return {}
        raw_text = self.path.read_text(encoding="utf-8")
        if not raw_text.strip():
            return {}
        try:
            payload = json.loads(raw_text)
        except json.JSONDecodeError as exc:
            raise ValueError(f"Store file `{self.path}` is not valid JSON.") from exc
        if not isinstance(payload, dict):
            raise ValueError(f"Store file `{self.path}` must contain a JSON object.")
        return payload


def store_runtime_values(store: KeyValueStore) -> dict[str, str]:
    """Map viewer settings persisted in `store` to runtime config keys."""

    values: dict[str, str] = {}
    for runtime_key, store_key in (
        ("api_key", API_KEY_STORE_KEY),
        ("voice_name", VOICE_NAME_STORE_KEY),
    ):
        value = store.get(store_key)
        if isinstance(value, str) and value.strip():
            values[runtime_key] = value.strip()
    return values
