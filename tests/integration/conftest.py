"""Integration fixtures: scripted PDF pages, Google TTS HTTP stubs, and CLI isolation."""

from __future__ import annotations

import base64
import json
from typing import Any, Callable

import pytest
import requests
from pytest import MonkeyPatch

from readaloud.config import (
    ENV_API_KEY,
    ENV_ENDPOINT_BASE_URL,
    ENV_HIGHLIGHT_CLASS,
    ENV_MAX_CHUNK_CHARS,
    ENV_PREFETCH_COUNT,
    ENV_STORE_PATH,
    ENV_TIMEOUT_SECONDS,
    ENV_VOICE_NAME,
)
from readaloud.models.datatypes import TextFragment

SAMPLE_PAGES: dict[int, list[str]] = {
    1: ["Hello", "world.", "Second sentence here."],
    2: ["Third one.", "Fourth one!"],
}


class ScriptedPdfExtractor:
    """Extractor double exposing the `PdfTextExtractor` surface over fixed pages."""

    pages: dict[int, list[str]] = SAMPLE_PAGES

    def page_count(self, locator: str) -> int:
        return len(self.pages)

    def extract_page_fragments(self, locator: str, page_number: int) -> list[TextFragment]:
        return [TextFragment(text=text) for text in self.pages[page_number]]


class MemoryCredentialStore:
    """Credential store double shared across one test."""

    def __init__(self) -> None:
        self.api_key: str | None = None

    def is_available(self) -> bool:
        return True

    def get_api_key(self) -> str | None:
        return self.api_key

    def set_api_key(self, api_key: str) -> None:
        self.api_key = api_key.strip()

    def clear_api_key(self) -> bool:
        existed = self.api_key is not None
        self.api_key = None
        return existed


class _MockRequestsResponse:
    def __init__(self, *, payload: bytes, status_code: int = 200) -> None:
        self.content = payload
        self.status_code = status_code

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"HTTP {self.status_code}", response=self)


class GoogleTtsStub:
    """Records synthesized texts and answers with `<text>` audio bytes."""

    def __init__(self) -> None:
        self.texts: list[str] = []
        self.error: tuple[int, str, str] | None = None

    def __call__(self, url: str, **kwargs: Any) -> _MockRequestsResponse:
        text = kwargs["json"]["input"]["text"]
        self.texts.append(text)
        if self.error is not None:
            status_code, message, status = self.error
            body = json.dumps({"error": {"message": message, "status": status}})
            return _MockRequestsResponse(payload=body.encode("utf-8"), status_code=status_code)
        audio = base64.b64encode(f"<{text}>".encode("utf-8")).decode("ascii")
        return _MockRequestsResponse(payload=json.dumps({"audioContent": audio}).encode("utf-8"))


@pytest.fixture(autouse=True)
def _isolated_environment(monkeypatch: MonkeyPatch) -> None:
    """Keep developer environment variables out of config resolution."""

    for key in (
        ENV_VOICE_NAME,
        ENV_API_KEY,
        ENV_MAX_CHUNK_CHARS,
        ENV_PREFETCH_COUNT,
        ENV_ENDPOINT_BASE_URL,
        ENV_TIMEOUT_SECONDS,
        ENV_STORE_PATH,
        ENV_HIGHLIGHT_CLASS,
    ):
        monkeypatch.delenv(key, raising=False)


@pytest.fixture
def google_tts(monkeypatch: MonkeyPatch) -> GoogleTtsStub:
    """Patch `requests.post` in the speech client with a recording stub."""

    stub = GoogleTtsStub()
    monkeypatch.setattr("readaloud.tts.google_client.requests.post", stub)
    return stub


@pytest.fixture
def scripted_extractor() -> Callable[[], ScriptedPdfExtractor]:
    return ScriptedPdfExtractor


@pytest.fixture
def credential_store(monkeypatch: MonkeyPatch) -> MemoryCredentialStore:
    """Route CLI secure-storage lookups to an in-memory store."""

    store = MemoryCredentialStore()
    monkeypatch.setattr("readaloud.cli.create_credential_store", lambda: store)
    return store
