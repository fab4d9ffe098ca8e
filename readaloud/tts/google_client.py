"""Google Cloud Text-to-Speech HTTP client.

Responsibilities:
- Send `text:synthesize` requests to the Google TTS REST API.
- Decode the base64 `audioContent` payload into raw audio bytes.
- Raise actionable provider exceptions with redacted, length-capped messages.
"""

from __future__ import annotations

import base64
import binascii
import json
import re
import socket
from typing import Any

import requests

from ..errors import SynthesisError

DEFAULT_ENDPOINT_BASE_URL = "https://texttospeech.googleapis.com/v1"


class GoogleTTSProviderError(SynthesisError):
    """Raised when a Google TTS request fails or returns malformed output."""

    def __init__(
        self,
        message: str,
        *,
        failure_kind: str = "unknown",
        status_code: int | None = None,
    ) -> None:
        """Initialize provider error metadata for diagnostics."""

        super().__init__(message, failure_kind=failure_kind)
        self.status_code = status_code


class GoogleSpeechClient:
    """Minimal requests-based client for the Google TTS `text:synthesize` endpoint."""

    _MAX_PROVIDER_MESSAGE_CHARS = 180

    def __init__(
        self,
        *,
        api_key: str | None,
        base_url: str = DEFAULT_ENDPOINT_BASE_URL,
        timeout_seconds: float = 30.0,
    ) -> None:
        """Initialize HTTP client settings."""

        self.api_key = api_key.strip() if isinstance(api_key, str) else ""
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds

    def synthesize_speech(
        self,
        *,
        text: str,
        voice_name: str,
        language_code: str,
        audio_encoding: str = "MP3",
    ) -> bytes:
        """Return decoded audio bytes for one chunk of text."""

        self._require_api_key()
        payload = {
            "input": {"text": text},
            "voice": {"languageCode": language_code, "name": voice_name},
            "audioConfig": {"audioEncoding": audio_encoding},
        }
        body = self._post_json(endpoint_path="/text:synthesize", payload=payload)
        return self._extract_audio_content(body)

    def _require_api_key(self) -> None:
        """Require API key presence before issuing requests."""

        if not self.api_key:
            raise GoogleTTSProviderError(
                "Missing Google TTS API key. Set `GOOGLE_TTS_API_KEY`, store one with "
                "`readaloud credentials --set-api-key`, or pass `--api-key`.",
                failure_kind="invalid_api_key",
            )

    def _post_json(self, *, endpoint_path: str, payload: dict[str, Any]) -> bytes:
        """Execute a JSON POST request and map failures consistently."""

        endpoint = f"{self.base_url}{endpoint_path}"
        try:
            response = requests.post(
                endpoint,
                params={"key": self.api_key},
                headers={"Content-Type": "application/json"},
                json=payload,
                timeout=self.timeout_seconds,
            )
            response.raise_for_status()
            return bytes(response.content)
        except requests.HTTPError as exc:
            raise self._http_error_to_provider_error(exc) from exc
        except requests.RequestException as exc:
            failure_kind = self._classify_transport_failure(exc)
            if failure_kind == "timeout":
                detail = "Google TTS request timed out."
            else:
                detail = (
                    "Google TTS request transport error: "
                    f"{self._short_message(self._redact_sensitive_tokens(str(exc)))}"
                )
            raise GoogleTTSProviderError(detail, failure_kind=failure_kind) from exc
        except TimeoutError as exc:
            raise GoogleTTSProviderError(
                "Google TTS request timed out.",
                failure_kind="timeout",
            ) from exc

    @classmethod
    def _extract_audio_content(cls, body: bytes) -> bytes:
        """Decode `audioContent` from a successful synthesis response body."""

        try:
            payload = json.loads(body.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise GoogleTTSProviderError(
                "Google TTS returned invalid JSON payload.",
                failure_kind="malformed_response",
            ) from exc

        if isinstance(payload, dict) and isinstance(payload.get("error"), dict):
            message, _ = cls._extract_provider_message(json.dumps(payload))
            raise GoogleTTSProviderError(
                f"Google TTS request failed: {message}",
                failure_kind="http_error",
            )

        audio_content = payload.get("audioContent") if isinstance(payload, dict) else None
        if not isinstance(audio_content, str) or not audio_content:
            raise GoogleTTSProviderError(
                "Google TTS response missing non-empty `audioContent`.",
                failure_kind="malformed_response",
            )
        try:
            return base64.b64decode(audio_content, validate=True)
        except (binascii.Error, ValueError) as exc:
            raise GoogleTTSProviderError(
                "Google TTS `audioContent` is not valid base64.",
                failure_kind="malformed_response",
            ) from exc

    @staticmethod
    def _decode_error_body(exc: requests.HTTPError) -> str:
        """Decode an HTTP error body into a best-effort UTF-8 payload string."""

        response = exc.response
        if response is None:
            return ""
        return bytes(response.content or b"").decode("utf-8", errors="replace").strip()

    @classmethod
    def _redact_sensitive_tokens(cls, text: str) -> str:
        """Redact API-key-like tokens from provider error content."""

        redacted = re.sub(r"\bAIza[0-9A-Za-z_-]{20,}", "[redacted-key]", text)
        redacted = re.sub(r"(?i)([?&]key=)[^&\s]+", r"\1[redacted-key]", redacted)
        return redacted

    @classmethod
    def _short_message(cls, text: str) -> str:
        """Normalize and cap user-facing provider message length."""

        compact = " ".join(text.split())
        if len(compact) <= cls._MAX_PROVIDER_MESSAGE_CHARS:
            return compact
        return f"{compact[: cls._MAX_PROVIDER_MESSAGE_CHARS - 1]}..."

    @classmethod
    def _extract_provider_message(cls, body: str) -> tuple[str, str | None]:
        """Extract a concise provider message and optional provider status token."""

        if not body:
            return "", None

        try:
            payload = json.loads(body)
        except json.JSONDecodeError:
            return cls._short_message(cls._redact_sensitive_tokens(body)), None

        provider_status: str | None = None
        message: str | None = None
        if isinstance(payload, dict):
            error_payload = payload.get("error")
            if isinstance(error_payload, dict):
                status_value = error_payload.get("status")
                if isinstance(status_value, str) and status_value.strip():
                    provider_status = status_value.strip()
                message_value = error_payload.get("message")
                if isinstance(message_value, str) and message_value.strip():
                    message = message_value.strip()

        if message is None:
            message = body

        return cls._short_message(cls._redact_sensitive_tokens(message)), provider_status

    @staticmethod
    def _classify_http_failure(
        status_code: int,
        provider_message: str,
        provider_status: str | None,
    ) -> str:
        """Classify HTTP errors into deterministic diagnostic kinds."""

        message_lower = provider_message.lower()
        normalized_status = provider_status.upper() if provider_status is not None else ""

        if status_code in {401, 403} or "api key" in message_lower:
            return "invalid_api_key"
        if status_code == 429 or normalized_status == "RESOURCE_EXHAUSTED":
            return "quota_exceeded"
        if "voice" in message_lower and any(
            phrase in message_lower for phrase in ("does not exist", "not found", "invalid")
        ):
            return "invalid_voice"
        if status_code in {408, 504} or "deadline" in message_lower or "timed out" in message_lower:
            return "timeout"
        return "http_error"

    @staticmethod
    def _classify_transport_failure(reason: object) -> str:
        """Classify network-layer failures into deterministic diagnostic kinds."""

        if isinstance(reason, TimeoutError | socket.timeout | requests.Timeout):
            return "timeout"
        return "transport"

    @classmethod
    def _http_error_to_provider_error(cls, exc: requests.HTTPError) -> GoogleTTSProviderError:
        """Convert HTTP errors into normalized provider exceptions with metadata."""

        status_code = exc.response.status_code if exc.response is not None else 0
        body = cls._decode_error_body(exc)
        provider_message, provider_status = cls._extract_provider_message(body)
        failure_kind = cls._classify_http_failure(status_code, provider_message, provider_status)

        headline = {
            "invalid_api_key": "Google TTS authentication failed",
            "quota_exceeded": "Google TTS quota exceeded",
            "invalid_voice": "Google TTS rejected the selected voice",
            "timeout": "Google TTS request timed out",
        }.get(failure_kind, "Google TTS request failed")

        if provider_message:
            detail = f"{headline} (HTTP {status_code}): {provider_message}"
        else:
            detail = f"{headline} (HTTP {status_code})."

        return GoogleTTSProviderError(
            detail,
            failure_kind=failure_kind,
            status_code=status_code,
        )
