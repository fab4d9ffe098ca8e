"""Unit tests for keyring-backed API key storage."""

from __future__ import annotations

import pytest
from keyring.backends import fail
from keyring.errors import KeyringError, PasswordDeleteError
from pytest import MonkeyPatch

from readaloud.credentials import KeyringCredentialStore, create_credential_store


class _FakeKeyringModule:
    """In-memory replacement for the `keyring` module functions in use."""

    def __init__(self, *, available: bool = True) -> None:
        self.available = available
        self.passwords: dict[tuple[str, str], str] = {}
        self.fail_reads = False

    def get_keyring(self) -> object:
        return object() if self.available else fail.Keyring()

    def get_password(self, service: str, account: str) -> str | None:
        if self.fail_reads:
            raise KeyringError("backend locked")
        return self.passwords.get((service, account))

    def set_password(self, service: str, account: str, value: str) -> None:
        self.passwords[(service, account)] = value

    def delete_password(self, service: str, account: str) -> None:
        if (service, account) not in self.passwords:
            raise PasswordDeleteError("missing")
        del self.passwords[(service, account)]


def _install(monkeypatch: MonkeyPatch, **kwargs: bool) -> _FakeKeyringModule:
    fake = _FakeKeyringModule(**kwargs)
    monkeypatch.setattr("readaloud.credentials.keyring", fake)
    return fake


def test_set_get_and_clear_round_trip_normalized_key(monkeypatch: MonkeyPatch) -> None:
    fake = _install(monkeypatch)
    store = KeyringCredentialStore()

    store.set_api_key("  secret-key  ")

    assert fake.passwords == {("readaloud", "google_tts_api_key"): "secret-key"}
    assert store.get_api_key() == "secret-key"
    assert store.clear_api_key() is True
    assert store.get_api_key() is None
    assert store.clear_api_key() is False


def test_blank_stored_values_and_read_errors_read_as_missing(monkeypatch: MonkeyPatch) -> None:
    fake = _install(monkeypatch)
    fake.passwords[("readaloud", "google_tts_api_key")] = "   "
    store = KeyringCredentialStore()

    assert store.get_api_key() is None

    fake.passwords[("readaloud", "google_tts_api_key")] = "real"
    fake.fail_reads = True
    assert store.get_api_key() is None


def test_set_api_key_rejects_blank_values(monkeypatch: MonkeyPatch) -> None:
    _install(monkeypatch)

    with pytest.raises(ValueError, match="non-empty"):
        KeyringCredentialStore().set_api_key("   ")


def test_unavailable_backend_reads_nothing_and_refuses_writes(monkeypatch: MonkeyPatch) -> None:
    """The failing placeholder backend disables secure storage."""

    fake = _install(monkeypatch, available=False)
    fake.passwords[("readaloud", "google_tts_api_key")] = "hidden"
    store = create_credential_store()

    assert store.is_available() is False
    assert store.get_api_key() is None
    assert store.clear_api_key() is False
    with pytest.raises(RuntimeError, match="unavailable"):
        store.set_api_key("secret-key")


def test_custom_service_and_account_names_are_used(monkeypatch: MonkeyPatch) -> None:
    fake = _install(monkeypatch)
    store = KeyringCredentialStore(service_name="reader-test", account_name="tts")

    store.set_api_key("abc")

    assert fake.passwords == {("reader-test", "tts"): "abc"}
