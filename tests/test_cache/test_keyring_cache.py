"""Tests for the keyring-backed token cache."""

from __future__ import annotations

from typing import Optional

import pytest
from keyring.backend import KeyringBackend
from keyring.errors import KeyringLocked, PasswordSetError

from pixyauth.cache.keyring_cache import KeyringTokenCache
from pixyauth.exceptions import CacheError
from pixyauth.models import TokenResult


class MemoryKeyring(KeyringBackend):
    """In-memory keyring backend."""

    priority = 1

    def __init__(self) -> None:
        super().__init__()
        self.passwords: dict[tuple[str, str], str] = {}
        self.locked = False

    def get_password(self, service: str, username: str) -> Optional[str]:
        if self.locked:
            raise KeyringLocked("keyring is locked")
        return self.passwords.get((service, username))

    def set_password(self, service: str, username: str, password: str) -> None:
        if self.locked:
            raise PasswordSetError("keyring is locked")
        self.passwords[(service, username)] = password

    def delete_password(self, service: str, username: str) -> None:
        self.passwords.pop((service, username), None)


@pytest.fixture
def backend() -> MemoryKeyring:
    return MemoryKeyring()


class TestKeyringTokenCache:
    def test_miss_returns_none(self, backend: MemoryKeyring) -> None:
        assert KeyringTokenCache(backend=backend).get_tokens("abc-aud") is None

    def test_store_and_read(self, backend: MemoryKeyring) -> None:
        cache = KeyringTokenCache(backend=backend)
        tokens = TokenResult(access_token="AT1", refresh_token="RT1", expires_in=3600)

        cache.cache_tokens("abc-aud", tokens)

        assert cache.get_tokens("abc-aud") == tokens

    def test_stored_under_service_and_identifier(self, backend: MemoryKeyring) -> None:
        KeyringTokenCache(backend=backend).cache_tokens("abc-aud", TokenResult(access_token="AT1"))

        assert ("pixyauth", "abc-aud") in backend.passwords
        assert '"access_token":"AT1"' in backend.passwords[("pixyauth", "abc-aud")]

    def test_custom_service_name(self, backend: MemoryKeyring) -> None:
        KeyringTokenCache("other", backend).cache_tokens("abc-aud", TokenResult())

        assert ("other", "abc-aud") in backend.passwords

    def test_entries_are_per_identifier(self, backend: MemoryKeyring) -> None:
        cache = KeyringTokenCache(backend=backend)
        cache.cache_tokens("abc-aud", TokenResult(access_token="AT1"))
        cache.cache_tokens("abc-other", TokenResult(access_token="AT2"))

        assert cache.get_tokens("abc-aud").access_token == "AT1"
        assert cache.get_tokens("abc-other").access_token == "AT2"

    def test_corrupt_entry_raises(self, backend: MemoryKeyring) -> None:
        backend.passwords[("pixyauth", "abc-aud")] = "{not json"

        with pytest.raises(CacheError, match="not valid JSON"):
            KeyringTokenCache(backend=backend).get_tokens("abc-aud")

    def test_read_failure_raises(self, backend: MemoryKeyring) -> None:
        backend.locked = True

        with pytest.raises(CacheError, match="keyring read failed"):
            KeyringTokenCache(backend=backend).get_tokens("abc-aud")

    def test_write_failure_raises(self, backend: MemoryKeyring) -> None:
        backend.locked = True

        with pytest.raises(CacheError, match="keyring write failed"):
            KeyringTokenCache(backend=backend).cache_tokens("abc-aud", TokenResult())
