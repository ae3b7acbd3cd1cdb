"""Token caches for :class:`~pixyauth.auth.CachingTokenProvider`.

Two backends store one :class:`~pixyauth.models.TokenResult` per cache
identifier:

- :class:`KeyringTokenCache` -- the OS keyring (default).
- :class:`FileTokenCache` -- a YAML file in the config directory, for hosts
  without a usable keyring.

:func:`new_token_cache` picks one from a
:class:`~pixyauth.models.CacheBackend` value.
"""

from __future__ import annotations

from pixyauth.cache.file_cache import FileTokenCache
from pixyauth.cache.keyring_cache import KeyringTokenCache
from pixyauth.models import CacheBackend


def new_token_cache(backend: CacheBackend) -> KeyringTokenCache | FileTokenCache:
    """Return the token cache for *backend* with its default location."""
    if backend is CacheBackend.FILE:
        return FileTokenCache()
    return KeyringTokenCache()


__all__ = ["FileTokenCache", "KeyringTokenCache", "new_token_cache"]
