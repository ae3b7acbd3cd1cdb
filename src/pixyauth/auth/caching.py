"""Token provider that consults a cache before going to the issuer.

:class:`CachingTokenProvider` decides, per invocation, between three paths:

1. reuse the cached token when it has not expired,
2. redeem the cached refresh token,
3. run the full browser flow.

Whatever path produced a new :class:`~pixyauth.models.TokenResult`, it is
written back to the cache before the token is returned.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional, Protocol

from pixyauth.auth.unverified_jwt import is_token_unexpired
from pixyauth.exceptions import CacheError, PixyAuthError
from pixyauth.models import TokenResult

logger = logging.getLogger(__name__)


class TokenCache(Protocol):
    """Storage for one :class:`TokenResult` per identifier.

    ``get_tokens`` returns ``None`` on a miss; only backend failures raise.
    """

    def get_tokens(self, identifier: str) -> Optional[TokenResult]: ...

    def cache_tokens(self, identifier: str, tokens: TokenResult) -> None: ...


class IssuerTokenProvider(Protocol):
    def authenticate(self) -> TokenResult: ...

    def from_refresh_token(self, refresh_token: str) -> TokenResult: ...


def access_token_is_valid(tokens: TokenResult) -> bool:
    return is_token_unexpired(tokens.access_token)


def id_token_is_valid(tokens: TokenResult) -> bool:
    return is_token_unexpired(tokens.id_token)


class CachingTokenProvider:
    """Serve access and id tokens, hitting the issuer only when the cache cannot.

    Args:
        cache: Token cache backend.
        issuer_token_provider: Used when the cached entry is missing or expired.
        identifier: Cache key, see :func:`pixyauth.models.cache_identifier`.

    Example::

        provider = CachingTokenProvider(
            KeyringTokenCache(),
            new_default_token_provider(issuer, True, endpoints),
            cache_identifier(issuer),
        )
        token = provider.get_access_token()
    """

    def __init__(
        self,
        cache: TokenCache,
        issuer_token_provider: IssuerTokenProvider,
        identifier: str,
    ) -> None:
        self._cache = cache
        self._issuer_token_provider = issuer_token_provider
        self._identifier = identifier

    def get_access_token(self) -> str:
        """Return a usable access token, refreshing or re-authenticating as needed."""
        return self._get_token_result(access_token_is_valid).access_token

    def get_id_token(self) -> str:
        """Return a usable id token, refreshing or re-authenticating as needed."""
        return self._get_token_result(id_token_is_valid).id_token

    def _get_token_result(self, is_valid: Callable[[TokenResult], bool]) -> TokenResult:
        try:
            cached = self._cache.get_tokens(self._identifier)
        except PixyAuthError as exc:
            raise CacheError(f"could not get tokens from the cache: {exc}") from exc

        if cached is not None and is_valid(cached):
            logger.debug("Using cached tokens for %s", self._identifier)
            return cached

        result = None
        if cached is not None and cached.refresh_token:
            result = self._try_refresh(cached.refresh_token)

        if result is None:
            logger.debug("Starting the browser flow for %s", self._identifier)
            result = self._issuer_token_provider.authenticate()

        try:
            self._cache.cache_tokens(self._identifier, result)
        except PixyAuthError as exc:
            raise CacheError(f"could not cache tokens: {exc}") from exc

        return result

    def _try_refresh(self, refresh_token: str) -> Optional[TokenResult]:
        try:
            refreshed = self._issuer_token_provider.from_refresh_token(refresh_token)
        except PixyAuthError as exc:
            logger.debug("Refreshing cached tokens failed, re-authenticating: %s", exc)
            return None
        # The refresh response may omit the refresh token.
        return refreshed.model_copy(update={"refresh_token": refresh_token})
