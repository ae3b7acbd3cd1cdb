"""Issuer-facing token provider: full PKCE authentication and refresh.

:class:`TokenProvider` is what the caching layer calls when the cache cannot
answer. :meth:`TokenProvider.authenticate` runs the browser flow and redeems
the code; :meth:`TokenProvider.from_refresh_token` redeems a refresh token
when the provider was built with refresh support.

Refresh support is a construction-time decision because it changes the
authorize request: ``offline_access`` is only requested when refresh tokens
are wanted, as some issuers size the access token by that scope.
"""

from __future__ import annotations

import logging
from typing import Callable, Optional, Protocol

import httpx

from pixyauth.auth.browser import BrowserOpener, DefaultBrowserOpener
from pixyauth.auth.callback_listener import DEFAULT_PORT, CallbackListener
from pixyauth.auth.challenge import generate_challenge
from pixyauth.auth.code_provider import LocalhostCodeProvider
from pixyauth.auth.state import generate_state
from pixyauth.auth.token_exchanger import TokenRetriever
from pixyauth.exceptions import AuthError, PixyAuthError, RefreshNotAllowedError
from pixyauth.models import (
    AuthorizationCodeExchangeRequest,
    AuthorizationCodeResult,
    Challenge,
    Issuer,
    OIDCWellKnownEndpoints,
    RefreshTokenExchangeRequest,
    TokenResult,
)

logger = logging.getLogger(__name__)

OFFLINE_ACCESS_SCOPE = "offline_access"


class AuthorizationCodeProvider(Protocol):
    def get_code(self, challenge: Challenge, *additional_scopes: str) -> AuthorizationCodeResult: ...


class AuthorizationTokenExchanger(Protocol):
    def exchange_code(self, req: AuthorizationCodeExchangeRequest) -> TokenResult: ...

    def exchange_refresh_token(self, req: RefreshTokenExchangeRequest) -> TokenResult: ...


class TokenProvider:
    """Obtain tokens from the issuer.

    Args:
        allow_refresh: Request ``offline_access`` and permit
            :meth:`from_refresh_token`.
        issuer: Client and audience to request tokens for.
        code_provider: Produces authorization codes.
        exchanger: Redeems codes and refresh tokens.
        challenger: Produces a fresh PKCE challenge per attempt.
    """

    def __init__(
        self,
        allow_refresh: bool,
        issuer: Issuer,
        code_provider: AuthorizationCodeProvider,
        exchanger: AuthorizationTokenExchanger,
        challenger: Callable[[], Challenge] = generate_challenge,
    ) -> None:
        self._allow_refresh = allow_refresh
        self._issuer = issuer
        self._code_provider = code_provider
        self._exchanger = exchanger
        self._challenger = challenger

    @property
    def allow_refresh(self) -> bool:
        return self._allow_refresh

    def authenticate(self) -> TokenResult:
        """Run the interactive authorization code + PKCE flow.

        Raises:
            CallbackError: If the browser leg fails.
            AuthError: ``could not exchange code: ...`` when redeeming the
                code fails; the underlying error is chained.
        """
        challenge = self._challenger()

        additional_scopes: list[str] = []
        if self._allow_refresh:
            additional_scopes.append(OFFLINE_ACCESS_SCOPE)

        code_result = self._code_provider.get_code(challenge, *additional_scopes)

        exchange_request = AuthorizationCodeExchangeRequest(
            client_id=self._issuer.client_id,
            code_verifier=challenge.verifier,
            code=code_result.code,
            redirect_uri=code_result.redirect_uri,
        )
        try:
            return self._exchanger.exchange_code(exchange_request)
        except PixyAuthError as exc:
            raise AuthError(f"could not exchange code: {exc}", exit_code=exc.exit_code) from exc

    def from_refresh_token(self, refresh_token: str) -> TokenResult:
        """Redeem *refresh_token* without user interaction.

        Raises:
            RefreshNotAllowedError: If the provider was built without refresh
                support. No request is made in that case.
        """
        if not self._allow_refresh:
            raise RefreshNotAllowedError(
                "cannot use refresh token as it was not allowed to be used by the client"
            )

        return self._exchanger.exchange_refresh_token(
            RefreshTokenExchangeRequest(
                client_id=self._issuer.client_id,
                refresh_token=refresh_token,
            )
        )


def new_default_token_provider(
    issuer: Issuer,
    allow_refresh: bool,
    endpoints: OIDCWellKnownEndpoints,
    *,
    port: int = DEFAULT_PORT,
    browser: Optional[BrowserOpener] = None,
    client: Optional[httpx.Client] = None,
) -> TokenProvider:
    """Wire a :class:`TokenProvider` with the stock collaborators.

    Args:
        issuer: Client and audience to request tokens for.
        allow_refresh: Whether refresh tokens are requested and used.
        endpoints: Resolved issuer endpoints.
        port: Loopback callback port (``0`` for an ephemeral port).
        browser: Browser opener; defaults to :class:`DefaultBrowserOpener`.
        client: HTTP client for the token endpoint. The caller keeps
            ownership and closes it; when omitted, a client without timeouts
            is created that lives as long as the process.
    """
    code_provider = LocalhostCodeProvider(
        issuer,
        endpoints,
        CallbackListener(port=port),
        browser or DefaultBrowserOpener(),
        generate_state,
    )
    exchanger = TokenRetriever(endpoints, client or httpx.Client(timeout=None))
    return TokenProvider(allow_refresh, issuer, code_provider, exchanger, generate_challenge)
