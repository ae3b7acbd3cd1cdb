"""Token endpoint exchanges: authorization code -> tokens, refresh token -> tokens.

:class:`TokenRetriever` sends both grants as form-encoded POSTs through an
injected :class:`httpx.Client` and maps the JSON response onto a
:class:`~pixyauth.models.TokenResult`. It never retries; a failed exchange
raises one of three distinct errors so callers can tell them apart:

* :class:`~pixyauth.exceptions.TokenTransportError` -- the request could not
  be sent or the response could not be read.
* :class:`~pixyauth.exceptions.TokenEndpointStatusError` -- the endpoint
  answered outside 200-299. The body is not inspected.
* :class:`~pixyauth.exceptions.TokenDecodeError` -- a 2xx body that is not a
  JSON object of the expected shape.
"""

from __future__ import annotations

import logging

import httpx
from pydantic import ValidationError

from pixyauth.exceptions import (
    TokenDecodeError,
    TokenEndpointStatusError,
    TokenTransportError,
)
from pixyauth.models import (
    AuthorizationCodeExchangeRequest,
    AuthorizationTokenResponse,
    OIDCWellKnownEndpoints,
    RefreshTokenExchangeRequest,
    TokenResult,
)

logger = logging.getLogger(__name__)


class TokenRetriever:
    """Exchange codes and refresh tokens at the issuer's token endpoint.

    Args:
        endpoints: Resolved issuer endpoints; only ``token_endpoint`` is used.
        client: HTTP client used for every request. Its timeout and transport
            settings apply unchanged.

    Example::

        with httpx.Client() as client:
            retriever = TokenRetriever(endpoints, client)
            tokens = retriever.exchange_refresh_token(
                RefreshTokenExchangeRequest(client_id="abc", refresh_token="RT1")
            )
    """

    def __init__(self, endpoints: OIDCWellKnownEndpoints, client: httpx.Client) -> None:
        self._endpoints = endpoints
        self._client = client

    def exchange_code(self, req: AuthorizationCodeExchangeRequest) -> TokenResult:
        """Redeem an authorization code with its PKCE verifier."""
        return self._request_tokens(
            {
                "grant_type": "authorization_code",
                "client_id": req.client_id,
                "code_verifier": req.code_verifier,
                "code": req.code,
                "redirect_uri": req.redirect_uri,
            }
        )

    def exchange_refresh_token(self, req: RefreshTokenExchangeRequest) -> TokenResult:
        """Trade a refresh token for a fresh set of tokens."""
        return self._request_tokens(
            {
                "grant_type": "refresh_token",
                "client_id": req.client_id,
                "refresh_token": req.refresh_token,
            }
        )

    def _request_tokens(self, data: dict[str, str]) -> TokenResult:
        url = self._endpoints.token_endpoint
        logger.debug("POST %s (grant_type=%s)", url, data["grant_type"])

        try:
            response = self._client.post(
                url,
                data=data,
                headers={"Accept": "application/json"},
            )
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise TokenTransportError(f"token request to {url} failed: {exc}") from exc

        if not response.is_success:
            raise TokenEndpointStatusError(response.status_code)

        try:
            token_response = AuthorizationTokenResponse.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            raise TokenDecodeError(f"could not decode the token response: {exc}") from exc

        return token_response.to_token_result()
