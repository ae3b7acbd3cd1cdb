"""Obtain an authorization code by sending the user through their browser.

:class:`LocalhostCodeProvider` composes the state generator, the loopback
:class:`~pixyauth.auth.callback_listener.CallbackListener` and a
:class:`~pixyauth.auth.browser.BrowserOpener`: it starts the listener, opens
the issuer's authorize URL, waits for the redirect, and checks it against
the state it generated.
"""

from __future__ import annotations

import logging
import queue
from typing import Callable, Protocol
from urllib.parse import quote, urlencode

from pixyauth.auth.browser import BrowserOpener
from pixyauth.auth.state import generate_state
from pixyauth.exceptions import BrowserError, CallbackError
from pixyauth.models import (
    AuthorizationCodeResult,
    CallbackResponse,
    Challenge,
    Issuer,
    OIDCWellKnownEndpoints,
)
from pixyauth.output import info, warning

logger = logging.getLogger(__name__)

BASE_SCOPES = ("openid", "email")


class AuthorizationCallbackListener(Protocol):
    """What :class:`LocalhostCodeProvider` needs from a callback listener."""

    @property
    def callback_url(self) -> str: ...

    def await_response(
        self, response_queue: queue.Queue[CallbackResponse], expected_state: str
    ) -> None: ...

    def close(self) -> None: ...


def build_scope(*additional_scopes: str) -> str:
    """``openid email`` followed by *additional_scopes*, space separated."""
    return " ".join((*BASE_SCOPES, *additional_scopes))


def build_authorize_url(
    authorization_endpoint: str,
    issuer: Issuer,
    challenge: Challenge,
    redirect_uri: str,
    state: str,
    additional_scopes: tuple[str, ...] = (),
) -> str:
    """Build the authorize request the browser is sent to.

    Args:
        authorization_endpoint: The issuer's authorization endpoint.
        issuer: Client and audience to request tokens for.
        challenge: The PKCE challenge; only ``code`` and ``method`` are sent.
        redirect_uri: The loopback callback URL.
        state: The per-flow state value.
        additional_scopes: Scopes appended after ``openid email``.

    Returns:
        The full URL with the query string percent-encoded.
    """
    params = {
        "audience": issuer.audience,
        "client_id": issuer.client_id,
        "code_challenge": challenge.code,
        "code_challenge_method": challenge.method,
        "redirect_uri": redirect_uri,
        "response_type": "code",
        "scope": build_scope(*additional_scopes),
        "state": state,
    }
    separator = "&" if "?" in authorization_endpoint else "?"
    return f"{authorization_endpoint}{separator}{urlencode(params, quote_via=quote)}"


class LocalhostCodeProvider:
    """Authorization code provider that listens on a loopback redirect URI.

    Args:
        issuer: Client and audience to request tokens for.
        endpoints: The issuer's resolved endpoints.
        listener: Loopback callback listener. It is closed once
            :meth:`get_code` returns or raises.
        browser: Opens the authorize URL. Failures are reported, not raised.
        state_generator: Produces the per-flow state value.
    """

    def __init__(
        self,
        issuer: Issuer,
        endpoints: OIDCWellKnownEndpoints,
        listener: AuthorizationCallbackListener,
        browser: BrowserOpener,
        state_generator: Callable[[], str] = generate_state,
    ) -> None:
        self._issuer = issuer
        self._endpoints = endpoints
        self._listener = listener
        self._browser = browser
        self._state_generator = state_generator

    def get_code(self, challenge: Challenge, *additional_scopes: str) -> AuthorizationCodeResult:
        """Run the browser leg of the flow and return the authorization code.

        Blocks until the issuer redirects back to the listener.

        Args:
            challenge: PKCE challenge to bind the code to.
            *additional_scopes: Extra scopes, e.g. ``offline_access``.

        Raises:
            CallbackError: If the callback carried the wrong state, an
                issuer error, or no code at all.
        """
        state = self._state_generator()
        responses: queue.Queue[CallbackResponse] = queue.Queue(maxsize=1)

        try:
            self._listener.await_response(responses, state)
            redirect_uri = self._listener.callback_url
            url = build_authorize_url(
                self._endpoints.authorization_endpoint,
                self._issuer,
                challenge,
                redirect_uri,
                state,
                additional_scopes,
            )

            info(f"Opening your browser to sign in. If it does not open, visit:\n{url}")
            try:
                self._browser.open_url(url)
            except BrowserError as exc:
                warning(f"{exc}; open the URL above manually.")

            response = responses.get()
        finally:
            self._listener.close()

        if response.error is not None:
            raise CallbackError(response.error)

        logger.debug("Received an authorization code on %s", redirect_uri)
        return AuthorizationCodeResult(code=response.code, redirect_uri=redirect_uri)
