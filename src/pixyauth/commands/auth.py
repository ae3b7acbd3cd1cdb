"""Auth command -- print a kubectl ExecCredential.

Implements ``pixyauth auth``, the command ``kubectl`` runs through the
``exec`` block written by ``pixyauth init``. It resolves the issuer
settings, builds a :class:`~pixyauth.auth.CachingTokenProvider` on top of
the configured token cache, and writes exactly one ExecCredential JSON
document to stdout. Everything else goes to stderr.

Example::

    pixyauth -i https://issuer -c abc -a aud auth --with-refresh-token
"""

from __future__ import annotations

from typing import Optional

import httpx
import typer

from pixyauth.auth import CachingTokenProvider, new_default_token_provider
from pixyauth.cache import new_token_cache
from pixyauth.config import resolve_settings
from pixyauth.discovery import resolve_endpoints
from pixyauth.exceptions import PixyAuthError
from pixyauth.models import AuthSettings, CacheBackend, ExecCredential, cache_identifier
from pixyauth.output import debug, error, print_data


def build_caching_provider(settings: AuthSettings, client: httpx.Client) -> CachingTokenProvider:
    """Wire the caching provider for *settings*: endpoints, cache, issuer provider.

    *client* is used for the token endpoint and stays owned by the caller.
    """
    endpoints = resolve_endpoints(settings)
    issuer = settings.issuer
    debug(f"Authorization endpoint: {endpoints.authorization_endpoint}")
    debug(f"Token endpoint: {endpoints.token_endpoint}")

    return CachingTokenProvider(
        new_token_cache(settings.cache_backend),
        new_default_token_provider(
            issuer,
            settings.with_refresh_token,
            endpoints,
            port=settings.callback_port,
            client=client,
        ),
        cache_identifier(issuer),
    )


def auth_command(
    ctx: typer.Context,
    use_id_token: bool = typer.Option(
        False, "--use-id-token", help="Return the id token instead of the access token."
    ),
    with_refresh_token: bool = typer.Option(
        False,
        "--with-refresh-token",
        help="Request offline_access and refresh expired tokens without the browser.",
    ),
    cache: Optional[CacheBackend] = typer.Option(
        None,
        "--cache",
        case_sensitive=False,
        help="Token cache backend (default: keyring, or $PIXYAUTH_CACHE).",
    ),
    port: Optional[int] = typer.Option(
        None, "--port", help="Loopback port for the sign-in callback (0 picks a free port)."
    ),
    authorization_endpoint: Optional[str] = typer.Option(
        None, "--authorization-endpoint", help="Skip discovery and use this authorize URL."
    ),
    token_endpoint: Optional[str] = typer.Option(
        None, "--token-endpoint", help="Skip discovery and use this token URL."
    ),
) -> None:
    """Retrieve auth credentials for Kubernetes.

    Authenticates using the cache, a refresh token or the browser, then
    prints the ExecCredential object ``kubectl`` expects on stdout.

    Raises:
        typer.Exit: With the failing error's exit code.
    """
    obj = ctx.obj or {}
    try:
        settings = resolve_settings(
            obj.get("issuer_endpoint"),
            obj.get("client_id"),
            obj.get("audience"),
            cache.value if cache is not None else None,
            use_id_token=use_id_token,
            with_refresh_token=with_refresh_token,
            callback_port=port,
            authorization_endpoint=authorization_endpoint,
            token_endpoint=token_endpoint,
        )
        # Token requests run without a timeout.
        with httpx.Client(timeout=None) as client:
            provider = build_caching_provider(settings, client)
            if settings.use_id_token:
                token = provider.get_id_token()
            else:
                token = provider.get_access_token()
    except PixyAuthError as exc:
        error(f"could not get token for auth: {exc}")
        raise typer.Exit(code=exc.exit_code) from None

    print_data(ExecCredential.for_token(token).to_json())
