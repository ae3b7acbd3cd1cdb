"""Authorization code + PKCE flow for kubectl credentials.

The package is layered bottom-up:

- :func:`generate_challenge` and :func:`generate_state` -- per-attempt secrets.
- :class:`CallbackListener` -- loopback HTTP server that receives the redirect.
- :class:`LocalhostCodeProvider` -- browser leg of the flow.
- :class:`TokenRetriever` -- token endpoint exchanges.
- :class:`TokenProvider` -- authenticate or refresh against the issuer.
- :class:`CachingTokenProvider` -- cache-first wrapper used by the CLI.

Typical usage::

    from pixyauth.auth import CachingTokenProvider, new_default_token_provider

    provider = CachingTokenProvider(
        cache,
        new_default_token_provider(issuer, allow_refresh=True, endpoints=endpoints),
        cache_identifier(issuer),
    )
    token = provider.get_access_token()
"""

from pixyauth.auth.browser import BrowserOpener, DefaultBrowserOpener
from pixyauth.auth.caching import CachingTokenProvider, IssuerTokenProvider, TokenCache
from pixyauth.auth.callback_listener import CallbackListener
from pixyauth.auth.challenge import generate_challenge
from pixyauth.auth.code_provider import LocalhostCodeProvider
from pixyauth.auth.state import generate_state
from pixyauth.auth.token_exchanger import TokenRetriever
from pixyauth.auth.token_provider import TokenProvider, new_default_token_provider

__all__ = [
    "BrowserOpener",
    "CachingTokenProvider",
    "CallbackListener",
    "DefaultBrowserOpener",
    "IssuerTokenProvider",
    "LocalhostCodeProvider",
    "TokenCache",
    "TokenProvider",
    "TokenRetriever",
    "generate_challenge",
    "generate_state",
    "new_default_token_provider",
]
