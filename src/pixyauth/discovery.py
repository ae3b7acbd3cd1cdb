"""OpenID Connect discovery of the issuer's authorize and token endpoints.

The issuer publishes its endpoints at
``<issuer>/.well-known/openid-configuration``. :func:`resolve_endpoints`
prefers endpoints given explicitly in the settings and only fetches the
discovery document when none were given.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import httpx

from pixyauth.exceptions import DiscoveryError
from pixyauth.models import AuthSettings, OIDCWellKnownEndpoints

logger = logging.getLogger(__name__)

WELL_KNOWN_PATH = "/.well-known/openid-configuration"
_REQUIRED_FIELDS = ("authorization_endpoint", "token_endpoint")


def discovery_url(issuer_endpoint: str) -> str:
    return issuer_endpoint.rstrip("/") + WELL_KNOWN_PATH


def get_well_known_endpoints(
    issuer_endpoint: str,
    client: Optional[httpx.Client] = None,
) -> OIDCWellKnownEndpoints:
    """Fetch the issuer's discovery document and extract the two endpoints.

    Args:
        issuer_endpoint: Base URL of the issuer.
        client: HTTP client to use. A short-lived client is created when
            omitted.

    Raises:
        DiscoveryError: If the document cannot be fetched, is not JSON, or
            lacks ``authorization_endpoint`` or ``token_endpoint``.
    """
    url = discovery_url(issuer_endpoint)
    logger.debug("GET %s", url)

    try:
        if client is None:
            with httpx.Client(timeout=30.0) as own_client:
                response = own_client.get(url, headers={"Accept": "application/json"})
        else:
            response = client.get(url, headers={"Accept": "application/json"})
        response.raise_for_status()
        doc: Any = response.json()
    except httpx.HTTPStatusError as exc:
        raise DiscoveryError(
            f"OpenID discovery failed with status {exc.response.status_code}"
        ) from exc
    except (httpx.HTTPError, httpx.InvalidURL) as exc:
        raise DiscoveryError(f"OpenID discovery failed: {exc}") from exc
    except ValueError as exc:
        raise DiscoveryError(f"OpenID discovery document at {url} is not JSON") from exc

    if not isinstance(doc, dict):
        raise DiscoveryError(f"OpenID discovery document at {url} is not a JSON object")
    for field in _REQUIRED_FIELDS:
        if not isinstance(doc.get(field), str) or not doc[field]:
            raise DiscoveryError(f"OpenID discovery document missing '{field}'")

    return OIDCWellKnownEndpoints(
        authorization_endpoint=doc["authorization_endpoint"],
        token_endpoint=doc["token_endpoint"],
    )


def resolve_endpoints(
    settings: AuthSettings,
    client: Optional[httpx.Client] = None,
) -> OIDCWellKnownEndpoints:
    """Return the endpoints from *settings*, discovering them when not set."""
    if settings.authorization_endpoint and settings.token_endpoint:
        logger.debug("Using explicitly configured issuer endpoints")
        return OIDCWellKnownEndpoints(
            authorization_endpoint=settings.authorization_endpoint,
            token_endpoint=settings.token_endpoint,
        )
    return get_well_known_endpoints(settings.issuer_endpoint, client)
