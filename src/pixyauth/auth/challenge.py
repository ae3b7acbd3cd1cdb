"""PKCE challenge generation (:rfc:`7636`, method ``S256``)."""

from __future__ import annotations

import base64
import hashlib
import secrets

from pixyauth.models import Challenge

VERIFIER_BYTES = 32
CHALLENGE_METHOD = "S256"


def _b64url(data: bytes) -> str:
    """Base64url without ``=`` padding."""
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def derive_challenge_code(verifier: str) -> str:
    """Return ``base64url(SHA256(verifier))`` for a verifier string."""
    digest = hashlib.sha256(verifier.encode("utf-8")).digest()
    return _b64url(digest)


def generate_challenge(length: int = VERIFIER_BYTES) -> Challenge:
    """Generate a fresh PKCE verifier and its ``S256`` challenge.

    The verifier is *length* bytes from :mod:`secrets`, base64url-encoded
    without padding (43 characters for the default 32 bytes).

    Args:
        length: Number of random bytes behind the verifier. Must be at
            least 32.

    Returns:
        A new :class:`~pixyauth.models.Challenge`.
    """
    if length < VERIFIER_BYTES:
        raise ValueError(f"PKCE verifier needs at least {VERIFIER_BYTES} random bytes")
    verifier = _b64url(secrets.token_bytes(length))
    return Challenge(
        verifier=verifier,
        code=derive_challenge_code(verifier),
        method=CHALLENGE_METHOD,
    )
