"""Expiry peek at JWT claims WITHOUT signature verification.

Nothing here verifies a token. The API server that receives the token does
the real validation; this module only answers "is the cached token still
worth sending?" so that an expired entry triggers a refresh or a new login.
Never use it to make a trust decision.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Optional

import jwt

logger = logging.getLogger(__name__)


def peek_claims(token: str) -> Optional[dict[str, Any]]:
    """Decode *token*'s claims without checking signature or expiry.

    Returns:
        The claims dict, or ``None`` when *token* is not a well-formed JWT.
    """
    if not token:
        return None
    try:
        return jwt.decode(
            token,
            options={"verify_signature": False, "verify_exp": False},
        )
    except jwt.PyJWTError as exc:
        logger.debug("Cached token is not a well-formed JWT: %s", exc)
        return None


def is_token_unexpired(token: str, now: Optional[float] = None) -> bool:
    """Return True when *token* is JWT-shaped and its ``exp`` lies strictly after *now*.

    A token expiring exactly at *now* counts as expired. Tokens without a
    numeric ``exp`` claim are treated as expired so they get replaced.

    Args:
        token: The encoded token.
        now: POSIX timestamp to compare against. Defaults to
            :func:`time.time`.
    """
    claims = peek_claims(token)
    if claims is None:
        return False

    exp = claims.get("exp")
    if isinstance(exp, bool) or not isinstance(exp, (int, float)):
        return False

    if now is None:
        now = time.time()
    return now < exp
