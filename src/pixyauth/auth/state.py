"""Per-flow ``state`` values correlating a callback with the request that started it."""

from __future__ import annotations

import secrets

STATE_BYTES = 32


def generate_state() -> str:
    """Return an unguessable, URL-safe state string (32 random bytes)."""
    return secrets.token_urlsafe(STATE_BYTES)
