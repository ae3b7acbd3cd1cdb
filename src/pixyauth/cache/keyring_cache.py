"""Token cache backed by the OS keyring.

Each cache identifier is a keyring "username" under the ``pixyauth``
service; the password is the JSON-serialised
:class:`~pixyauth.models.TokenResult`. Encryption at rest is the keyring's
business.
"""

from __future__ import annotations

import logging
from typing import Optional

import keyring
from keyring.backend import KeyringBackend
from keyring.errors import KeyringError
from pydantic import ValidationError

from pixyauth.exceptions import CacheError
from pixyauth.models import TokenResult

logger = logging.getLogger(__name__)

DEFAULT_SERVICE_NAME = "pixyauth"


class KeyringTokenCache:
    """Store tokens in the system keyring.

    Args:
        service_name: Keyring service the entries are filed under.
        backend: Keyring backend to use. Defaults to whatever
            :func:`keyring.get_keyring` selects for the platform.
    """

    def __init__(
        self,
        service_name: str = DEFAULT_SERVICE_NAME,
        backend: Optional[KeyringBackend] = None,
    ) -> None:
        self._service_name = service_name
        self._backend = backend

    @property
    def backend(self) -> KeyringBackend:
        if self._backend is None:
            self._backend = keyring.get_keyring()
        return self._backend

    def get_tokens(self, identifier: str) -> Optional[TokenResult]:
        """Return the cached tokens for *identifier*, or ``None`` if there are none.

        Raises:
            CacheError: If the keyring fails or the stored value is not a
                token result.
        """
        try:
            stored = self.backend.get_password(self._service_name, identifier)
        except KeyringError as exc:
            raise CacheError(f"keyring read failed: {exc}") from exc

        if stored is None:
            logger.debug("No keyring entry for %s", identifier)
            return None

        try:
            return TokenResult.model_validate_json(stored)
        except ValidationError as exc:
            raise CacheError(f"keyring entry for {identifier} is not valid JSON tokens") from exc

    def cache_tokens(self, identifier: str, tokens: TokenResult) -> None:
        try:
            self.backend.set_password(self._service_name, identifier, tokens.model_dump_json())
        except KeyringError as exc:
            raise CacheError(f"keyring write failed: {exc}") from exc
        logger.debug("Stored tokens for %s in the keyring", identifier)
