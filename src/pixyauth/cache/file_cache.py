"""Token cache backed by a YAML file.

The file holds every client's tokens in one document::

    clients:
      abc-aud:
        access_token: eyJ...
        id_token: ""
        refresh_token: RT1
        expires_in: 3600

Writes go through :func:`~pixyauth.config.atomic_write` with ``0o600``
permissions, and entries for other identifiers are preserved.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import ValidationError

from pixyauth.config import atomic_write, token_cache_path
from pixyauth.exceptions import CacheError
from pixyauth.models import TokenResult

logger = logging.getLogger(__name__)

_CLIENTS_KEY = "clients"


class FileTokenCache:
    """Store tokens in a YAML file readable only by the current user.

    Args:
        path: The YAML file. Defaults to :func:`~pixyauth.config.token_cache_path`.
    """

    def __init__(self, path: Optional[Path] = None) -> None:
        self._path = path

    @property
    def path(self) -> Path:
        if self._path is None:
            self._path = token_cache_path()
        return self._path

    def get_tokens(self, identifier: str) -> Optional[TokenResult]:
        """Return the cached tokens for *identifier*, or ``None`` if there are none.

        A missing file is a cache miss.

        Raises:
            CacheError: If the file cannot be read or does not hold a valid
                token document.
        """
        entry = self._load_clients().get(identifier)
        if entry is None:
            logger.debug("No cached tokens for %s in %s", identifier, self.path)
            return None

        try:
            return TokenResult.model_validate(entry)
        except ValidationError as exc:
            raise CacheError(f"cached tokens for {identifier} in {self.path} are invalid") from exc

    def cache_tokens(self, identifier: str, tokens: TokenResult) -> None:
        clients = self._load_clients()
        clients[identifier] = tokens.model_dump()
        document = yaml.safe_dump({_CLIENTS_KEY: clients}, default_flow_style=False, sort_keys=True)

        try:
            atomic_write(self.path, document, mode=0o600)
        except OSError as exc:
            raise CacheError(f"could not write {self.path}: {exc}") from exc
        logger.debug("Stored tokens for %s in %s", identifier, self.path)

    def _load_clients(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}

        try:
            raw = self.path.read_text(encoding="utf-8")
            document = yaml.safe_load(raw)
        except OSError as exc:
            raise CacheError(f"could not read {self.path}: {exc}") from exc
        except yaml.YAMLError as exc:
            raise CacheError(f"invalid YAML in {self.path}: {exc}") from exc

        if document is None:
            return {}
        if not isinstance(document, dict):
            raise CacheError(f"{self.path} must contain a YAML mapping")

        clients = document.get(_CLIENTS_KEY) or {}
        if not isinstance(clients, dict):
            raise CacheError(f"'{_CLIENTS_KEY}' in {self.path} must be a mapping")
        return clients
