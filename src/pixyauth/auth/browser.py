"""Opening the authorize URL in the user's browser."""

from __future__ import annotations

import logging
import webbrowser
from typing import Protocol

from pixyauth.exceptions import BrowserError

logger = logging.getLogger(__name__)


class BrowserOpener(Protocol):
    """Anything that can show a URL to the user."""

    def open_url(self, url: str) -> None:
        """Open *url*; raise :class:`~pixyauth.exceptions.BrowserError` on failure."""
        ...


class DefaultBrowserOpener:
    """Open URLs with :mod:`webbrowser`, which picks the platform's default handler."""

    def open_url(self, url: str) -> None:
        try:
            opened = webbrowser.open(url)
        except webbrowser.Error as exc:
            raise BrowserError(f"could not open a browser: {exc}") from exc
        if not opened:
            raise BrowserError("no runnable browser was found")
        logger.debug("Opened the authorize URL in the default browser")
