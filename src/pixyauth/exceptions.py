"""Exception hierarchy for pixyauth.

All exceptions inherit from :class:`PixyAuthError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`pixyauth.exit_codes`.
The top-level error handler in :func:`pixyauth.app.main` catches
``PixyAuthError`` and exits with the appropriate code, while unexpected
exceptions produce a crash log and exit with :data:`EXIT_GENERIC_FAILURE`.

Subclass hierarchy::

    PixyAuthError (exit 1)
    +-- InvalidUsageError          (exit 2)
    +-- AuthError                  (exit 3)
    |   +-- CallbackError
    |   +-- TokenEndpointStatusError
    |   +-- TokenDecodeError
    +-- DiscoveryError             (exit 3)
    +-- TokenTransportError        (exit 6)
    +-- CacheError                 (exit 8)
    +-- BrowserError               (exit 1)
    +-- ConfigError                (exit 1)
        +-- RefreshNotAllowedError
"""

from pixyauth.exit_codes import (
    EXIT_AUTH_FAILURE,
    EXIT_CACHE_ERROR,
    EXIT_CONNECTION_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
)


class PixyAuthError(Exception):
    """Base exception for all pixyauth errors.

    Every subclass sets a class-level ``exit_code`` corresponding to one of
    the constants in :mod:`pixyauth.exit_codes`. The entry point catches
    this exception type and calls ``sys.exit(exc.exit_code)``.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class InvalidUsageError(PixyAuthError):
    """Raised for invalid CLI arguments or missing required options."""

    exit_code = EXIT_INVALID_USAGE


class AuthError(PixyAuthError):
    """Raised when the authorization flow or a token exchange fails."""

    exit_code = EXIT_AUTH_FAILURE


class CallbackError(AuthError):
    """Raised when the loopback callback reports a failure.

    Covers a state mismatch, an ``error`` parameter sent by the issuer, and a
    callback that carried neither an error nor a code.
    """


class TokenEndpointStatusError(AuthError):
    """Raised when the token endpoint answers outside the 2xx range.

    The response body is deliberately not parsed; only the status code is
    reported.

    Args:
        status_code: The HTTP status returned by the token endpoint.
    """

    def __init__(self, status_code: int):
        super().__init__(f"a non-success status code was received: {status_code}")
        self.status_code = status_code


class TokenDecodeError(AuthError):
    """Raised when a successful token response body cannot be decoded."""


class DiscoveryError(PixyAuthError):
    """Raised when the issuer's OpenID discovery document is unusable."""

    exit_code = EXIT_AUTH_FAILURE


class TokenTransportError(PixyAuthError):
    """Raised when a request to the issuer cannot be sent or its response read."""

    exit_code = EXIT_CONNECTION_ERROR


class CacheError(PixyAuthError):
    """Raised when the token cache backend fails to read or write."""

    exit_code = EXIT_CACHE_ERROR


class BrowserError(PixyAuthError):
    """Raised when the authorize URL could not be opened in a browser.

    Opening the browser is best-effort; callers log this and carry on.
    """


class ConfigError(PixyAuthError):
    """Raised for configuration problems (missing issuer settings, bad files)."""

    exit_code = EXIT_GENERIC_FAILURE


class RefreshNotAllowedError(ConfigError):
    """Raised when a refresh exchange is requested on a provider built without refresh support."""
