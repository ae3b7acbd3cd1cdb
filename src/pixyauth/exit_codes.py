"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~pixyauth.exceptions.PixyAuthError` subclass.
``kubectl`` reports a failing exec plugin with its exit status, so wrapper
scripts can tell an auth failure from a broken cache without parsing stderr.

Example::

    $ pixyauth -i https://issuer -c abc -a aud auth
    $ echo $?
    3   # EXIT_AUTH_FAILURE -- the issuer rejected the flow
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments or missing required options."""

EXIT_AUTH_FAILURE = 3
"""The authorization flow or a token exchange failed."""

EXIT_CONNECTION_ERROR = 6
"""A network-level error occurred while talking to the issuer."""

EXIT_CACHE_ERROR = 8
"""The token cache backend could not be read or written."""

EXIT_INTERRUPTED = 130
"""The user pressed Ctrl-C."""
