"""Configuration management with XDG paths, atomic writes, and settings resolution.

This module handles all persistent configuration for pixyauth:

* **Directory layout** -- XDG Base Directory compliant on Linux/BSD,
  ``~/.pixyauth/`` on macOS and Windows. See :func:`get_config_dir` and
  :func:`get_data_dir`.
* **Settings resolution** -- :func:`resolve_settings` merges CLI flags and
  environment variables into a single :class:`~pixyauth.models.AuthSettings`
  that the entry point passes into every constructor.
* **Well-known file locations** -- :func:`token_cache_path` for the file
  backed token cache and :func:`default_kubeconfig_path` for ``init``.

All file writes use an atomic temp-file-then-rename strategy
(:func:`atomic_write`) so a crash never leaves a half-written token cache or
kube config behind.
"""

from __future__ import annotations

import os
import platform
import tempfile
from pathlib import Path
from typing import Any, Optional

from pydantic import ValidationError

from pixyauth.exceptions import ConfigError, InvalidUsageError
from pixyauth.models import AuthSettings

_APP_NAME = "pixyauth"
_TOKEN_CACHE_FILENAME = "config.yaml"

ENV_ISSUER_ENDPOINT = "PIXYAUTH_ISSUER_ENDPOINT"
ENV_CLIENT_ID = "PIXYAUTH_CLIENT_ID"
ENV_AUDIENCE = "PIXYAUTH_AUDIENCE"
ENV_CACHE = "PIXYAUTH_CACHE"


# --- XDG path resolution ---


def _is_xdg_platform() -> bool:
    """Return True if the platform follows the XDG Base Directory layout (Linux/BSD)."""
    return platform.system() == "Linux" or platform.system().endswith("BSD")


def _fallback_base_dir() -> Path:
    """Fallback base directory for non-XDG platforms (macOS, Windows)."""
    return Path.home() / f".{_APP_NAME}"


def _xdg_base(env_var: str, default_segments: tuple[str, ...]) -> Path:
    """Resolve an XDG base directory from an env var with fallback segments under $HOME."""
    env_value = os.environ.get(env_var, "")
    if env_value:
        return Path(env_value)
    base = Path.home()
    for seg in default_segments:
        base = base / seg
    return base


def get_config_dir() -> Path:
    """Return the configuration directory, creating it if necessary.

    On Linux/BSD: ``$XDG_CONFIG_HOME/pixyauth/`` (default ``~/.config/pixyauth/``).
    On macOS/Windows: ``~/.pixyauth/``.

    Returns:
        Absolute path to the configuration directory (guaranteed to exist).
    """
    if _is_xdg_platform():
        base = _xdg_base("XDG_CONFIG_HOME", (".config",))
        path = base / _APP_NAME
    else:
        path = _fallback_base_dir()
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_data_dir() -> Path:
    """Return the data directory (crash logs), creating it if necessary.

    On Linux/BSD: ``$XDG_DATA_HOME/pixyauth/`` (default ``~/.local/share/pixyauth/``).
    On macOS/Windows: ``~/.pixyauth/data/``.

    Returns:
        Absolute path to the data directory (guaranteed to exist).
    """
    if _is_xdg_platform():
        base = _xdg_base("XDG_DATA_HOME", (".local", "share"))
        path = base / _APP_NAME
    else:
        path = _fallback_base_dir() / "data"
    path.mkdir(parents=True, exist_ok=True)
    return path


def token_cache_path() -> Path:
    """Path of the YAML file used by :class:`~pixyauth.cache.FileTokenCache`."""
    return get_config_dir() / _TOKEN_CACHE_FILENAME


def default_kubeconfig_path() -> Path:
    """Return the kube config file ``init`` edits.

    Follows ``kubectl``: the first entry of ``$KUBECONFIG`` when set,
    otherwise ``~/.kube/config``.
    """
    env_value = os.environ.get("KUBECONFIG", "")
    for entry in env_value.split(os.pathsep):
        if entry:
            return Path(entry).expanduser()
    return Path.home() / ".kube" / "config"


# --- Atomic file writes ---


def atomic_write(path: Path, data: str, mode: Optional[int] = None) -> None:
    """Write data to file atomically using temp file + rename.

    The temporary file is created in the same directory as *path* so that
    ``os.replace`` is guaranteed to be an atomic rename on POSIX systems.
    When *mode* is given it is applied before any content is written, so
    secrets are never readable by others, even momentarily.
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    fd = None
    tmp_path: Optional[str] = None
    try:
        fd = tempfile.NamedTemporaryFile(
            mode="w",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
            encoding="utf-8",
        )
        tmp_path = fd.name
        if mode is not None:
            os.chmod(tmp_path, mode)
        fd.write(data)
        fd.flush()
        os.fsync(fd.fileno())
        fd.close()
        fd = None  # prevent double-close below
        os.replace(tmp_path, path)
    except BaseException:
        # Clean up the temp file on any error (including KeyboardInterrupt).
        if fd is not None:
            fd.close()
        if tmp_path is not None:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
        raise


# --- Settings resolution ---


def _pick(cli_value: Optional[str], env_var: str) -> Optional[str]:
    """CLI flag first, then the environment, ignoring empty strings."""
    if cli_value:
        return cli_value
    return os.environ.get(env_var) or None


def resolve_settings(
    issuer_endpoint: Optional[str] = None,
    client_id: Optional[str] = None,
    audience: Optional[str] = None,
    cache_backend: Optional[str] = None,
    **options: object,
) -> AuthSettings:
    """Resolve the effective :class:`~pixyauth.models.AuthSettings`.

    Precedence (high to low):
        1. CLI flags
        2. Environment variables (``PIXYAUTH_ISSUER_ENDPOINT``,
           ``PIXYAUTH_CLIENT_ID``, ``PIXYAUTH_AUDIENCE``, ``PIXYAUTH_CACHE``)
        3. Model defaults

    Args:
        issuer_endpoint: ``--issuer-endpoint`` value.
        client_id: ``--client-id`` value.
        audience: ``--audience`` value.
        cache_backend: ``--cache`` value (``keyring`` or ``file``).
        **options: Remaining :class:`AuthSettings` fields taken verbatim
            (``None`` values are dropped so model defaults apply).

    Returns:
        The validated settings.

    Raises:
        ConfigError: If a required value is missing or a value is invalid.
        InvalidUsageError: If only one of the two explicit endpoints is given.
    """
    resolved: dict[str, Any] = {
        "issuer_endpoint": _pick(issuer_endpoint, ENV_ISSUER_ENDPOINT),
        "client_id": _pick(client_id, ENV_CLIENT_ID),
        "audience": _pick(audience, ENV_AUDIENCE),
    }
    missing = [
        "--" + name.replace("_", "-") for name, value in resolved.items() if value is None
    ]
    if missing:
        raise ConfigError(f"Missing required option(s): {', '.join(missing)}")

    backend = _pick(cache_backend, ENV_CACHE)
    if backend is not None:
        resolved["cache_backend"] = backend
    resolved.update({key: value for key, value in options.items() if value is not None})

    if bool(resolved.get("authorization_endpoint")) != bool(resolved.get("token_endpoint")):
        raise InvalidUsageError(
            "--authorization-endpoint and --token-endpoint must be given together"
        )

    resolved["issuer_endpoint"] = resolved["issuer_endpoint"].rstrip("/")
    try:
        return AuthSettings.model_validate(resolved)
    except ValidationError as exc:
        raise ConfigError(f"Invalid settings: {exc}") from exc

