"""Shared test fixtures for pixyauth.

Provides reusable fixtures for isolated config environments, output state,
issuer values, signed test JWTs, and running CLI commands. These fixtures
are automatically discovered by pytest and available to all test modules
without explicit imports.
"""

from __future__ import annotations

import time
from pathlib import Path
from typing import Any, Callable

import jwt
import pytest

from pixyauth.models import Issuer, OIDCWellKnownEndpoints
from pixyauth.output import OutputManager, reset_output, set_output

_JWT_TEST_KEY = "pixyauth-test-signing-key-0123456789abcdef"


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager after every test.

    The OutputManager caches references to sys.stderr at creation time.
    When Typer's CliRunner redirects that stream during a test and the test
    finishes, the cached reference becomes stale. Resetting forces a fresh
    manager to be created on next use.
    """
    yield
    reset_output()


# ---------------------------------------------------------------------------
# Config isolation fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolate configuration to a temporary directory.

    Sets XDG_CONFIG_HOME and XDG_DATA_HOME to subdirectories of tmp_path,
    points KUBECONFIG into tmp_path, and clears all PIXYAUTH_* environment
    variables so that tests never touch real user config.

    Returns:
        The tmp_path root directory for additional file creation.
    """
    monkeypatch.setattr("pixyauth.config._is_xdg_platform", lambda: True)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    monkeypatch.setenv("KUBECONFIG", str(tmp_path / "kube" / "config"))

    for var in [
        "PIXYAUTH_ISSUER_ENDPOINT",
        "PIXYAUTH_CLIENT_ID",
        "PIXYAUTH_AUDIENCE",
        "PIXYAUTH_CACHE",
    ]:
        monkeypatch.delenv(var, raising=False)

    monkeypatch.chdir(tmp_path)
    return tmp_path


# ---------------------------------------------------------------------------
# Issuer fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def issuer() -> Issuer:
    return Issuer(issuer_endpoint="https://issuer", client_id="abc", audience="aud")


@pytest.fixture
def endpoints() -> OIDCWellKnownEndpoints:
    return OIDCWellKnownEndpoints(
        authorization_endpoint="https://issuer/authorize",
        token_endpoint="https://issuer/oauth/token",
    )


# ---------------------------------------------------------------------------
# Token fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def make_jwt() -> Callable[..., str]:
    """Factory for HS256 test tokens.

    ``make_jwt(expires_in=60)`` returns a token expiring a minute from now;
    pass ``exp=`` for an absolute expiry or ``exp=None`` to omit the claim.
    """
    _unset = object()

    def _make(expires_in: int = 3600, exp: Any = _unset, **claims: Any) -> str:
        payload: dict[str, Any] = {"sub": "user-1", **claims}
        if exp is _unset:
            payload["exp"] = int(time.time()) + expires_in
        elif exp is not None:
            payload["exp"] = exp
        return jwt.encode(payload, _JWT_TEST_KEY, algorithm="HS256")

    return _make


# ---------------------------------------------------------------------------
# Output fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def quiet_output() -> OutputManager:
    """Install a quiet, colourless output manager and reset it afterwards."""
    output = OutputManager(no_color=True, quiet=True)
    set_output(output)
    yield output
    reset_output()


# ---------------------------------------------------------------------------
# CLI runner fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def cli_runner():
    """Typer CLI test runner.

    Returns a CliRunner instance that captures stdout and stderr separately
    so tests can assert the ExecCredential is the only thing on stdout.
    """
    from typer.testing import CliRunner

    try:
        return CliRunner(mix_stderr=False)
    except TypeError:
        return CliRunner()
