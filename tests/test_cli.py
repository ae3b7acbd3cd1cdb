"""Tests for the pixyauth CLI commands."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Optional

import httpx
import pytest
import yaml

from pixyauth import __version__
from pixyauth.app import app
from pixyauth.exceptions import CacheError, CallbackError
from pixyauth.models import CacheBackend, Issuer, OIDCWellKnownEndpoints, TokenResult

ISSUER_ARGS = ["-i", "https://issuer", "-c", "abc", "-a", "aud"]
ENDPOINT_ARGS = [
    "--authorization-endpoint",
    "https://issuer/authorize",
    "--token-endpoint",
    "https://issuer/oauth/token",
]


class MemoryCache:
    def __init__(self) -> None:
        self.entries: dict[str, TokenResult] = {}

    def get_tokens(self, identifier: str) -> Optional[TokenResult]:
        return self.entries.get(identifier)

    def cache_tokens(self, identifier: str, tokens: TokenResult) -> None:
        self.entries[identifier] = tokens


class FakeIssuerProvider:
    def __init__(self, error: Optional[Exception] = None) -> None:
        self.error = error

    def authenticate(self) -> TokenResult:
        if self.error is not None:
            raise self.error
        return TokenResult(access_token="AT1", id_token="ID1", refresh_token="RT1", expires_in=3600)

    def from_refresh_token(self, refresh_token: str) -> TokenResult:
        raise AssertionError("no refresh expected")


@pytest.fixture
def wiring(monkeypatch: pytest.MonkeyPatch, isolated_config: Path) -> dict[str, Any]:
    """Replace the cache and issuer provider the auth command builds."""
    state: dict[str, Any] = {"cache": MemoryCache(), "provider": FakeIssuerProvider(), "calls": []}

    def fake_cache(backend: CacheBackend) -> MemoryCache:
        state["backend"] = backend
        return state["cache"]

    def fake_provider(
        issuer: Issuer,
        allow_refresh: bool,
        endpoints: OIDCWellKnownEndpoints,
        **kwargs: Any,
    ) -> FakeIssuerProvider:
        state["calls"].append((issuer, allow_refresh, endpoints, kwargs))
        return state["provider"]

    monkeypatch.setattr("pixyauth.commands.auth.new_token_cache", fake_cache)
    monkeypatch.setattr("pixyauth.commands.auth.new_default_token_provider", fake_provider)
    return state


class TestAuthCommand:
    def test_prints_exec_credential(self, cli_runner: Any, wiring: dict[str, Any]) -> None:
        result = cli_runner.invoke(app, [*ISSUER_ARGS, "auth", *ENDPOINT_ARGS])

        assert result.exit_code == 0, result.output
        assert json.loads(result.stdout) == {
            "kind": "ExecCredential",
            "apiVersion": "client.authentication.k8s.io/v1beta1",
            "spec": {},
            "status": {"token": "AT1"},
        }

    def test_use_id_token(self, cli_runner: Any, wiring: dict[str, Any]) -> None:
        result = cli_runner.invoke(app, [*ISSUER_ARGS, "auth", "--use-id-token", *ENDPOINT_ARGS])

        assert result.exit_code == 0, result.output
        assert json.loads(result.stdout)["status"]["token"] == "ID1"

    def test_tokens_are_cached_under_client_and_audience(
        self, cli_runner: Any, wiring: dict[str, Any]
    ) -> None:
        cli_runner.invoke(app, [*ISSUER_ARGS, "auth", *ENDPOINT_ARGS])

        assert wiring["cache"].entries["abc-aud"].access_token == "AT1"

    def test_settings_reach_the_provider(self, cli_runner: Any, wiring: dict[str, Any]) -> None:
        result = cli_runner.invoke(
            app,
            [
                *ISSUER_ARGS,
                "auth",
                "--with-refresh-token",
                "--cache",
                "file",
                "--port",
                "0",
                *ENDPOINT_ARGS,
            ],
        )

        assert result.exit_code == 0, result.output
        issuer, allow_refresh, endpoints, kwargs = wiring["calls"][0]
        assert issuer == Issuer(issuer_endpoint="https://issuer", client_id="abc", audience="aud")
        assert allow_refresh is True
        assert endpoints.token_endpoint == "https://issuer/oauth/token"
        assert kwargs["port"] == 0
        assert isinstance(kwargs["client"], httpx.Client)
        assert wiring["backend"] is CacheBackend.FILE

    def test_missing_issuer_options(self, cli_runner: Any, wiring: dict[str, Any]) -> None:
        result = cli_runner.invoke(app, ["auth", *ENDPOINT_ARGS])

        assert result.exit_code == 1
        assert result.stdout == ""
        assert "could not get token for auth: Missing required option(s)" in result.stderr

    def test_flow_error_exit_code(self, cli_runner: Any, wiring: dict[str, Any]) -> None:
        wiring["provider"] = FakeIssuerProvider(
            error=CallbackError("callback completed with incorrect state")
        )

        result = cli_runner.invoke(app, [*ISSUER_ARGS, "auth", *ENDPOINT_ARGS])

        assert result.exit_code == 3
        assert result.stdout == ""
        assert "could not get token for auth: callback completed with incorrect state" in result.stderr

    def test_cache_error_exit_code(
        self, cli_runner: Any, wiring: dict[str, Any]
    ) -> None:
        class BrokenCache(MemoryCache):
            def get_tokens(self, identifier: str) -> Optional[TokenResult]:
                raise CacheError("keyring read failed: locked")

        wiring["cache"] = BrokenCache()

        result = cli_runner.invoke(app, [*ISSUER_ARGS, "auth", *ENDPOINT_ARGS])

        assert result.exit_code == 8
        assert "could not get tokens from the cache" in result.stderr

    def test_token_client_is_closed(self, cli_runner: Any, wiring: dict[str, Any]) -> None:
        result = cli_runner.invoke(app, [*ISSUER_ARGS, "auth", *ENDPOINT_ARGS])

        assert result.exit_code == 0, result.output
        client = wiring["calls"][0][3]["client"]
        assert client.is_closed

    def test_token_client_is_closed_on_error(
        self, cli_runner: Any, wiring: dict[str, Any]
    ) -> None:
        wiring["provider"] = FakeIssuerProvider(
            error=CallbackError("callback completed with incorrect state")
        )

        result = cli_runner.invoke(app, [*ISSUER_ARGS, "auth", *ENDPOINT_ARGS])

        assert result.exit_code == 3
        assert wiring["calls"][0][3]["client"].is_closed


class TestInitCommand:
    def test_writes_exec_user(self, cli_runner: Any, isolated_config: Path) -> None:
        kubeconfig = isolated_config / "kube" / "config"

        result = cli_runner.invoke(
            app,
            [
                *ISSUER_ARGS,
                "init",
                "--context-name",
                "prod",
                "--with-refresh-token",
                "--kubeconfig",
                str(kubeconfig),
                "--command",
                "/usr/local/bin/pixyauth",
            ],
        )

        assert result.exit_code == 0, result.output
        config = yaml.safe_load(kubeconfig.read_text(encoding="utf-8"))
        user = config["users"][0]
        assert user["name"] == "prod-exec-auth"
        assert user["user"]["exec"]["command"] == "/usr/local/bin/pixyauth"
        assert user["user"]["exec"]["args"] == [
            "--issuer-endpoint",
            "https://issuer",
            "--client-id",
            "abc",
            "--audience",
            "aud",
            "auth",
            "--with-refresh-token",
        ]
        assert config["contexts"][0] == {"name": "prod", "context": {"user": "prod-exec-auth"}}

    def test_writes_cache_and_port(self, cli_runner: Any, isolated_config: Path) -> None:
        kubeconfig = isolated_config / "kube" / "config"

        result = cli_runner.invoke(
            app,
            [
                *ISSUER_ARGS,
                "init",
                "-n",
                "prod",
                "--cache",
                "FILE",
                "--port",
                "18000",
                "--kubeconfig",
                str(kubeconfig),
                "--command",
                "pixyauth",
            ],
        )

        assert result.exit_code == 0, result.output
        config = yaml.safe_load(kubeconfig.read_text(encoding="utf-8"))
        args = config["users"][0]["user"]["exec"]["args"]
        assert args[args.index("auth"):] == ["auth", "--cache", "file", "--port", "18000"]

    def test_rejects_out_of_range_port(self, cli_runner: Any, isolated_config: Path) -> None:
        result = cli_runner.invoke(
            app, [*ISSUER_ARGS, "init", "-n", "prod", "--port", "70000", "--command", "pixyauth"]
        )

        assert result.exit_code == 2
        assert not (isolated_config / "kube" / "config").exists()

    def test_defaults_to_kubeconfig_env(self, cli_runner: Any, isolated_config: Path) -> None:
        result = cli_runner.invoke(
            app, [*ISSUER_ARGS, "init", "-n", "dev", "--command", "pixyauth"]
        )

        assert result.exit_code == 0, result.output
        assert (isolated_config / "kube" / "config").exists()

    def test_requires_context_name(self, cli_runner: Any, isolated_config: Path) -> None:
        result = cli_runner.invoke(app, [*ISSUER_ARGS, "init"])
        assert result.exit_code == 2

    def test_requires_issuer(self, cli_runner: Any, isolated_config: Path) -> None:
        result = cli_runner.invoke(app, ["init", "-n", "dev", "--command", "pixyauth"])

        assert result.exit_code == 1
        assert "Missing required option(s)" in result.stderr


class TestVersion:
    def test_version_command(self, cli_runner: Any) -> None:
        result = cli_runner.invoke(app, ["version"])
        assert result.exit_code == 0
        assert __version__ in result.stdout

    def test_version_flag(self, cli_runner: Any) -> None:
        result = cli_runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert f"pixyauth {__version__}" in result.stdout


class TestAuthUsage:
    def test_unpaired_endpoint_is_usage_error(
        self, cli_runner: Any, wiring: dict[str, Any]
    ) -> None:
        result = cli_runner.invoke(
            app,
            [*ISSUER_ARGS, "auth", "--token-endpoint", "https://issuer/oauth/token"],
        )

        assert result.exit_code == 2
        assert "must be given together" in result.stderr
