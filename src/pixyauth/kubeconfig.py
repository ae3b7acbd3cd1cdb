"""Registering ``pixyauth auth`` as an exec credential plugin in a kube config.

``pixyauth init`` adds (or replaces) a user entry named
``<context>-exec-auth`` whose ``exec`` block runs this tool, then points the
context at that user. Everything else in the file is left as it was.

The file is plain YAML in the ``kind: Config`` layout ``kubectl`` reads, so
it is edited as a mapping rather than through a Kubernetes client library.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Optional

import yaml

from pixyauth.config import atomic_write
from pixyauth.exceptions import ConfigError
from pixyauth.models import EXEC_CREDENTIAL_API_VERSION, CacheBackend, Issuer

logger = logging.getLogger(__name__)


def exec_user_name(context_name: str) -> str:
    return f"{context_name}-exec-auth"


def build_exec_args(
    issuer: Issuer,
    use_id_token: bool = False,
    with_refresh_token: bool = False,
    cache: Optional[CacheBackend] = None,
    port: Optional[int] = None,
) -> list[str]:
    """Arguments ``kubectl`` passes to the plugin; global options come before ``auth``.

    ``cache`` and ``port`` are only written when given, so ``auth`` keeps its
    own defaults otherwise.
    """
    args = [
        "--issuer-endpoint",
        issuer.issuer_endpoint,
        "--client-id",
        issuer.client_id,
        "--audience",
        issuer.audience,
        "auth",
    ]
    if use_id_token:
        args.append("--use-id-token")
    if with_refresh_token:
        args.append("--with-refresh-token")
    if cache is not None:
        args.extend(["--cache", cache.value])
    if port is not None:
        args.extend(["--port", str(port)])
    return args


def load_kubeconfig(path: Path) -> dict[str, Any]:
    """Read *path* as a kube config mapping; a missing or empty file is a new config.

    Raises:
        ConfigError: If the file cannot be read or is not a YAML mapping.
    """
    if not path.exists():
        return {"apiVersion": "v1", "kind": "Config"}

    try:
        document = yaml.safe_load(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise ConfigError(f"Error loading kube config: {exc}") from exc
    except yaml.YAMLError as exc:
        raise ConfigError(f"Error loading kube config: invalid YAML in {path}: {exc}") from exc

    if document is None:
        return {"apiVersion": "v1", "kind": "Config"}
    if not isinstance(document, dict):
        raise ConfigError(f"Error loading kube config: {path} is not a YAML mapping")
    return document


def _named_list(config: dict[str, Any], key: str) -> list[dict[str, Any]]:
    entries = config.get(key)
    if entries is None:
        entries = []
        config[key] = entries
    if not isinstance(entries, list):
        raise ConfigError(f"Error loading kube config: '{key}' must be a list")
    return entries


def _find(entries: list[dict[str, Any]], name: str) -> dict[str, Any] | None:
    for entry in entries:
        if isinstance(entry, dict) and entry.get("name") == name:
            return entry
    return None


def set_exec_user(
    config: dict[str, Any],
    context_name: str,
    command: str,
    args: list[str],
) -> str:
    """Add or replace the exec user for *context_name* and point the context at it.

    The context is created when it does not exist yet. Returns the user name.
    """
    user_name = exec_user_name(context_name)
    user_entry = {
        "name": user_name,
        "user": {
            "exec": {
                "apiVersion": EXEC_CREDENTIAL_API_VERSION,
                "command": command,
                "args": args,
            }
        },
    }

    users = _named_list(config, "users")
    existing_user = _find(users, user_name)
    if existing_user is None:
        users.append(user_entry)
    else:
        users[users.index(existing_user)] = user_entry

    contexts = _named_list(config, "contexts")
    context = _find(contexts, context_name)
    if context is None:
        context = {"name": context_name, "context": {}}
        contexts.append(context)
    if not isinstance(context.get("context"), dict):
        context["context"] = {}
    context["context"]["user"] = user_name

    return user_name


def update_kubeconfig(
    path: Path,
    context_name: str,
    command: str,
    args: list[str],
) -> str:
    """Load *path*, register the exec user for *context_name*, and write it back atomically.

    Returns:
        The name of the user entry that was written.

    Raises:
        ConfigError: If the kube config cannot be read, parsed or saved.
    """
    config = load_kubeconfig(path)
    user_name = set_exec_user(config, context_name, command, args)

    try:
        atomic_write(path, yaml.safe_dump(config, default_flow_style=False, sort_keys=False), mode=0o600)
    except OSError as exc:
        raise ConfigError(f"Error saving kube config: {exc}") from exc

    logger.debug("Wrote user %s for context %s to %s", user_name, context_name, path)
    return user_name
