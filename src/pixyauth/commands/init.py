"""Init command -- point a kube config context at ``pixyauth auth``.

Implements ``pixyauth init``. The issuer flags given to ``pixyauth`` are
baked into the ``exec`` args of a new ``<context>-exec-auth`` user, so
``kubectl`` later invokes ``pixyauth auth`` with the same issuer.
"""

from __future__ import annotations

import shutil
import sys
from pathlib import Path
from typing import Optional

import typer

from pixyauth.config import default_kubeconfig_path, resolve_settings
from pixyauth.exceptions import PixyAuthError
from pixyauth.kubeconfig import build_exec_args, update_kubeconfig
from pixyauth.models import CacheBackend
from pixyauth.output import error, info, success, suggest


def _default_command() -> str:
    """Absolute path of the installed ``pixyauth`` script, or how we were invoked."""
    found = shutil.which("pixyauth")
    if found:
        return found
    return str(Path(sys.argv[0]).resolve())


def init_command(
    ctx: typer.Context,
    context_name: str = typer.Option(
        ..., "--context-name", "-n", help="The kube config context name to init for."
    ),
    use_id_token: bool = typer.Option(
        False, "--use-id-token", help="Have kubectl send the id token."
    ),
    with_refresh_token: bool = typer.Option(
        False, "--with-refresh-token", help="Refresh expired tokens without the browser."
    ),
    cache: Optional[CacheBackend] = typer.Option(
        None,
        "--cache",
        case_sensitive=False,
        help="Token cache backend to write into the exec args.",
    ),
    port: Optional[int] = typer.Option(
        None,
        "--port",
        min=0,
        max=65535,
        help="Loopback callback port to write into the exec args.",
    ),
    kubeconfig: Optional[Path] = typer.Option(
        None,
        "--kubeconfig",
        help="Kube config file to edit (default: first $KUBECONFIG entry or ~/.kube/config).",
    ),
    command: Optional[str] = typer.Option(
        None, "--command", help="Executable kubectl should run (default: this pixyauth)."
    ),
) -> None:
    """Set up kube config to use pixyauth for a context.

    Adds or replaces the user ``<context-name>-exec-auth`` and points the
    context at it, creating the context entry when it does not exist.
    ``--cache`` and ``--port`` are written into the exec args only when given.

    Raises:
        typer.Exit: With the failing error's exit code.

    Example::

        pixyauth -i https://issuer -c abc -a aud init --context-name prod
    """
    obj = ctx.obj or {}
    path = kubeconfig or default_kubeconfig_path()

    try:
        settings = resolve_settings(
            obj.get("issuer_endpoint"),
            obj.get("client_id"),
            obj.get("audience"),
            use_id_token=use_id_token,
            with_refresh_token=with_refresh_token,
        )
        info(f"Updating kube config {path}...")
        user_name = update_kubeconfig(
            path,
            context_name,
            command or _default_command(),
            build_exec_args(
                settings.issuer,
                use_id_token=settings.use_id_token,
                with_refresh_token=settings.with_refresh_token,
                cache=cache,
                port=port,
            ),
        )
    except PixyAuthError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None

    success(f"Context '{context_name}' now authenticates with user '{user_name}'.")
    suggest(f"Run: kubectl --context {context_name} get namespaces")
