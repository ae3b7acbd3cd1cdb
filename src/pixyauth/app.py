"""Typer application and CLI entry point for pixyauth.

This module wires together the top-level Typer application and registers
the built-in commands (``auth``, ``init``, ``version``). The issuer options
are global so that ``kubectl`` can pass them ahead of the ``auth`` command
exactly as ``pixyauth init`` wrote them.

The :func:`main` function is the console-script entry point declared in
``pyproject.toml``. It installs signal handlers and invokes the Typer app.
Unhandled exceptions are written to a crash log under the data directory.

See Also:
    :mod:`pixyauth.config`: Settings resolution.
    :mod:`pixyauth.output`: Output and logging initialised in :func:`main_callback`.
"""

from __future__ import annotations

import signal
import sys
import traceback
from datetime import datetime
from typing import Any, Optional

import typer

from pixyauth import __version__
from pixyauth.commands.auth import auth_command
from pixyauth.commands.init import init_command
from pixyauth.exit_codes import EXIT_GENERIC_FAILURE, EXIT_INTERRUPTED


app = typer.Typer(
    name="pixyauth",
    help="kubectl exec credentials via OAuth2 authorization code + PKCE.",
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode="rich",
)


def _version_callback(value: bool) -> None:
    """Print version and exit when --version is passed."""
    if value:
        typer.echo(f"pixyauth {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    issuer_endpoint: Optional[str] = typer.Option(
        None, "--issuer-endpoint", "-i", help="The issuer endpoint."
    ),
    client_id: Optional[str] = typer.Option(
        None, "--client-id", "-c", help="The client id."
    ),
    audience: Optional[str] = typer.Option(
        None, "--audience", "-a", help="The audience."
    ),
    no_color: bool = typer.Option(
        False, "--no-color", help="Disable color output."
    ),
    quiet: bool = typer.Option(
        False, "--quiet", "-q", help="Suppress non-essential output."
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable debug output."
    ),
) -> None:
    """Root callback executed before every sub-command.

    Installs the global :class:`~pixyauth.output.OutputManager`, routes the
    ``pixyauth`` loggers through it when ``--verbose`` is set, and stores
    the issuer options in ``ctx.obj`` for the sub-commands.
    """
    from pixyauth.output import OutputManager, configure_logging, set_output

    output = OutputManager(no_color=no_color, quiet=quiet, verbose=verbose)
    set_output(output)
    configure_logging(output)

    ctx.ensure_object(dict)
    ctx.obj["issuer_endpoint"] = issuer_endpoint
    ctx.obj["client_id"] = client_id
    ctx.obj["audience"] = audience
    ctx.obj["verbose"] = verbose


@app.command("version")
def version_command() -> None:
    """Print the version of pixyauth."""
    typer.echo(f"pixyauth {__version__}")


app.command("auth")(auth_command)
app.command("init")(init_command)


def _setup_signal_handlers() -> None:
    """Install a SIGINT handler so Ctrl-C exits cleanly."""

    def _handler(signum: int, frame: Any) -> None:  # noqa: ANN401
        sys.stderr.write("\nCancelled.\n")
        sys.exit(EXIT_INTERRUPTED)

    signal.signal(signal.SIGINT, _handler)


def _write_crash_log(exc: Exception) -> str:
    """Write a crash traceback to disk and return the log file path."""
    from pixyauth.config import get_data_dir

    logs_dir = get_data_dir() / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    log_path = logs_dir / f"crash-{timestamp}.log"
    log_path.write_text(traceback.format_exc())
    return str(log_path)


def main() -> None:
    """CLI entry point invoked by the ``pixyauth`` console script.

    Unhandled :class:`~pixyauth.exceptions.PixyAuthError` instances cause a
    clean exit with the error's ``exit_code``. All other exceptions produce
    a crash log and a generic failure exit.

    Raises:
        SystemExit: Always raised (either by Typer or explicitly).
    """
    _setup_signal_handlers()
    try:
        app()
    except SystemExit:
        raise
    except KeyboardInterrupt:
        sys.stderr.write("\nCancelled.\n")
        sys.exit(EXIT_INTERRUPTED)
    except Exception as exc:
        from pixyauth.exceptions import PixyAuthError
        from pixyauth.output import error

        if isinstance(exc, PixyAuthError):
            error(str(exc))
            sys.exit(exc.exit_code)
        else:
            log_path = _write_crash_log(exc)
            error(f"Unexpected error. Debug log: {log_path}")
            sys.exit(EXIT_GENERIC_FAILURE)
