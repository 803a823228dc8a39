"""Typer application and CLI entry point for mxvault.

This module wires together the top-level Typer application and registers
the built-in sub-commands (``homeserver``, ``user``, ``token``, ``path``,
``config``).

The :func:`main` function is the console-script entry point declared in
``pyproject.toml``. It installs signal handlers and invokes the Typer app.
Commands report :class:`~mxvault.exceptions.MxVaultError` themselves and
exit with its code, so any exception that reaches :func:`main` is written
to a crash log under the data directory.

See Also:
    :mod:`mxvault.config`: Storage and transport configuration resolution.
    :mod:`mxvault.output`: Output formatting initialised in :func:`main_callback`.
"""

from __future__ import annotations

import signal
import sys
import traceback
from datetime import datetime
from typing import Any, Optional

import typer

from mxvault import __version__
from mxvault.backend import HELP
from mxvault.commands.config import config_app
from mxvault.commands.homeserver import homeserver_app
from mxvault.commands.path import path_app
from mxvault.commands.token import token_app
from mxvault.commands.user import user_app
from mxvault.exceptions import ConfigError
from mxvault.exit_codes import EXIT_GENERIC_FAILURE
from mxvault.output import OutputFormat, OutputManager, set_output


app = typer.Typer(
    name="mxvault",
    help=HELP,
    no_args_is_help=True,
    add_completion=True,
    rich_markup_mode="rich",
)

app.add_typer(homeserver_app, name="homeserver", help="Homeserver configuration.")
app.add_typer(user_app, name="user", help="User login secret management.")
app.add_typer(token_app, name="token", help="Access token issuance.")
app.add_typer(path_app, name="path", help="Secrets-engine path access.")
app.add_typer(config_app, name="config", help="Global configuration.")


def _version_callback(value: bool) -> None:
    """Print version and exit when --version is passed."""
    if value:
        typer.echo(f"mxvault {__version__}")
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
    storage: Optional[str] = typer.Option(
        None,
        "--storage",
        "-s",
        help="Path of the storage document (overrides MXVAULT_STORAGE_PATH).",
    ),
    json_output: bool = typer.Option(
        False, "--json", help="JSON output format."
    ),
    plain_output: bool = typer.Option(
        False, "--plain", help="Plain text output."
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

    Initialises the global :class:`~mxvault.output.OutputManager` from
    CLI flags, and stores shared options in the Typer context so that
    sub-commands can read them via ``ctx.obj``.

    Args:
        ctx: Typer invocation context.
        version: If ``True``, print the version string and exit.
        storage: Storage document path override (highest precedence).
        json_output: Force JSON output format.
        plain_output: Force plain-text output format.
        no_color: Disable all colour and Rich markup.
        quiet: Suppress non-essential diagnostic output.
        verbose: Enable debug-level diagnostic output.
    """
    if json_output:
        fmt = OutputFormat.JSON
    elif plain_output:
        fmt = OutputFormat.PLAIN
    else:
        fmt = _configured_format()

    set_output(
        OutputManager(
            format=fmt,
            no_color=no_color,
            quiet=quiet,
            verbose=verbose,
        )
    )

    ctx.ensure_object(dict)
    ctx.obj["storage"] = storage


def _configured_format() -> OutputFormat:
    """Default output format from the global config file.

    An unreadable config file is reported by the command that loads it;
    here it just means ``auto``.
    """
    from mxvault.config import load_global_config

    try:
        return OutputFormat(load_global_config().output.format)
    except (ConfigError, ValueError):
        return OutputFormat.AUTO


def _setup_signal_handlers() -> None:
    """Install a SIGINT handler so Ctrl-C exits cleanly."""

    def _handler(signum: int, frame: Any) -> None:  # noqa: ANN401
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)

    signal.signal(signal.SIGINT, _handler)


def _write_crash_log() -> str:
    """Write the current traceback to disk and return the log file path."""
    from mxvault.config import get_data_dir

    logs_dir = get_data_dir() / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    log_path = logs_dir / f"crash-{timestamp}.log"
    log_path.write_text(traceback.format_exc())
    return str(log_path)


def main() -> None:
    """CLI entry point invoked by the ``mxvault`` console script.

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
        sys.exit(130)
    except Exception:
        from mxvault.output import error

        log_path = _write_crash_log()
        error(f"Unexpected error. Debug log: {log_path}")
        sys.exit(EXIT_GENERIC_FAILURE)
