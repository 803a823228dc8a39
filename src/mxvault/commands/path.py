"""Path commands -- drive the backend through its secrets-engine paths.

These mirror how a secrets-engine mount is used, with ``key=value`` pairs
as request fields::

    mxvault path write config/homeserver/example.org cs_url=https://example.org
    mxvault path write config/user/alice/example.org login_secret=s3cr3t
    mxvault path list config/user/
    mxvault path read user/alice/example.org logout_other_devices=true
    mxvault path help config/user/alice/example.org
"""

from __future__ import annotations

from typing import Any, Optional

import typer

from mxvault.commands import open_backend, run_with_backend
from mxvault.exceptions import MxVaultError
from mxvault.handlers import Operation
from mxvault.output import error, format_response, info, print_data, success


path_app = typer.Typer(no_args_is_help=True)


def parse_fields(pairs: Optional[list[str]]) -> dict[str, Any]:
    """Turn ``key=value`` arguments into a request-field dict.

    Raises:
        typer.BadParameter: If an argument has no ``=``.
    """
    fields: dict[str, Any] = {}
    for pair in pairs or []:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise typer.BadParameter(f"Expected key=value, got: {pair}")
        fields[key] = value
    return fields


def _call(
    ctx: typer.Context,
    operation: Operation,
    path: str,
    pairs: Optional[list[str]],
) -> None:
    data = parse_fields(pairs)
    payload = run_with_backend(
        ctx, lambda backend: backend.router.handle(operation, path, data)
    )
    if payload is not None:
        format_response(payload)
    elif operation == Operation.DELETE:
        success(f"Success! Data deleted (if it existed) at: {path}")
    else:
        info(f"No value found at {path}")


@path_app.command("read")
def path_read(
    ctx: typer.Context,
    path: str = typer.Argument(help="Path to read, e.g. user/alice/example.org."),
    fields: Optional[list[str]] = typer.Argument(None, help="Request fields as key=value."),
) -> None:
    """Read from PATH."""
    _call(ctx, Operation.READ, path, fields)


@path_app.command("write")
def path_write(
    ctx: typer.Context,
    path: str = typer.Argument(help="Path to write, e.g. config/homeserver/example.org."),
    fields: Optional[list[str]] = typer.Argument(None, help="Request fields as key=value."),
) -> None:
    """Create or update the record at PATH."""
    _call(ctx, Operation.UPDATE, path, fields)


@path_app.command("list")
def path_list(
    ctx: typer.Context,
    path: str = typer.Argument(help="Path to list, e.g. config/user/."),
) -> None:
    """List the keys under PATH."""
    _call(ctx, Operation.LIST, path, None)


@path_app.command("delete")
def path_delete(
    ctx: typer.Context,
    path: str = typer.Argument(help="Path to delete."),
) -> None:
    """Delete the record at PATH."""
    _call(ctx, Operation.DELETE, path, None)


@path_app.command("help")
def path_help(
    ctx: typer.Context,
    path: str = typer.Argument(help="Path to describe."),
) -> None:
    """Describe PATH and its fields."""
    try:
        with open_backend(ctx) as backend:
            text = backend.router.help(path)
    except MxVaultError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None
    print_data(text)
