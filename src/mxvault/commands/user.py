"""User commands -- manage per-user login secrets.

The secret is only ever printed once, as the acknowledgment of ``set``;
``get`` reports whether one is stored.

Typical workflow::

    mxvault user set alice example.org          # prompts for the secret
    mxvault user set alice example.org --secret-file ./alice.secret
    mxvault user list
    mxvault user delete alice example.org
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer

from mxvault.commands import run_request
from mxvault.exit_codes import EXIT_CONFIG_MISSING, EXIT_INVALID_USAGE
from mxvault.handlers import DeleteUser, ListUsers, ReadUser, WriteUser
from mxvault.models import format_user_id
from mxvault.output import (
    error,
    format_response,
    info,
    print_table,
    success,
    suggest,
    warning,
)


user_app = typer.Typer(no_args_is_help=True)


@user_app.command("list")
def user_list(ctx: typer.Context) -> None:
    """List every user ID with a stored login secret."""
    payload = run_request(ctx, ListUsers)
    keys = payload["keys"] if payload else []
    if not keys:
        info("No users configured.")
        suggest("Add one: mxvault user set <localpart> <domain>")
        return
    print_table(["User ID"], [[k] for k in keys], title="Users")


@user_app.command("get")
def user_get(
    ctx: typer.Context,
    localpart: str = typer.Argument(help="The Matrix user ID's localpart."),
    domain: str = typer.Argument(help="The Matrix user ID's domain."),
) -> None:
    """Report whether a login secret is stored for the user.

    Exits with code 4 when nothing is stored.
    """
    payload = run_request(ctx, ReadUser, localpart=localpart, domain=domain)
    if payload is None:
        error(f"No login secret configured for {format_user_id(localpart, domain)}.")
        raise typer.Exit(code=EXIT_CONFIG_MISSING)
    format_response(payload)


@user_app.command("set")
def user_set(
    ctx: typer.Context,
    localpart: str = typer.Argument(help="The Matrix user ID's localpart."),
    domain: str = typer.Argument(help="The Matrix user ID's domain."),
    secret: Optional[str] = typer.Option(
        None,
        "--secret",
        help="The secret used to authenticate the user. Prompted for when omitted.",
    ),
    secret_file: Optional[Path] = typer.Option(
        None,
        "--secret-file",
        exists=True,
        dir_okay=False,
        help="Read the secret from this file (surrounding whitespace is stripped).",
    ),
) -> None:
    """Store or replace the login secret for the user."""
    if secret is not None and secret_file is not None:
        error("Use only one of --secret and --secret-file.")
        raise typer.Exit(code=EXIT_INVALID_USAGE)

    if secret_file is not None:
        secret = secret_file.read_text(encoding="utf-8").strip()
    elif secret is None:
        secret = typer.prompt("Login secret", hide_input=True)
    else:
        warning("--secret may be recorded in shell history; prefer the prompt or --secret-file.")

    payload = run_request(
        ctx, WriteUser, localpart=localpart, domain=domain, login_secret=secret
    )
    success(f"Login secret for {format_user_id(localpart, domain)} saved.")
    format_response(payload)


@user_app.command("delete")
def user_delete(
    ctx: typer.Context,
    localpart: str = typer.Argument(help="The Matrix user ID's localpart."),
    domain: str = typer.Argument(help="The Matrix user ID's domain."),
) -> None:
    """Remove the user's login secret (no error if absent)."""
    run_request(ctx, DeleteUser, localpart=localpart, domain=domain)
    success(f"Login secret for {format_user_id(localpart, domain)} removed.")
