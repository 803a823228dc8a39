"""Homeserver commands -- manage client-server URLs per domain.

Typical workflow::

    mxvault homeserver set example.org https://matrix.example.org
    mxvault homeserver list
    mxvault homeserver get example.org
    mxvault homeserver delete example.org
"""

from __future__ import annotations

import typer

from mxvault.commands import run_request
from mxvault.exit_codes import EXIT_CONFIG_MISSING
from mxvault.handlers import (
    DeleteHomeserver,
    ListHomeservers,
    ReadHomeserver,
    WriteHomeserver,
)
from mxvault.output import error, format_response, info, print_table, success, suggest


homeserver_app = typer.Typer(no_args_is_help=True)


@homeserver_app.command("list")
def homeserver_list(ctx: typer.Context) -> None:
    """List every domain with a registered homeserver."""
    payload = run_request(ctx, ListHomeservers)
    keys = payload["keys"] if payload else []
    if not keys:
        info("No homeservers configured.")
        suggest("Add one: mxvault homeserver set <domain> <cs_url>")
        return
    print_table(["Domain"], [[k] for k in keys], title="Homeservers")


@homeserver_app.command("get")
def homeserver_get(
    ctx: typer.Context,
    domain: str = typer.Argument(help="The hostname of a Matrix homeserver."),
) -> None:
    """Show the client-server URL registered for DOMAIN.

    Exits with code 4 when nothing is registered.
    """
    payload = run_request(ctx, ReadHomeserver, domain=domain)
    if payload is None:
        error(f"No homeserver configured for {domain}.")
        raise typer.Exit(code=EXIT_CONFIG_MISSING)
    format_response(payload)


@homeserver_app.command("set")
def homeserver_set(
    ctx: typer.Context,
    domain: str = typer.Argument(help="The hostname of a Matrix homeserver."),
    cs_url: str = typer.Argument(
        help="The Client-Server URL for the homeserver. Eg: https://matrix.org"
    ),
) -> None:
    """Register or replace the client-server URL for DOMAIN."""
    payload = run_request(ctx, WriteHomeserver, domain=domain, cs_url=cs_url)
    success(f"Homeserver for {domain} saved.")
    format_response(payload)


@homeserver_app.command("delete")
def homeserver_delete(
    ctx: typer.Context,
    domain: str = typer.Argument(help="The hostname of a Matrix homeserver."),
) -> None:
    """Remove the homeserver record for DOMAIN (no error if absent)."""
    run_request(ctx, DeleteHomeserver, domain=domain)
    success(f"Homeserver for {domain} removed.")
