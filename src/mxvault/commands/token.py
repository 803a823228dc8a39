"""Token command -- issue a fresh access token for a configured user.

Example::

    mxvault token get alice example.org
    mxvault --json token get alice example.org --logout-other-devices
"""

from __future__ import annotations

import typer

from mxvault.commands import run_request
from mxvault.handlers import ReadAccessToken
from mxvault.output import format_response


token_app = typer.Typer(no_args_is_help=True)


@token_app.command("get")
def token_get(
    ctx: typer.Context,
    localpart: str = typer.Argument(
        help="The Matrix user ID's localpart to get login details for."
    ),
    domain: str = typer.Argument(
        help="The Matrix user ID's domain to get login details for."
    ),
    logout_other_devices: bool = typer.Option(
        False,
        "--logout-other-devices",
        help="If set, all devices will be logged out prior to generating a token.",
    ),
) -> None:
    """Log in as the user and print ``access_token`` and ``device_id``."""
    payload = run_request(
        ctx,
        ReadAccessToken,
        localpart=localpart,
        domain=domain,
        logout_other_devices=logout_other_devices,
    )
    format_response(payload)
