"""Built-in CLI command groups for mxvault.

Each sub-module exposes a :class:`typer.Typer` sub-app registered by
:mod:`mxvault.app`:

- :mod:`~mxvault.commands.homeserver` -- ``mxvault homeserver ...``
- :mod:`~mxvault.commands.user` -- ``mxvault user ...``
- :mod:`~mxvault.commands.token` -- ``mxvault token ...``
- :mod:`~mxvault.commands.path` -- ``mxvault path ...``
- :mod:`~mxvault.commands.config` -- ``mxvault config ...``

Commands hand a request variant and its fields to :func:`run_request`,
which validates them, opens a backend for the duration of the call and
turns :class:`~mxvault.exceptions.MxVaultError` into an error message and
the matching exit code.
"""

from __future__ import annotations

from typing import Any, Callable, Optional

import typer
from pydantic import BaseModel

from mxvault.backend import Backend, create_backend
from mxvault.config import resolve_config
from mxvault.exceptions import MxVaultError
from mxvault.handlers import Payload, build_request
from mxvault.output import error


def open_backend(ctx: typer.Context) -> Backend:
    """Create a backend from the global options stored on *ctx*."""
    obj = ctx.obj or {}
    config = resolve_config(cli_storage_path=obj.get("storage"))
    return create_backend(config)


def run_request(ctx: typer.Context, variant: type[BaseModel], **fields: Any) -> Payload:
    """Build a *variant* request from *fields*, dispatch it and return its payload.

    Raises:
        typer.Exit: With the error's exit code if a field does not validate
            or the request fails.
    """
    return run_with_backend(
        ctx, lambda backend: backend.handlers.dispatch(build_request(variant, **fields))
    )


def run_with_backend(
    ctx: typer.Context,
    action: Callable[[Backend], Optional[dict]],
) -> Payload:
    """Run *action* against a freshly opened backend, mapping failures to exit codes."""
    try:
        with open_backend(ctx) as backend:
            return action(backend)
    except MxVaultError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None
