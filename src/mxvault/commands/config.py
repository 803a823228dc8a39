"""Config commands -- view and modify the global configuration file.

Provides the ``mxvault config`` sub-command group for reading, updating
and resetting :class:`~mxvault.models.GlobalConfig`. The file selects the
storage backend and the transport settings; homeserver and user records
live in storage, not here.

Typical workflow::

    mxvault config show
    mxvault config set output.format json
    mxvault config set request.timeout 10
    mxvault config set storage.path null
    mxvault config reset --force
"""

from __future__ import annotations

from typing import Any

import typer
from pydantic import ValidationError

from mxvault.exceptions import MxVaultError
from mxvault.exit_codes import EXIT_INVALID_USAGE
from mxvault.models import GlobalConfig, describe_validation_error
from mxvault.output import error, format_response, info, success


config_app = typer.Typer(no_args_is_help=True)


def _load() -> GlobalConfig:
    from mxvault.config import load_global_config

    try:
        return load_global_config()
    except MxVaultError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None


@config_app.command("show")
def config_show() -> None:
    """Show the current configuration.

    Prints the config file path followed by the full configuration (table
    or JSON, depending on the active output mode).
    """
    from mxvault.config import global_config_path

    config = _load()
    info(f"Config file: {global_config_path()}")
    format_response(config.model_dump(mode="json"))


@config_app.command("set")
def config_set(
    key: str = typer.Argument(
        help="Config key (dot notation, e.g., 'output.format')."
    ),
    value: str = typer.Argument(help="Value to set; 'null' clears an optional key."),
) -> None:
    """Set a configuration value.

    The value is validated against :class:`~mxvault.models.GlobalConfig`
    before saving, so ``"10"`` becomes a number for ``request.timeout`` and
    ``"false"`` a boolean for ``request.verify_ssl``.

    Raises:
        typer.Exit: With code 2 if the key path is unknown or the value
            does not validate.
    """
    from mxvault.config import save_global_config

    data = _load().model_dump(mode="json")

    keys = key.split(".")
    target: dict[str, Any] = data
    for k in keys[:-1]:
        if k not in target or not isinstance(target[k], dict):
            error(f"Invalid config key: {key}")
            raise typer.Exit(code=EXIT_INVALID_USAGE)
        target = target[k]

    final_key = keys[-1]
    if final_key not in target or isinstance(target[final_key], dict):
        error(f"Unknown config key: {key}")
        raise typer.Exit(code=EXIT_INVALID_USAGE)

    target[final_key] = None if value.lower() == "null" else value

    try:
        new_config = GlobalConfig.model_validate(data)
    except ValidationError as exc:
        error(f"Invalid value for {key}: {describe_validation_error(exc)}")
        raise typer.Exit(code=EXIT_INVALID_USAGE) from None

    save_global_config(new_config)
    success(f"Set {key} = {target[final_key]}")


@config_app.command("reset")
def config_reset(
    force: bool = typer.Option(
        False, "--force", "-f", help="Do not ask for confirmation."
    ),
) -> None:
    """Reset the configuration to defaults."""
    from mxvault.config import save_global_config

    if not force:
        confirmed = typer.confirm("Reset all config to defaults?")
        if not confirmed:
            info("Cancelled.")
            raise typer.Exit()

    save_global_config(GlobalConfig())
    success("Configuration reset to defaults.")
