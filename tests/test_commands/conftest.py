"""Fixtures for invoking the mxvault CLI end to end."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Callable, Optional

import pytest
from typer.testing import CliRunner

from mxvault.app import app
from mxvault.backend import create_backend


@pytest.fixture
def storage_path(isolated_config: Path) -> Path:
    return isolated_config / "storage.json"


@pytest.fixture
def invoke(
    cli_runner: CliRunner,
    storage_path: Path,
    homeserver,
    monkeypatch: pytest.MonkeyPatch,
) -> Callable[..., Any]:
    """Run ``mxvault --storage <tmp> --no-color <args>`` against the fake homeserver."""

    def _backend(config, storage=None, transport=None):
        return create_backend(config, storage=storage, transport=homeserver.transport())

    monkeypatch.setattr("mxvault.commands.create_backend", _backend)

    def _invoke(*args: str, input: Optional[str] = None) -> Any:
        return cli_runner.invoke(
            app, ["--storage", str(storage_path), "--no-color", *args], input=input
        )

    return _invoke
