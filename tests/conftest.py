"""Shared test fixtures for mxvault.

Provides reusable fixtures for isolated config environments, in-memory
stores, a scripted fake homeserver, output state management, and running
CLI commands. These fixtures are automatically discovered by pytest and
available to all test modules without explicit imports.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Callable, Optional

import httpx
import pytest

from mxvault.client import TransportClient
from mxvault.issuer import CredentialIssuer, IssuerContext
from mxvault.output import OutputFormat, OutputManager, reset_output, set_output
from mxvault.storage import InMemoryStorage
from mxvault.store import ConfigStore


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager after every test.

    The OutputManager caches references to sys.stdout/sys.stderr at
    creation time.  When Typer's CliRunner redirects those streams during
    a test and the test finishes, the cached references become stale
    ("I/O operation on closed file").  Resetting forces a fresh manager
    to be created on next use.
    """
    yield
    reset_output()


# ---------------------------------------------------------------------------
# Config isolation fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolate configuration to a temporary directory.

    Sets XDG_CONFIG_HOME, XDG_CACHE_HOME, and XDG_DATA_HOME to
    subdirectories of tmp_path so that tests never touch real user
    config. Clears all MXVAULT_* environment variables and changes
    the working directory to tmp_path.

    Returns:
        The tmp_path root directory for additional file creation.
    """
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_CACHE_HOME", str(tmp_path / "cache"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))

    for var in ["MXVAULT_CONFIG", "MXVAULT_STORAGE_PATH"]:
        monkeypatch.delenv(var, raising=False)

    monkeypatch.chdir(tmp_path)
    return tmp_path


# ---------------------------------------------------------------------------
# Output fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def quiet_output() -> OutputManager:
    """Install a PLAIN-format, quiet OutputManager for the test."""
    output = OutputManager(format=OutputFormat.PLAIN, no_color=True, quiet=True)
    set_output(output)
    yield output
    reset_output()


# ---------------------------------------------------------------------------
# Store and homeserver fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def store() -> ConfigStore:
    """An empty ConfigStore over an in-memory backend."""
    return ConfigStore(InMemoryStorage())


class FakeHomeserver:
    """Scripted homeserver for httpx.MockTransport.

    Each endpoint answers with the JSON body (or raw ``httpx.Response``)
    configured on the instance; every request is recorded in ``calls`` as
    ``(method, path, decoded_body)``.
    """

    def __init__(self) -> None:
        self.flows: Any = {"flows": [{"type": "io.t2bot.vault"}]}
        self.login: Any = {"access_token": "tok123", "device_id": "DEV1"}
        self.logout: Any = {}
        self.calls: list[tuple[str, str, Optional[Any]]] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content) if request.content else None
        self.calls.append((request.method, request.url.path, body))

        if request.url.path == "/_matrix/client/r0/login":
            result = self.flows if request.method == "GET" else self.login
        elif request.url.path == "/_matrix/client/r0/logout/all":
            result = self.logout
        else:
            return httpx.Response(404, json={"errcode": "M_UNRECOGNIZED", "error": "nope"})

        if isinstance(result, httpx.Response):
            return result
        if callable(result):
            return result(request)
        return httpx.Response(200, json=result)

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def paths(self) -> list[tuple[str, str]]:
        return [(method, path) for method, path, _ in self.calls]


@pytest.fixture
def homeserver() -> FakeHomeserver:
    """A fake homeserver advertising the vault flow and accepting logins."""
    return FakeHomeserver()


@pytest.fixture
def make_issuer(
    store: ConfigStore, homeserver: FakeHomeserver
) -> Callable[[], CredentialIssuer]:
    """Factory building a CredentialIssuer wired to ``store`` and ``homeserver``."""
    clients: list[TransportClient] = []

    def _make() -> CredentialIssuer:
        client = TransportClient(transport=homeserver.transport())
        clients.append(client)
        return CredentialIssuer(IssuerContext(store=store, transport=client))

    yield _make
    for client in clients:
        client.close()


# ---------------------------------------------------------------------------
# CLI runner fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def cli_runner():
    """Typer CLI test runner.

    Returns a CliRunner instance that captures stdout/stderr and
    provides a consistent interface for invoking Typer apps in tests.
    """
    from typer.testing import CliRunner

    return CliRunner()
