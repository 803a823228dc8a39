"""Tests for ``mxvault token``."""

from __future__ import annotations

import json

import pytest


@pytest.fixture
def configured(invoke):
    invoke("homeserver", "set", "example.org", "https://matrix.example.org")
    invoke("user", "set", "alice", "example.org", "--secret", "s3cr3t")
    return invoke


class TestTokenGet:
    def test_issues_token(self, configured, homeserver) -> None:
        result = configured("--quiet", "--json", "token", "get", "alice", "example.org")

        assert result.exit_code == 0, result.output
        assert json.loads(result.stdout) == {"access_token": "tok123", "device_id": "DEV1"}
        assert [path for _, path in homeserver.paths()] == [
            "/_matrix/client/r0/login",
            "/_matrix/client/r0/login",
        ]

    def test_plain_output(self, configured) -> None:
        result = configured("--plain", "token", "get", "alice", "example.org")
        assert "access_token\ttok123\n" in result.output
        assert "Generating credentials for @alice:example.org" in result.output

    def test_logout_other_devices(self, configured, homeserver) -> None:
        result = configured("token", "get", "alice", "example.org", "--logout-other-devices")

        assert result.exit_code == 0, result.output
        assert "Logging out of all devices before continuing" in result.output
        assert ("POST", "/_matrix/client/r0/logout/all") in homeserver.paths()

    def test_missing_homeserver_exits_4(self, invoke, homeserver) -> None:
        invoke("user", "set", "alice", "example.org", "--secret", "s3cr3t")

        result = invoke("token", "get", "alice", "example.org")
        assert result.exit_code == 4
        assert "homeserver client/server url not found for example.org" in result.output
        assert homeserver.calls == []

    def test_rejected_exits_3(self, configured, homeserver) -> None:
        homeserver.login = {"errcode": "M_FORBIDDEN", "error": "Invalid token"}

        result = configured("token", "get", "alice", "example.org")
        assert result.exit_code == 3
        assert "error logging in: M_FORBIDDEN Invalid token" in result.output

    def test_unsupported_flow_exits_9(self, configured, homeserver) -> None:
        homeserver.flows = {"flows": [{"type": "m.login.password"}]}

        result = configured("token", "get", "alice", "example.org")
        assert result.exit_code == 9
        assert "vault login type not supported" in result.output

    def test_malformed_login_exits_5(self, configured, homeserver) -> None:
        homeserver.login = {"access_token": 1, "device_id": "DEV1"}

        assert configured("token", "get", "alice", "example.org").exit_code == 5

    def test_secret_not_in_output(self, configured) -> None:
        result = configured("--verbose", "token", "get", "alice", "example.org")
        assert result.exit_code == 0, result.output
        assert "s3cr3t" not in result.output
