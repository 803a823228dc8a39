"""Tests for request parsing and the request handlers."""

from __future__ import annotations

import pytest

from mxvault.exceptions import InvalidUsageError
from mxvault.handlers import (
    DeleteHomeserver,
    DeleteUser,
    Handlers,
    ListHomeservers,
    ListUsers,
    ReadAccessToken,
    ReadHomeserver,
    ReadUser,
    WriteHomeserver,
    WriteUser,
    build_request,
    parse_request,
)
from mxvault.store import ConfigStore


@pytest.fixture
def handlers(store, make_issuer, quiet_output) -> Handlers:
    return Handlers(store, make_issuer())


# ---------------------------------------------------------------------------
# parse_request
# ---------------------------------------------------------------------------


class TestParseRequest:
    def test_discriminates_on_kind(self) -> None:
        request = parse_request(
            {"kind": "read_user", "localpart": "alice", "domain": "example.org"}
        )
        assert isinstance(request, ReadUser)
        assert request.user_id == "@alice:example.org"

    def test_logout_flag_accepts_string(self) -> None:
        request = parse_request(
            {
                "kind": "read_access_token",
                "localpart": "alice",
                "domain": "example.org",
                "logout_other_devices": "true",
            }
        )
        assert request.logout_other_devices is True

    def test_unknown_kind(self) -> None:
        with pytest.raises(InvalidUsageError, match="Invalid request"):
            parse_request({"kind": "steal_token"})

    def test_missing_field(self) -> None:
        with pytest.raises(InvalidUsageError, match="cs_url"):
            parse_request({"kind": "write_homeserver", "domain": "example.org"})

    def test_rejected_secret_is_not_echoed(self) -> None:
        with pytest.raises(InvalidUsageError) as excinfo:
            parse_request(
                {
                    "kind": "write_user",
                    "localpart": ["s3cr3t-looking"],
                    "domain": "example.org",
                    "login_secret": "hunter2",
                }
            )
        assert "hunter2" not in str(excinfo.value)
        assert "s3cr3t-looking" not in str(excinfo.value)

    @pytest.mark.parametrize(
        "data",
        [
            {"kind": "write_user", "localpart": "a/b", "domain": "example.org", "login_secret": "x"},
            {"kind": "read_user", "localpart": "alice", "domain": "example.org/x"},
            {"kind": "read_access_token", "localpart": "-alice", "domain": "example.org"},
            {"kind": "write_homeserver", "domain": "example.org/x", "cs_url": "https://e.org"},
            {"kind": "delete_homeserver", "domain": ""},
        ],
    )
    def test_names_must_match_path_segment_grammar(self, data) -> None:
        with pytest.raises(InvalidUsageError, match="Invalid request"):
            parse_request(data)


class TestBuildRequest:
    def test_builds_variant(self) -> None:
        request = build_request(WriteHomeserver, domain="example.org", cs_url="https://e.org")
        assert request == WriteHomeserver(domain="example.org", cs_url="https://e.org")

    def test_invalid_name_is_usage_error(self) -> None:
        with pytest.raises(InvalidUsageError, match="localpart"):
            build_request(WriteUser, localpart="a/b", domain="example.org", login_secret="x")

    def test_slash_names_never_reach_the_store(self, handlers: Handlers) -> None:
        with pytest.raises(InvalidUsageError):
            handlers.dispatch(
                build_request(WriteUser, localpart="a/b", domain="example.org", login_secret="x")
            )
        with pytest.raises(InvalidUsageError):
            handlers.dispatch(
                build_request(WriteHomeserver, domain="example.org/x", cs_url="https://e.org")
            )

        assert handlers.dispatch(ListUsers()) == {"keys": []}
        assert handlers.dispatch(ListHomeservers()) == {"keys": []}


# ---------------------------------------------------------------------------
# Homeservers
# ---------------------------------------------------------------------------


class TestHomeserverHandlers:
    def test_write_then_read(self, handlers: Handlers) -> None:
        written = handlers.dispatch(
            WriteHomeserver(domain="example.org", cs_url="https://matrix.example.org")
        )
        assert written == {"cs_url": "https://matrix.example.org"}
        assert handlers.dispatch(ReadHomeserver(domain="example.org")) == {
            "cs_url": "https://matrix.example.org"
        }

    def test_read_missing_is_none(self, handlers: Handlers) -> None:
        assert handlers.dispatch(ReadHomeserver(domain="example.org")) is None

    def test_list(self, handlers: Handlers) -> None:
        assert handlers.dispatch(ListHomeservers()) == {"keys": []}
        handlers.dispatch(WriteHomeserver(domain="b.org", cs_url="https://b.org"))
        handlers.dispatch(WriteHomeserver(domain="a.org", cs_url="https://a.org"))
        assert handlers.dispatch(ListHomeservers()) == {"keys": ["a.org", "b.org"]}

    def test_delete(self, handlers: Handlers, store: ConfigStore) -> None:
        store.put_homeserver_url("example.org", "https://example.org")
        assert handlers.dispatch(DeleteHomeserver(domain="example.org")) is None
        assert store.get_homeserver_url("example.org") is None

    def test_delete_missing_is_silent(self, handlers: Handlers) -> None:
        assert handlers.dispatch(DeleteHomeserver(domain="example.org")) is None


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


class TestUserHandlers:
    def test_write_acknowledges_secret(self, handlers: Handlers, store: ConfigStore) -> None:
        payload = handlers.dispatch(
            WriteUser(localpart="alice", domain="example.org", login_secret="s3cr3t")
        )
        assert payload == {"login_secret": "s3cr3t"}
        assert store.get_user_secret("@alice:example.org") == "s3cr3t"

    def test_read_reports_presence_only(self, handlers: Handlers, store: ConfigStore) -> None:
        store.put_user_secret("@alice:example.org", "s3cr3t")

        payload = handlers.dispatch(ReadUser(localpart="alice", domain="example.org"))
        assert payload == {"user_id": "@alice:example.org", "login_secret_set": True}
        assert "s3cr3t" not in repr(payload)

    def test_read_missing_is_none(self, handlers: Handlers) -> None:
        assert handlers.dispatch(ReadUser(localpart="alice", domain="example.org")) is None

    def test_list_and_delete(self, handlers: Handlers, store: ConfigStore) -> None:
        store.put_user_secret("@alice:example.org", "a")
        assert handlers.dispatch(ListUsers()) == {"keys": ["@alice:example.org"]}

        assert handlers.dispatch(DeleteUser(localpart="alice", domain="example.org")) is None
        assert handlers.dispatch(ListUsers()) == {"keys": []}

    def test_write_does_not_log_secret(self, store, make_issuer, capfd) -> None:
        from mxvault.output import OutputFormat, OutputManager, set_output

        set_output(OutputManager(format=OutputFormat.PLAIN, no_color=True, verbose=True))
        Handlers(store, make_issuer()).dispatch(
            WriteUser(localpart="alice", domain="example.org", login_secret="s3cr3t")
        )

        err = capfd.readouterr().err
        assert "storing login secret for @alice:example.org" in err
        assert "s3cr3t" not in err


# ---------------------------------------------------------------------------
# Tokens
# ---------------------------------------------------------------------------


class TestReadAccessToken:
    def test_issues_token(self, handlers: Handlers, store: ConfigStore, homeserver) -> None:
        store.put_homeserver_url("example.org", "https://example.org")
        store.put_user_secret("@alice:example.org", "s3cr3t")

        payload = handlers.dispatch(ReadAccessToken(localpart="alice", domain="example.org"))
        assert payload == {"access_token": "tok123", "device_id": "DEV1"}

    def test_logout_flag_is_forwarded(
        self, handlers: Handlers, store: ConfigStore, homeserver
    ) -> None:
        store.put_homeserver_url("example.org", "https://example.org")
        store.put_user_secret("@alice:example.org", "s3cr3t")

        handlers.dispatch(
            ReadAccessToken(localpart="alice", domain="example.org", logout_other_devices=True)
        )
        assert ("POST", "/_matrix/client/r0/logout/all") in homeserver.paths()
