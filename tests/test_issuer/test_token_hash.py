"""Tests for token-hash derivation and response validation helpers."""

from __future__ import annotations

import hashlib
import hmac

import pytest

from mxvault.exceptions import (
    ProtocolMismatchError,
    RemoteRejectedError,
    UnsupportedFlowError,
)
from mxvault.issuer import (
    check_error_response,
    check_login_flows,
    derive_token_hash,
    parse_login_response,
)


# ---------------------------------------------------------------------------
# derive_token_hash
# ---------------------------------------------------------------------------


class TestDeriveTokenHash:
    def test_rfc4231_vector(self) -> None:
        # RFC 4231, test case 2.
        assert derive_token_hash("Jefe", "what do ya want for nothing?") == (
            "5bdcc146bf60754e6a042426089575c75a003f089d2739839dec58b964ec3843"
        )

    def test_alice_vector(self) -> None:
        assert derive_token_hash("s3cr3t", "@alice:example.org") == (
            "71ba634cafbd9cd999fba598e834884fc8ae6b69990b5ddbca1d02ec8651dde4"
        )

    def test_secret_is_key_and_user_id_is_message(self) -> None:
        expected = hmac.new(b"s3cr3t", b"@alice:example.org", hashlib.sha256).hexdigest()
        assert derive_token_hash("s3cr3t", "@alice:example.org") == expected

    def test_lowercase_hex(self) -> None:
        digest = derive_token_hash("s3cr3t", "@alice:example.org")
        assert len(digest) == 64
        assert digest == digest.lower()
        int(digest, 16)

    def test_bound_to_user_id(self) -> None:
        assert derive_token_hash("s", "@alice:example.org") != derive_token_hash(
            "s", "@bob:example.org"
        )

    def test_deterministic(self) -> None:
        assert derive_token_hash("s", "@a:b") == derive_token_hash("s", "@a:b")


# ---------------------------------------------------------------------------
# check_login_flows
# ---------------------------------------------------------------------------


class TestCheckLoginFlows:
    def test_vault_flow_among_others(self) -> None:
        check_login_flows(
            {"flows": [{"type": "m.login.password"}, {"type": "io.t2bot.vault", "extra": 1}]}
        )

    def test_missing_flows(self) -> None:
        with pytest.raises(ProtocolMismatchError, match="failed to get login flows"):
            check_login_flows({})

    @pytest.mark.parametrize(
        "body",
        [
            {"flows": "io.t2bot.vault"},
            {"flows": ["io.t2bot.vault"]},
            {"flows": [{"stages": []}]},
            {"flows": [{"type": 7}]},
            {"flows": [{"type": "io.t2bot.vault"}, {"type": None}]},
        ],
    )
    def test_malformed_flows(self, body: dict) -> None:
        with pytest.raises(ProtocolMismatchError, match="invalid response for flows"):
            check_login_flows(body)

    def test_vault_flow_absent(self) -> None:
        with pytest.raises(UnsupportedFlowError, match="vault login type not supported"):
            check_login_flows({"flows": [{"type": "m.login.password"}]})

    def test_empty_flows(self) -> None:
        with pytest.raises(UnsupportedFlowError):
            check_login_flows({"flows": []})


# ---------------------------------------------------------------------------
# Error documents and login bodies
# ---------------------------------------------------------------------------


class TestCheckErrorResponse:
    def test_no_errcode_passes(self) -> None:
        check_error_response({"anything": "else"}, "logging in")

    def test_errcode_with_message(self) -> None:
        with pytest.raises(RemoteRejectedError) as excinfo:
            check_error_response({"errcode": "M_FORBIDDEN", "error": "Invalid token"}, "logging in")
        assert str(excinfo.value) == "error logging in: M_FORBIDDEN Invalid token"
        assert excinfo.value.errcode == "M_FORBIDDEN"
        assert excinfo.value.exit_code == 3

    def test_errcode_without_message(self) -> None:
        with pytest.raises(RemoteRejectedError) as excinfo:
            check_error_response({"errcode": "M_LIMIT_EXCEEDED"}, "logging out")
        assert str(excinfo.value) == "error logging out: M_LIMIT_EXCEEDED"

    @pytest.mark.parametrize(
        "body",
        [
            {"errcode": 403},
            {"errcode": None},
            {"errcode": "M_FORBIDDEN", "error": 5},
            {"errcode": "M_FORBIDDEN", "error": None},
        ],
    )
    def test_illegible_error(self, body: dict) -> None:
        with pytest.raises(ProtocolMismatchError, match="error is illegible"):
            check_error_response(body, "logging in")


class TestParseLoginResponse:
    def test_success(self) -> None:
        creds = parse_login_response(
            {"access_token": "tok123", "device_id": "DEV1", "user_id": "@alice:example.org"}
        )
        assert creds.access_token == "tok123"
        assert creds.device_id == "DEV1"

    @pytest.mark.parametrize(
        "body",
        [
            {"device_id": "DEV1"},
            {"access_token": "tok123"},
            {"access_token": 123, "device_id": "DEV1"},
            {"access_token": "tok123", "device_id": ["DEV1"]},
        ],
    )
    def test_malformed(self, body: dict) -> None:
        with pytest.raises(ProtocolMismatchError, match="invalid login response"):
            parse_login_response(body)

    def test_error_takes_precedence(self) -> None:
        with pytest.raises(RemoteRejectedError):
            parse_login_response({"errcode": "M_FORBIDDEN", "access_token": "tok123"})
