"""Credential issuance for the ``io.t2bot.vault`` login type.

The issuer turns a stored login secret into a fresh Matrix access token
without ever sending the secret itself:

1. **Flow discovery** -- ``GET /_matrix/client/r0/login`` must advertise the
   ``io.t2bot.vault`` flow.
2. **Proof derivation** -- ``HMAC-SHA256(key=secret, msg=user_id)``, hex
   encoded, becomes the ``token_hash``. The proof is bound to both the
   secret and the exact user ID, so it cannot be replayed for another user.
3. **Login submission** -- ``POST /_matrix/client/r0/login`` with the proof;
   the response is validated against :class:`~mxvault.models.LoginSuccess`
   or reported as a :class:`~mxvault.models.MatrixError`.

With ``logout_other_devices`` the issuer runs the full exchange once,
discards the token, calls ``POST /_matrix/client/r0/logout/all``, and only
then runs the exchange a second time and returns that credential.

Each exchange moves through :class:`IssuanceState`. Any error raised on the
way is tagged with the state the run had reached (``exc.state``) and
propagates; nothing is retried and no partial credential is returned.

See Also:
    :class:`~mxvault.store.ConfigStore` -- where the URL and secret come from.
    :class:`~mxvault.client.TransportClient` -- the HTTP layer.
"""

from __future__ import annotations

import hashlib
import hmac
from dataclasses import dataclass
from enum import Enum
from typing import Any

from pydantic import ValidationError

from mxvault.client import TransportClient
from mxvault.exceptions import (
    ConfigMissingError,
    MxVaultError,
    ProtocolMismatchError,
    RemoteRejectedError,
    UnsupportedFlowError,
)
from mxvault.models import (
    VAULT_LOGIN_TYPE,
    IssuedCredential,
    LoginFlows,
    LoginRequest,
    LoginSuccess,
    MatrixError,
    UserIdentifier,
    describe_validation_error,
)
from mxvault.output import get_output
from mxvault.store import ConfigStore

LOGIN_PATH = "/_matrix/client/r0/login"
LOGOUT_ALL_PATH = "/_matrix/client/r0/logout/all"


class IssuanceState(str, Enum):
    """Progress of a single issuance run.

    ``LOGIN_SUBMITTED`` and ``LOGOUT_SUBMITTED`` are entered just before the
    corresponding request is sent, so a transport failure or a rejection of
    that request is tagged with them.
    """

    START = "start"
    FLOW_CHECKED = "flow_checked"
    PROOF_COMPUTED = "proof_computed"
    LOGIN_SUBMITTED = "login_submitted"
    LOGOUT_SUBMITTED = "logout_submitted"
    SUCCESS = "success"
    FAILED = "failed"


@dataclass(frozen=True)
class IssuerContext:
    """Collaborators handed to :class:`CredentialIssuer` at construction."""

    store: ConfigStore
    transport: TransportClient


def derive_token_hash(secret: str, user_id: str) -> str:
    """Compute the ``token_hash`` proof for *user_id*.

    Args:
        secret: The shared login secret, used as the HMAC key.
        user_id: The fully-qualified user ID, used as the message.

    Returns:
        The lowercase hex HMAC-SHA256 digest.
    """
    mac = hmac.new(secret.encode("utf-8"), user_id.encode("utf-8"), hashlib.sha256)
    return mac.hexdigest()


def check_login_flows(body: dict[str, Any]) -> None:
    """Validate a ``GET /login`` body and require the vault login type.

    Raises:
        ProtocolMismatchError: If ``flows`` is missing, is not a list, holds a
            non-object entry, or an entry's ``type`` is missing or not a string.
        UnsupportedFlowError: If no flow has type ``io.t2bot.vault``.
    """
    if "flows" not in body:
        raise ProtocolMismatchError("failed to get login flows")
    try:
        flows = LoginFlows.model_validate(body)
    except ValidationError as exc:
        raise ProtocolMismatchError(
            f"invalid response for flows: {describe_validation_error(exc)}"
        ) from exc

    if not flows.supports(VAULT_LOGIN_TYPE):
        raise UnsupportedFlowError("vault login type not supported")


def check_error_response(body: dict[str, Any], action: str) -> None:
    """Raise if *body* is a Matrix error document.

    Args:
        body: Decoded response body.
        action: What was being attempted, for the error message
            (``"logging in"``, ``"logging out"``).

    Raises:
        RemoteRejectedError: If ``body`` carries a well-formed ``errcode``.
        ProtocolMismatchError: If ``errcode`` or ``error`` is present but
            not a string.
    """
    if "errcode" not in body:
        return
    try:
        err = MatrixError.model_validate(body)
    except ValidationError as exc:
        raise ProtocolMismatchError(
            f"there was an error {action}, however the error is illegible: "
            f"{describe_validation_error(exc)}"
        ) from exc
    raise RemoteRejectedError(err.errcode, err.error, action=action)


def parse_login_response(body: dict[str, Any]) -> IssuedCredential:
    """Turn a ``POST /login`` body into an :class:`~mxvault.models.IssuedCredential`.

    Raises:
        RemoteRejectedError: If the homeserver returned a Matrix error.
        ProtocolMismatchError: If the error is illegible, or ``access_token``
            or ``device_id`` is missing or not a string.
    """
    check_error_response(body, "logging in")
    try:
        login = LoginSuccess.model_validate(body)
    except ValidationError as exc:
        raise ProtocolMismatchError(
            f"invalid login response: {describe_validation_error(exc)}"
        ) from exc
    return IssuedCredential(access_token=login.access_token, device_id=login.device_id)


class _Run:
    """Tracks the state of one exchange and tags errors raised during it."""

    def __init__(self, user_id: str) -> None:
        self.user_id = user_id
        self.state = IssuanceState.START

    def advance(self, state: IssuanceState) -> None:
        get_output().debug(f"{self.user_id}: {self.state.value} -> {state.value}")
        self.state = state

    def fail(self, exc: MxVaultError) -> None:
        exc.state = self.state.value
        get_output().debug(
            f"{self.user_id}: {self.state.value} -> {IssuanceState.FAILED.value} ({exc})"
        )


class CredentialIssuer:
    """Issue access tokens for users whose login secret is stored.

    The issuer holds no state between calls, so concurrent calls for the
    same user are independent exchanges only as far as its store and
    transport allow sharing. :class:`~mxvault.client.TransportClient` may be
    shared between threads and issuance only reads from the store; a store
    backend that is written to concurrently must tolerate that itself.

    Args:
        context: The store and transport to use.

    Example::

        issuer = CredentialIssuer(IssuerContext(store=store, transport=client))
        creds = issuer.issue("@alice:example.org", "example.org")
        print(creds.access_token, creds.device_id)
    """

    def __init__(self, context: IssuerContext) -> None:
        self._store = context.store
        self._transport = context.transport

    def issue(
        self,
        user_id: str,
        domain: str,
        logout_other_devices: bool = False,
    ) -> IssuedCredential:
        """Issue a credential, optionally logging out every other session first.

        Args:
            user_id: Fully-qualified user ID (``@localpart:domain``).
            domain: Domain whose homeserver record is used.
            logout_other_devices: Run the exchange, log out all devices,
                then run the exchange again and return the second credential.

        Raises:
            ConfigMissingError: If the homeserver URL or login secret is not
                registered.
            ProtocolMismatchError, UnsupportedFlowError, RemoteRejectedError:
                On a refused or malformed exchange.
            TransportError: On network failure.
            StorageError: If the storage backend fails.
        """
        output = get_output()
        output.info(f"Generating credentials for {user_id}")
        creds = self.issue_once(user_id, domain)

        if not logout_other_devices:
            return creds

        # The first token is discarded; only the post-logout credential is
        # returned.
        output.info("Logging out of all devices before continuing")
        self.logout_all(user_id, domain)

        output.info("All devices logged out - generating new credentials")
        return self.issue_once(user_id, domain)

    def issue_once(self, user_id: str, domain: str) -> IssuedCredential:
        """Run one full discovery, proof, and login exchange."""
        run = _Run(user_id)
        try:
            cs_url = self._require_homeserver(domain)
            secret = self._store.get_user_secret(user_id)
            if not secret:
                raise ConfigMissingError(f"login secret not found for {user_id}")

            check_login_flows(self._transport.get_json(cs_url, LOGIN_PATH))
            run.advance(IssuanceState.FLOW_CHECKED)

            request = LoginRequest(
                token_hash=derive_token_hash(secret, user_id),
                identifier=UserIdentifier(user=user_id),
            )
            run.advance(IssuanceState.PROOF_COMPUTED)

            run.advance(IssuanceState.LOGIN_SUBMITTED)
            body = self._transport.post_json(cs_url, LOGIN_PATH, request.model_dump())
            creds = parse_login_response(body)
        except MxVaultError as exc:
            run.fail(exc)
            raise

        run.advance(IssuanceState.SUCCESS)
        get_output().debug(f"Issued device {creds.device_id} for {user_id}")
        return creds

    def logout_all(self, user_id: str, domain: str) -> None:
        """Invalidate every session of the user on the domain's homeserver.

        Sends an empty JSON object to ``/logout/all``. Any non-error JSON
        object counts as success.
        """
        run = _Run(user_id)
        try:
            cs_url = self._require_homeserver(domain)
            run.advance(IssuanceState.LOGOUT_SUBMITTED)
            body = self._transport.post_json(cs_url, LOGOUT_ALL_PATH, {})
            check_error_response(body, "logging out")
        except MxVaultError as exc:
            run.fail(exc)
            raise

    def _require_homeserver(self, domain: str) -> str:
        cs_url = self._store.get_homeserver_url(domain)
        if not cs_url:
            raise ConfigMissingError(
                f"homeserver client/server url not found for {domain}"
            )
        return cs_url
