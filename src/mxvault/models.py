"""Canonical Pydantic models shared across all mxvault modules.

This is the single source of truth for data shapes in the project. The models
fall into three groups:

**Configuration models** -- serialised as JSON in the user's config directory:
    :class:`StorageConfig`, :class:`RequestConfig`, :class:`OutputConfig`,
    and :class:`GlobalConfig`.

**Storage and credential models** -- values moved between the storage
backend, the issuer, and the handlers:
    :class:`StorageEntry` and :class:`IssuedCredential`.

**Client-server API schemas** -- the request and response bodies of the
Matrix login endpoints:
    :class:`LoginFlow`, :class:`LoginFlows`, :class:`UserIdentifier`,
    :class:`LoginRequest`, :class:`LoginSuccess`, and :class:`MatrixError`.

Response schemas use ``StrictStr`` so that a number or object where a string
is expected fails validation instead of being coerced, and
``extra="allow"`` so that fields added by newer homeservers are ignored.
"""

from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, StrictStr, ValidationError

VAULT_LOGIN_TYPE = "io.t2bot.vault"
"""The custom login type a homeserver must advertise for token issuance."""

USER_IDENTIFIER_TYPE = "m.id.user"


def format_user_id(localpart: str, domain: str) -> str:
    """Build a fully-qualified Matrix user ID (``@localpart:domain``)."""
    return f"@{localpart}:{domain}"


# --- Configuration ---


class StorageConfig(BaseModel):
    """Where the homeserver and user records are persisted."""

    backend: Literal["file", "memory"] = Field(
        default="file", description="Storage backend: file or memory"
    )
    path: Optional[str] = Field(
        default=None,
        description="Path of the storage document (file backend only). "
        "Defaults to <data_dir>/storage.json",
    )


class RequestConfig(BaseModel):
    """HTTP settings passed through to the transport.

    ``timeout`` is left unset by default so the transport's own default
    applies.
    """

    timeout: Optional[float] = Field(
        default=None, description="Request timeout in seconds (None = transport default)"
    )
    verify_ssl: bool = Field(default=True, description="Verify SSL certificates")


class OutputConfig(BaseModel):
    """Default output format preferences stored in :class:`GlobalConfig`."""

    format: str = Field(
        default="auto", description="Output format: auto, json, plain, rich"
    )


class GlobalConfig(BaseModel):
    """User-wide configuration persisted at ``~/.config/mxvault/config.json``.

    Loaded and saved by :func:`~mxvault.config.load_global_config` and
    :func:`~mxvault.config.save_global_config`. See
    :func:`~mxvault.config.resolve_config` for how CLI flags and
    environment variables override these values.
    """

    storage: StorageConfig = Field(default_factory=StorageConfig)
    request: RequestConfig = Field(default_factory=RequestConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)


# --- Storage and credentials ---


class StorageEntry(BaseModel):
    """A single key/value pair held by a :class:`~mxvault.storage.Storage` backend."""

    key: str
    value: bytes


class IssuedCredential(BaseModel):
    """An access token freshly issued by a homeserver.

    Produced per issuance call and handed straight back to the caller;
    nothing in mxvault keeps a copy.
    """

    access_token: str
    device_id: str


# --- Client-server API schemas ---


class LoginFlow(BaseModel):
    """One entry of the ``flows`` array returned by ``GET /login``."""

    model_config = ConfigDict(extra="allow")

    type: StrictStr


class LoginFlows(BaseModel):
    """Body of ``GET /_matrix/client/r0/login``."""

    model_config = ConfigDict(extra="allow")

    flows: list[LoginFlow]

    def supports(self, login_type: str) -> bool:
        """Return ``True`` if any advertised flow has type *login_type*."""
        return any(flow.type == login_type for flow in self.flows)


class UserIdentifier(BaseModel):
    """The ``identifier`` object of a login request."""

    type: str = USER_IDENTIFIER_TYPE
    user: str


class LoginRequest(BaseModel):
    """Body of ``POST /_matrix/client/r0/login`` for the vault login type."""

    type: str = VAULT_LOGIN_TYPE
    token_hash: str
    identifier: UserIdentifier


class LoginSuccess(BaseModel):
    """Successful body of ``POST /_matrix/client/r0/login``."""

    model_config = ConfigDict(extra="allow")

    access_token: StrictStr
    device_id: StrictStr


class MatrixError(BaseModel):
    """Standard Matrix error document (``errcode`` plus optional ``error``)."""

    model_config = ConfigDict(extra="allow")

    errcode: StrictStr
    error: StrictStr = ""


def describe_validation_error(exc: ValidationError) -> str:
    """One-line summary of a pydantic validation error.

    Only field locations and messages are included, never the offending
    input values, so a rejected login secret is not echoed back.
    """
    parts = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err["loc"]) or "body"
        parts.append(f"{loc}: {err['msg']}")
    return "; ".join(parts)
