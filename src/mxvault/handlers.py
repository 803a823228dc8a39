"""Request handlers and path routing.

Every operation mxvault exposes is described by a small request model, and
the models form a tagged union (:data:`Request`) discriminated on ``kind``:

==================== ===================================================
``kind``             Effect
==================== ===================================================
``list_homeservers`` list registered homeserver domains
``read_homeserver``  read a homeserver's client-server URL
``write_homeserver`` create or replace a homeserver's client-server URL
``delete_homeserver`` remove a homeserver record
``list_users``       list user IDs with a stored login secret
``read_user``        report whether a user has a login secret
``write_user``       create or replace a user's login secret
``delete_user``      remove a user's login secret
``read_access_token`` issue an access token for a user
==================== ===================================================

:class:`Handlers` executes a request and shapes the result payload. It is
driven by two outer routers: the typer commands in :mod:`mxvault.commands`,
and :class:`PathRouter`, which accepts the slash-separated path grammar of
a secrets-engine mount::

    config/homeserver/                    list
    config/homeserver/<homeserver>        read, create, update, delete
    config/user/                          list
    config/user/<localpart>/<domain>      read, create, update, delete
    user/<localpart>/<domain>             read

A login secret is echoed back only by ``write_user``; reads report its
presence, never its value.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Annotated, Any, Callable, Literal, Optional, Union

from pydantic import BaseModel, Field, SecretStr, TypeAdapter, ValidationError

from mxvault.exceptions import InvalidUsageError
from mxvault.issuer import CredentialIssuer
from mxvault.models import describe_validation_error, format_user_id
from mxvault.output import get_output
from mxvault.store import ConfigStore


# --- Request variants ---


NAME_PATTERN = r"\w(([\w\-.]+)?\w)?"
"""Allowed characters of a homeserver, localpart or domain."""

Name = Annotated[str, Field(pattern=f"^{NAME_PATTERN}$")]


class _UserRequest(BaseModel):
    localpart: Name
    domain: Name

    @property
    def user_id(self) -> str:
        return format_user_id(self.localpart, self.domain)


class ListHomeservers(BaseModel):
    kind: Literal["list_homeservers"] = "list_homeservers"


class ReadHomeserver(BaseModel):
    kind: Literal["read_homeserver"] = "read_homeserver"
    domain: Name


class WriteHomeserver(BaseModel):
    kind: Literal["write_homeserver"] = "write_homeserver"
    domain: Name
    cs_url: str = Field(description="The client-server URL for the homeserver. Eg: https://matrix.org")


class DeleteHomeserver(BaseModel):
    kind: Literal["delete_homeserver"] = "delete_homeserver"
    domain: Name


class ListUsers(BaseModel):
    kind: Literal["list_users"] = "list_users"


class ReadUser(_UserRequest):
    kind: Literal["read_user"] = "read_user"


class WriteUser(_UserRequest):
    kind: Literal["write_user"] = "write_user"
    login_secret: SecretStr = Field(description="The secret used to authenticate the user.")


class DeleteUser(_UserRequest):
    kind: Literal["delete_user"] = "delete_user"


class ReadAccessToken(_UserRequest):
    kind: Literal["read_access_token"] = "read_access_token"
    logout_other_devices: bool = Field(
        default=False,
        description="If true, all devices will be logged out prior to generating a token.",
    )


Request = Annotated[
    Union[
        ListHomeservers,
        ReadHomeserver,
        WriteHomeserver,
        DeleteHomeserver,
        ListUsers,
        ReadUser,
        WriteUser,
        DeleteUser,
        ReadAccessToken,
    ],
    Field(discriminator="kind"),
]

_request_adapter: TypeAdapter[Request] = TypeAdapter(Request)


def parse_request(data: dict[str, Any]) -> Request:
    """Validate a plain dict (with a ``kind`` key) into a request variant.

    Raises:
        InvalidUsageError: If ``kind`` is unknown or a field is missing or
            does not validate.
    """
    try:
        return _request_adapter.validate_python(data)
    except ValidationError as exc:
        raise InvalidUsageError(f"Invalid request: {describe_validation_error(exc)}") from exc


def build_request(variant: type[BaseModel], **fields: Any) -> Request:
    """Construct *variant* from keyword fields, as :func:`parse_request` would.

    Raises:
        InvalidUsageError: If a field is missing or does not validate.
    """
    try:
        return variant(**fields)  # type: ignore[return-value]
    except ValidationError as exc:
        raise InvalidUsageError(f"Invalid request: {describe_validation_error(exc)}") from exc


# --- Handlers ---


Payload = Optional[dict[str, Any]]


class Handlers:
    """Execute request variants against the store and the issuer.

    Each handler returns the response payload, or ``None`` when there is
    nothing to return (a missing record on read, any delete).

    Args:
        store: Adapter over the configured storage backend.
        issuer: Credential issuer sharing the same store.
    """

    def __init__(self, store: ConfigStore, issuer: CredentialIssuer) -> None:
        self._store = store
        self._issuer = issuer
        self._handlers: dict[str, Callable[[Any], Payload]] = {
            "list_homeservers": self._list_homeservers,
            "read_homeserver": self._read_homeserver,
            "write_homeserver": self._write_homeserver,
            "delete_homeserver": self._delete_homeserver,
            "list_users": self._list_users,
            "read_user": self._read_user,
            "write_user": self._write_user,
            "delete_user": self._delete_user,
            "read_access_token": self._read_access_token,
        }

    def dispatch(self, request: Request) -> Payload:
        """Run *request* and return its payload."""
        return self._handlers[request.kind](request)

    # --- Homeservers ---

    def _list_homeservers(self, request: ListHomeservers) -> Payload:
        return {"keys": self._store.list_homeserver_domains()}

    def _read_homeserver(self, request: ReadHomeserver) -> Payload:
        cs_url = self._store.get_homeserver_url(request.domain)
        if cs_url is None:
            return None
        get_output().debug(f"reading homeserver value for {request.domain}: {cs_url}")
        return {"cs_url": cs_url}

    def _write_homeserver(self, request: WriteHomeserver) -> Payload:
        get_output().info(f"storing homeserver value for {request.domain}: {request.cs_url}")
        self._store.put_homeserver_url(request.domain, request.cs_url)
        return {"cs_url": request.cs_url}

    def _delete_homeserver(self, request: DeleteHomeserver) -> Payload:
        self._store.delete_homeserver_url(request.domain)
        return None

    # --- Users ---

    def _list_users(self, request: ListUsers) -> Payload:
        return {"keys": self._store.list_user_ids()}

    def _read_user(self, request: ReadUser) -> Payload:
        if self._store.get_user_secret(request.user_id) is None:
            return None
        return {"user_id": request.user_id, "login_secret_set": True}

    def _write_user(self, request: WriteUser) -> Payload:
        secret = request.login_secret.get_secret_value()
        get_output().info(f"storing login secret for {request.user_id}")
        self._store.put_user_secret(request.user_id, secret)
        return {"login_secret": secret}

    def _delete_user(self, request: DeleteUser) -> Payload:
        self._store.delete_user_secret(request.user_id)
        return None

    # --- Tokens ---

    def _read_access_token(self, request: ReadAccessToken) -> Payload:
        creds = self._issuer.issue(
            request.user_id,
            request.domain,
            logout_other_devices=request.logout_other_devices,
        )
        return {"access_token": creds.access_token, "device_id": creds.device_id}


# --- Path routing ---


def _name(group: str) -> str:
    return f"(?P<{group}>{NAME_PATTERN})"


class Operation(str, Enum):
    """Operations a path can support."""

    LIST = "list"
    READ = "read"
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


# Builds a request from the named path groups and the request fields.
RequestFactory = Callable[[dict[str, str], dict[str, Any]], Request]


@dataclass
class PathSpec:
    """One routable path pattern."""

    pattern: str
    help: str
    operations: dict[Operation, RequestFactory]
    fields: dict[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        self._regex = re.compile(self.pattern)

    def match(self, path: str) -> Optional[dict[str, str]]:
        m = self._regex.fullmatch(path)
        if m is None:
            return None
        return {k: v for k, v in m.groupdict().items() if v is not None}


def _build(kind: str, *path_fields: str) -> RequestFactory:
    """Factory producing request *kind* from path groups plus body fields.

    Path groups win over body fields of the same name.
    """

    def factory(groups: dict[str, str], data: dict[str, Any]) -> Request:
        payload = {**data, **{name: groups[name] for name in path_fields}, "kind": kind}
        return parse_request(payload)

    return factory


def _build_homeserver(kind: str) -> RequestFactory:
    def factory(groups: dict[str, str], data: dict[str, Any]) -> Request:
        return parse_request({**data, "domain": groups["homeserver"], "kind": kind})

    return factory


def default_paths() -> list[PathSpec]:
    """The path table of the secrets engine."""
    return [
        PathSpec(
            pattern=r"config/homeserver/?",
            help="Lists the configured homeservers.",
            operations={Operation.LIST: _build("list_homeservers")},
        ),
        PathSpec(
            pattern=rf"config/homeserver/{_name('homeserver')}",
            help="Configures a homeserver's access.",
            operations={
                Operation.READ: _build_homeserver("read_homeserver"),
                Operation.CREATE: _build_homeserver("write_homeserver"),
                Operation.UPDATE: _build_homeserver("write_homeserver"),
                Operation.DELETE: _build_homeserver("delete_homeserver"),
            },
            fields={
                "homeserver": "The hostname of a Matrix homeserver.",
                "cs_url": "The Client-Server URL for the homeserver. Eg: https://matrix.org",
            },
        ),
        PathSpec(
            pattern=r"config/user/?",
            help="Lists the configured users.",
            operations={Operation.LIST: _build("list_users")},
        ),
        PathSpec(
            pattern=rf"config/user/{_name('localpart')}/{_name('domain')}",
            help="Configures a user's access.",
            operations={
                Operation.READ: _build("read_user", "localpart", "domain"),
                Operation.CREATE: _build("write_user", "localpart", "domain"),
                Operation.UPDATE: _build("write_user", "localpart", "domain"),
                Operation.DELETE: _build("delete_user", "localpart", "domain"),
            },
            fields={
                "localpart": "The Matrix user ID's localpart to get login details for.",
                "domain": "The Matrix user ID's domain to get login details for.",
                "login_secret": "The secret used to authenticate the user.",
            },
        ),
        PathSpec(
            pattern=rf"user/{_name('localpart')}/{_name('domain')}",
            help="Gets login information for a user.",
            operations={
                Operation.READ: _build("read_access_token", "localpart", "domain"),
            },
            fields={
                "localpart": "The Matrix user ID's localpart to get login details for.",
                "domain": "The Matrix user ID's domain to get login details for.",
                "logout_other_devices": "If true, all devices will be logged out "
                "prior to generating a token.",
            },
        ),
    ]


class PathRouter:
    """Map ``(operation, path, data)`` onto :class:`Handlers`.

    Example::

        router = PathRouter(handlers)
        router.handle("create", "config/homeserver/example.org", {"cs_url": "https://example.org"})
        router.handle("read", "user/alice/example.org")
    """

    def __init__(self, handlers: Handlers, paths: Optional[list[PathSpec]] = None) -> None:
        self._handlers = handlers
        self._paths = paths if paths is not None else default_paths()

    def route(
        self,
        operation: Operation | str,
        path: str,
        data: Optional[dict[str, Any]] = None,
    ) -> Request:
        """Translate a path call into a request variant.

        Raises:
            InvalidUsageError: If the path is unknown, the operation is not
                supported on it, or the fields do not validate.
        """
        try:
            op = Operation(operation)
        except ValueError:
            raise InvalidUsageError(f"Unknown operation: {operation}") from None

        spec, groups = self._find(path)
        factory = spec.operations.get(op)
        if factory is None:
            supported = ", ".join(o.value for o in spec.operations)
            raise InvalidUsageError(
                f"Operation '{op.value}' is not supported on {path} (supported: {supported})"
            )
        return factory(groups, dict(data or {}))

    def handle(
        self,
        operation: Operation | str,
        path: str,
        data: Optional[dict[str, Any]] = None,
    ) -> Payload:
        """Route and dispatch in one step."""
        return self._handlers.dispatch(self.route(operation, path, data))

    def help(self, path: str) -> str:
        """Return the help text of *path*, including its field descriptions."""
        spec, _ = self._find(path)
        lines = [spec.help]
        for name, description in spec.fields.items():
            lines.append(f"  {name}: {description}")
        return "\n".join(lines)

    def _find(self, path: str) -> tuple[PathSpec, dict[str, str]]:
        path = path.strip().lstrip("/")
        for spec in self._paths:
            groups = spec.match(path)
            if groups is not None:
                return spec, groups
        raise InvalidUsageError(f"Unsupported path: {path}")
