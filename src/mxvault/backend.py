"""Backend factory -- wires storage, transport, issuer, and handlers together.

:func:`create_backend` builds every collaborator from a
:class:`~mxvault.models.GlobalConfig` and hands them to each other
explicitly; there is no module-level backend instance. The returned
:class:`Backend` owns the HTTP connection pool and must be closed, which
the context-manager form does automatically::

    with create_backend(resolve_config()) as backend:
        backend.router.handle("read", "user/alice/example.org")
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import httpx

from mxvault.client import TransportClient
from mxvault.handlers import Handlers, PathRouter
from mxvault.issuer import CredentialIssuer, IssuerContext
from mxvault.models import GlobalConfig
from mxvault.storage import Storage, create_storage
from mxvault.store import ConfigStore

HELP = "The Matrix secrets engine provides access tokens to Matrix users on a homeserver."


@dataclass
class Backend:
    """All runtime collaborators of one mxvault instance."""

    store: ConfigStore
    transport: TransportClient
    issuer: CredentialIssuer
    handlers: Handlers
    router: PathRouter

    def close(self) -> None:
        self.transport.close()

    def __enter__(self) -> Backend:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()


def create_backend(
    config: GlobalConfig,
    storage: Optional[Storage] = None,
    transport: Optional[httpx.BaseTransport] = None,
) -> Backend:
    """Build a :class:`Backend` from *config*.

    Args:
        config: Effective configuration (see :func:`~mxvault.config.resolve_config`).
        storage: Use this backend instead of the one *config* selects.
        transport: Optional httpx transport override (tests).

    Raises:
        ConfigError: If the storage settings are invalid.
    """
    store = ConfigStore(storage if storage is not None else create_storage(config.storage))
    client = TransportClient(config.request, transport=transport)
    issuer = CredentialIssuer(IssuerContext(store=store, transport=client))
    handlers = Handlers(store, issuer)
    return Backend(
        store=store,
        transport=client,
        issuer=issuer,
        handlers=handlers,
        router=PathRouter(handlers),
    )
