"""Typed accessors for the homeserver and user records.

:class:`ConfigStore` is the only code that knows the storage key layout::

    config/homeserver/<domain>         -> client-server base URL
    config/user/@<localpart>:<domain>  -> login secret

Values are stored as UTF-8 bytes. A missing record is reported as ``None``,
never as an error; :class:`~mxvault.exceptions.StorageError` raised by the
backend propagates unchanged.
"""

from __future__ import annotations

from typing import Optional

from mxvault.exceptions import StorageError
from mxvault.models import StorageEntry
from mxvault.storage import Storage

HOMESERVER_PREFIX = "config/homeserver/"
USER_PREFIX = "config/user/"


class ConfigStore:
    """Read and write homeserver URLs and user login secrets.

    Args:
        storage: The backend the records live in.

    Example::

        store = ConfigStore(InMemoryStorage())
        store.put_homeserver_url("example.org", "https://example.org")
        assert store.get_homeserver_url("example.org") == "https://example.org"
    """

    def __init__(self, storage: Storage) -> None:
        self._storage = storage

    # --- Homeservers ---

    def get_homeserver_url(self, domain: str) -> Optional[str]:
        """Return the client-server URL registered for *domain*, if any."""
        return self._get(HOMESERVER_PREFIX + domain)

    def put_homeserver_url(self, domain: str, url: str) -> None:
        self._put(HOMESERVER_PREFIX + domain, url)

    def delete_homeserver_url(self, domain: str) -> None:
        self._storage.delete(HOMESERVER_PREFIX + domain)

    def list_homeserver_domains(self) -> list[str]:
        return self._storage.list(HOMESERVER_PREFIX)

    # --- Users ---

    def get_user_secret(self, user_id: str) -> Optional[str]:
        """Return the login secret registered for *user_id*, if any.

        Args:
            user_id: Fully-qualified user ID (``@localpart:domain``).
        """
        return self._get(USER_PREFIX + user_id)

    def put_user_secret(self, user_id: str, secret: str) -> None:
        self._put(USER_PREFIX + user_id, secret)

    def delete_user_secret(self, user_id: str) -> None:
        self._storage.delete(USER_PREFIX + user_id)

    def list_user_ids(self) -> list[str]:
        return self._storage.list(USER_PREFIX)

    # --- Helpers ---

    def _get(self, key: str) -> Optional[str]:
        entry = self._storage.get(key)
        if entry is None:
            return None
        try:
            return entry.value.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise StorageError(f"Value at {key} is not valid UTF-8") from exc

    def _put(self, key: str, value: str) -> None:
        self._storage.put(StorageEntry(key=key, value=value.encode("utf-8")))
