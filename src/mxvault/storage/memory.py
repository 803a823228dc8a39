"""In-memory storage backend."""

from __future__ import annotations

from typing import Optional

from mxvault.models import StorageEntry
from mxvault.storage.base import Storage, list_children


class InMemoryStorage(Storage):
    """Dict-backed :class:`~mxvault.storage.base.Storage`.

    Nothing survives the process. Used by the test suite and by the
    ``memory`` backend setting.
    """

    def __init__(self) -> None:
        self._data: dict[str, bytes] = {}

    def get(self, key: str) -> Optional[StorageEntry]:
        value = self._data.get(key)
        if value is None:
            return None
        return StorageEntry(key=key, value=value)

    def put(self, entry: StorageEntry) -> None:
        self._data[entry.key] = entry.value

    def list(self, prefix: str) -> list[str]:
        return list_children(self._data, prefix)

    def delete(self, key: str) -> None:
        self._data.pop(key, None)
