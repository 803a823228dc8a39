"""Secret-storage backends for mxvault.

The homeserver and user records are kept in a flat key/value store whose
keys are slash-separated paths (``config/homeserver/example.org``) and whose
values are byte strings. This mirrors the storage interface a secrets
engine gets from its host, so any such store can be plugged in by
subclassing :class:`Storage`.

The main entry points are:

- :class:`Storage` -- abstract get/put/list/delete interface.
- :class:`InMemoryStorage` -- dict-backed store for tests and throwaway runs.
- :class:`FileStorage` -- single JSON document written atomically with
  ``0o600`` permissions.
- :func:`create_storage` -- builds the backend selected by a
  :class:`~mxvault.models.StorageConfig`.

Typical usage::

    from mxvault.storage import create_storage

    storage = create_storage(config.storage)
    storage.put(StorageEntry(key="config/homeserver/example.org", value=b"https://example.org"))
"""

from __future__ import annotations

from pathlib import Path

from mxvault.exceptions import ConfigError
from mxvault.models import StorageConfig
from mxvault.storage.base import Storage
from mxvault.storage.file import FileStorage
from mxvault.storage.memory import InMemoryStorage

__all__ = [
    "FileStorage",
    "InMemoryStorage",
    "Storage",
    "create_storage",
]


def create_storage(config: StorageConfig) -> Storage:
    """Create the storage backend described by *config*.

    Raises:
        ConfigError: If the file backend is selected without a path.
    """
    if config.backend == "memory":
        return InMemoryStorage()
    if not config.path:
        raise ConfigError("The file storage backend requires a path")
    return FileStorage(Path(config.path).expanduser())
