"""File-backed storage backend.

All entries live in one JSON document mapping each key to its base64-encoded
value::

    {
      "config/homeserver/example.org": "aHR0cHM6Ly9leGFtcGxlLm9yZw==",
      "config/user/@alice:example.org": "czNjcjN0"
    }

Every write re-reads the document, applies the change, and replaces the
file atomically with ``0o600`` permissions so login secrets are never
world-readable, even momentarily. Concurrent writers resolve as
last-writer-wins.
"""

from __future__ import annotations

import base64
import binascii
import json
from pathlib import Path
from typing import Optional

from mxvault.config import atomic_write
from mxvault.exceptions import StorageError
from mxvault.models import StorageEntry
from mxvault.storage.base import Storage, list_children


class FileStorage(Storage):
    """Persist entries in a single JSON document.

    Args:
        path: Location of the document. It is created on first write.

    Example::

        storage = FileStorage(Path("~/.local/share/mxvault/storage.json").expanduser())
        storage.put(StorageEntry(key="config/homeserver/example.org", value=b"https://example.org"))
    """

    def __init__(self, path: Path) -> None:
        self._path = path

    @property
    def path(self) -> Path:
        """The filesystem path of the storage document."""
        return self._path

    def get(self, key: str) -> Optional[StorageEntry]:
        value = self._read().get(key)
        if value is None:
            return None
        return StorageEntry(key=key, value=value)

    def put(self, entry: StorageEntry) -> None:
        data = self._read()
        data[entry.key] = entry.value
        self._write(data)

    def list(self, prefix: str) -> list[str]:
        return list_children(self._read(), prefix)

    def delete(self, key: str) -> None:
        data = self._read()
        if key not in data:
            return
        del data[key]
        self._write(data)

    def _read(self) -> dict[str, bytes]:
        """Load and decode the whole document.

        Raises:
            StorageError: If the file cannot be read or is not a valid
                storage document.
        """
        if not self._path.is_file():
            return {}
        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
        except OSError as exc:
            raise StorageError(f"Cannot read storage at {self._path}: {exc}") from exc
        except json.JSONDecodeError as exc:
            raise StorageError(f"Corrupt storage at {self._path}: {exc}") from exc

        if not isinstance(raw, dict):
            raise StorageError(f"Corrupt storage at {self._path}: not a JSON object")

        try:
            return {
                str(key): base64.b64decode(value, validate=True)
                for key, value in raw.items()
            }
        except (TypeError, binascii.Error) as exc:
            raise StorageError(f"Corrupt storage at {self._path}: {exc}") from exc

    def _write(self, data: dict[str, bytes]) -> None:
        encoded = {
            key: base64.b64encode(value).decode("ascii")
            for key, value in sorted(data.items())
        }
        try:
            atomic_write(self._path, json.dumps(encoded, indent=2) + "\n", mode=0o600)
        except OSError as exc:
            raise StorageError(f"Cannot write storage at {self._path}: {exc}") from exc
