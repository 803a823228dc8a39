"""Abstract base class for storage backends.

A backend stores :class:`~mxvault.models.StorageEntry` values under
slash-separated keys. :meth:`Storage.list` follows the usual secret-store
convention of returning only the immediate children of a prefix, with
deeper levels collapsed into a single ``name/`` entry.

Backends report their own failures as
:class:`~mxvault.exceptions.StorageError`; callers let those propagate.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Iterable, Optional

from mxvault.models import StorageEntry


class Storage(ABC):
    """Key/value store used by :class:`~mxvault.store.ConfigStore`."""

    @abstractmethod
    def get(self, key: str) -> Optional[StorageEntry]:
        """Return the entry stored at *key*, or ``None`` if there is none."""
        ...

    @abstractmethod
    def put(self, entry: StorageEntry) -> None:
        """Create or replace the entry at ``entry.key``."""
        ...

    @abstractmethod
    def list(self, prefix: str) -> list[str]:
        """Return the sorted immediate children of *prefix*."""
        ...

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove *key*. Removing a missing key is a no-op."""
        ...


def list_children(keys: Iterable[str], prefix: str) -> list[str]:
    """Collapse *keys* under *prefix* into their immediate children.

    Example::

        >>> list_children(["a/b", "a/c/d", "x"], "a/")
        ['b', 'c/']
    """
    children: set[str] = set()
    for key in keys:
        if not key.startswith(prefix):
            continue
        rest = key[len(prefix):]
        if not rest:
            continue
        head, sep, _ = rest.partition("/")
        children.add(head + sep)
    return sorted(children)
