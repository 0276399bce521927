"""Concurrency-safe resource cache owned by each driver."""

from __future__ import annotations

import threading
from typing import Any, Mapping

_MISSING = object()


class ResourceCache:
    """Point-in-time snapshot of a driver's remote inventory.

    Maps resource identifier to driver-specific metadata. A refresh swaps in a
    new dict under the lock rather than mutating in place, so an eviction
    racing a refresh either lands on the old snapshot (and is dropped with it)
    or on the new one, never on a half-built structure.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._entries: dict[str, Any] = {}

    def replace(self, entries: Mapping[str, Any]) -> list[str]:
        """Atomically replace the whole snapshot.

        Returns:
            Sorted identifiers of the new snapshot
        """
        snapshot = dict(entries)
        with self._lock:
            self._entries = snapshot
        return sorted(snapshot)

    def evict(self, identifier: str) -> bool:
        """Remove one entry after a confirmed delete.

        Returns:
            True if the entry was present
        """
        with self._lock:
            return self._entries.pop(identifier, _MISSING) is not _MISSING

    def keys(self) -> list[str]:
        """Sorted identifiers, for deterministic logging and tests."""
        with self._lock:
            return sorted(self._entries)

    def items(self) -> list[tuple[str, Any]]:
        """Copy of (identifier, metadata) pairs sorted by identifier."""
        with self._lock:
            return sorted(self._entries.items())

    def get(self, identifier: str, default: Any = None) -> Any:
        with self._lock:
            return self._entries.get(identifier, default)

    def __contains__(self, identifier: object) -> bool:
        with self._lock:
            return identifier in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
