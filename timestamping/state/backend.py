"""
timestamping.state.backend: durable key/value backend interface.

The registry keeps all of its state in a single flat byte-keyed store. The
host wraps the backend in a :class:`~timestamping.state.journal.Journal` so
every call can be committed or reverted as a unit; the backend itself only
ever sees committed writes.

Design goals
------------
- Deterministic: pure functions over (key, value) with no wall-clock or I/O.
- Simple default: in-process memory backend for local runs & tests.
- Pluggable: a tiny Protocol so a real database can be swapped in.
"""

from __future__ import annotations

import threading
from typing import Dict, Iterator, Optional, Protocol, Tuple, runtime_checkable


@runtime_checkable
class StorageBackend(Protocol):
    """Minimal backend interface for registry storage."""

    def get(self, key: bytes) -> Optional[bytes]: ...
    def set(self, key: bytes, value: bytes) -> None: ...
    def delete(self, key: bytes) -> None: ...
    def exists(self, key: bytes) -> bool: ...


class MemoryBackend:
    """Thread-safe in-memory backend for local runs and tests."""

    def __init__(self, initial: Optional[Dict[bytes, bytes]] = None) -> None:
        self._store: Dict[bytes, bytes] = dict(initial or {})
        self._lock = threading.RLock()

    def get(self, key: bytes) -> Optional[bytes]:
        with self._lock:
            return self._store.get(key)

    def set(self, key: bytes, value: bytes) -> None:
        with self._lock:
            self._store[bytes(key)] = bytes(value)

    def delete(self, key: bytes) -> None:
        with self._lock:
            self._store.pop(key, None)

    def exists(self, key: bytes) -> bool:
        with self._lock:
            return key in self._store

    def items(self, prefix: bytes = b"") -> Iterator[Tuple[bytes, bytes]]:
        """Snapshot of (key, value) pairs under ``prefix`` in key order."""
        with self._lock:
            snap = sorted((k, v) for k, v in self._store.items() if k.startswith(prefix))
        return iter(snap)

    def snapshot(self) -> Dict[bytes, bytes]:
        with self._lock:
            return dict(self._store)

    def __len__(self) -> int:
        with self._lock:
            return len(self._store)


__all__ = ["StorageBackend", "MemoryBackend"]
