"""
timestamping.state.view: per-contract namespaced views over the journal.

Every deployed contract address gets its own key namespace
(``c:<address>:<key>``) so several registries can share one host without
colliding. Views handed to read-only queries reject writes.
"""

from __future__ import annotations

from typing import Optional

from timestamping.errors import StateError

from .journal import Journal

CONTRACT_PREFIX = b"c:"


class StorageView:
    __slots__ = ("_journal", "_prefix", "_read_only")

    def __init__(self, journal: Journal, address: bytes, *, read_only: bool = False) -> None:
        self._journal = journal
        self._prefix = CONTRACT_PREFIX + bytes(address) + b":"
        self._read_only = read_only

    @property
    def read_only(self) -> bool:
        return self._read_only

    def _key(self, key: bytes) -> bytes:
        if not isinstance(key, (bytes, bytearray)) or not key:
            raise StateError("storage key must be non-empty bytes")
        return self._prefix + bytes(key)

    def get(self, key: bytes) -> Optional[bytes]:
        return self._journal.get(self._key(key))

    def exists(self, key: bytes) -> bool:
        return self._journal.exists(self._key(key))

    def set(self, key: bytes, value: bytes) -> None:
        if self._read_only:
            raise StateError("write attempted in a read-only call", key=bytes(key))
        self._journal.set(self._key(key), value)

    def delete(self, key: bytes) -> None:
        if self._read_only:
            raise StateError("delete attempted in a read-only call", key=bytes(key))
        self._journal.delete(self._key(key))


__all__ = ["StorageView", "CONTRACT_PREFIX"]
