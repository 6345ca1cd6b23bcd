"""
timestamping.state.journal: journaling writes, checkpoints, revert/commit.

A deterministic, in-memory write journal layered over a
:class:`~timestamping.state.backend.StorageBackend`. Nested checkpoints are a
stack of overlays: writes go to the top overlay, reads consult overlays from
top → base. `commit()` merges the top overlay into the next layer (or into the
backend when it is the last one). `revert()` discards the top overlay.

Intended usage
--------------
    j = Journal(MemoryBackend())
    j.begin()                 # start a checkpoint (one per call)
    j.set(b"k", b"v")
    j.begin()                 # nested (reentrant) call
    j.delete(b"k")
    j.revert()                # nested call failed: b"k" is visible again
    j.commit()                # outer call succeeded: b"k" reaches the backend

With no open checkpoint, reads go straight to the backend and writes are
rejected; state only changes through a committed checkpoint.
"""

from __future__ import annotations

from typing import Dict, List, Optional

from timestamping.errors import StateError

from .backend import StorageBackend


def _b(x: bytes | bytearray | memoryview, *, name: str) -> bytes:
    if not isinstance(x, (bytes, bytearray, memoryview)):
        raise TypeError(f"{name} must be bytes-like")
    return bytes(x)


class Journal:
    """
    A copy-on-write write journal with nested checkpoints.

    Each overlay maps key → value, with ``None`` as an explicit deletion
    marker so a nested layer can shadow a value committed below it.
    """

    def __init__(self, backend: StorageBackend) -> None:
        self._backend = backend
        self._layers: List[Dict[bytes, Optional[bytes]]] = []

    @property
    def backend(self) -> StorageBackend:
        return self._backend

    # ------------------------------------------------------------------ #
    # Checkpointing
    # ------------------------------------------------------------------ #

    def depth(self) -> int:
        """Number of open checkpoints (0 when idle)."""
        return len(self._layers)

    def begin(self) -> int:
        """Start a new checkpoint. Returns the new depth marker."""
        self._layers.append({})
        return len(self._layers)

    def commit(self) -> None:
        """Commit the top overlay into its parent, or into the backend if it is the last."""
        if not self._layers:
            raise StateError("commit without an open checkpoint")
        top = self._layers.pop()
        if self._layers:
            self._layers[-1].update(top)
            return
        for k, v in top.items():
            if v is None:
                self._backend.delete(k)
            else:
                self._backend.set(k, v)

    def revert(self) -> None:
        """Discard the top overlay."""
        if not self._layers:
            raise StateError("revert without an open checkpoint")
        self._layers.pop()

    def revert_to(self, marker: int) -> None:
        """Revert repeatedly until the current depth equals ``marker - 1``."""
        if marker < 1:
            raise ValueError("marker must be >= 1")
        while len(self._layers) >= marker:
            self.revert()

    # ------------------------------------------------------------------ #
    # Key/value API
    # ------------------------------------------------------------------ #

    def get(self, key: bytes) -> Optional[bytes]:
        k = _b(key, name="key")
        for layer in reversed(self._layers):
            if k in layer:
                return layer[k]
        return self._backend.get(k)

    def exists(self, key: bytes) -> bool:
        return self.get(key) is not None

    def set(self, key: bytes, value: bytes) -> None:
        if not self._layers:
            raise StateError("write outside of a checkpoint", key=bytes(key))
        self._layers[-1][_b(key, name="key")] = _b(value, name="value")

    def delete(self, key: bytes) -> None:
        if not self._layers:
            raise StateError("delete outside of a checkpoint", key=bytes(key))
        self._layers[-1][_b(key, name="key")] = None

    # ------------------------------------------------------------------ #
    # Introspection
    # ------------------------------------------------------------------ #

    def pending_keys(self) -> int:
        """Total number of staged entries across open layers."""
        return sum(len(layer) for layer in self._layers)


__all__ = ["Journal"]
