"""
timestamping.zk.hashing: content bytes → stamp commitment.

    digest     = keccak256(content)                 (32 bytes, as an integer)
    secret     = poseidon([digest])                 (the prover's private input)
    commitment = poseidon([secret])                 (the stamp hash, public)

The circuit proves knowledge of ``secret`` for a given ``commitment`` and
binds the proof to the submitting address.
"""

from __future__ import annotations

from typing import Union

from Crypto.Hash import keccak as _keccak

from timestamping.types import HASH_LEN

from .poseidon import poseidon

BytesLike = Union[bytes, bytearray, memoryview]


def keccak256(data: BytesLike) -> bytes:
    """Keccak-256 (Ethereum flavour, not NIST SHA3-256)."""
    if not isinstance(data, (bytes, bytearray, memoryview)):
        raise TypeError("keccak256 expects bytes-like input")
    h = _keccak.new(digest_bits=256)
    h.update(bytes(data))
    return h.digest()


def content_secret(data: BytesLike) -> int:
    """The private witness for ``data``: poseidon(keccak256(data))."""
    return poseidon([int.from_bytes(keccak256(data), "big")])


def commitment(secret: int) -> int:
    return poseidon([int(secret)])


def hash_to_bytes(value: int) -> bytes:
    return int(value).to_bytes(HASH_LEN, "big")


def hash_by_bytes(data: BytesLike) -> bytes:
    """32-byte stamp hash for raw content."""
    return hash_to_bytes(commitment(content_secret(data)))


__all__ = ["keccak256", "content_secret", "commitment", "hash_to_bytes", "hash_by_bytes"]
