"""
timestamping.types: value objects returned by the registry.

All addresses are 20-byte identities; stamp hashes are 32-byte commitments.
Timestamps are host block timestamps in whole seconds; 0 always means
"not set".
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Tuple, Union

ADDRESS_LEN = 20
HASH_LEN = 32

#: Required-signer count reported for public stamps.
UNBOUNDED = (1 << 256) - 1

AddressLike = Union[bytes, bytearray, str]


def to_address(value: AddressLike) -> bytes:
    """Normalize a 20-byte address given as bytes or 0x-hex."""
    if isinstance(value, str):
        s = value[2:] if value.startswith(("0x", "0X")) else value
        try:
            value = bytes.fromhex(s)
        except ValueError as e:
            raise ValueError(f"address is not valid hex: {value!r}") from e
    if not isinstance(value, (bytes, bytearray)):
        raise TypeError("address must be bytes or hex string")
    if len(value) != ADDRESS_LEN:
        raise ValueError(f"address must be {ADDRESS_LEN} bytes, got {len(value)}")
    return bytes(value)


def to_hash(value: Union[bytes, bytearray, str, int]) -> bytes:
    """Normalize a 32-byte stamp hash given as bytes, 0x-hex or field integer."""
    if isinstance(value, bool):
        raise TypeError("hash must be bytes, hex string or int")
    if isinstance(value, int):
        if value < 0 or value >= 1 << 256:
            raise ValueError("hash integer out of range")
        return value.to_bytes(HASH_LEN, "big")
    if isinstance(value, str):
        s = value[2:] if value.startswith(("0x", "0X")) else value
        try:
            value = bytes.fromhex(s)
        except ValueError as e:
            raise ValueError(f"hash is not valid hex: {value!r}") from e
    if not isinstance(value, (bytes, bytearray)):
        raise TypeError("hash must be bytes, hex string or int")
    if len(value) != HASH_LEN:
        raise ValueError(f"hash must be {HASH_LEN} bytes, got {len(value)}")
    return bytes(value)


class Visibility(str, Enum):
    ADMITTED = "admitted"
    PUBLIC = "public"


@dataclass(frozen=True)
class SignerRecord:
    identity: bytes
    admitted: bool = False
    signed_at: int = 0

    @property
    def signed(self) -> bool:
        return self.signed_at != 0

    def to_dict(self) -> Dict[str, Any]:
        return {"identity": "0x" + self.identity.hex(), "admitted": self.admitted, "signed_at": self.signed_at}


@dataclass(frozen=True)
class StampHeader:
    """Persisted per-stamp header; signer list and records live under their own keys."""
    created_at: int
    visibility: Visibility
    signer_total: int = 0
    signed_count: int = 0

    @property
    def is_public(self) -> bool:
        return self.visibility is Visibility.PUBLIC

    @property
    def users_to_sign(self) -> int:
        return UNBOUNDED if self.is_public else self.signer_total


@dataclass(frozen=True)
class StampInfo:
    """
    Query envelope for a stamp.

    ``users_to_sign`` is the admitted-list length, or ``UNBOUNDED`` for a
    public stamp. ``users_signed`` counts records with a signature. ``signers``
    is in insertion order; for paginated reads it holds only the requested
    slice while the counters always describe the whole stamp.
    """
    hash: bytes
    is_public: bool
    created_at: int
    users_to_sign: int
    users_signed: int
    signers: Tuple[SignerRecord, ...] = field(default_factory=tuple)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "hash": "0x" + self.hash.hex(),
            "is_public": self.is_public,
            "created_at": self.created_at,
            "users_to_sign": self.users_to_sign,
            "users_signed": self.users_signed,
            "signers": [s.to_dict() for s in self.signers],
        }


@dataclass(frozen=True)
class UserInfo:
    identity: bytes
    admitted: bool = False
    signed_at: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {"identity": "0x" + self.identity.hex(), "admitted": self.admitted, "signed_at": self.signed_at}


__all__ = [
    "ADDRESS_LEN",
    "HASH_LEN",
    "UNBOUNDED",
    "AddressLike",
    "to_address",
    "to_hash",
    "Visibility",
    "SignerRecord",
    "StampHeader",
    "StampInfo",
    "UserInfo",
]
