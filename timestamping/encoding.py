"""
timestamping.encoding: canonical CBOR for persisted records.

Every structured value the registry writes into the key/value store (stamp
headers, signer records) is a small text-keyed map encoded with canonical
CBOR, so identical state always produces identical bytes regardless of dict
insertion order.

Public API
----------
- dumps_canonical(obj) -> bytes
- loads(data) -> Any
- encode_u256(n) / decode_u256(b)   fixed 32-byte big-endian integers
"""

from __future__ import annotations

from dataclasses import asdict, is_dataclass
from typing import Any, Dict

import cbor2

from timestamping.errors import StateError

U256_MAX = (1 << 256) - 1


def _canon_obj(obj: Any) -> Any:
    if is_dataclass(obj) and not isinstance(obj, type):
        obj = asdict(obj)
    if isinstance(obj, dict):
        out: Dict[str, Any] = {}
        for k, v in obj.items():
            if not isinstance(k, str):
                raise StateError(f"non-text map key encountered (type={type(k).__name__})")
            out[k] = _canon_obj(v)
        return out
    if isinstance(obj, (list, tuple)):
        return [_canon_obj(x) for x in obj]
    if isinstance(obj, (bytearray, memoryview)):
        return bytes(obj)
    return obj


def dumps_canonical(obj: Any) -> bytes:
    """Encode ``obj`` to canonical CBOR (RFC 8949 §4.2.1 key ordering)."""
    return cbor2.dumps(_canon_obj(obj), canonical=True)


def loads(data: bytes) -> Any:
    try:
        return cbor2.loads(bytes(data))
    except (cbor2.CBORDecodeError, ValueError) as e:
        raise StateError(f"corrupt CBOR record: {e}") from e


def encode_u256(n: int) -> bytes:
    if not isinstance(n, int) or isinstance(n, bool):
        raise TypeError("u256 value must be int")
    if n < 0 or n > U256_MAX:
        raise ValueError("u256 out of range")
    return n.to_bytes(32, "big")


def decode_u256(b: bytes) -> int:
    if len(b) != 32:
        raise StateError(f"u256 record must be 32 bytes, got {len(b)}")
    return int.from_bytes(b, "big")


__all__ = ["dumps_canonical", "loads", "encode_u256", "decode_u256", "U256_MAX"]
