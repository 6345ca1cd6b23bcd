# -*- coding: utf-8 -*-
"""
timestamping.state.layout
=========================

Typed facade over the registry's key/value namespace. Contract logic never
builds keys by hand; it goes through :class:`RegistryState`, which owns the
layout below. Integers are stored as 32-byte big-endian u256; structured
records are canonical CBOR maps.

State & storage layout
----------------------
    "ts:schema"                      -> u256 schema version
    "ts:init"                        -> u256 initialized logic version (0 = never)
    "ts:owner"                       -> owner address (20 bytes)
    "ts:fee"                         -> u256 fee rate
    "ts:fee_balance"                 -> u256 accumulated, unwithdrawn fees
    "ts:verifier"                    -> verifier reference (bytes)
    "ts:stamp:"  + hash              -> CBOR {created_at, visibility, signer_total, signed_count}
    "ts:signer:" + hash + u64(i)     -> i-th signer address (insertion order)
    "ts:record:" + hash + addr       -> CBOR {admitted, signed_at}
    "ts:user:"   + addr + ":n"       -> u256 length of the user's hash index
    "ts:user:"   + addr + ":" + u64(i) -> i-th hash in the user's index
    "ts:user:"   + addr + ":has:" + hash -> b"\\x01" membership flag
    "proxy:impl"                     -> u256 current logic version

Hashes are fixed 32 bytes and addresses fixed 20 bytes, so concatenated keys
are unambiguous. Lists are stored element-wise: paginated reads touch only
the requested slice.
"""
from __future__ import annotations

from typing import Final, List, Optional, Protocol

from timestamping.encoding import decode_u256, dumps_canonical, encode_u256, loads
from timestamping.errors import StateError
from timestamping.types import SignerRecord, StampHeader, Visibility

# ---------- Keys ----------

K_SCHEMA: Final[bytes] = b"ts:schema"
K_INIT: Final[bytes] = b"ts:init"
K_OWNER: Final[bytes] = b"ts:owner"
K_FEE: Final[bytes] = b"ts:fee"
K_FEE_BALANCE: Final[bytes] = b"ts:fee_balance"
K_VERIFIER: Final[bytes] = b"ts:verifier"
K_IMPL: Final[bytes] = b"proxy:impl"

_P_STAMP: Final[bytes] = b"ts:stamp:"
_P_SIGNER: Final[bytes] = b"ts:signer:"
_P_RECORD: Final[bytes] = b"ts:record:"
_P_USER: Final[bytes] = b"ts:user:"

_FLAG: Final[bytes] = b"\x01"


class KeyValue(Protocol):
    def get(self, key: bytes) -> Optional[bytes]: ...
    def set(self, key: bytes, value: bytes) -> None: ...
    def exists(self, key: bytes) -> bool: ...


def _idx(i: int) -> bytes:
    return int(i).to_bytes(8, "big")


class RegistryState:
    """Typed accessors for everything the registry persists."""

    __slots__ = ("_kv",)

    def __init__(self, kv: KeyValue) -> None:
        self._kv = kv

    # ---------- u256 / scalar helpers ----------

    def _get_u256(self, key: bytes) -> int:
        raw = self._kv.get(key)
        return 0 if raw is None else decode_u256(raw)

    def _set_u256(self, key: bytes, value: int) -> None:
        self._kv.set(key, encode_u256(value))

    # ---------- Globals ----------

    @property
    def schema_version(self) -> int:
        return self._get_u256(K_SCHEMA)

    @schema_version.setter
    def schema_version(self, v: int) -> None:
        self._set_u256(K_SCHEMA, v)

    @property
    def init_version(self) -> int:
        return self._get_u256(K_INIT)

    @init_version.setter
    def init_version(self, v: int) -> None:
        self._set_u256(K_INIT, v)

    @property
    def owner(self) -> Optional[bytes]:
        return self._kv.get(K_OWNER)

    @owner.setter
    def owner(self, addr: bytes) -> None:
        self._kv.set(K_OWNER, bytes(addr))

    @property
    def fee(self) -> int:
        return self._get_u256(K_FEE)

    @fee.setter
    def fee(self, v: int) -> None:
        self._set_u256(K_FEE, v)

    @property
    def fee_balance(self) -> int:
        return self._get_u256(K_FEE_BALANCE)

    @fee_balance.setter
    def fee_balance(self, v: int) -> None:
        self._set_u256(K_FEE_BALANCE, v)

    @property
    def verifier_ref(self) -> bytes:
        return self._kv.get(K_VERIFIER) or b""

    @verifier_ref.setter
    def verifier_ref(self, ref: bytes) -> None:
        self._kv.set(K_VERIFIER, bytes(ref))

    @property
    def implementation(self) -> int:
        return self._get_u256(K_IMPL)

    @implementation.setter
    def implementation(self, version: int) -> None:
        self._set_u256(K_IMPL, version)

    # ---------- Stamp header ----------

    def get_stamp(self, stamp_hash: bytes) -> Optional[StampHeader]:
        raw = self._kv.get(_P_STAMP + stamp_hash)
        if raw is None:
            return None
        m = loads(raw)
        try:
            return StampHeader(
                created_at=int(m["created_at"]),
                visibility=Visibility(m["visibility"]),
                signer_total=int(m["signer_total"]),
                signed_count=int(m["signed_count"]),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise StateError(f"malformed stamp header: {e}", key=_P_STAMP + stamp_hash) from e

    def put_stamp(self, stamp_hash: bytes, header: StampHeader) -> None:
        self._kv.set(
            _P_STAMP + stamp_hash,
            dumps_canonical(
                {
                    "created_at": header.created_at,
                    "visibility": header.visibility.value,
                    "signer_total": header.signer_total,
                    "signed_count": header.signed_count,
                }
            ),
        )

    def stamp_exists(self, stamp_hash: bytes) -> bool:
        return self._kv.exists(_P_STAMP + stamp_hash)

    # ---------- Signer list (insertion ordered) ----------

    def set_signer_at(self, stamp_hash: bytes, i: int, addr: bytes) -> None:
        self._kv.set(_P_SIGNER + stamp_hash + _idx(i), bytes(addr))

    def signer_at(self, stamp_hash: bytes, i: int) -> bytes:
        raw = self._kv.get(_P_SIGNER + stamp_hash + _idx(i))
        if raw is None:
            raise StateError("signer list shorter than its header", key=_P_SIGNER + stamp_hash + _idx(i))
        return raw

    def signers(self, stamp_hash: bytes, start: int, stop: int) -> List[bytes]:
        return [self.signer_at(stamp_hash, i) for i in range(start, stop)]

    # ---------- Signer records ----------

    def get_record(self, stamp_hash: bytes, addr: bytes) -> Optional[SignerRecord]:
        raw = self._kv.get(_P_RECORD + stamp_hash + addr)
        if raw is None:
            return None
        m = loads(raw)
        try:
            return SignerRecord(identity=bytes(addr), admitted=bool(m["admitted"]), signed_at=int(m["signed_at"]))
        except (KeyError, TypeError, ValueError) as e:
            raise StateError(f"malformed signer record: {e}", key=_P_RECORD + stamp_hash + addr) from e

    def put_record(self, stamp_hash: bytes, record: SignerRecord) -> None:
        self._kv.set(
            _P_RECORD + stamp_hash + record.identity,
            dumps_canonical({"admitted": record.admitted, "signed_at": record.signed_at}),
        )

    # ---------- Reverse index: user → hashes ----------

    def user_hash_count(self, addr: bytes) -> int:
        return self._get_u256(_P_USER + addr + b":n")

    def user_has_hash(self, addr: bytes, stamp_hash: bytes) -> bool:
        return self._kv.exists(_P_USER + addr + b":has:" + stamp_hash)

    def add_user_hash(self, addr: bytes, stamp_hash: bytes) -> bool:
        """Append ``stamp_hash`` to ``addr``'s index unless present. Returns True if appended."""
        if self.user_has_hash(addr, stamp_hash):
            return False
        n = self.user_hash_count(addr)
        self._kv.set(_P_USER + addr + b":" + _idx(n), stamp_hash)
        self._kv.set(_P_USER + addr + b":has:" + stamp_hash, _FLAG)
        self._set_u256(_P_USER + addr + b":n", n + 1)
        return True

    def user_hashes(self, addr: bytes, start: int, stop: int) -> List[bytes]:
        out: List[bytes] = []
        for i in range(start, stop):
            raw = self._kv.get(_P_USER + addr + b":" + _idx(i))
            if raw is None:
                raise StateError("user index shorter than its length", key=_P_USER + addr + b":" + _idx(i))
            out.append(raw)
        return out


__all__ = ["RegistryState", "KeyValue", "K_IMPL"]
