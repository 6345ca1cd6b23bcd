# -*- coding: utf-8 -*-
"""
timestamping.contracts.registry
===============================

Stamp registry logic, version 1.

A caller registers a 32-byte commitment together with a zero-knowledge proof
that it knows the committed content, optionally restricts who may
countersign, and collects signatures over time. Logic objects are stateless:
every entrypoint receives the host :class:`~timestamping.runtime.host.Frame`
and reads or writes durable state through
:class:`~timestamping.state.layout.RegistryState`. The proxy
(:mod:`timestamping.contracts.proxy`) picks the logic version per call.

Stamp lifecycle
---------------
create_stamp(hash, is_public, signers, proof) with attached payment:

0. InvalidArgument    if ``hash`` is not below the BN254 scalar field modulus
1. HashCollision      if a stamp exists for ``hash``
2. InvalidSigners     on a duplicate or malformed signer
3. InsufficientFee    if payment < fee
4. ProofInvalid       unless the verifier accepts (hash, caller)
5. effects: header, signer list, records, reverse index, fee balance, events
6. excess payment refunded (RefundTransferFailed reverts everything)

Visibility is ADMITTED for a non-empty signer list (the creator is never
auto-signed, whatever ``is_public`` says) and PUBLIC otherwise. A public
stamp created with ``is_public`` records the creator as its first signer.

sign(hash):

- ADMITTED: only listed identities, once each;
- PUBLIC: anyone, once each; the record is created on first signature.

Events
------
- b"StampCreated"  {"hash": bytes, "created_at": int, "signers": (bytes, ...)}
- b"StampSigned"   {"hash": bytes, "signer": bytes, "timestamp": int}
- b"Initialized"   {"version": int, "owner": bytes, "fee": int}
- b"VerifierUpdated" {"old": bytes, "new": bytes}
- fee and ownership events, see fee_ledger / ownable
"""
from __future__ import annotations

from dataclasses import replace
from typing import Any, List, Optional, Sequence, Tuple

from timestamping import logging as tlog
from timestamping.config import load_config
from timestamping.errors import (AlreadySigned, HashCollision, HashNotFound, InvalidArgument,
                                 InvalidSigners, NotAdmitted, StateError)
from timestamping.runtime.host import Frame
from timestamping.state.layout import RegistryState
from timestamping.types import (AddressLike, SignerRecord, StampHeader, StampInfo, UserInfo,
                                Visibility, to_address, to_hash)
from timestamping.version import SCHEMA_VERSION
from timestamping.zk import hashing

from . import initializable, ownable
from .fee_ledger import FeeLedger, check_fee_value, refund
from .zkverify import require_field_element, require_valid_proof

log = tlog.get_logger(__name__)

__all__ = ["TimeStampingV1"]


# ---------- argument helpers ----------


def _hash_arg(value: Any) -> bytes:
    try:
        return to_hash(value)
    except (TypeError, ValueError) as e:
        raise InvalidArgument(str(e), name="hash") from e


def _address_arg(value: Any, name: str) -> bytes:
    try:
        return to_address(value)
    except (TypeError, ValueError) as e:
        raise InvalidArgument(str(e), name=name) from e


def _window(offset: int, limit: int, total: int) -> Tuple[int, int]:
    for name, v in (("offset", offset), ("limit", limit)):
        if not isinstance(v, int) or isinstance(v, bool) or v < 0:
            raise InvalidArgument(f"{name} must be a non-negative int", name=name)
    start = min(offset, total)
    return start, min(offset + limit, total)


def _signer_list(signers: Sequence[AddressLike]) -> List[bytes]:
    out: List[bytes] = []
    seen = set()
    for raw in signers:
        try:
            addr = to_address(raw)
        except (TypeError, ValueError) as e:
            raise InvalidSigners(f"malformed signer: {e}") from e
        if addr in seen:
            raise InvalidSigners(duplicate=addr)
        seen.add(addr)
        out.append(addr)
    return out


class TimeStampingV1:
    """Registry logic bound behind a :class:`~timestamping.contracts.proxy.RegistryProxy`."""

    VERSION = 1
    SCHEMA_VERSION = SCHEMA_VERSION

    # ---------- state access ----------

    def _state(self, frame: Frame) -> RegistryState:
        state = RegistryState(frame.storage)
        schema = state.schema_version
        if schema not in (0, self.SCHEMA_VERSION):
            raise StateError(
                "storage schema not supported by this logic version",
                data={"schema": schema, "supported": self.SCHEMA_VERSION},
            )
        return state

    def _ready_state(self, frame: Frame) -> RegistryState:
        state = self._state(frame)
        initializable.require_initialized(state)
        return state

    def _require_stamp(self, state: RegistryState, stamp_hash: bytes) -> StampHeader:
        header = state.get_stamp(stamp_hash)
        if header is None:
            raise HashNotFound(stamp_hash=stamp_hash)
        return header

    # ---------- initialization & admin ----------

    def initialize(
        self,
        frame: Frame,
        fee: Optional[int] = None,
        verifier_ref: bytes = b"",
        owner: Optional[AddressLike] = None,
    ) -> None:
        """
        One-time setup: owner (defaults to the caller), fee (defaults to
        ``TIMESTAMPING_DEFAULT_FEE``), verifier reference and schema version.
        """
        state = self._state(frame)
        initializable.mark_initialized(state, self.VERSION)

        owner_addr = frame.sender if owner is None else _address_arg(owner, "owner")
        fee_value = load_config().default_fee if fee is None else check_fee_value(fee)
        if not isinstance(verifier_ref, (bytes, bytearray)):
            raise InvalidArgument("verifier reference must be bytes", name="verifier_ref")

        state.schema_version = self.SCHEMA_VERSION
        ownable.init_owner(state, owner_addr)
        state.fee = fee_value
        state.verifier_ref = bytes(verifier_ref)

        frame.emit(b"Initialized", version=self.VERSION, owner=owner_addr, fee=fee_value)
        log.info("registry initialized", extra={"owner": owner_addr, "fee": fee_value})

    def set_fee(self, frame: Frame, new_fee: int) -> None:
        state = self._state(frame)
        ownable.require_owner(state, frame.sender)
        FeeLedger(state).set_fee(frame, new_fee)

    def withdraw_fee(self, frame: Frame, to: AddressLike) -> int:
        state = self._state(frame)
        ownable.require_owner(state, frame.sender)
        return FeeLedger(state).withdraw(frame, to)

    def set_verifier(self, frame: Frame, verifier_ref: bytes) -> None:
        state = self._state(frame)
        ownable.require_owner(state, frame.sender)
        if not isinstance(verifier_ref, (bytes, bytearray)) or not verifier_ref:
            raise InvalidArgument("verifier reference must be non-empty bytes", name="verifier_ref")
        old = state.verifier_ref
        state.verifier_ref = bytes(verifier_ref)
        frame.emit(b"VerifierUpdated", old=old, new=bytes(verifier_ref))
        log.info("verifier updated", extra={"old": old, "new": bytes(verifier_ref)})

    def transfer_ownership(self, frame: Frame, new_owner: AddressLike) -> None:
        state = self._state(frame)
        ownable.transfer_ownership(frame, state, new_owner)
        log.info("ownership transferred", extra={"new": new_owner})

    # ---------- stamp lifecycle ----------

    def create_stamp(
        self,
        frame: Frame,
        stamp_hash: Any,
        is_public: bool,
        signers: Sequence[AddressLike],
        proof: Any,
    ) -> bytes:
        state = self._ready_state(frame)
        h = _hash_arg(stamp_hash)
        require_field_element(h)
        creator = frame.sender
        ledger = FeeLedger(state)

        # checks, in order
        if state.stamp_exists(h):
            raise HashCollision(stamp_hash=h)
        listed = _signer_list(signers)
        excess = ledger.check_payment(frame.ctx.value)
        require_valid_proof(frame, state.verifier_ref, proof, h)

        # effects
        now = frame.now
        self_sign = not listed and bool(is_public)
        if listed:
            for i, addr in enumerate(listed):
                state.set_signer_at(h, i, addr)
                state.put_record(h, SignerRecord(identity=addr, admitted=True))
            header = StampHeader(created_at=now, visibility=Visibility.ADMITTED, signer_total=len(listed))
        elif self_sign:
            state.set_signer_at(h, 0, creator)
            state.put_record(h, SignerRecord(identity=creator, admitted=False, signed_at=now))
            header = StampHeader(created_at=now, visibility=Visibility.PUBLIC, signer_total=1, signed_count=1)
        else:
            header = StampHeader(created_at=now, visibility=Visibility.PUBLIC)
        state.put_stamp(h, header)

        state.add_user_hash(creator, h)
        for addr in listed:
            state.add_user_hash(addr, h)
        ledger.collect()

        frame.emit(b"StampCreated", hash=h, created_at=now, signers=tuple(listed))
        if self_sign:
            frame.emit(b"StampSigned", hash=h, signer=creator, timestamp=now)
        log.debug(
            "stamp created",
            extra={"hash": h, "visibility": header.visibility.value, "signers": len(listed)},
        )

        # interactions
        refund(frame, creator, excess)
        return h

    def sign(self, frame: Frame, stamp_hash: Any) -> None:
        state = self._ready_state(frame)
        h = _hash_arg(stamp_hash)
        signer = frame.sender
        header = self._require_stamp(state, h)
        record = state.get_record(h, signer)
        now = frame.now

        if header.is_public:
            if record is not None:
                raise AlreadySigned(signer=signer)
            state.set_signer_at(h, header.signer_total, signer)
            record = SignerRecord(identity=signer, admitted=False, signed_at=now)
            header = replace(header, signer_total=header.signer_total + 1)
        else:
            if record is None or not record.admitted:
                raise NotAdmitted(signer=signer)
            if record.signed:
                raise AlreadySigned(signer=signer)
            record = replace(record, signed_at=now)

        state.put_record(h, record)
        state.put_stamp(h, replace(header, signed_count=header.signed_count + 1))
        state.add_user_hash(signer, h)

        frame.emit(b"StampSigned", hash=h, signer=signer, timestamp=now)
        log.debug("stamp signed", extra={"hash": h, "signer": signer})

    # ---------- queries ----------

    def _info(self, state: RegistryState, h: bytes, header: StampHeader, start: int, stop: int) -> StampInfo:
        records = []
        for addr in state.signers(h, start, stop):
            rec = state.get_record(h, addr)
            if rec is None:
                raise StateError("signer without a record", data={"hash": "0x" + h.hex()})
            records.append(rec)
        return StampInfo(
            hash=h,
            is_public=header.is_public,
            created_at=header.created_at,
            users_to_sign=header.users_to_sign,
            users_signed=header.signed_count,
            signers=tuple(records),
        )

    def get_stamp_info(self, frame: Frame, stamp_hash: Any) -> StampInfo:
        state = self._state(frame)
        h = _hash_arg(stamp_hash)
        header = self._require_stamp(state, h)
        return self._info(state, h, header, 0, header.signer_total)

    def get_stamp_info_with_pagination(self, frame: Frame, stamp_hash: Any, offset: int, limit: int) -> StampInfo:
        state = self._state(frame)
        h = _hash_arg(stamp_hash)
        header = self._require_stamp(state, h)
        start, stop = _window(offset, limit, header.signer_total)
        return self._info(state, h, header, start, stop)

    def get_hashes_by_user_address(self, frame: Frame, user: AddressLike) -> List[bytes]:
        state = self._state(frame)
        addr = _address_arg(user, "user")
        return state.user_hashes(addr, 0, state.user_hash_count(addr))

    def get_hashes_by_user_address_with_pagination(
        self, frame: Frame, user: AddressLike, offset: int, limit: int
    ) -> List[bytes]:
        state = self._state(frame)
        addr = _address_arg(user, "user")
        start, stop = _window(offset, limit, state.user_hash_count(addr))
        return state.user_hashes(addr, start, stop)

    def get_stamp_signers_count(self, frame: Frame, stamp_hash: Any) -> int:
        header = self._state(frame).get_stamp(_hash_arg(stamp_hash))
        return 0 if header is None else header.signer_total

    def get_user_info(self, frame: Frame, user: AddressLike, stamp_hash: Any) -> UserInfo:
        state = self._state(frame)
        addr = _address_arg(user, "user")
        rec = state.get_record(_hash_arg(stamp_hash), addr)
        if rec is None:
            return UserInfo(identity=addr)
        return UserInfo(identity=addr, admitted=rec.admitted, signed_at=rec.signed_at)

    def get_hash_by_bytes(self, frame: Frame, data: bytes) -> bytes:
        if not isinstance(data, (bytes, bytearray, memoryview)):
            raise InvalidArgument("data must be bytes", name="data")
        return hashing.hash_by_bytes(data)

    def owner(self, frame: Frame) -> Optional[bytes]:
        return ownable.get_owner(self._state(frame))

    def get_fee(self, frame: Frame) -> int:
        return self._state(frame).fee

    def get_fee_balance(self, frame: Frame) -> int:
        return self._state(frame).fee_balance

    def verifier(self, frame: Frame) -> bytes:
        return self._state(frame).verifier_ref
