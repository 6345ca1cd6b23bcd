# -*- coding: utf-8 -*-
"""
timestamping.contracts.zkverify
===============================

Contract-side proof gate for stamp creation.

The verifier is resolved from the reference stored under ``ts:verifier`` and
called as ``verify(proof, public_inputs)`` with

    public_inputs = [int(stamp_hash), int(caller)]

so a proof is bound both to the commitment and to the address submitting
it: replaying someone else's proof from another account fails. Any way the
check can go wrong (False, a non-bool result, a missing verifier, a proof that
is None, or the verifier raising) surfaces as :class:`ProofInvalid`.

The stamp hash is itself a public input, so it must be a canonical BN254
scalar (hash < r). :func:`require_field_element` runs before the uniqueness
check; ``h`` and ``h + r`` would otherwise be two registry keys for one
proven commitment.
"""
from __future__ import annotations

from typing import Any, List, Protocol, Sequence, runtime_checkable

from timestamping import logging as tlog
from timestamping.errors import InvalidArgument, ProofInvalid
from timestamping.runtime.host import Frame
from timestamping.zk.pairing import curve_order

log = tlog.get_logger(__name__)

SNARK_SCALAR_FIELD = curve_order()

__all__ = ["ProofVerifier", "SNARK_SCALAR_FIELD", "public_inputs", "require_field_element", "require_valid_proof"]


@runtime_checkable
class ProofVerifier(Protocol):
    def verify(self, proof: Any, public_inputs: Sequence[int]) -> bool: ...


def public_inputs(stamp_hash: bytes, caller: bytes) -> List[int]:
    return [int.from_bytes(stamp_hash, "big"), int.from_bytes(caller, "big")]


def require_field_element(stamp_hash: bytes) -> None:
    if int.from_bytes(stamp_hash, "big") >= SNARK_SCALAR_FIELD:
        raise InvalidArgument("hash must be below the BN254 scalar field modulus", name="hash")


def require_valid_proof(frame: Frame, verifier_ref: bytes, proof: Any, stamp_hash: bytes) -> None:
    if proof is None:
        raise ProofInvalid(reason="malformed")
    verifier = frame.resolve_verifier(verifier_ref) if verifier_ref else None
    if verifier is None:
        raise ProofInvalid(reason="no_verifier", data={"verifier": "0x" + verifier_ref.hex()})

    inputs = public_inputs(stamp_hash, frame.sender)
    try:
        ok = verifier.verify(proof, inputs)
    except Exception as e:
        log.info("verifier raised", extra={"error": type(e).__name__})
        raise ProofInvalid(reason="verifier_error", data={"error": type(e).__name__}) from e
    if not isinstance(ok, bool) or not ok:
        raise ProofInvalid(reason="rejected")
