"""
timestamping.zk.groth16
=======================

Groth16 verifier for BN254 (altbn128), compatible with the ``snarkjs`` JSON
layout, plus :class:`Groth16Verifier`, the proof verifier the registry binds
to a verifier reference.

Verification equation
---------------------
    e(A, B) == e(alpha1, beta2) * e(VK_x, gamma2) * e(C, delta2)

implemented as a product check in GT:
    e(A, B) * e(-alpha1, beta2) * e(-VK_x, gamma2) * e(-C, delta2) == 1

JSON compatibility (snarkjs)
----------------------------
- Verifying key:
  {
    "vk_alpha_1": [ax, ay],
    "vk_beta_2": [[bx0, bx1], [by0, by1]],
    "vk_gamma_2": [[gx0, gx1], [gy0, gy1]],
    "vk_delta_2": [[dx0, dx1], [dy0, dy1]],
    "IC": [[ic0x, ic0y], [ic1x, ic1y], ...]   # length = 1 + #public_inputs
  }

- Proof:
  {"pi_a": [ax, ay], "pi_b": [[bx0, bx1], [by0, by1]], "pi_c": [cx, cy]}

snarkjs appends a trailing projective "1" coordinate to every point; it is
accepted and ignored. All coordinates are decimal strings, 0x-hex strings or
ints. G2 elements are Fq2 encoded as [c0, c1] (c0 + c1 * i).

Public inputs must be canonical scalars, 0 <= x < r. Anything else verifies
False; reducing mod r would let a proof for x also pass for x + r.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, List, Mapping, Sequence, Union

from py_ecc.optimized_bn128 import FQ, FQ2
from py_ecc.optimized_bn128 import add as _add
from py_ecc.optimized_bn128 import multiply as _mul
from py_ecc.optimized_bn128 import neg as _neg

from timestamping import logging as tlog

from .pairing import check_pairing_product, curve_order, is_on_curve_g1, is_on_curve_g2

log = tlog.get_logger(__name__)

G1Point = Any
G2Point = Any

_FR = curve_order()


# ---------------------------
# Utilities
# ---------------------------


def _to_int(z: Union[int, str]) -> int:
    if isinstance(z, bool):
        raise ValueError("boolean is not a field element")
    if isinstance(z, int):
        return z
    s = str(z).strip().lower()
    if s.startswith("0x"):
        return int(s, 16)
    return int(s)


def _scalar(z: Union[int, str]) -> int:
    """Public input as a canonical Fr element; values >= r are rejected, not reduced."""
    v = _to_int(z)
    if not 0 <= v < _FR:
        raise ValueError("public input is not a canonical Fr element")
    return v


def _g1(x: Union[int, str], y: Union[int, str]) -> G1Point:
    xi, yi = _to_int(x), _to_int(y)
    if xi == 0 and yi == 0:
        return (FQ(1), FQ(1), FQ(0))
    return (FQ(xi), FQ(yi), FQ(1))


def _g2(xx: Sequence[Union[int, str]], yy: Sequence[Union[int, str]]) -> G2Point:
    x0, x1 = _to_int(xx[0]), _to_int(xx[1])
    y0, y1 = _to_int(yy[0]), _to_int(yy[1])
    if x0 == 0 and x1 == 0 and y0 == 0 and y1 == 0:
        return (FQ2([1, 0]), FQ2([1, 0]), FQ2([0, 0]))
    return (FQ2([x0, x1]), FQ2([y0, y1]), FQ2([1, 0]))


def _first(d: Mapping[str, Any], *names: str) -> Any:
    for n in names:
        if n in d:
            return d[n]
    raise KeyError(names[0])


# ---------------------------
# Data classes
# ---------------------------


@dataclass(frozen=True)
class VerifyingKey:
    alpha1: G1Point
    beta2: G2Point
    gamma2: G2Point
    delta2: G2Point
    IC: List[G1Point]

    @property
    def n_public(self) -> int:
        return len(self.IC) - 1


@dataclass(frozen=True)
class Proof:
    A: G1Point
    B: G2Point
    C: G1Point


# ---------------------------
# Loaders (snarkjs JSON)
# ---------------------------


def load_vk(vk_json: Mapping[str, Any]) -> VerifyingKey:
    """Parse a snarkjs-style verifying key JSON object into a VerifyingKey."""
    a1 = _first(vk_json, "vk_alpha_1", "alpha_1", "alpha1")
    b2 = _first(vk_json, "vk_beta_2", "beta_2", "beta2")
    g2 = _first(vk_json, "vk_gamma_2", "gamma_2", "gamma2")
    d2 = _first(vk_json, "vk_delta_2", "delta_2", "delta2")
    ic = _first(vk_json, "IC", "vk_ic", "ic")

    alpha1 = _g1(a1[0], a1[1])
    beta2 = _g2(b2[0], b2[1])
    gamma2 = _g2(g2[0], g2[1])
    delta2 = _g2(d2[0], d2[1])
    ic_pts = [_g1(p[0], p[1]) for p in ic]

    if not (is_on_curve_g1(alpha1) and is_on_curve_g2(beta2) and is_on_curve_g2(gamma2) and is_on_curve_g2(delta2)):
        raise ValueError("VK points are not on curve")
    if not ic_pts or not all(is_on_curve_g1(P) for P in ic_pts):
        raise ValueError("IC points missing or not on G1 curve")

    return VerifyingKey(alpha1=alpha1, beta2=beta2, gamma2=gamma2, delta2=delta2, IC=ic_pts)


def load_vk_file(path: Union[str, Path]) -> VerifyingKey:
    with open(path, "r", encoding="utf-8") as f:
        return load_vk(json.load(f))


def load_proof(proof_json: Mapping[str, Any]) -> Proof:
    """Parse a snarkjs-style proof JSON object into a Proof."""
    A = _first(proof_json, "pi_a", "A")
    B = _first(proof_json, "pi_b", "B")
    C = _first(proof_json, "pi_c", "C")

    A1 = _g1(A[0], A[1])
    B2 = _g2(B[0], B[1])
    C1 = _g1(C[0], C[1])

    if not (is_on_curve_g1(A1) and is_on_curve_g2(B2) and is_on_curve_g1(C1)):
        raise ValueError("Proof points are not on curve")
    return Proof(A=A1, B=B2, C=C1)


# ---------------------------
# Core verification
# ---------------------------


def _vk_x(IC: Sequence[G1Point], inputs: Sequence[Union[int, str]]) -> G1Point:
    """VK_x = IC[0] + sum_i inputs[i] * IC[i+1] in G1."""
    if len(IC) != len(inputs) + 1:
        raise ValueError(f"IC length {len(IC)} != 1 + len(inputs) {len(inputs)}")
    acc = IC[0]
    for i, v in enumerate(inputs):
        s = _scalar(v)
        if s != 0:
            acc = _add(acc, _mul(IC[i + 1], s))
    return acc


def verify_proof(vk: VerifyingKey, proof: Proof, public_inputs: Sequence[Union[int, str]]) -> bool:
    """Pairing check on already-parsed objects. Raises ValueError on shape mismatch."""
    vkx = _vk_x(vk.IC, public_inputs)
    pairs = [
        (proof.A, proof.B),
        (_neg(vk.alpha1), vk.beta2),
        (_neg(vkx), vk.gamma2),
        (_neg(proof.C), vk.delta2),
    ]
    return check_pairing_product(pairs)


def verify_groth16(
    vk_json: Mapping[str, Any],
    proof_json: Mapping[str, Any],
    public_inputs: Sequence[Union[int, str]],
) -> bool:
    """
    Verify a Groth16 proof given snarkjs-style VK/Proof JSON and public inputs.

    Returns True on success, False otherwise (no exceptions for malformed
    keys, proofs or inputs).
    """
    try:
        return verify_proof(load_vk(vk_json), load_proof(proof_json), public_inputs)
    except (KeyError, IndexError, TypeError, ValueError) as e:
        log.debug("groth16 input rejected", extra={"reason": str(e)})
        return False


class Groth16Verifier:
    """
    Proof verifier bound to one verifying key.

    ``verify(proof, public_inputs)`` accepts a snarkjs proof mapping (or a
    parsed :class:`Proof`) and returns a bool. Malformed proofs verify False.
    """

    def __init__(self, vk: Union[VerifyingKey, Mapping[str, Any]]) -> None:
        self.vk = vk if isinstance(vk, VerifyingKey) else load_vk(vk)

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "Groth16Verifier":
        return cls(load_vk_file(path))

    def verify(self, proof: Any, public_inputs: Sequence[int]) -> bool:
        try:
            pf = proof if isinstance(proof, Proof) else load_proof(proof)
            return verify_proof(self.vk, pf, public_inputs)
        except (KeyError, IndexError, TypeError, ValueError) as e:
            log.debug("groth16 proof rejected", extra={"reason": str(e)})
            return False


__all__ = [
    "VerifyingKey",
    "Proof",
    "load_vk",
    "load_vk_file",
    "load_proof",
    "verify_proof",
    "verify_groth16",
    "Groth16Verifier",
]
