"""
timestamping.zk.pairing
=======================

Thin BN254 (altbn128) Ate pairing wrapper over ``py_ecc.optimized_bn128``.

Public API
----------
- pair(P, Q) -> GTElement
- product_of_pairings(pairs) -> GTElement
- check_pairing_product(pairs) -> bool
- is_on_curve_g1(P), is_on_curve_g2(Q)
- normalize_g1(P) / normalize_g2(Q)  (to affine integers)
- curve_order(), field_modulus()

Point ordering follows the common convention e(P, Q) with P in G1, Q in G2;
``py_ecc`` expects (Q, P) and this wrapper handles it. Points are projective
tuples as produced by ``py_ecc.optimized_bn128``.
"""

from __future__ import annotations

from typing import Any, Iterable, Optional, Tuple

from py_ecc.optimized_bn128 import FQ12
from py_ecc.optimized_bn128 import b as _B
from py_ecc.optimized_bn128 import b2 as _B2
from py_ecc.optimized_bn128 import curve_order as _Q
from py_ecc.optimized_bn128 import field_modulus as _P
from py_ecc.optimized_bn128 import is_inf as _is_inf
from py_ecc.optimized_bn128 import is_on_curve as _is_on_curve
from py_ecc.optimized_bn128 import normalize as _normalize
from py_ecc.optimized_bn128 import pairing as _pairing

G1Point = Any
G2Point = Any
GTElement = FQ12


def curve_order() -> int:
    """Return the BN254 subgroup order r (the SNARK scalar field)."""
    return int(_Q)


def field_modulus() -> int:
    """Return the base field modulus p."""
    return int(_P)


def is_on_curve_g1(P: G1Point) -> bool:
    """Return True if P is on G1 or is the point at infinity."""
    return _is_inf(P) or bool(_is_on_curve(P, _B))


def is_on_curve_g2(Q: G2Point) -> bool:
    """Return True if Q is on G2 or is the point at infinity."""
    return _is_inf(Q) or bool(_is_on_curve(Q, _B2))


def normalize_g1(P: G1Point) -> Optional[Tuple[int, int]]:
    """Affine (x, y) integers for a G1 point; None for infinity."""
    if _is_inf(P):
        return None
    ax, ay = _normalize(P)
    return int(ax.n), int(ay.n)


def normalize_g2(Q: G2Point) -> Optional[Tuple[Tuple[int, int], Tuple[int, int]]]:
    """Affine ((x_c0, x_c1), (y_c0, y_c1)) integers for a G2 point; None for infinity."""
    if _is_inf(Q):
        return None
    ax, ay = _normalize(Q)
    return (int(ax.coeffs[0]), int(ax.coeffs[1])), (int(ay.coeffs[0]), int(ay.coeffs[1]))


def pair(P: G1Point, Q: G2Point, *, validate: bool = True) -> GTElement:
    """
    Compute e(P, Q).

    Raises
    ------
    ValueError
        If inputs are not on the curve and ``validate`` is set.
    """
    if validate:
        if not is_on_curve_g1(P):
            raise ValueError("G1 point is not on curve")
        if not is_on_curve_g2(Q):
            raise ValueError("G2 point is not on curve")
    if _is_inf(P) or _is_inf(Q):
        return FQ12.one()
    return _pairing(Q, P)


def product_of_pairings(pairs: Iterable[Tuple[G1Point, G2Point]], *, validate: bool = True) -> GTElement:
    acc = FQ12.one()
    for P, Q in pairs:
        acc *= pair(P, Q, validate=validate)
    return acc


def check_pairing_product(pairs: Iterable[Tuple[G1Point, G2Point]], *, validate: bool = True) -> bool:
    """Return True iff ∏ e(P_i, Q_i) == 1 in GT."""
    return product_of_pairings(pairs, validate=validate) == FQ12.one()


__all__ = [
    "pair",
    "product_of_pairings",
    "check_pairing_product",
    "is_on_curve_g1",
    "is_on_curve_g2",
    "normalize_g1",
    "normalize_g2",
    "curve_order",
    "field_modulus",
]
