"""
timestamping.zk.poseidon
========================

Poseidon hash over the BN254 scalar field Fr, in the circomlib calling
convention used by the stamping circuit:

    poseidon([x1, ..., xn]) = permute([0, x1, ..., xn])[0]     with t = n + 1

Parameters are kept external so the hash matches the circuit exactly. A
parameter set is registered per width under ``bn254_t{t}``; either load the
circuit's own JSON (``TIMESTAMPING_POSEIDON_PARAMS`` or
:func:`load_params_json`) or rely on the deterministic placeholder sets
registered at import for t=2 and t=3. Placeholders are self-consistent
(same input → same output everywhere in this package) but are **not** the
circomlib constants; load the real ones to interoperate with circom proofs.

JSON schema
-----------
{
  "t": 2, "R_F": 8, "R_P": 56, "alpha": 5,
  "mds": [[...t ints...], ...],
  "rc":  [[...t ints...], ... R_F+R_P rows ...]
}
Integers are decimal strings, 0x-hex strings or JSON numbers, taken mod Fr.
"""

from __future__ import annotations

import hashlib
import json
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Union

from timestamping import logging as tlog

from .pairing import curve_order

log = tlog.get_logger(__name__)

_MOD = curve_order()

#: circomlib partial-round counts by width.
_R_P_BY_T = {2: 56, 3: 57, 4: 56, 5: 60, 6: 60, 7: 63}


# ---------------------------
# Field arithmetic (mod Fr)
# ---------------------------


def _fadd(a: int, b: int) -> int:
    return (a + b) % _MOD


def _fmul(a: int, b: int) -> int:
    return (a * b) % _MOD


def _fpow_alpha(x: int, alpha: int) -> int:
    if alpha == 5:
        x2 = _fmul(x, x)
        return _fmul(x, _fmul(x2, x2))
    return pow(x, alpha, _MOD)


# ---------------------------
# Parameters & registry
# ---------------------------


@dataclass(frozen=True)
class PoseidonParams:
    t: int
    R_F: int
    R_P: int
    alpha: int
    mds: List[List[int]]
    rc: List[List[int]]

    def validate(self) -> None:
        if self.t < 2:
            raise ValueError("t must be >= 2")
        if self.R_F % 2 != 0:
            raise ValueError("R_F must be even (split half-before/after partial rounds)")
        if self.alpha < 3 or self.alpha % 2 == 0:
            raise ValueError("alpha must be an odd integer >= 3")
        if len(self.mds) != self.t or any(len(row) != self.t for row in self.mds):
            raise ValueError("mds must be t x t")
        expected = self.R_F + self.R_P
        if len(self.rc) != expected or any(len(row) != self.t for row in self.rc):
            raise ValueError(f"rc must be (R_F+R_P) x t = {expected} x {self.t}")


_PARAMS_REGISTRY: Dict[str, PoseidonParams] = {}
_ENV_LOADED = False
_ENV_LOCK = threading.Lock()


def params_name(t: int) -> str:
    return f"bn254_t{t}"


def register_params(name: str, params: PoseidonParams) -> None:
    """Register a parameter set under ``name`` (overwrites)."""
    if not name or not isinstance(name, str):
        raise ValueError("name must be a non-empty string")
    params.validate()
    _PARAMS_REGISTRY[name] = params


def get_params(name: str) -> PoseidonParams:
    _load_env_params()
    if name not in _PARAMS_REGISTRY:
        raise KeyError(
            f"Poseidon params '{name}' are not registered. "
            "Load them with load_params_json(...) or register_params(...)."
        )
    return _PARAMS_REGISTRY[name]


def _to_int(x: Union[int, str]) -> int:
    if isinstance(x, int):
        return x % _MOD
    s = str(x).strip().lower()
    return (int(s, 16) if s.startswith("0x") else int(s)) % _MOD


def parse_params(raw: Dict[str, Any]) -> PoseidonParams:
    params = PoseidonParams(
        t=int(raw["t"]),
        R_F=int(raw["R_F"]),
        R_P=int(raw["R_P"]),
        alpha=int(raw.get("alpha", 5)),
        mds=[[_to_int(v) for v in row] for row in raw["mds"]],
        rc=[[_to_int(v) for v in row] for row in raw["rc"]],
    )
    params.validate()
    return params


def load_params_json(path: Union[str, Path], name: Optional[str] = None) -> PoseidonParams:
    """
    Load a Poseidon params JSON file and register it.

    If ``name`` is None it is registered for its width (``bn254_t{t}``),
    replacing any placeholder for that width.
    """
    with open(path, "r", encoding="utf-8") as f:
        params = parse_params(json.load(f))
    register_params(name or params_name(params.t), params)
    return params


def _load_env_params() -> None:
    global _ENV_LOADED
    if _ENV_LOADED:
        return
    with _ENV_LOCK:
        if _ENV_LOADED:
            return
        from timestamping.config import load_config

        path = load_config().poseidon_params_path
        if path is not None:
            p = load_params_json(path)
            log.info("poseidon params loaded", extra={"path": str(path), "t": p.t})
        _ENV_LOADED = True


# ---------------------------
# Permutation
# ---------------------------


def _apply_mds(state: List[int], mds: List[List[int]]) -> List[int]:
    t = len(state)
    return [sum(mds[i][j] * state[j] for j in range(t)) % _MOD for i in range(t)]


def poseidon_permute(state: Sequence[int], params: PoseidonParams) -> List[int]:
    """
    Poseidon permutation.

    Round schedule: R_F/2 full rounds, R_P partial rounds (S-box on the
    first element only), R_F/2 full rounds. Each round adds its constants,
    applies the S-box, then the MDS matrix.
    """
    t, alpha, mds, rc = params.t, params.alpha, params.mds, params.rc
    if len(state) != t:
        raise ValueError(f"state length {len(state)} != t={t}")

    x = [int(v) % _MOD for v in state]
    half = params.R_F // 2
    r = 0
    for phase, rounds in (("full", half), ("partial", params.R_P), ("full", half)):
        for _ in range(rounds):
            x = [_fadd(x[i], rc[r][i]) for i in range(t)]
            if phase == "full":
                x = [_fpow_alpha(v, alpha) for v in x]
            else:
                x[0] = _fpow_alpha(x[0], alpha)
            x = _apply_mds(x, mds)
            r += 1
    return x


# ---------------------------
# Hash interface
# ---------------------------


def poseidon(inputs: Sequence[int]) -> int:
    """
    circomlib-style Poseidon of 1..6 field elements.

    Inputs are reduced mod Fr. Returns an integer in [0, Fr).
    """
    if not 1 <= len(inputs) <= 6:
        raise ValueError("poseidon takes between 1 and 6 inputs")
    t = len(inputs) + 1
    params = get_params(params_name(t))
    state = [0] + [int(v) % _MOD for v in inputs]
    return int(poseidon_permute(state, params)[0])


# ---------------------------
# Placeholder parameter sets
# ---------------------------


def derive_placeholder_params(t: int) -> PoseidonParams:
    """
    Deterministic stand-in parameters for width ``t``: a Cauchy MDS matrix
    and SHA3-256 derived round constants. Not the circomlib constants.
    """
    R_F, R_P, alpha = 8, _R_P_BY_T.get(t, 57), 5
    xs = list(range(t))
    ys = list(range(t, 2 * t))
    mds = [[pow((xs[i] + ys[j]) % _MOD, _MOD - 2, _MOD) for j in range(t)] for i in range(t)]
    rc: List[List[int]] = []
    for r in range(R_F + R_P):
        rc.append(
            [
                int.from_bytes(
                    hashlib.sha3_256(f"poseidon/placeholder/bn254/t={t}/r={r}/i={i}".encode()).digest(),
                    "big",
                )
                % _MOD
                for i in range(t)
            ]
        )
    return PoseidonParams(t=t, R_F=R_F, R_P=R_P, alpha=alpha, mds=mds, rc=rc)


for _t in (2, 3):
    register_params(params_name(_t), derive_placeholder_params(_t))


__all__ = [
    "PoseidonParams",
    "register_params",
    "get_params",
    "params_name",
    "parse_params",
    "load_params_json",
    "poseidon_permute",
    "poseidon",
    "derive_placeholder_params",
]
