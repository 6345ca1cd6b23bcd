# -*- coding: utf-8 -*-
"""
tests.support
=============

Deterministic building blocks shared by unit and property tests:

- `det_address(tag)` / `det_hash(tag)`: stable 20-byte identities and 32-byte
  stamp hashes derived from readable tags.
- `FakeVerifier`: accepts exactly the proofs produced by `make_proof(hash,
  sender)`, so proofs stay bound to (hash, caller) like the real circuit.
- `new_env(...)`: a funded host with a deployed, initialized registry.
- `Groth16Trapdoor`: a BN254 verifying key with known scalars, for forging
  valid snarkjs proofs in tests.
"""
from __future__ import annotations

import hashlib
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

from py_ecc.optimized_bn128 import G1, G2, multiply

from timestamping.contracts.proxy import RegistryProxy
from timestamping.runtime.host import Host
from timestamping.zk.pairing import curve_order, normalize_g1, normalize_g2

FEE = 100
FUNDS = 10**18
VERIFIER_REF = b"fake-verifier"
GENESIS = 1_700_000_000


def det_address(tag: str) -> bytes:
    return hashlib.sha3_256(b"addr:" + tag.encode()).digest()[:20]


def det_hash(tag: str) -> bytes:
    # top bits cleared: stays below the BN254 scalar field modulus
    d = hashlib.sha3_256(b"stamp:" + tag.encode()).digest()
    return bytes([d[0] & 0x1F]) + d[1:]


def make_proof(stamp_hash: bytes, sender: bytes) -> Dict[str, str]:
    return {"binding": hashlib.sha3_256(b"proof:" + stamp_hash + sender).hexdigest()}


@dataclass
class FakeVerifier:
    """Stands in for a Groth16 verifier; records every call it receives."""

    calls: List[Tuple[Any, Tuple[int, ...]]] = field(default_factory=list)
    raise_with: Optional[Exception] = None
    answer: Optional[Any] = None

    def verify(self, proof: Any, public_inputs: Sequence[int]) -> Any:
        self.calls.append((proof, tuple(public_inputs)))
        if self.raise_with is not None:
            raise self.raise_with
        if self.answer is not None:
            return self.answer
        h = int(public_inputs[0]).to_bytes(32, "big")
        sender = int(public_inputs[1]).to_bytes(20, "big")
        return proof == make_proof(h, sender)


ACCOUNT_TAGS = ("owner", "alice", "bob", "carol", "dave", "erin", "mallory")


@dataclass
class Accounts:
    owner: bytes
    alice: bytes
    bob: bytes
    carol: bytes
    dave: bytes
    erin: bytes
    mallory: bytes

    @classmethod
    def create(cls) -> "Accounts":
        return cls(**{tag: det_address(tag) for tag in ACCOUNT_TAGS})

    def all(self) -> List[bytes]:
        return [getattr(self, tag) for tag in ACCOUNT_TAGS]


@dataclass
class Env:
    host: Host
    registry: RegistryProxy
    verifier: FakeVerifier
    accounts: Accounts

    def create(
        self,
        stamp_hash: bytes,
        sender: bytes,
        *,
        signers: Sequence[bytes] = (),
        public: bool = True,
        value: int = FEE,
        proof: Any = None,
    ):
        if proof is None:
            proof = make_proof(stamp_hash, sender)
        return self.registry.create_stamp(stamp_hash, public, signers, proof, sender=sender, value=value)


def new_env(*, fee: int = FEE, initialize: bool = True) -> Env:
    host = Host(genesis_timestamp=GENESIS)
    accounts = Accounts.create()
    for a in accounts.all():
        host.fund(a, FUNDS)
    verifier = FakeVerifier()
    host.register_verifier(VERIFIER_REF, verifier)
    registry = RegistryProxy.deploy(
        host,
        deployer=accounts.owner,
        fee=fee,
        verifier_ref=VERIFIER_REF,
        initialize=initialize,
    )
    return Env(host=host, registry=registry, verifier=verifier, accounts=accounts)


# ---------- Groth16 with a known trapdoor ----------


def _g1_json(P) -> List[str]:
    x, y = normalize_g1(P)
    return [str(x), str(y), "1"]


def _g2_json(Q) -> List[List[str]]:
    (x0, x1), (y0, y1) = normalize_g2(Q)
    return [[str(x0), str(x1)], [str(y0), str(y1)], ["1", "0"]]


@dataclass(frozen=True)
class Groth16Trapdoor:
    """
    Verifying key built from known scalars, so valid proofs can be forged for
    any public inputs without a circuit:

        C = (a*b - alpha*beta - x*gamma) / delta,   x = ic0 + sum(ic_i * input_i)
    """

    alpha: int = 11
    beta: int = 13
    gamma: int = 17
    delta: int = 19
    ic: Tuple[int, ...] = (23, 29, 31)

    def vk_json(self) -> Dict[str, Any]:
        return {
            "protocol": "groth16",
            "curve": "bn128",
            "nPublic": len(self.ic) - 1,
            "vk_alpha_1": _g1_json(multiply(G1, self.alpha)),
            "vk_beta_2": _g2_json(multiply(G2, self.beta)),
            "vk_gamma_2": _g2_json(multiply(G2, self.gamma)),
            "vk_delta_2": _g2_json(multiply(G2, self.delta)),
            "IC": [_g1_json(multiply(G1, c)) for c in self.ic],
        }

    def prove(self, public_inputs: Sequence[int], a: int = 101, b: int = 103) -> Dict[str, Any]:
        r = curve_order()
        x = (self.ic[0] + sum(c * (int(v) % r) for c, v in zip(self.ic[1:], public_inputs))) % r
        c = (a * b - self.alpha * self.beta - x * self.gamma) * pow(self.delta, -1, r) % r
        return {
            "pi_a": _g1_json(multiply(G1, a)),
            "pi_b": _g2_json(multiply(G2, b)),
            "pi_c": _g1_json(multiply(G1, c)),
            "protocol": "groth16",
        }
