"""
timestamping.zk: hash derivation (keccak-256 → Poseidon) and Groth16/BN254 proof verification.
"""

from .groth16 import Groth16Verifier, verify_groth16
from .hashing import commitment, content_secret, hash_by_bytes, keccak256
from .poseidon import poseidon

__all__ = [
    "Groth16Verifier",
    "verify_groth16",
    "commitment",
    "content_secret",
    "hash_by_bytes",
    "keccak256",
    "poseidon",
]
