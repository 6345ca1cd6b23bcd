"""
timestamping.contracts: registry logic and the components it is assembled from.
"""

from .proxy import RegistryProxy, derive_address
from .registry import TimeStampingV1
from .zkverify import ProofVerifier, public_inputs

__all__ = ["RegistryProxy", "derive_address", "TimeStampingV1", "ProofVerifier", "public_inputs"]
