"""
timestamping: proof-gated, multi-party timestamp attestation registry.

A party registers a commitment to some content together with a
zero-knowledge proof that it knows the content, optionally restricts who may
countersign, and collects signatures over time. The registry runs on an
in-process deterministic host (journaled state, event log, value ledger,
block clock).

Quick start
-----------
    from timestamping import Host, RegistryProxy
    from timestamping.zk import Groth16Verifier

    host = Host()
    host.register_verifier(b"groth16", Groth16Verifier.from_file("vk.json"))
    registry = RegistryProxy.deploy(host, deployer=owner, fee=10, verifier_ref=b"groth16")
    registry.create_stamp(stamp_hash, True, [], proof, sender=alice, value=10)
"""

from .contracts.proxy import RegistryProxy
from .contracts.registry import TimeStampingV1
from .errors import StampError
from .runtime.host import Host, Receipt
from .types import UNBOUNDED, SignerRecord, StampInfo, UserInfo, Visibility
from .version import __version__

__all__ = [
    "Host",
    "Receipt",
    "RegistryProxy",
    "TimeStampingV1",
    "StampError",
    "StampInfo",
    "SignerRecord",
    "UserInfo",
    "Visibility",
    "UNBOUNDED",
    "__version__",
]
