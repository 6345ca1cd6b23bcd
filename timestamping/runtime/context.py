"""
timestamping.runtime.context: BlockEnv/CallContext passed to contract logic.

These lightweight environments give the registry logic deterministic access to
"now" and to the caller. They contain only pure data (ints/bytes) and perform
strict validation.

Design notes
------------
- Addresses are 20 raw bytes; hex strings (with or without "0x") are accepted
  by the constructors and normalized.
- `timestamp` is the host block timestamp; there is no wall-clock access.
- A reentrant call shares the outer call's BlockEnv.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict

from timestamping.types import AddressLike, to_address


class ContextError(ValueError):
    """Validation or coercion failure for BlockEnv/CallContext."""


def to_hex(b: bytes) -> str:
    """Encode bytes as 0x-prefixed lowercase hex."""
    return "0x" + bytes(b).hex()


def _require_non_negative_int(name: str, v: Any) -> int:
    if not isinstance(v, int) or isinstance(v, bool):
        raise ContextError(f"{name} must be int, got {type(v).__name__}")
    if v < 0:
        raise ContextError(f"{name} must be non-negative, got {v}")
    return v


def _address(name: str, v: AddressLike) -> bytes:
    try:
        return to_address(v)
    except (TypeError, ValueError) as e:
        raise ContextError(f"{name}: {e}") from e


@dataclass(frozen=True)
class BlockEnv:
    """
    Deterministic per-block environment.

    Fields
    ------
    height:     Block height (0 = genesis).
    timestamp:  Block timestamp in seconds.
    """
    height: int
    timestamp: int

    def __post_init__(self) -> None:
        _require_non_negative_int("height", self.height)
        _require_non_negative_int("timestamp", self.timestamp)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class CallContext:
    """
    Per-call environment.

    Fields
    ------
    sender:    Immediate caller of the contract.
    contract:  Address of the contract being executed.
    value:     Native value attached to the call (already credited to `contract`).
    block:     Block the call executes in.
    depth:     1 for a top-level call, >1 for reentrant calls.
    """
    sender: bytes
    contract: bytes
    value: int
    block: BlockEnv
    depth: int = 1

    def __post_init__(self) -> None:
        object.__setattr__(self, "sender", _address("sender", self.sender))
        object.__setattr__(self, "contract", _address("contract", self.contract))
        _require_non_negative_int("value", self.value)
        _require_non_negative_int("depth", self.depth)

    @property
    def now(self) -> int:
        return self.block.timestamp

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sender": to_hex(self.sender),
            "contract": to_hex(self.contract),
            "value": self.value,
            "block": self.block.to_dict(),
            "depth": self.depth,
        }


__all__ = ["BlockEnv", "CallContext", "ContextError", "to_hex"]
