"""
timestamping.errors: typed failures raised by the registry and its host.

Every failure aborts the enclosing call atomically: the host reverts the
journal checkpoint and drops buffered events before the exception reaches the
caller. Errors carry a stable machine ``code`` and optional JSON-safe ``data``
so they can be logged or surfaced over any transport unchanged.

Hierarchy
---------
StampError (base)
 ├─ ValidationError
 │   ├─ HashCollision        : a stamp already exists for the hash
 │   ├─ InvalidSigners       : duplicate identity in the signer list
 │   ├─ InsufficientFee      : payment below the configured fee
 │   ├─ ProofInvalid         : proof rejected (false, malformed, or verifier raised)
 │   ├─ HashNotFound         : no stamp for the hash
 │   ├─ NotAdmitted          : caller not in an admitted stamp's signer list
 │   ├─ AlreadySigned        : caller already signed the stamp
 │   ├─ NothingToWithdraw    : accumulated fee balance is zero
 │   └─ InvalidArgument      : malformed call argument (also a ValueError)
 ├─ AuthorizationError
 │   ├─ NotOwner
 │   ├─ AlreadyInitialized
 │   └─ NotInitialized
 ├─ TransferError
 │   ├─ RefundTransferFailed : excess payment could not be returned
 │   ├─ TransferFailed       : fee withdrawal recipient rejected the value
 │   ├─ TransferRejected     : host-level receive hook refused a transfer
 │   └─ InsufficientBalance  : host value ledger underflow
 ├─ UpgradeRejected
 └─ StateError               : schema mismatch, corrupt record, read-only write
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional


@dataclass
class StampError(Exception):
    """
    Base registry error.

    Attributes:
        message: Human-readable explanation.
        code:    Stable machine code string (e.g., 'HASH_COLLISION').
        data:    Optional structured details (kept JSON-serializable).
    """
    message: str = "registry error"
    code: str = "STAMP_ERROR"
    data: Optional[Dict[str, Any]] = field(default=None)

    def __str__(self) -> str:  # pragma: no cover - trivial
        if self.data:
            return f"{self.code}: {self.message} ({self.data})"
        return f"{self.code}: {self.message}"

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to a JSON-safe dict for logs and CLI output."""
        out: Dict[str, Any] = {"code": self.code, "message": self.message}
        if self.data is not None:
            out["data"] = self.data
        return out


def _hex(b: Optional[bytes]) -> Optional[str]:
    return None if b is None else "0x" + bytes(b).hex()


def _merge(data: Optional[Dict[str, Any]], **fields: Any) -> Optional[Dict[str, Any]]:
    d: Dict[str, Any] = {}
    if data:
        d.update(data)
    for k, v in fields.items():
        if v is not None:
            d.setdefault(k, v)
    return d or None


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------

class ValidationError(StampError):
    """A call argument or the current stamp state does not permit the operation."""
    def __init__(self, message: str = "validation failed", *, code: str = "VALIDATION",
                 data: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, code=code, data=data)


class HashCollision(ValidationError):
    def __init__(self, message: str = "hash collision", *, stamp_hash: Optional[bytes] = None,
                 data: Optional[Dict[str, Any]] = None):
        super().__init__(message, code="HASH_COLLISION", data=_merge(data, hash=_hex(stamp_hash)))


class InvalidSigners(ValidationError):
    def __init__(self, message: str = "incorrect signers", *, duplicate: Optional[bytes] = None,
                 data: Optional[Dict[str, Any]] = None):
        super().__init__(message, code="INVALID_SIGNERS", data=_merge(data, duplicate=_hex(duplicate)))


class InsufficientFee(ValidationError):
    def __init__(self, message: str = "insufficient fee", *, required: Optional[int] = None,
                 paid: Optional[int] = None, data: Optional[Dict[str, Any]] = None):
        super().__init__(message, code="INSUFFICIENT_FEE", data=_merge(data, required=required, paid=paid))


class ProofInvalid(ValidationError):
    """
    The creation proof did not verify.

    Raised for a verifier returning False, a malformed proof, a verifier that
    raised, or an unresolvable verifier reference. ``data['reason']`` tells
    them apart for diagnostics; callers should treat all of them alike.
    """
    def __init__(self, message: str = "proof rejected", *, reason: Optional[str] = None,
                 data: Optional[Dict[str, Any]] = None):
        super().__init__(message, code="PROOF_INVALID", data=_merge(data, reason=reason))


class HashNotFound(ValidationError):
    def __init__(self, message: str = "hash does not exist", *, stamp_hash: Optional[bytes] = None,
                 data: Optional[Dict[str, Any]] = None):
        super().__init__(message, code="HASH_NOT_FOUND", data=_merge(data, hash=_hex(stamp_hash)))


class NotAdmitted(ValidationError):
    def __init__(self, message: str = "user is not admitted", *, signer: Optional[bytes] = None,
                 data: Optional[Dict[str, Any]] = None):
        super().__init__(message, code="NOT_ADMITTED", data=_merge(data, signer=_hex(signer)))


class AlreadySigned(ValidationError):
    def __init__(self, message: str = "user has signed already", *, signer: Optional[bytes] = None,
                 data: Optional[Dict[str, Any]] = None):
        super().__init__(message, code="ALREADY_SIGNED", data=_merge(data, signer=_hex(signer)))


class NothingToWithdraw(ValidationError):
    def __init__(self, message: str = "fee balance is zero", *, data: Optional[Dict[str, Any]] = None):
        super().__init__(message, code="NOTHING_TO_WITHDRAW", data=data)


class InvalidArgument(ValidationError, ValueError):
    def __init__(self, message: str = "invalid argument", *, name: Optional[str] = None,
                 data: Optional[Dict[str, Any]] = None):
        super().__init__(message, code="INVALID_ARGUMENT", data=_merge(data, name=name))


# ---------------------------------------------------------------------------
# Authorization
# ---------------------------------------------------------------------------

class AuthorizationError(StampError):
    def __init__(self, message: str = "unauthorized", *, code: str = "UNAUTHORIZED",
                 data: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, code=code, data=data)


class NotOwner(AuthorizationError):
    def __init__(self, message: str = "caller is not the owner", *, caller: Optional[bytes] = None,
                 data: Optional[Dict[str, Any]] = None):
        super().__init__(message, code="NOT_OWNER", data=_merge(data, caller=_hex(caller)))


class AlreadyInitialized(AuthorizationError):
    def __init__(self, message: str = "already initialized", *, data: Optional[Dict[str, Any]] = None):
        super().__init__(message, code="ALREADY_INITIALIZED", data=data)


class NotInitialized(AuthorizationError):
    def __init__(self, message: str = "registry is not initialized", *, data: Optional[Dict[str, Any]] = None):
        super().__init__(message, code="NOT_INITIALIZED", data=data)


# ---------------------------------------------------------------------------
# Value transfer
# ---------------------------------------------------------------------------

class TransferError(StampError):
    def __init__(self, message: str = "transfer failed", *, code: str = "TRANSFER_ERROR",
                 data: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, code=code, data=data)


class RefundTransferFailed(TransferError):
    def __init__(self, message: str = "refund transfer failed", *, to: Optional[bytes] = None,
                 amount: Optional[int] = None, data: Optional[Dict[str, Any]] = None):
        super().__init__(message, code="REFUND_TRANSFER_FAILED", data=_merge(data, to=_hex(to), amount=amount))


class TransferFailed(TransferError):
    def __init__(self, message: str = "fee withdrawal failed", *, to: Optional[bytes] = None,
                 amount: Optional[int] = None, data: Optional[Dict[str, Any]] = None):
        super().__init__(message, code="TRANSFER_FAILED", data=_merge(data, to=_hex(to), amount=amount))


class TransferRejected(TransferError):
    """A recipient's receive hook refused the value (returned False or raised)."""
    def __init__(self, message: str = "recipient rejected transfer", *, to: Optional[bytes] = None,
                 amount: Optional[int] = None, data: Optional[Dict[str, Any]] = None):
        super().__init__(message, code="TRANSFER_REJECTED", data=_merge(data, to=_hex(to), amount=amount))


class InsufficientBalance(TransferError):
    def __init__(self, message: str = "insufficient balance", *, account: Optional[bytes] = None,
                 needed: Optional[int] = None, available: Optional[int] = None,
                 data: Optional[Dict[str, Any]] = None):
        super().__init__(
            message,
            code="INSUFFICIENT_BALANCE",
            data=_merge(data, account=_hex(account), needed=needed, available=available),
        )


# ---------------------------------------------------------------------------
# Upgrade / state
# ---------------------------------------------------------------------------

class UpgradeRejected(StampError):
    def __init__(self, message: str = "upgrade rejected", *, current: Optional[int] = None,
                 target: Optional[int] = None, data: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, code="UPGRADE_REJECTED",
                         data=_merge(data, current=current, target=target))


class StateError(StampError):
    def __init__(self, message: str = "state error", *, key: Optional[bytes] = None,
                 data: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, code="STATE_ERROR", data=_merge(data, key=_hex(key)))


__all__ = [
    "StampError",
    "ValidationError",
    "HashCollision",
    "InvalidSigners",
    "InsufficientFee",
    "ProofInvalid",
    "HashNotFound",
    "NotAdmitted",
    "AlreadySigned",
    "NothingToWithdraw",
    "InvalidArgument",
    "AuthorizationError",
    "NotOwner",
    "AlreadyInitialized",
    "NotInitialized",
    "TransferError",
    "RefundTransferFailed",
    "TransferFailed",
    "TransferRejected",
    "InsufficientBalance",
    "UpgradeRejected",
    "StateError",
]
