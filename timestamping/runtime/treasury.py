"""
timestamping.runtime.treasury: journaled native-value ledger.

Balances live in the same journal as contract state (under ``bal:<addr>``),
so a reverted call also rolls back every debit and credit it made. The
ledger is pure arithmetic; recipient receive hooks are the host's business.

- balance_of(addr) -> int
- credit(addr, amount)
- debit(addr, amount)          # InsufficientBalance on underflow
- move(frm, to, amount)        # debit then credit
"""

from __future__ import annotations

from typing import Final

from timestamping.encoding import decode_u256, encode_u256
from timestamping.errors import InsufficientBalance, StateError
from timestamping.state.journal import Journal
from timestamping.types import ADDRESS_LEN

_P_BAL: Final[bytes] = b"bal:"
_MAX_BALANCE: Final[int] = (1 << 256) - 1


def _check_addr(addr: bytes) -> bytes:
    if not isinstance(addr, (bytes, bytearray)) or len(addr) != ADDRESS_LEN:
        raise StateError(f"address must be exactly {ADDRESS_LEN} bytes")
    return bytes(addr)


def _check_amount(amount: int) -> int:
    if not isinstance(amount, int) or isinstance(amount, bool):
        raise StateError("amount must be int")
    if amount < 0:
        raise StateError("amount must be non-negative")
    if amount > _MAX_BALANCE:
        raise StateError("amount exceeds 256-bit limit")
    return amount


class Treasury:
    def __init__(self, journal: Journal) -> None:
        self._journal = journal

    def balance_of(self, addr: bytes) -> int:
        raw = self._journal.get(_P_BAL + _check_addr(addr))
        return 0 if raw is None else decode_u256(raw)

    def _put(self, addr: bytes, amount: int) -> None:
        self._journal.set(_P_BAL + addr, encode_u256(amount))

    def credit(self, addr: bytes, amount: int) -> None:
        a = _check_addr(addr)
        _check_amount(amount)
        new = self.balance_of(a) + amount
        if new > _MAX_BALANCE:
            raise StateError("balance overflow")
        self._put(a, new)

    def debit(self, addr: bytes, amount: int) -> None:
        a = _check_addr(addr)
        _check_amount(amount)
        cur = self.balance_of(a)
        if amount > cur:
            raise InsufficientBalance(account=a, needed=amount, available=cur)
        self._put(a, cur - amount)

    def move(self, frm: bytes, to: bytes, amount: int) -> None:
        """Debit ``frm`` and credit ``to``. Zero amounts are a no-op."""
        if _check_amount(amount) == 0:
            return
        self.debit(frm, amount)
        self.credit(to, amount)


__all__ = ["Treasury"]
