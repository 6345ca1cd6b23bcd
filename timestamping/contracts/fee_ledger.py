# -*- coding: utf-8 -*-
"""
timestamping.contracts.fee_ledger
=================================

Fee rate, accumulated fee balance, creation-time settlement and withdrawal.

Payment attached to ``create_stamp`` is already in the contract's value
balance when the logic runs. Settlement is split in two so that every state
write happens before value leaves the contract:

1. :meth:`FeeLedger.check_payment` during validation (pure, returns the excess);
2. :meth:`FeeLedger.collect` with the other effects (balance += fee);
3. :func:`refund` last, sending the excess back to the payer.

Withdrawal zeroes the balance before transferring it out.

Invariant: ``fee_balance`` = Σ fees collected − Σ withdrawn, never negative.

Events
------
- b"FeeUpdated"    {"old": int, "new": int}
- b"FeeWithdrawn"  {"to": bytes, "amount": int}
"""
from __future__ import annotations

from timestamping import logging as tlog
from timestamping.errors import (InsufficientFee, InvalidArgument, NothingToWithdraw,
                                 RefundTransferFailed, TransferFailed, TransferRejected)
from timestamping.runtime.host import Frame
from timestamping.state.layout import RegistryState
from timestamping.types import to_address

log = tlog.get_logger(__name__)

_U256_MAX = (1 << 256) - 1

__all__ = ["FeeLedger", "refund", "check_fee_value"]


def check_fee_value(value: int) -> int:
    if not isinstance(value, int) or isinstance(value, bool) or value < 0 or value > _U256_MAX:
        raise InvalidArgument("fee must be a uint256", name="fee")
    return value


class FeeLedger:
    __slots__ = ("_state",)

    def __init__(self, state: RegistryState) -> None:
        self._state = state

    @property
    def fee(self) -> int:
        return self._state.fee

    @property
    def balance(self) -> int:
        return self._state.fee_balance

    def check_payment(self, payment: int) -> int:
        """Return the excess over the fee, or raise InsufficientFee."""
        fee = self.fee
        if payment < fee:
            raise InsufficientFee(required=fee, paid=payment)
        return payment - fee

    def collect(self) -> None:
        self._state.fee_balance = self.balance + self.fee

    def set_fee(self, frame: Frame, new_fee: int) -> None:
        old = self.fee
        self._state.fee = check_fee_value(new_fee)
        frame.emit(b"FeeUpdated", old=old, new=new_fee)
        log.info("fee updated", extra={"old": old, "new": new_fee})

    def withdraw(self, frame: Frame, to: bytes) -> int:
        try:
            recipient = to_address(to)
        except (TypeError, ValueError) as e:
            raise InvalidArgument(str(e), name="to") from e
        amount = self.balance
        if amount == 0:
            raise NothingToWithdraw()

        self._state.fee_balance = 0
        frame.emit(b"FeeWithdrawn", to=recipient, amount=amount)
        try:
            frame.transfer(recipient, amount)
        except TransferRejected as e:
            raise TransferFailed(to=recipient, amount=amount) from e
        log.info("fees withdrawn", extra={"to": recipient, "amount": amount})
        return amount


def refund(frame: Frame, to: bytes, amount: int) -> None:
    """Return ``amount`` of excess payment to ``to``; a rejected refund fails the call."""
    if amount == 0:
        return
    try:
        frame.transfer(to, amount)
    except TransferRejected as e:
        raise RefundTransferFailed(to=to, amount=amount) from e
