# -*- coding: utf-8 -*-
"""
timestamping.contracts.ownable
==============================

Single-owner access control over the registry's durable state.

- read the current owner (`get_owner`)
- initialize the owner once (`init_owner`)
- check that a caller is the owner (`require_owner`)
- hand ownership to another account (`transfer_ownership`)

The owner lives under ``ts:owner`` (see :mod:`timestamping.state.layout`).

Events
------
- b"OwnershipTransferred" {"previous": bytes, "new": bytes}
"""
from __future__ import annotations

from typing import Optional

from timestamping.errors import InvalidArgument, NotOwner
from timestamping.runtime.host import ZERO_ADDRESS, Frame
from timestamping.state.layout import RegistryState
from timestamping.types import to_address

__all__ = ["get_owner", "init_owner", "require_owner", "transfer_ownership"]


def get_owner(state: RegistryState) -> Optional[bytes]:
    owner = state.owner
    return owner if owner else None


def init_owner(state: RegistryState, owner: bytes) -> None:
    """Set the owner if none is set yet. Never overwrites."""
    if get_owner(state) is None:
        state.owner = owner


def require_owner(state: RegistryState, caller: bytes) -> None:
    owner = get_owner(state)
    if owner is None or owner != caller:
        raise NotOwner(caller=caller)


def transfer_ownership(frame: Frame, state: RegistryState, new_owner: bytes) -> None:
    """
    Owner-only: transfer ownership to ``new_owner``.

    The zero address is rejected; an ownerless registry could never be
    administered again.
    """
    require_owner(state, frame.sender)
    try:
        addr = to_address(new_owner)
    except (TypeError, ValueError) as e:
        raise InvalidArgument(str(e), name="new_owner") from e
    if addr == ZERO_ADDRESS:
        raise InvalidArgument("new owner must not be the zero address", name="new_owner")

    previous = get_owner(state) or b""
    state.owner = addr
    frame.emit(b"OwnershipTransferred", previous=previous, new=addr)
