# -*- coding: utf-8 -*-
"""
timestamping.contracts.initializable
====================================

One-shot initialization guard. The flag is the initialized logic version
stored under ``ts:init``, so replacing the logic behind the proxy never
resets it.
"""
from __future__ import annotations

from timestamping.errors import AlreadyInitialized, NotInitialized
from timestamping.state.layout import RegistryState

__all__ = ["is_initialized", "require_initialized", "mark_initialized"]


def is_initialized(state: RegistryState) -> bool:
    return state.init_version != 0


def require_initialized(state: RegistryState) -> None:
    if not is_initialized(state):
        raise NotInitialized()


def mark_initialized(state: RegistryState, version: int) -> None:
    """Flip the flag, failing if it was already set."""
    if is_initialized(state):
        raise AlreadyInitialized(data={"version": state.init_version})
    state.init_version = version
