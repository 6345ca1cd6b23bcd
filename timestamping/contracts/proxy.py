# -*- coding: utf-8 -*-
"""
timestamping.contracts.proxy
============================

Stable registry handle with swappable logic.

The proxy owns one contract address on a :class:`~timestamping.runtime.host.Host`.
It stores the active logic version under ``proxy:impl`` in that address's
storage and routes every call to the registered logic object for that
version. Durable state (stamps, fee ledger, owner, init flag) stays where it
is across upgrades; only the code changes.

Upgrade rules
-------------
- owner-only (NotOwner);
- the target version must be registered with this proxy, differ from the
  current one, and understand the store's schema version (UpgradeRejected).

Events
------
- b"Upgraded" {"old": int, "new": int}

Usage
-----
    proxy = RegistryProxy.deploy(host, deployer=owner, fee=100, verifier_ref=b"groth16")
    proxy.create_stamp(h, True, [], proof, sender=alice, value=100)
    info = proxy.get_stamp_info(h)
"""
from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional, Sequence

from timestamping import logging as tlog
from timestamping.errors import StateError, UpgradeRejected
from timestamping.runtime.host import Frame, Host, Receipt
from timestamping.state.layout import RegistryState
from timestamping.types import AddressLike, StampInfo, UserInfo, to_address
from timestamping.version import LOGIC_VERSION
from timestamping.zk.hashing import keccak256

from . import ownable
from .registry import TimeStampingV1

log = tlog.get_logger(__name__)

__all__ = ["RegistryProxy", "derive_address"]


def derive_address(deployer: bytes, salt: bytes = b"") -> bytes:
    """Deterministic proxy address: last 20 bytes of keccak256(tag | deployer | salt)."""
    return keccak256(b"timestamping/proxy" + bytes(deployer) + bytes(salt))[12:]


class RegistryProxy:
    def __init__(self, host: Host, address: AddressLike, implementations: Optional[Iterable[Any]] = None) -> None:
        self.host = host
        self.address = to_address(address)
        self._impls: Dict[int, Any] = {}
        for logic in implementations or (TimeStampingV1(),):
            self.register_implementation(logic)

    # ---------- deployment ----------

    @classmethod
    def deploy(
        cls,
        host: Host,
        *,
        deployer: AddressLike,
        fee: Optional[int] = None,
        verifier_ref: bytes = b"",
        owner: Optional[AddressLike] = None,
        initialize: bool = True,
        salt: bytes = b"",
        logic_version: int = LOGIC_VERSION,
        implementations: Optional[Iterable[Any]] = None,
    ) -> "RegistryProxy":
        """
        Install the proxy at a fresh address and, unless ``initialize`` is
        False, run the logic's ``initialize`` in the same atomic call.
        """
        dep = to_address(deployer)
        proxy = cls(host, derive_address(dep, salt), implementations)
        logic = proxy._impls.get(logic_version)
        if logic is None:
            raise UpgradeRejected("logic version not registered", target=logic_version)

        def _deploy(frame: Frame) -> None:
            state = RegistryState(frame.storage)
            if state.implementation != 0:
                raise StateError("a proxy is already deployed at this address")
            state.implementation = logic_version
            if initialize:
                logic.initialize(frame, fee, verifier_ref, owner)

        host.execute(proxy.address, _deploy, sender=dep, method="deploy")
        log.info("registry deployed", extra={"address": proxy.address, "logic": logic_version})
        return proxy

    # ---------- dispatch ----------

    def register_implementation(self, logic: Any) -> int:
        version = int(logic.VERSION)
        if version < 1:
            raise ValueError("logic VERSION must be >= 1")
        self._impls[version] = logic
        return version

    def _logic(self, frame: Frame) -> Any:
        version = RegistryState(frame.storage).implementation
        logic = self._impls.get(version)
        if logic is None:
            raise StateError("no logic registered for the active version", data={"version": version})
        return logic

    def call(self, method: str, *args: Any, sender: AddressLike, value: int = 0) -> Receipt:
        """Atomic mutating call routed to the active logic."""
        return self.host.execute(
            self.address,
            lambda f: getattr(self._logic(f), method)(f, *args),
            sender=sender,
            value=value,
            method=method,
        )

    def read(self, method: str, *args: Any, sender: Optional[AddressLike] = None) -> Any:
        """Read-only call routed to the active logic."""
        fn = lambda f: getattr(self._logic(f), method)(f, *args)  # noqa: E731
        if sender is None:
            return self.host.view(self.address, fn)
        return self.host.view(self.address, fn, sender=sender)

    # ---------- upgrade ----------

    def upgrade_to(self, version: int, *, sender: AddressLike) -> Receipt:
        def _upgrade(frame: Frame) -> int:
            state = RegistryState(frame.storage)
            ownable.require_owner(state, frame.sender)
            current = state.implementation
            target = self._impls.get(version)
            if target is None:
                raise UpgradeRejected("logic version not registered", current=current, target=version)
            if version == current:
                raise UpgradeRejected("already on this logic version", current=current, target=version)
            schema = state.schema_version
            if schema and int(getattr(target, "SCHEMA_VERSION", 0)) != schema:
                raise UpgradeRejected(
                    "logic does not understand the stored schema",
                    current=current,
                    target=version,
                    data={"schema": schema},
                )
            state.implementation = version
            frame.emit(b"Upgraded", old=current, new=version)
            log.info("registry upgraded", extra={"old": current, "new": version})
            return version

        return self.host.execute(self.address, _upgrade, sender=sender, method="upgrade_to")

    def implementation(self) -> int:
        return self.host.view(self.address, lambda f: RegistryState(f.storage).implementation)

    # ---------- registry surface ----------

    def initialize(
        self,
        fee: Optional[int] = None,
        verifier_ref: bytes = b"",
        owner: Optional[AddressLike] = None,
        *,
        sender: AddressLike,
    ) -> Receipt:
        return self.call("initialize", fee, verifier_ref, owner, sender=sender)

    def create_stamp(
        self,
        stamp_hash: Any,
        is_public: bool,
        signers: Sequence[AddressLike],
        proof: Any,
        *,
        sender: AddressLike,
        value: int = 0,
    ) -> Receipt:
        return self.call("create_stamp", stamp_hash, is_public, list(signers), proof, sender=sender, value=value)

    def sign(self, stamp_hash: Any, *, sender: AddressLike) -> Receipt:
        return self.call("sign", stamp_hash, sender=sender)

    def set_fee(self, new_fee: int, *, sender: AddressLike) -> Receipt:
        return self.call("set_fee", new_fee, sender=sender)

    def withdraw_fee(self, to: AddressLike, *, sender: AddressLike) -> Receipt:
        return self.call("withdraw_fee", to, sender=sender)

    def set_verifier(self, verifier_ref: bytes, *, sender: AddressLike) -> Receipt:
        return self.call("set_verifier", verifier_ref, sender=sender)

    def transfer_ownership(self, new_owner: AddressLike, *, sender: AddressLike) -> Receipt:
        return self.call("transfer_ownership", new_owner, sender=sender)

    def get_stamp_info(self, stamp_hash: Any) -> StampInfo:
        return self.read("get_stamp_info", stamp_hash)

    def get_stamp_info_with_pagination(self, stamp_hash: Any, offset: int, limit: int) -> StampInfo:
        return self.read("get_stamp_info_with_pagination", stamp_hash, offset, limit)

    def get_hashes_by_user_address(self, user: AddressLike) -> List[bytes]:
        return self.read("get_hashes_by_user_address", user)

    def get_hashes_by_user_address_with_pagination(self, user: AddressLike, offset: int, limit: int) -> List[bytes]:
        return self.read("get_hashes_by_user_address_with_pagination", user, offset, limit)

    def get_stamp_signers_count(self, stamp_hash: Any) -> int:
        return self.read("get_stamp_signers_count", stamp_hash)

    def get_user_info(self, user: AddressLike, stamp_hash: Any) -> UserInfo:
        return self.read("get_user_info", user, stamp_hash)

    def get_hash_by_bytes(self, data: bytes) -> bytes:
        return self.read("get_hash_by_bytes", data)

    def owner(self) -> Optional[bytes]:
        return self.read("owner")

    def get_fee(self) -> int:
        return self.read("get_fee")

    def get_fee_balance(self) -> int:
        return self.read("get_fee_balance")

    def verifier(self) -> bytes:
        return self.read("verifier")

    def balance(self) -> int:
        """Native value held at the proxy address (fees plus anything sent to it)."""
        return self.host.balance_of(self.address)
