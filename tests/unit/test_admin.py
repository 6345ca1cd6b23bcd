# -*- coding: utf-8 -*-
"""Ownership, one-shot initialization, verifier rotation and logic upgrades behind the proxy."""
from __future__ import annotations

import pytest

from timestamping.config import load_config
from timestamping.contracts.proxy import RegistryProxy, derive_address
from timestamping.contracts.registry import TimeStampingV1
from timestamping.errors import (AlreadyInitialized, InvalidArgument, NotInitialized, NotOwner, ProofInvalid,
                                 StateError, UpgradeRejected)
from timestamping.runtime.host import ZERO_ADDRESS, Host

from tests.support import FEE, VERIFIER_REF, Accounts, FakeVerifier, det_hash, make_proof, new_env


class TimeStampingV2(TimeStampingV1):
    VERSION = 2

    def version(self, frame):
        return self.VERSION


class TimeStampingV3(TimeStampingV1):
    VERSION = 3
    SCHEMA_VERSION = 2


# ---------- ownership & init ----------


def test_deploy_initializes_in_same_call(env):
    assert env.registry.owner() == env.accounts.owner
    assert env.registry.get_fee() == FEE
    assert env.registry.verifier() == VERIFIER_REF
    assert env.registry.implementation() == 1
    (ev,) = env.host.events.named(b"Initialized")
    assert ev.args == {"version": 1, "owner": env.accounts.owner, "fee": FEE}


def test_second_initialize_rejected(env):
    for who in (env.accounts.owner, env.accounts.mallory):
        with pytest.raises(AlreadyInitialized):
            env.registry.initialize(0, b"other", who, sender=who)
    assert env.registry.owner() == env.accounts.owner
    assert env.registry.get_fee() == FEE


def test_deferred_initialize():
    env = new_env(initialize=False)
    a = env.accounts
    assert env.registry.owner() is None

    with pytest.raises(NotInitialized):
        env.create(det_hash("x"), a.alice)
    with pytest.raises(NotOwner):
        env.registry.set_fee(1, sender=a.owner)

    env.registry.initialize(5, VERIFIER_REF, a.carol, sender=a.bob)
    assert env.registry.owner() == a.carol
    assert env.registry.get_fee() == 5
    env.create(det_hash("x"), a.alice, value=5)


def test_default_fee_from_environment(monkeypatch):
    monkeypatch.setenv("TIMESTAMPING_DEFAULT_FEE", "42")
    load_config.cache_clear()
    host = Host()
    proxy = RegistryProxy.deploy(host, deployer=Accounts.create().owner)
    assert proxy.get_fee() == 42


def test_transfer_ownership(env):
    a = env.accounts
    rc = env.registry.transfer_ownership(a.bob, sender=a.owner)
    (ev,) = rc.named(b"OwnershipTransferred")
    assert (ev["previous"], ev["new"]) == (a.owner, a.bob)

    with pytest.raises(NotOwner):
        env.registry.set_fee(1, sender=a.owner)
    env.registry.set_fee(1, sender=a.bob)
    assert env.registry.get_fee() == 1


def test_transfer_ownership_guards(env):
    a = env.accounts
    with pytest.raises(NotOwner):
        env.registry.transfer_ownership(a.mallory, sender=a.mallory)
    with pytest.raises(InvalidArgument):
        env.registry.transfer_ownership(ZERO_ADDRESS, sender=a.owner)
    assert env.registry.owner() == a.owner


# ---------- verifier rotation ----------


def test_set_verifier(env):
    a = env.accounts
    strict = FakeVerifier(answer=False)
    env.host.register_verifier(b"strict", strict)

    with pytest.raises(NotOwner):
        env.registry.set_verifier(b"strict", sender=a.mallory)

    rc = env.registry.set_verifier(b"strict", sender=a.owner)
    (ev,) = rc.named(b"VerifierUpdated")
    assert (ev["old"], ev["new"]) == (VERIFIER_REF, b"strict")
    assert env.registry.verifier() == b"strict"

    with pytest.raises(ProofInvalid):
        env.create(det_hash("strict"), a.alice)
    assert len(strict.calls) == 1


def test_set_verifier_rejects_empty_reference(env):
    with pytest.raises(InvalidArgument):
        env.registry.set_verifier(b"", sender=env.accounts.owner)


# ---------- upgrades ----------


@pytest.fixture
def upgradable():
    host = Host()
    a = Accounts.create()
    host.fund(a.alice, 10**6)
    host.register_verifier(VERIFIER_REF, FakeVerifier())
    proxy = RegistryProxy.deploy(
        host,
        deployer=a.owner,
        fee=FEE,
        verifier_ref=VERIFIER_REF,
        implementations=(TimeStampingV1(), TimeStampingV2(), TimeStampingV3()),
    )
    return host, proxy, a


def test_upgrade_keeps_state_and_init_flag(upgradable):
    _, proxy, a = upgradable
    h = det_hash("survivor")
    proxy.create_stamp(h, True, [], make_proof(h, a.alice), sender=a.alice, value=FEE)

    rc = proxy.upgrade_to(2, sender=a.owner)

    (ev,) = rc.named(b"Upgraded")
    assert (ev["old"], ev["new"]) == (1, 2)
    assert proxy.implementation() == 2
    assert proxy.read("version") == 2
    assert proxy.get_stamp_info(h).signers[0].identity == a.alice
    assert proxy.get_fee_balance() == FEE
    assert proxy.owner() == a.owner
    with pytest.raises(AlreadyInitialized):
        proxy.initialize(0, VERIFIER_REF, sender=a.owner)


def test_upgrade_requires_owner(upgradable):
    _, proxy, a = upgradable
    with pytest.raises(NotOwner):
        proxy.upgrade_to(2, sender=a.mallory)
    assert proxy.implementation() == 1


@pytest.mark.parametrize("target", [1, 9, 3])
def test_upgrade_rejected(upgradable, target):
    _, proxy, a = upgradable
    with pytest.raises(UpgradeRejected):
        proxy.upgrade_to(target, sender=a.owner)
    assert proxy.implementation() == 1


def test_unknown_method_on_v1(upgradable):
    _, proxy, _ = upgradable
    with pytest.raises(AttributeError):
        proxy.read("version")


# ---------- deployment ----------


def test_derive_address_is_deterministic():
    a = Accounts.create()
    assert derive_address(a.owner) == derive_address(a.owner)
    assert len(derive_address(a.owner)) == 20
    assert derive_address(a.owner, b"1") != derive_address(a.owner)
    assert derive_address(a.alice) != derive_address(a.owner)


def test_redeploy_at_same_address_rejected(env):
    with pytest.raises(StateError):
        RegistryProxy.deploy(env.host, deployer=env.accounts.owner, fee=1)
    assert env.registry.get_fee() == FEE


def test_salted_deployments_are_independent(env):
    a = env.accounts
    other = RegistryProxy.deploy(env.host, deployer=a.owner, fee=7, verifier_ref=VERIFIER_REF, salt=b"2")
    h = det_hash("shared")

    env.create(h, a.alice)
    assert other.get_stamp_signers_count(h) == 0
    assert other.get_fee() == 7
    assert other.address != env.registry.address


def test_deploy_unknown_logic_version():
    with pytest.raises(UpgradeRejected):
        RegistryProxy.deploy(Host(), deployer=Accounts.create().owner, logic_version=5)
