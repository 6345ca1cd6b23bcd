# -*- coding: utf-8 -*-
"""
Stamp creation: visibility modes, validation order, proof binding and
atomicity of failed creations.
"""
from __future__ import annotations

import pytest

from timestamping.contracts.zkverify import SNARK_SCALAR_FIELD
from timestamping.errors import (HashCollision, InsufficientFee, InvalidArgument, InvalidSigners,
                                 NotInitialized, ProofInvalid)
from timestamping.types import UNBOUNDED

from tests.support import FEE, FUNDS, det_address, det_hash, make_proof, new_env


def test_public_stamp_self_signs_creator(env):
    h = det_hash("public")
    alice = env.accounts.alice

    rc = env.create(h, alice)

    assert rc.return_value == h
    assert env.registry.get_stamp_signers_count(h) == 1
    info = env.registry.get_stamp_info(h)
    assert info.is_public
    assert info.created_at == rc.block.timestamp
    assert info.users_to_sign == UNBOUNDED
    assert info.users_signed == 1
    (rec,) = info.signers
    assert rec.identity == alice
    assert rec.signed_at == rc.block.timestamp
    assert not rec.admitted
    assert env.registry.get_hashes_by_user_address(alice) == [h]


def test_public_stamp_events(env):
    h = det_hash("public-events")
    rc = env.create(h, env.accounts.alice)

    assert [e.name for e in rc.events] == [b"StampCreated", b"StampSigned"]
    created, signed = rc.events
    assert created["hash"] == h
    assert created["created_at"] == rc.block.timestamp
    assert created["signers"] == ()
    assert signed["signer"] == env.accounts.alice
    assert signed["timestamp"] == rc.block.timestamp


def test_admitted_stamp_lists_signers_without_signing_creator(env):
    a = env.accounts
    h = det_hash("admitted")

    rc = env.create(h, a.alice, signers=[a.bob, a.carol])

    info = env.registry.get_stamp_info(h)
    assert not info.is_public
    assert info.users_to_sign == 2
    assert info.users_signed == 0
    assert [s.identity for s in info.signers] == [a.bob, a.carol]
    assert all(s.admitted and s.signed_at == 0 for s in info.signers)

    creator = env.registry.get_user_info(a.alice, h)
    assert not creator.admitted and creator.signed_at == 0

    (created,) = rc.named(b"StampCreated")
    assert created["signers"] == (a.bob, a.carol)
    assert rc.named(b"StampSigned") == ()


def test_admitted_mode_ignores_is_public_flag(env):
    a = env.accounts
    h = det_hash("admitted-public-flag")
    env.create(h, a.alice, signers=[a.bob], public=True)

    info = env.registry.get_stamp_info(h)
    assert not info.is_public
    assert info.users_signed == 0


def test_reverse_index_covers_creator_and_listed_signers(env):
    a = env.accounts
    h = det_hash("index")
    env.create(h, a.alice, signers=[a.bob, a.carol])

    for who in (a.alice, a.bob, a.carol):
        assert env.registry.get_hashes_by_user_address(who) == [h]
    assert env.registry.get_hashes_by_user_address(a.dave) == []


def test_creator_may_list_itself(env):
    a = env.accounts
    h = det_hash("self-listed")
    env.create(h, a.alice, signers=[a.alice, a.bob])

    assert env.registry.get_hashes_by_user_address(a.alice) == [h]
    me = env.registry.get_user_info(a.alice, h)
    assert me.admitted and me.signed_at == 0


def test_private_empty_stamp_has_no_signers(env):
    h = det_hash("empty")
    rc = env.create(h, env.accounts.alice, public=False)

    info = env.registry.get_stamp_info(h)
    assert info.is_public
    assert info.signers == ()
    assert info.users_signed == 0
    assert env.registry.get_stamp_signers_count(h) == 0
    assert rc.named(b"StampSigned") == ()
    assert env.registry.get_hashes_by_user_address(env.accounts.alice) == [h]


def test_created_at_follows_host_clock(env):
    env.host.set_next_block_timestamp(1_800_000_000)
    h = det_hash("clock")
    env.create(h, env.accounts.alice)
    assert env.registry.get_stamp_info(h).created_at == 1_800_000_000


def test_second_create_collides_without_duplicate_event(env):
    h = det_hash("dup")
    env.create(h, env.accounts.alice)

    with pytest.raises(HashCollision) as ei:
        env.create(h, env.accounts.alice)
    assert ei.value.code == "HASH_COLLISION"

    with pytest.raises(HashCollision):
        env.create(h, env.accounts.bob)
    assert len(env.host.events.named(b"StampCreated")) == 1


def test_duplicate_signer_rejected(env):
    a = env.accounts
    with pytest.raises(InvalidSigners) as ei:
        env.create(det_hash("dupsig"), a.alice, signers=[a.bob, a.carol, a.bob])
    assert ei.value.data["duplicate"] == "0x" + a.bob.hex()


@pytest.mark.parametrize("bad", ["0x1234", b"\x01" * 19, 12345])
def test_malformed_signer_rejected(env, bad):
    with pytest.raises(InvalidSigners):
        env.create(det_hash("badsig"), env.accounts.alice, signers=[env.accounts.bob, bad])


def test_hex_signers_normalized(env):
    a = env.accounts
    h = det_hash("hexsig")
    env.create(h, a.alice, signers=["0x" + a.bob.hex()])
    assert env.registry.get_user_info(a.bob, h).admitted


def test_insufficient_fee(env):
    with pytest.raises(InsufficientFee) as ei:
        env.create(det_hash("cheap"), env.accounts.alice, value=FEE - 1)
    assert ei.value.data == {"required": FEE, "paid": FEE - 1}


def test_failed_creation_leaves_no_trace(env):
    alice = env.accounts.alice
    h = det_hash("reverted")
    before = len(env.host.events)

    with pytest.raises(InsufficientFee):
        env.create(h, alice, value=1)

    assert env.host.balance_of(alice) == FUNDS
    assert env.registry.balance() == 0
    assert env.registry.get_fee_balance() == 0
    assert env.registry.get_stamp_signers_count(h) == 0
    assert env.registry.get_hashes_by_user_address(alice) == []
    assert len(env.host.events) == before


def test_wrong_proof_rejected(env):
    with pytest.raises(ProofInvalid) as ei:
        env.create(det_hash("bad-proof"), env.accounts.alice, proof={"binding": "00"})
    assert ei.value.data["reason"] == "rejected"


def test_proof_replayed_by_another_caller_rejected(env):
    a = env.accounts
    h = det_hash("replay")
    stolen = make_proof(h, a.alice)

    with pytest.raises(ProofInvalid):
        env.create(h, a.mallory, proof=stolen)

    env.create(h, a.alice, proof=stolen)
    assert env.registry.get_stamp_info(h).signers[0].identity == a.alice


def test_verifier_receives_hash_and_caller_as_public_inputs(env):
    h = det_hash("inputs")
    env.create(h, env.accounts.alice)
    (_, inputs) = env.verifier.calls[-1]
    assert inputs == (int.from_bytes(h, "big"), int.from_bytes(env.accounts.alice, "big"))


def test_verifier_error_is_proof_invalid(env):
    env.verifier.raise_with = RuntimeError("boom")
    with pytest.raises(ProofInvalid) as ei:
        env.create(det_hash("raises"), env.accounts.alice)
    assert ei.value.data["reason"] == "verifier_error"


def test_non_bool_verifier_result_is_rejected(env):
    env.verifier.answer = 1
    with pytest.raises(ProofInvalid):
        env.create(det_hash("truthy"), env.accounts.alice)


def test_missing_proof_is_malformed(env):
    with pytest.raises(ProofInvalid) as ei:
        env.registry.create_stamp(det_hash("none"), True, [], None, sender=env.accounts.alice, value=FEE)
    assert ei.value.data["reason"] == "malformed"


def test_unresolvable_verifier(env):
    env.registry.set_verifier(b"unregistered", sender=env.accounts.owner)
    with pytest.raises(ProofInvalid) as ei:
        env.create(det_hash("nover"), env.accounts.alice)
    assert ei.value.data["reason"] == "no_verifier"


class TestCheckOrder:
    def test_collision_before_signers(self, env):
        a = env.accounts
        h = det_hash("order-1")
        env.create(h, a.alice)
        with pytest.raises(HashCollision):
            env.create(h, a.alice, signers=[a.bob, a.bob], value=0)

    def test_signers_before_fee(self, env):
        a = env.accounts
        with pytest.raises(InvalidSigners):
            env.create(det_hash("order-2"), a.alice, signers=[a.bob, a.bob], value=0)

    def test_fee_before_proof(self, env):
        with pytest.raises(InsufficientFee):
            env.create(det_hash("order-3"), env.accounts.alice, value=0, proof={"binding": "00"})
        assert env.verifier.calls == []


@pytest.mark.parametrize(
    "form",
    [
        lambda h: "0x" + h.hex(),
        lambda h: h.hex(),
        lambda h: int.from_bytes(h, "big"),
        lambda h: bytearray(h),
    ],
)
def test_hash_argument_forms(env, form):
    h = det_hash("forms")
    rc = env.registry.create_stamp(
        form(h), True, [], make_proof(h, env.accounts.alice), sender=env.accounts.alice, value=FEE
    )
    assert rc.return_value == h


@pytest.mark.parametrize("bad", ["0x1234", b"\x00" * 31, -1, 1 << 256, True])
def test_malformed_hash_is_invalid_argument(env, bad):
    with pytest.raises(InvalidArgument):
        env.registry.create_stamp(bad, True, [], {}, sender=env.accounts.alice, value=FEE)


def test_create_before_initialize():
    env = new_env(initialize=False)
    with pytest.raises(NotInitialized):
        env.create(det_hash("early"), env.accounts.alice)


def test_stamps_by_distinct_creators_are_independent(env):
    a = env.accounts
    h1, h2 = det_hash("one"), det_hash("two")
    env.create(h1, a.alice)
    env.create(h2, a.bob, signers=[a.alice])

    assert env.registry.get_hashes_by_user_address(a.alice) == [h1, h2]
    assert env.registry.get_hashes_by_user_address(a.bob) == [h2]
    assert env.registry.get_user_info(det_address("nobody"), h1).signed_at == 0


class TestFieldBoundary:
    def test_largest_field_element_is_accepted(self, env):
        h = (SNARK_SCALAR_FIELD - 1).to_bytes(32, "big")
        assert env.create(h, env.accounts.alice).return_value == h

    @pytest.mark.parametrize("n", [SNARK_SCALAR_FIELD, SNARK_SCALAR_FIELD + 12345, (1 << 256) - 1])
    def test_hash_outside_field_is_rejected(self, env, n):
        h = n.to_bytes(32, "big")
        alice = env.accounts.alice
        events = len(env.host.events)

        with pytest.raises(InvalidArgument) as ei:
            env.create(h, alice)

        assert ei.value.data["name"] == "hash"
        assert env.verifier.calls == []
        assert len(env.host.events) == events
        assert env.host.balance_of(alice) == FUNDS
        assert env.registry.get_stamp_signers_count(h) == 0

    def test_aliased_hash_cannot_register_a_second_stamp(self, env):
        alice = env.accounts.alice
        low = 12345
        env.create(low.to_bytes(32, "big"), alice)

        aliased = (low + SNARK_SCALAR_FIELD).to_bytes(32, "big")
        with pytest.raises(InvalidArgument):
            env.create(aliased, alice, proof=make_proof(low.to_bytes(32, "big"), alice))
        assert env.registry.get_hashes_by_user_address(alice) == [low.to_bytes(32, "big")]

    def test_field_check_precedes_other_checks(self, env):
        with pytest.raises(InvalidArgument):
            env.create(b"\xff" * 32, env.accounts.alice, signers=[env.accounts.bob] * 2, value=0)


def test_large_admitted_list_is_created_and_paged():
    env = new_env()
    alice = env.accounts.alice
    listed = [det_address(f"member{i}") for i in range(5000)]
    h = det_hash("large")

    rc = env.create(h, alice, signers=listed)

    assert len(rc.named(b"StampCreated")[0]["signers"]) == 5000
    assert env.registry.get_stamp_signers_count(h) == 5000
    env.registry.sign(h, sender=listed[4999])

    pages = []
    for off in range(0, 5000, 1024):
        page = env.registry.get_stamp_info_with_pagination(h, off, 1024)
        assert page.users_to_sign == 5000
        assert page.users_signed == 1
        pages.extend(s.identity for s in page.signers)
    assert pages == listed
    assert env.registry.get_user_info(listed[4999], h).signed_at == env.host.now
    assert env.registry.get_hashes_by_user_address(listed[0]) == [h]
