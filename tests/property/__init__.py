# -*- coding: utf-8 -*-
"""
tests.property package bootstrap.

Hypothesis configuration shared by the registry property tests.

On import:
- Registers named profiles (dev/ci/fast/stress).
- Selects the active profile from HYPOTHESIS_PROFILE, otherwise "ci" when the
  CI env var is truthy and "dev" locally.
- Re-exports `given` and `strategies as st`, plus strategies for registry
  inputs (signer lists, payments, pagination windows).

Usage in tests:
    from tests.property import st, given, signer_lists

    @given(signer_lists())
    def test_only_listed_identities_sign(signers):
        ...

Every example builds its own host via ``tests.support.new_env``; function
scoped pytest fixtures are not shared across Hypothesis examples.
"""
from __future__ import annotations

import os
from typing import Final, Tuple

from hypothesis import HealthCheck, Verbosity, given, settings
from hypothesis import strategies as st

from timestamping.contracts.zkverify import SNARK_SCALAR_FIELD

from tests.support import ACCOUNT_TAGS, det_address

# ---- profile registry --------------------------------------------------------


def _hc(*items: HealthCheck) -> Tuple[HealthCheck, ...]:
    return items


# Each example deploys a fresh registry, so examples are kept modest.
settings.register_profile(
    "dev",
    settings(
        max_examples=50,
        deadline=None,
        suppress_health_check=_hc(HealthCheck.too_slow, HealthCheck.filter_too_much),
        verbosity=Verbosity.normal,
        derandomize=False,
    ),
)

settings.register_profile(
    "ci",
    settings(
        max_examples=100,
        deadline=None,
        suppress_health_check=_hc(HealthCheck.too_slow, HealthCheck.filter_too_much),
        verbosity=Verbosity.verbose,
        derandomize=True,
    ),
)

settings.register_profile(
    "fast",
    settings(
        max_examples=15,
        deadline=None,
        suppress_health_check=_hc(HealthCheck.too_slow),
        verbosity=Verbosity.normal,
        derandomize=False,
    ),
)

settings.register_profile(
    "stress",
    settings(
        max_examples=500,
        deadline=None,
        suppress_health_check=_hc(
            HealthCheck.too_slow,
            HealthCheck.filter_too_much,
            HealthCheck.data_too_large,
        ),
        verbosity=Verbosity.normal,
        derandomize=True,
    ),
)


def _env_truthy(name: str) -> bool:
    v = os.getenv(name)
    return (v or "").lower() not in ("", "0", "false", "no", "off")


_active: Final[str] = os.getenv("HYPOTHESIS_PROFILE") or ("ci" if _env_truthy("CI") else "dev")
settings.load_profile(_active)

# ---- registry strategies -----------------------------------------------------

#: Identities outside the funded account set; they never pay, only sign.
EXTRA_TAGS = tuple(f"user{i}" for i in range(12))


def identities():
    """Any funded account or extra identity."""
    return st.sampled_from(ACCOUNT_TAGS + EXTRA_TAGS).map(det_address)


def signer_lists(min_size: int = 0, max_size: int = 8):
    """Duplicate-free signer lists in a random order."""
    return st.lists(identities(), min_size=min_size, max_size=max_size, unique=True)


def stamp_hashes():
    """32-byte hashes that are canonical BN254 scalars."""
    return st.integers(0, SNARK_SCALAR_FIELD - 1).map(lambda n: n.to_bytes(32, "big"))


def aliased_hashes():
    """32-byte values at or above the scalar field modulus."""
    return st.integers(SNARK_SCALAR_FIELD, (1 << 256) - 1).map(lambda n: n.to_bytes(32, "big"))


def large_signer_lists(max_size: int = 600):
    """Duplicate-free signer lists far beyond the account pool, in a fixed order."""
    return st.integers(1, max_size).map(lambda n: [det_address(f"member{i}") for i in range(n)])


def windows(max_value: int = 20):
    """(offset, limit) pairs, including ones past the end of any list."""
    return st.tuples(st.integers(0, max_value), st.integers(0, max_value))


def active_profile() -> str:
    return _active


__all__ = [
    "st",
    "given",
    "active_profile",
    "identities",
    "signer_lists",
    "stamp_hashes",
    "aliased_hashes",
    "large_signer_lists",
    "windows",
    "EXTRA_TAGS",
]
