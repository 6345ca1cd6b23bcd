"""
tests.unit
==========

Example-based tests for the registry, its host and the zk helpers.

Fixtures come from ``tests/conftest.py``; deterministic identities, hashes and
the fake verifier live in :mod:`tests.support`. Pairing-heavy Groth16 checks
are marked ``slow`` (skip with ``--skip-slow``).
"""
