"""
Shared pytest fixtures:
- Deterministic, funded accounts
- A fresh host with a deployed and initialized registry (fee = 100)
- The fake proof verifier bound to that registry
- Isolation of env-driven config between tests
"""
from __future__ import annotations

import os

import pytest

from timestamping.config import load_config

from tests.support import Env, new_env


@pytest.fixture(autouse=True)
def _fresh_config(monkeypatch: pytest.MonkeyPatch):
    """Drop TIMESTAMPING_* from the environment and the cached config around every test."""
    for k in list(os.environ):
        if k.startswith("TIMESTAMPING_"):
            monkeypatch.delenv(k, raising=False)
    load_config.cache_clear()
    yield
    load_config.cache_clear()


@pytest.fixture
def env() -> Env:
    return new_env()


@pytest.fixture
def host(env: Env):
    return env.host


@pytest.fixture
def registry(env: Env):
    return env.registry


@pytest.fixture
def accounts(env: Env):
    return env.accounts


@pytest.fixture
def verifier(env: Env):
    return env.verifier
