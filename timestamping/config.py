"""
timestamping.config: environment-driven settings for the registry and tools.

Configuration precedence:
  1) Environment variables (TIMESTAMPING_*)
  2) Hardcoded safe defaults below

Key env vars:
  - TIMESTAMPING_DEFAULT_FEE       (int)    default: 0
  - TIMESTAMPING_POSEIDON_PARAMS   (path)   default: none (placeholder params)
  - TIMESTAMPING_VERIFYING_KEY     (path)   default: none
  - TIMESTAMPING_LOG_LEVEL         (str)    default: INFO
  - TIMESTAMPING_LOG_FORMAT        (str)    default: auto  (json|text|auto)

Usage:
    from timestamping.config import load_config
    cfg = load_config()
    fee = cfg.default_fee

`load_config()` is cached; tests that tweak the environment call
`load_config.cache_clear()` afterwards.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Optional

UINT256_MAX = (1 << 256) - 1


# ----------------------------- helpers ---------------------------------------


def _env_int(name: str, default: int, *, min_v: int, max_v: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        v = int(raw.strip(), 0)
    except ValueError:
        return default
    return max(min_v, min(max_v, v))


def _env_path(name: str) -> Optional[Path]:
    raw = os.getenv(name)
    if not raw or not raw.strip():
        return None
    return Path(raw.strip()).expanduser().resolve()


def _env_choice(name: str, default: str, choices: tuple) -> str:
    raw = (os.getenv(name) or "").strip().lower()
    return raw if raw in choices else default


# ------------------------------- config --------------------------------------


@dataclass(frozen=True)
class RegistryConfig:
    default_fee: int
    poseidon_params_path: Optional[Path]
    verifying_key_path: Optional[Path]
    log_level: str
    log_format: str

    def as_dict(self) -> Dict[str, Any]:
        return {
            "default_fee": self.default_fee,
            "poseidon_params_path": str(self.poseidon_params_path) if self.poseidon_params_path else None,
            "verifying_key_path": str(self.verifying_key_path) if self.verifying_key_path else None,
            "log_level": self.log_level,
            "log_format": self.log_format,
        }


@lru_cache(maxsize=1)
def load_config() -> RegistryConfig:
    """Build and cache a RegistryConfig from environment + safe defaults."""
    return RegistryConfig(
        default_fee=_env_int("TIMESTAMPING_DEFAULT_FEE", 0, min_v=0, max_v=UINT256_MAX),
        poseidon_params_path=_env_path("TIMESTAMPING_POSEIDON_PARAMS"),
        verifying_key_path=_env_path("TIMESTAMPING_VERIFYING_KEY"),
        log_level=_env_choice(
            "TIMESTAMPING_LOG_LEVEL", "info", ("critical", "error", "warning", "info", "debug")
        ).upper(),
        log_format=_env_choice("TIMESTAMPING_LOG_FORMAT", "auto", ("json", "text", "auto")),
    )


__all__ = ["RegistryConfig", "load_config", "UINT256_MAX"]
