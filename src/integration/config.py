"""
Runtime configuration for the rewards program.

Loaded from a YAML mapping (fail-closed: unknown keys and wrong types are
rejected), then overridden by ``HOLDER_REWARDS_*`` environment variables.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Mapping, Optional

import yaml

from ..core.holder_rewards.math import U64_MAX
from ..state.canonical import canonical_hex_fixed_allow_0x

ENV_PREFIX = "HOLDER_REWARDS_"

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class ConfigError(ValueError):
    pass


@dataclass(frozen=True)
class RewardsConfig:
    program_id: str = "0x" + "01" * 32
    chain_id: str = "holder-rewards-local"
    # Rent-exemption schedule for record accounts.
    lamports_per_byte_year: int = 3480
    exemption_threshold_years: int = 2
    account_storage_overhead: int = 128
    # Sponsors are repaid rent at numerator/denominator (a 10% premium).
    rent_debt_numerator: int = 11
    rent_debt_denominator: int = 10
    log_level: str = "INFO"


_INT_FIELDS: dict[str, tuple[int, int]] = {
    "lamports_per_byte_year": (0, U64_MAX),
    "exemption_threshold_years": (0, 1_000),
    "account_storage_overhead": (0, 1 << 20),
    "rent_debt_numerator": (0, U64_MAX),
    "rent_debt_denominator": (1, U64_MAX),
}


def _env_int(name: str, default: int, *, lo: int, hi: int) -> int:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return int(default)
    try:
        v = int(raw.strip())
    except ValueError as exc:
        raise ConfigError(f"{name} must be an integer") from exc
    if v < lo or v > hi:
        raise ConfigError(f"{name} must be in [{lo}, {hi}]")
    return v


def _env_str(name: str, default: str) -> str:
    raw = os.environ.get(name)
    if raw is None:
        return default
    v = raw.strip()
    return v if v else default


def _validate(cfg: RewardsConfig) -> RewardsConfig:
    try:
        program_id = canonical_hex_fixed_allow_0x(cfg.program_id, nbytes=32, name="program_id")
    except (TypeError, ValueError) as exc:
        raise ConfigError(str(exc)) from exc
    if not isinstance(cfg.chain_id, str) or not cfg.chain_id.strip():
        raise ConfigError("chain_id must be a non-empty string")
    for name, (lo, hi) in _INT_FIELDS.items():
        val = getattr(cfg, name)
        if not isinstance(val, int) or isinstance(val, bool):
            raise ConfigError(f"{name} must be an integer")
        if val < lo or val > hi:
            raise ConfigError(f"{name} must be in [{lo}, {hi}]")
    level = str(cfg.log_level).upper()
    if level not in _LOG_LEVELS:
        raise ConfigError(f"log_level must be one of {', '.join(_LOG_LEVELS)}")
    return replace(cfg, program_id=program_id, chain_id=cfg.chain_id.strip(), log_level=level)


def config_from_mapping(obj: Any) -> RewardsConfig:
    if obj is None:
        obj = {}
    if not isinstance(obj, Mapping):
        raise ConfigError("config must be a mapping")
    known = {f.name for f in fields(RewardsConfig)}
    unknown = sorted(str(k) for k in set(obj) - known)
    if unknown:
        raise ConfigError(f"unknown config keys: {', '.join(unknown)}")
    return _validate(RewardsConfig(**dict(obj)))


def apply_env_overrides(cfg: RewardsConfig) -> RewardsConfig:
    overrides: dict[str, Any] = {
        "program_id": _env_str(ENV_PREFIX + "PROGRAM_ID", cfg.program_id),
        "chain_id": _env_str(ENV_PREFIX + "CHAIN_ID", cfg.chain_id),
        "log_level": _env_str(ENV_PREFIX + "LOG_LEVEL", cfg.log_level),
    }
    for name, (lo, hi) in _INT_FIELDS.items():
        overrides[name] = _env_int(ENV_PREFIX + name.upper(), getattr(cfg, name), lo=lo, hi=hi)
    return _validate(replace(cfg, **overrides))


def load_config(path: Optional[Path] = None) -> RewardsConfig:
    """Load config from *path* (if given), then apply environment overrides."""
    cfg = RewardsConfig()
    if path is not None:
        cfg = config_from_mapping(yaml.safe_load(Path(path).read_text(encoding="utf-8")))
    return apply_env_overrides(cfg)
