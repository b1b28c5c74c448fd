"""`holder_rewards`: per-holder reward accounting over a growing reward fund.

A pool record carries an accumulated-rewards-per-token rate; each holder record
carries the rate it last settled at and its deposited amount. New rewards are
folded into the rate on every touch, so no operation ever iterates holders:
- deterministic, integer-only transitions (u64/u128 emulated on Python ints),
- immutable records (frozen dataclasses),
- fail-closed guards and invariant checks.

Public API:
- `step(pool, holder, view, params) -> StepResult`
- `step_or_raise(pool, holder, view, params) -> StepResult` (raises on rejection)
- `encode_pool` / `decode_pool`, `encode_holder` / `decode_holder`
"""

from .engine import step, step_or_raise
from .errors import (
    AddressMismatchError,
    AlreadyInitializedError,
    ArithmeticOverflowError,
    AuthorizationError,
    GuardError,
    InsufficientFundsError,
    InvariantViolationError,
    MalformedRecordError,
    NotInitializedError,
    ParamDomainError,
    RewardsError,
)
from .layout import (
    HOLDER_RECORD_LEN,
    POOL_RECORD_LEN,
    decode_holder,
    decode_pool,
    encode_holder,
    encode_pool,
)
from .math import REWARDS_PER_TOKEN_SCALE, U64_MAX, U128_MAX, WITHDRAW_ALL
from .state import holder_from_dict, holder_to_dict, pool_from_dict, pool_to_dict
from .types import (
    ZERO_ADDRESS,
    ZERO_HASH,
    Command,
    CommandParams,
    Effect,
    Event,
    HolderRecord,
    LedgerView,
    PoolRecord,
    StepResult,
)

__all__ = [
    "step",
    "step_or_raise",
    "encode_pool",
    "decode_pool",
    "encode_holder",
    "decode_holder",
    "pool_to_dict",
    "pool_from_dict",
    "holder_to_dict",
    "holder_from_dict",
    "POOL_RECORD_LEN",
    "HOLDER_RECORD_LEN",
    "REWARDS_PER_TOKEN_SCALE",
    "U64_MAX",
    "U128_MAX",
    "WITHDRAW_ALL",
    "ZERO_ADDRESS",
    "ZERO_HASH",
    "Command",
    "CommandParams",
    "Effect",
    "Event",
    "HolderRecord",
    "LedgerView",
    "PoolRecord",
    "StepResult",
    "RewardsError",
    "AddressMismatchError",
    "AlreadyInitializedError",
    "ArithmeticOverflowError",
    "AuthorizationError",
    "GuardError",
    "InsufficientFundsError",
    "InvariantViolationError",
    "MalformedRecordError",
    "NotInitializedError",
    "ParamDomainError",
]
