"""Fixed-point accumulator arithmetic for the holder rewards engine.

Every function is stateless and operates on plain Python ints, emulating the
unsigned 64- and 128-bit widths of the persisted records.

Exactly two operations wrap at 2**128: adding a rate delta to the pool's
accumulated rate, and taking the marginal rate between two snapshots. This
keeps the accumulator correct after it overflows over the pool's lifetime.
Every other step is checked and raises ``ArithmeticOverflowError``.
"""

from __future__ import annotations

from .errors import ArithmeticOverflowError

# One scale for both directions (rate_delta and owed_amount).
REWARDS_PER_TOKEN_SCALE: int = 1_000_000_000_000_000_000  # 1e18

U64_MAX: int = (1 << 64) - 1
U128_MAX: int = (1 << 128) - 1

# Withdraw sentinel meaning "everything deposited".
WITHDRAW_ALL: int = U64_MAX


# -- Width checks ------------------------------------------------------------

def require_u64(value: int, *, name: str = "value") -> int:
    """Return *value* if it fits in u64, else raise."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"{name} must be an int")
    if value < 0 or value > U64_MAX:
        raise ArithmeticOverflowError(message=f"{name} out of u64 range: {value}")
    return value


def require_u128(value: int, *, name: str = "value") -> int:
    """Return *value* if it fits in u128, else raise."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError(f"{name} must be an int")
    if value < 0 or value > U128_MAX:
        raise ArithmeticOverflowError(message=f"{name} out of u128 range: {value}")
    return value


def checked_add_u64(a: int, b: int, *, name: str = "sum") -> int:
    return require_u64(a + b, name=name)


def checked_sub_u64(a: int, b: int, *, name: str = "difference") -> int:
    return require_u64(a - b, name=name)


def wrapping_add_u128(a: int, b: int) -> int:
    return (a + b) & U128_MAX


def wrapping_sub_u128(a: int, b: int) -> int:
    return (a - b) & U128_MAX


# -- Rate conversions --------------------------------------------------------

def rate_delta(new_rewards: int, total_deposited: int) -> int:
    """Per-token rate contributed by *new_rewards* spread over *total_deposited*.

    Returns 0 when nothing is deposited; the rewards stay in the fund until a
    later update sees a non-zero denominator. Never fails for u64 inputs:
    ``(2**64 - 1) * 1e18`` fits comfortably in u128.
    """
    require_u64(new_rewards, name="new_rewards")
    require_u64(total_deposited, name="total_deposited")
    if total_deposited == 0:
        return 0
    return new_rewards * REWARDS_PER_TOKEN_SCALE // total_deposited


def owed_amount(current_rate: int, last_rate: int, balance: int) -> int:
    """Rewards earned by *balance* between *last_rate* and *current_rate*.

    The marginal rate is a wrapping subtraction, so ``current = 5`` and
    ``last = 2**128 - 10`` yield a marginal of 15. The product must fit in
    u128 and the result in u64.
    """
    require_u128(current_rate, name="current_rate")
    require_u128(last_rate, name="last_rate")
    require_u64(balance, name="balance")
    marginal = wrapping_sub_u128(current_rate, last_rate)
    if marginal == 0:
        return 0
    product = require_u128(marginal * balance, name="marginal_rate * balance")
    return require_u64(product // REWARDS_PER_TOKEN_SCALE, name="owed_amount")


# -- Fund helpers ------------------------------------------------------------

def spendable_excess(balance: int, minimum_reserve: int) -> int:
    """Portion of *balance* above *minimum_reserve* (saturating at 0)."""
    return max(balance - minimum_reserve, 0)


def rent_debt(rent_paid: int, numerator: int, denominator: int) -> int:
    """Amount owed back to a rent sponsor, ``rent_paid * numerator / denominator``."""
    if denominator <= 0:
        raise ValueError("denominator must be positive")
    require_u64(rent_paid, name="rent_paid")
    return require_u64(rent_paid * numerator // denominator, name="rent_debt")


def split_payout(payout: int, debt: int) -> tuple[int, int]:
    """Split a payout into ``(to_sponsor, to_owner)``.

    While rent debt is outstanding the sponsor receives up to half of each
    payout, capped at the remaining debt.
    """
    to_sponsor = min(payout // 2, debt) if debt > 0 else 0
    return to_sponsor, payout - to_sponsor
