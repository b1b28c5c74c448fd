"""Accumulator updater and harvest calculator.

``update_accumulator`` folds rewards that arrived since the last touch into the
pool's rate; ``settle`` converts the rate a holder has not yet seen into a
payout and advances the holder's snapshot. Both are O(1): holders are never
iterated.
"""

from __future__ import annotations

from dataclasses import replace

from .errors import InsufficientFundsError
from .math import checked_sub_u64, owed_amount, rate_delta, wrapping_add_u128
from .types import HolderRecord, PoolRecord


def update_accumulator(pool: PoolRecord, fund_balance_now: int, total_deposited: int) -> PoolRecord:
    """Return *pool* with rewards received since ``lamports_last`` folded in.

    A fund balance below ``lamports_last`` means funds left without the
    engine's knowledge; the checked subtraction raises instead of clamping.
    """
    additional = checked_sub_u64(fund_balance_now, pool.lamports_last, name="additional_rewards")
    return replace(
        pool,
        accumulated_rewards_per_token=wrapping_add_u128(
            pool.accumulated_rewards_per_token,
            rate_delta(additional, total_deposited),
        ),
        lamports_last=fund_balance_now,
    )


def settle(holder: HolderRecord, pool: PoolRecord, spendable_excess: int) -> tuple[HolderRecord, int]:
    """Settle *holder* against the pool's current rate.

    Raises ``InsufficientFundsError`` when the owed amount exceeds what the
    fund can spend; the holder's rate is never advanced past an unpaid claim.
    """
    eligible = owed_amount(
        pool.accumulated_rewards_per_token,
        holder.last_accumulated_rewards_per_token,
        holder.deposited,
    )
    if eligible > spendable_excess:
        raise InsufficientFundsError(
            "rewards_exceed_pool_balance",
            f"rewards {eligible} exceed spendable pool balance {spendable_excess}",
        )
    settled = replace(holder, last_accumulated_rewards_per_token=pool.accumulated_rewards_per_token)
    return settled, eligible


def settle_tolerant(
    holder: HolderRecord, pool: PoolRecord, spendable_excess: int,
) -> tuple[HolderRecord, int]:
    """Like ``settle`` but an underfunded pool pays 0 instead of failing.

    The holder's rate still advances, so the unpaid interval is forfeited.
    Arithmetic errors still propagate.
    """
    try:
        return settle(holder, pool, spendable_excess)
    except InsufficientFundsError:
        settled = replace(holder, last_accumulated_rewards_per_token=pool.accumulated_rewards_per_token)
        return settled, 0
