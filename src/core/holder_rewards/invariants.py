"""Invariant checkers for `holder_rewards`.

Each ``inv_*`` function returns True when the invariant holds on a
``PostState``; ``check_all()`` returns the list of violated invariant IDs
(empty = all pass).

These are single-holder checks run after every step. The multi-holder
conservation law is ``check_conservation``, used by audits and tests.
"""

from __future__ import annotations

from typing import Callable, Iterable

from .math import U64_MAX, U128_MAX
from .types import ZERO_ADDRESS, HolderRecord, PostState


def inv_pool_rate_in_range(s: PostState) -> bool:
    return 0 <= s.pool.accumulated_rewards_per_token <= U128_MAX


def inv_lamports_last_in_range(s: PostState) -> bool:
    return 0 <= s.pool.lamports_last <= U64_MAX


def inv_lamports_last_not_ahead(s: PostState) -> bool:
    return s.pool.lamports_last <= s.ledger.fund_lamports


def inv_payout_keeps_reserve(s: PostState) -> bool:
    # A fund already below its reserve may still return principal; it may not pay.
    return s.paid_out == 0 or s.ledger.fund_lamports >= s.ledger.fund_minimum_reserve


def inv_holder_rate_in_range(s: PostState) -> bool:
    if s.holder is None:
        return True
    return 0 <= s.holder.last_accumulated_rewards_per_token <= U128_MAX


def inv_deposited_in_range(s: PostState) -> bool:
    if s.holder is None:
        return True
    return 0 <= s.holder.deposited <= U64_MAX


def inv_deposited_within_vault(s: PostState) -> bool:
    if s.holder is None:
        return True
    return s.holder.deposited <= s.ledger.vault_balance


def inv_sponsor_zeroed_without_debt(s: PostState) -> bool:
    if s.holder is None or s.holder.rent_debt > 0:
        return True
    return s.holder.rent_sponsor == ZERO_ADDRESS and s.holder.minimum_balance == 0


# ---------------------------------------------------------------------------
# Registry + check_all
# ---------------------------------------------------------------------------

INVARIANT_REGISTRY: dict[str, Callable[[PostState], bool]] = {
    "inv_pool_rate_in_range": inv_pool_rate_in_range,
    "inv_lamports_last_in_range": inv_lamports_last_in_range,
    "inv_lamports_last_not_ahead": inv_lamports_last_not_ahead,
    "inv_payout_keeps_reserve": inv_payout_keeps_reserve,
    "inv_holder_rate_in_range": inv_holder_rate_in_range,
    "inv_deposited_in_range": inv_deposited_in_range,
    "inv_deposited_within_vault": inv_deposited_within_vault,
    "inv_sponsor_zeroed_without_debt": inv_sponsor_zeroed_without_debt,
}


def check_all(state: PostState) -> list[str]:
    """Return list of violated invariant IDs (empty = all pass)."""
    return [
        inv_id
        for inv_id, check_fn in INVARIANT_REGISTRY.items()
        if not check_fn(state)
    ]


def check_conservation(holders: Iterable[HolderRecord], vault_balance: int) -> bool:
    """True when the holders' deposits together fit in the vault."""
    return sum(h.deposited for h in holders) <= vault_balance
