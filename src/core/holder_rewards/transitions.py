"""Pure state transitions for each command.

Every transition follows the same skeleton:

1. guards (record presence, caller input, authorization),
2. fold newly arrived rewards into the pool rate,
3. settle the holder at its pre-transition deposit,
4. apply the command's own delta,
5. describe the resulting fund/token moves as an ``Effect``.

Transitions never mutate their inputs and never touch a ledger; the shell
applies the returned effect. After a payout ``lamports_last`` is lowered by the
amount leaving the fund, so the next update sees only genuinely new rewards.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Optional

from .accumulator import settle, settle_tolerant, update_accumulator
from .guards import (
    guard_close,
    guard_deposit,
    guard_initialize_holder,
    guard_initialize_pool,
    guard_withdraw,
    require_absent,
    require_holder,
    require_pool,
)
from .math import checked_add_u64, checked_sub_u64, rent_debt, spendable_excess, split_payout
from .types import (
    ZERO_ADDRESS,
    CommandParams,
    Effect,
    Event,
    HolderRecord,
    LedgerView,
    PoolRecord,
)

Transition = tuple[PoolRecord, Optional[HolderRecord], Effect]


def _pay_out(
    pool: PoolRecord, holder: HolderRecord, view: LedgerView, amount: int,
) -> tuple[PoolRecord, HolderRecord, int, int]:
    """Route a settled payout; returns ``(pool, holder, to_owner, to_sponsor)``."""
    to_sponsor, to_owner = split_payout(amount, holder.rent_debt)
    if to_sponsor:
        remaining = holder.rent_debt - to_sponsor
        if remaining == 0:
            holder = replace(holder, rent_debt=0, rent_sponsor=ZERO_ADDRESS, minimum_balance=0)
        else:
            holder = replace(holder, rent_debt=remaining)
    if amount:
        pool = replace(
            pool,
            lamports_last=checked_sub_u64(view.fund_lamports, amount, name="lamports_last"),
        )
    return pool, holder, to_owner, to_sponsor


def _settle_context(pool: PoolRecord, view: LedgerView) -> tuple[PoolRecord, int]:
    updated = update_accumulator(pool, view.fund_lamports, view.vault_balance)
    return updated, spendable_excess(view.fund_lamports, view.fund_minimum_reserve)


# -- Initialization ----------------------------------------------------------

def initialize_pool(
    pool: PoolRecord | None, holder: HolderRecord | None, view: LedgerView, params: CommandParams,
) -> Transition:
    require_absent(pool, "pool")
    guard_initialize_pool(view)
    new_pool = PoolRecord(
        accumulated_rewards_per_token=0,
        lamports_last=view.fund_lamports,
        vault=params.vault,
        vault_principal=params.vault_principal,
        document_hash=params.document_hash,
    )
    return new_pool, None, Effect(event=Event.POOL_INITIALIZED)


def initialize_holder(
    pool: PoolRecord | None, holder: HolderRecord | None, view: LedgerView, params: CommandParams,
) -> Transition:
    """Create a holder that owes nothing for rewards received before it existed."""
    pool = require_pool(pool)
    require_absent(holder, "holder")
    guard_initialize_holder(pool, params)

    pool = update_accumulator(pool, view.fund_lamports, view.vault_balance)

    debt = 0
    if params.rent_sponsor != ZERO_ADDRESS:
        debt = rent_debt(params.rent_paid, params.rent_debt_numerator, params.rent_debt_denominator)
    new_holder = HolderRecord(
        last_accumulated_rewards_per_token=pool.accumulated_rewards_per_token,
        deposited=0,
        rent_sponsor=params.rent_sponsor if debt else ZERO_ADDRESS,
        rent_debt=debt,
        minimum_balance=view.owner_balance if debt else 0,
    )
    effect = Effect(
        event=Event.HOLDER_INITIALIZED,
        accumulated_rewards_per_token=pool.accumulated_rewards_per_token,
        rent_debt_after=debt,
    )
    return pool, new_holder, effect


# -- Balance-changing commands -----------------------------------------------

def harvest(
    pool: PoolRecord | None, holder: HolderRecord | None, view: LedgerView, params: CommandParams,
) -> Transition:
    pool = require_pool(pool)
    holder = require_holder(holder)

    pool, excess = _settle_context(pool, view)
    holder, reward = settle(holder, pool, excess)
    pool, holder, to_owner, to_sponsor = _pay_out(pool, holder, view, reward)

    effect = Effect(
        event=Event.REWARDS_HARVESTED,
        harvested=reward,
        paid_to_owner=to_owner,
        paid_to_sponsor=to_sponsor,
        accumulated_rewards_per_token=pool.accumulated_rewards_per_token,
        deposited_after=holder.deposited,
        rent_debt_after=holder.rent_debt,
    )
    return pool, holder, effect


def deposit(
    pool: PoolRecord | None, holder: HolderRecord | None, view: LedgerView, params: CommandParams,
) -> Transition:
    """Settle at the pre-deposit balance, then add *amount* to ``deposited``."""
    pool = require_pool(pool)
    holder = require_holder(holder)
    guard_deposit(view, params)

    pool, excess = _settle_context(pool, view)
    holder, reward = settle(holder, pool, excess)
    holder = replace(holder, deposited=checked_add_u64(holder.deposited, params.amount, name="deposited"))
    pool, holder, to_owner, to_sponsor = _pay_out(pool, holder, view, reward)

    effect = Effect(
        event=Event.TOKENS_DEPOSITED,
        harvested=reward,
        paid_to_owner=to_owner,
        paid_to_sponsor=to_sponsor,
        tokens_deposited=params.amount,
        accumulated_rewards_per_token=pool.accumulated_rewards_per_token,
        deposited_after=holder.deposited,
        rent_debt_after=holder.rent_debt,
    )
    return pool, holder, effect


def withdraw(
    pool: PoolRecord | None, holder: HolderRecord | None, view: LedgerView, params: CommandParams,
) -> Transition:
    """Return principal even when the pending reward cannot be paid right now."""
    pool = require_pool(pool)
    holder = require_holder(holder)
    amount = guard_withdraw(holder, view, params)

    pool, excess = _settle_context(pool, view)
    holder, reward = settle_tolerant(holder, pool, excess)
    holder = replace(holder, deposited=checked_sub_u64(holder.deposited, amount, name="deposited"))
    pool, holder, to_owner, to_sponsor = _pay_out(pool, holder, view, reward)

    effect = Effect(
        event=Event.TOKENS_WITHDRAWN,
        harvested=reward,
        paid_to_owner=to_owner,
        paid_to_sponsor=to_sponsor,
        tokens_withdrawn=amount,
        accumulated_rewards_per_token=pool.accumulated_rewards_per_token,
        deposited_after=holder.deposited,
        rent_debt_after=holder.rent_debt,
    )
    return pool, holder, effect


# -- Close -------------------------------------------------------------------

def close(
    pool: PoolRecord | None, holder: HolderRecord | None, view: LedgerView, params: CommandParams,
) -> Transition:
    """Destroy a settled, empty holder record and reclaim its lamports.

    The pool is compared as recorded, without folding in new rewards: an empty
    holder earns nothing from them, and folding them in would block closing.
    The closer is repaid outstanding rent debt first; the owner gets the rest.
    """
    pool = require_pool(pool)
    holder = require_holder(holder)
    guard_close(pool, holder, view, params)

    to_authority = min(view.holder_lamports, holder.rent_debt)
    effect = Effect(
        event=Event.HOLDER_CLOSED,
        reclaimed_to_authority=to_authority,
        reclaimed_to_owner=view.holder_lamports - to_authority,
        accumulated_rewards_per_token=pool.accumulated_rewards_per_token,
    )
    return pool, None, effect
