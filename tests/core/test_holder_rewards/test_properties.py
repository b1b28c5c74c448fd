"""Property tests for the holder rewards engine (hypothesis)."""

from __future__ import annotations

import importlib.util

import pytest

if importlib.util.find_spec("hypothesis") is None:  # pragma: no cover
    pytest.skip("hypothesis not installed", allow_module_level=True)

from hypothesis import given, settings
from hypothesis import strategies as st

from src.core.holder_rewards import (
    U64_MAX,
    U128_MAX,
    WITHDRAW_ALL,
    Command,
    CommandParams,
    HolderRecord,
    LedgerView,
    PoolRecord,
    step,
)
from src.core.holder_rewards.invariants import check_conservation
from src.core.holder_rewards.math import owed_amount, rate_delta, wrapping_add_u128

RESERVE = 1_000
OWNER = "0x" + "01" * 32

u64 = st.integers(min_value=0, max_value=U64_MAX)
u128 = st.integers(min_value=0, max_value=U128_MAX)


@given(new_rewards=u64, total=u64)
def test_rate_delta_total(new_rewards: int, total: int) -> None:
    out = rate_delta(new_rewards, total)
    assert 0 <= out <= U128_MAX
    if total == 0:
        assert out == 0


@given(
    last=u128,
    delta=st.integers(min_value=0, max_value=10**24),
    balance=st.integers(min_value=0, max_value=10**12),
)
def test_owed_amount_wrap_invariant(last: int, delta: int, balance: int) -> None:
    current = wrapping_add_u128(last, delta)
    assert owed_amount(current, last, balance) == owed_amount(delta, 0, balance)


def _pending_claims(pool: PoolRecord, holders: list[HolderRecord], fund: int, vault: int) -> int:
    """What every holder could harvest right now, rewards not yet folded in included."""
    rate = wrapping_add_u128(
        pool.accumulated_rewards_per_token,
        rate_delta(fund - pool.lamports_last, vault),
    )
    return sum(
        owed_amount(rate, h.last_accumulated_rewards_per_token, h.deposited) for h in holders
    )


# Each op: (kind, holder index, amount)
_ops = st.lists(
    st.tuples(
        st.sampled_from(["deposit", "withdraw", "harvest", "reward"]),
        st.integers(min_value=0, max_value=2),
        st.integers(min_value=1, max_value=10**6),
    ),
    max_size=40,
)


@settings(max_examples=200, deadline=None)
@given(ops=_ops)
def test_random_sequences_conserve(ops) -> None:
    """Deposits stay within the vault, and outstanding claims within the fund's excess."""
    pool = PoolRecord(lamports_last=RESERVE)
    holders = [HolderRecord() for _ in range(3)]
    wallets = [10**7] * 3
    fund = RESERVE
    vault = 0
    rewards_in = 0
    paid_out = 0

    for kind, idx, amount in ops:
        if kind == "reward":
            fund += amount
            rewards_in += amount
            assert _pending_claims(pool, holders, fund, vault) <= fund - RESERVE
            continue
        if kind == "deposit":
            params = CommandParams(command=Command.DEPOSIT, amount=amount, owner=OWNER, signer=OWNER)
        elif kind == "withdraw":
            amt = WITHDRAW_ALL if amount % 2 else amount
            params = CommandParams(command=Command.WITHDRAW, amount=amt, owner=OWNER, signer=OWNER)
        else:
            params = CommandParams(command=Command.HARVEST, owner=OWNER, signer=OWNER)

        view = LedgerView(
            fund_lamports=fund,
            fund_minimum_reserve=RESERVE,
            vault_balance=vault,
            owner_balance=wallets[idx],
        )
        r = step(pool, holders[idx], view, params)
        if not r.accepted:
            continue

        pool, holders[idx] = r.pool, r.holder
        e = r.effect
        fund -= e.paid_to_owner + e.paid_to_sponsor
        paid_out += e.paid_to_owner + e.paid_to_sponsor
        vault += e.tokens_deposited - e.tokens_withdrawn
        wallets[idx] += e.tokens_withdrawn - e.tokens_deposited

        assert check_conservation(holders, vault)
        assert pool.lamports_last <= fund
        assert _pending_claims(pool, holders, fund, vault) <= fund - RESERVE

    assert sum(h.deposited for h in holders) == vault
    assert paid_out <= rewards_in


@settings(max_examples=100, deadline=None)
@given(
    deposits=st.lists(st.integers(min_value=1, max_value=10**9), min_size=1, max_size=5),
    reward=st.integers(min_value=0, max_value=10**12),
)
def test_proportional_split_never_overpays(deposits: list[int], reward: int) -> None:
    total = sum(deposits)
    pool = PoolRecord(lamports_last=RESERVE)
    fund = RESERVE + reward
    paid = 0
    for dep in deposits:
        view = LedgerView(fund_lamports=fund, fund_minimum_reserve=RESERVE, vault_balance=total)
        r = step(pool, HolderRecord(deposited=dep), view, CommandParams(command=Command.HARVEST))
        assert r.accepted
        pool = r.pool
        fund -= r.effect.harvested
        paid += r.effect.harvested
        # each share is the floor of its proportional claim, within rounding of the scaled rate
        exact = reward * dep // total
        assert exact - 1 <= r.effect.harvested <= exact
    assert paid <= reward
