"""Dispatch-table engine for `holder_rewards`.

``step(pool, holder, view, params)`` is the single entry point. It:

1. Validates parameter domains.
2. Dispatches to the command's transition (guards, accumulator, settlement).
3. Checks all invariants on the post-state, with the effect's moves applied
   to the ledger view.
4. Returns a ``StepResult`` (accepted, or rejected with a stable reason).

Nothing is committed on rejection: inputs are immutable and the caller only
persists an accepted result.
"""

from __future__ import annotations

from typing import Callable, Optional

from .errors import InvariantViolationError, ParamDomainError, RewardsError
from .invariants import check_all
from .math import U64_MAX
from .transitions import (
    Transition,
    close,
    deposit,
    harvest,
    initialize_holder,
    initialize_pool,
    withdraw,
)
from .types import (
    Command,
    CommandParams,
    HolderRecord,
    LedgerView,
    PoolRecord,
    PostState,
    StepResult,
)

TransitionFn = Callable[
    [Optional[PoolRecord], Optional[HolderRecord], LedgerView, CommandParams], Transition
]

_DISPATCH: dict[Command, TransitionFn] = {
    Command.INITIALIZE_POOL: initialize_pool,
    Command.INITIALIZE_HOLDER: initialize_holder,
    Command.HARVEST: harvest,
    Command.CLOSE: close,
    Command.DEPOSIT: deposit,
    Command.WITHDRAW: withdraw,
}

# -- Parameter domain bounds -------------------------------------------------

# Per-command bounds: list of (field_name, min_val, max_val).
_PARAM_BOUNDS: dict[Command, list[tuple[str, int, int]]] = {
    Command.INITIALIZE_POOL: [],
    Command.INITIALIZE_HOLDER: [
        ("rent_paid", 0, U64_MAX),
        ("rent_debt_numerator", 0, U64_MAX),
        ("rent_debt_denominator", 1, U64_MAX),
    ],
    Command.HARVEST: [],
    Command.CLOSE: [],
    Command.DEPOSIT: [
        ("amount", 1, U64_MAX),
    ],
    Command.WITHDRAW: [
        ("amount", 1, U64_MAX),  # U64_MAX is WITHDRAW_ALL
    ],
}

_LEDGER_FIELDS: tuple[str, ...] = (
    "fund_lamports",
    "fund_minimum_reserve",
    "vault_balance",
    "owner_balance",
    "holder_lamports",
)


def _validate_params(params: CommandParams) -> str | None:
    """Check parameter domain bounds. Returns rejection reason or None."""
    bounds = _PARAM_BOUNDS.get(params.command)
    if bounds is None:
        return None
    for field, lo, hi in bounds:
        val = getattr(params, field)
        if val < lo or val > hi:
            return f"param_domain:{field}"
    return None


def _validate_view(view: LedgerView) -> str | None:
    for field in _LEDGER_FIELDS:
        val = getattr(view, field)
        if val < 0 or val > U64_MAX:
            return f"param_domain:{field}"
    return None


def step(
    pool: PoolRecord | None,
    holder: HolderRecord | None,
    view: LedgerView,
    params: CommandParams,
) -> StepResult:
    """Execute one command against the given records and balances.

    Returns ``StepResult`` with ``accepted=True`` on success, or
    ``accepted=False`` with a ``rejection`` reason and the typed ``error``.
    """
    transition = _DISPATCH.get(params.command)
    if transition is None:
        return StepResult(accepted=False, rejection=f"unknown_command:{params.command}")

    domain_err = _validate_params(params) or _validate_view(view)
    if domain_err is not None:
        err = ParamDomainError(domain_err.removeprefix("param_domain:"))
        return StepResult(accepted=False, rejection=domain_err, error=err)

    try:
        new_pool, new_holder, effect = transition(pool, holder, view, params)
    except RewardsError as exc:
        return StepResult(accepted=False, rejection=exc.code, error=exc)

    post = PostState(
        pool=new_pool,
        holder=new_holder,
        ledger=view.after(effect),
        paid_out=effect.paid_to_owner + effect.paid_to_sponsor,
    )
    violations = check_all(post)
    if violations:
        err = InvariantViolationError(violations)
        return StepResult(accepted=False, rejection=err.code, error=err)

    return StepResult(accepted=True, pool=new_pool, holder=new_holder, effect=effect)


def step_or_raise(
    pool: PoolRecord | None,
    holder: HolderRecord | None,
    view: LedgerView,
    params: CommandParams,
) -> StepResult:
    """Like ``step()`` but raises on rejection instead of returning a result.

    Raises:
        ParamDomainError: Parameter or balance outside its integer domain.
        GuardError: Caller input does not satisfy the command's preconditions.
        InvariantViolationError: Bookkeeping inconsistency, before or after the step.
        RewardsError: Any other typed failure (address, authorization,
            initialization state, arithmetic overflow, insufficient funds).
    """
    result = step(pool, holder, view, params)
    if result.accepted:
        return result
    if result.error is not None:
        raise result.error
    raise RewardsError(result.rejection)
