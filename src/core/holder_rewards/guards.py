"""Precondition checks for each command.

Each guard raises the typed error for the first failed precondition, in the
order the checks appear, and returns nothing (or the resolved value it needed
to compute) when the command may proceed.
"""

from __future__ import annotations

from .errors import (
    AlreadyInitializedError,
    AuthorizationError,
    GuardError,
    InsufficientFundsError,
    InvariantViolationError,
    NotInitializedError,
)
from .math import WITHDRAW_ALL
from .types import ZERO_ADDRESS, ZERO_HASH, CommandParams, HolderRecord, LedgerView, PoolRecord


# -- Record presence ---------------------------------------------------------

def require_pool(pool: PoolRecord | None) -> PoolRecord:
    if pool is None:
        raise NotInitializedError("pool_not_initialized")
    return pool


def require_holder(holder: HolderRecord | None) -> HolderRecord:
    if holder is None:
        raise NotInitializedError("holder_not_initialized")
    return holder


def require_absent(record: object, kind: str) -> None:
    if record is not None:
        raise AlreadyInitializedError(f"{kind}_already_initialized")


# -- Per-command guards ------------------------------------------------------

def guard_initialize_pool(view: LedgerView) -> None:
    if view.fund_lamports < view.fund_minimum_reserve:
        raise InsufficientFundsError(
            "pool_not_rent_exempt",
            f"pool holds {view.fund_lamports}, needs {view.fund_minimum_reserve}",
        )


def guard_initialize_holder(pool: PoolRecord, params: CommandParams) -> None:
    """The signer funds the record, so it must be the owner or the named sponsor.

    Owners other than the pool's vault principal must also have signed the
    pool's document, unless the pool carries no document.
    """
    sponsored = params.rent_sponsor != ZERO_ADDRESS
    if params.signer != params.owner and not (sponsored and params.signer == params.rent_sponsor):
        raise AuthorizationError("owner_not_signer")
    if params.owner == pool.vault_principal or pool.document_hash == ZERO_HASH:
        return
    if not params.document_verified:
        raise AuthorizationError("document_not_signed")


def guard_token_account(view: LedgerView) -> None:
    if view.owner_frozen:
        raise GuardError("token_account_frozen")


def guard_deposit(view: LedgerView, params: CommandParams) -> None:
    guard_token_account(view)
    if view.owner_balance < params.amount:
        raise InsufficientFundsError(
            "not_enough_tokens_to_deposit",
            f"balance {view.owner_balance} below deposit {params.amount}",
        )


def guard_withdraw(holder: HolderRecord, view: LedgerView, params: CommandParams) -> int:
    """Return the resolved withdrawal amount (``WITHDRAW_ALL`` means everything)."""
    guard_token_account(view)
    if holder.deposited == 0:
        raise GuardError("no_deposited_tokens_to_withdraw")
    if view.vault_balance < holder.deposited:
        raise InvariantViolationError(["withdraw_exceeds_pool_balance"])
    amount = holder.deposited if params.amount == WITHDRAW_ALL else params.amount
    if amount > holder.deposited:
        raise GuardError(
            "withdraw_exceeds_deposited",
            f"withdraw {amount} exceeds deposited {holder.deposited}",
        )
    return amount


def guard_close(pool: PoolRecord, holder: HolderRecord, view: LedgerView, params: CommandParams) -> None:
    """Only an empty, fully settled holder record may be closed.

    The owner may close once no rent debt remains. The sponsor may close while
    debt is outstanding, but only after the owner's token balance dropped
    below the balance recorded when the sponsor paid for the record.
    """
    if holder.deposited != 0:
        raise InvariantViolationError(["close_with_deposited_tokens"])
    if holder.last_accumulated_rewards_per_token != pool.accumulated_rewards_per_token:
        raise InvariantViolationError(["close_with_unclaimed_rewards"])

    if params.signer == params.owner and holder.rent_debt == 0:
        return
    if holder.rent_sponsor != ZERO_ADDRESS and params.signer == holder.rent_sponsor:
        if view.owner_balance >= holder.minimum_balance:
            raise GuardError(
                "invalid_closing_balance",
                f"owner balance {view.owner_balance} not below {holder.minimum_balance}",
            )
        return
    raise AuthorizationError("incorrect_authority")
