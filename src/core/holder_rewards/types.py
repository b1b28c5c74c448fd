"""Data types for the holder rewards engine.

All types are frozen dataclasses (immutable). Transitions return new records
via ``dataclasses.replace`` and never mutate their inputs.

Units/conventions:
- ``*_rewards_per_token`` rates are u128 scaled by 1e18.
- ``lamports`` are u64 native-currency units held by the reward fund.
- ``deposited``/``amount`` are u64 units of the pool's token.
- Addresses and hashes are 0x-prefixed lowercase 32-byte hex strings.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum, IntEnum, unique

ZERO_ADDRESS: str = "0x" + "00" * 32
ZERO_HASH: str = ZERO_ADDRESS


@unique
class Command(IntEnum):
    """Closed command set; the value is the instruction tag byte."""
    INITIALIZE_POOL = 0
    INITIALIZE_HOLDER = 1
    HARVEST = 2
    CLOSE = 3
    DEPOSIT = 4
    WITHDRAW = 5


@unique
class Event(Enum):
    POOL_INITIALIZED = "PoolInitialized"
    HOLDER_INITIALIZED = "HolderInitialized"
    REWARDS_HARVESTED = "RewardsHarvested"
    HOLDER_CLOSED = "HolderClosed"
    TOKENS_DEPOSITED = "TokensDeposited"
    TOKENS_WITHDRAWN = "TokensWithdrawn"


@dataclass(frozen=True)
class PoolRecord:
    """One per token type: the global accumulator plus binding metadata."""

    accumulated_rewards_per_token: int = 0
    lamports_last: int = 0

    # Binding metadata, opaque to the accounting.
    vault: str = ZERO_ADDRESS
    vault_principal: str = ZERO_ADDRESS
    document_hash: str = ZERO_HASH


@dataclass(frozen=True)
class HolderRecord:
    """One per participant."""

    last_accumulated_rewards_per_token: int = 0
    deposited: int = 0

    # Rent sponsorship (all zero when unsponsored or repaid)
    rent_sponsor: str = ZERO_ADDRESS
    rent_debt: int = 0
    minimum_balance: int = 0


@dataclass(frozen=True)
class LedgerView:
    """Live external balances read by the shell before a command runs."""

    fund_lamports: int = 0          # lamports held by the pool record
    fund_minimum_reserve: int = 0   # lamports the pool record must retain
    vault_balance: int = 0          # tokens custodied by the pool's vault
    owner_balance: int = 0          # tokens in the participant's own account
    owner_frozen: bool = False
    holder_lamports: int = 0        # lamports held by the holder record

    def after(self, effect: Effect) -> LedgerView:
        """Balances once the moves described by *effect* have been applied."""
        paid = effect.paid_to_owner + effect.paid_to_sponsor
        moved = effect.tokens_deposited - effect.tokens_withdrawn
        reclaimed = effect.reclaimed_to_authority + effect.reclaimed_to_owner
        return replace(
            self,
            fund_lamports=self.fund_lamports - paid,
            vault_balance=self.vault_balance + moved,
            owner_balance=self.owner_balance - moved,
            holder_lamports=self.holder_lamports - reclaimed,
        )


@dataclass(frozen=True)
class CommandParams:
    """Parameters for a command. Unused fields keep their defaults."""

    command: Command
    amount: int = 0                     # deposit / withdraw
    owner: str = ZERO_ADDRESS           # participant the holder record belongs to
    signer: str = ZERO_ADDRESS          # init_holder / close
    rent_sponsor: str = ZERO_ADDRESS    # init_holder
    rent_paid: int = 0                  # init_holder
    rent_debt_numerator: int = 11       # init_holder
    rent_debt_denominator: int = 10     # init_holder
    document_verified: bool = False     # init_holder
    vault: str = ZERO_ADDRESS           # init_pool
    vault_principal: str = ZERO_ADDRESS  # init_pool
    document_hash: str = ZERO_HASH      # init_pool


@dataclass(frozen=True)
class Effect:
    """Fund and token moves the shell must apply after a successful step."""

    event: Event
    harvested: int = 0
    paid_to_owner: int = 0
    paid_to_sponsor: int = 0
    tokens_deposited: int = 0
    tokens_withdrawn: int = 0
    reclaimed_to_authority: int = 0
    reclaimed_to_owner: int = 0
    accumulated_rewards_per_token: int = 0
    deposited_after: int = 0
    rent_debt_after: int = 0


@dataclass(frozen=True)
class PostState:
    """Records and balances as they stand after a transition."""

    pool: PoolRecord
    holder: HolderRecord | None
    ledger: LedgerView
    paid_out: int = 0  # lamports the step moved out of the fund


@dataclass(frozen=True)
class StepResult:
    """Result of a single engine step.

    ``holder`` is None after InitializePool and after a successful Close.
    """

    accepted: bool
    pool: PoolRecord | None = None
    holder: HolderRecord | None = None
    effect: Effect | None = None
    rejection: str | None = None
    error: Exception | None = None
