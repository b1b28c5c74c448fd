"""
Holder rewards program (imperative shell).

``RewardsProgram`` processes one command per call against an account store and
external ledgers:

1. check record ownership and canonical addresses,
2. decode records from their fixed layout,
3. read live balances into a ``LedgerView``,
4. run the pure core (``step_or_raise``),
5. apply the effect's lamport/token moves and write records back.

Every fallible check happens before step 5, so a rejected command leaves the
store and the ledgers untouched.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, Optional

from ..core.holder_rewards import (
    HOLDER_RECORD_LEN,
    POOL_RECORD_LEN,
    ZERO_ADDRESS,
    ZERO_HASH,
    AddressMismatchError,
    AlreadyInitializedError,
    AuthorizationError,
    Command,
    CommandParams,
    Effect,
    HolderRecord,
    InsufficientFundsError,
    LedgerView,
    MalformedRecordError,
    NotInitializedError,
    PoolRecord,
    RewardsError,
    decode_holder,
    decode_pool,
    encode_holder,
    encode_pool,
    holder_to_dict,
    pool_to_dict,
    step_or_raise,
)
from ..core.holder_rewards.invariants import check_conservation
from ..core.holder_rewards.math import spendable_excess
from ..state.canonical import canonical_json_bytes, sha256_hex
from .addresses import AddressDeriver
from .config import RewardsConfig
from .ledger import AuthorizationVerifier, InMemoryLedger, RentSchedule, ReserveRule, TokenAccount

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StoredAccount:
    owner: str  # program id that owns the data
    data: bytes


class AccountStore:
    """Record data by address. Lamports of record accounts live in the ledger."""

    def __init__(self) -> None:
        self._accounts: Dict[str, StoredAccount] = {}

    def get(self, address: str) -> Optional[StoredAccount]:
        return self._accounts.get(address)

    def put(self, address: str, owner: str, data: bytes) -> None:
        self._accounts[address] = StoredAccount(owner=owner, data=bytes(data))

    def delete(self, address: str) -> None:
        self._accounts.pop(address, None)

    def addresses(self) -> list[str]:
        return sorted(self._accounts)


@dataclass(frozen=True)
class PoolAudit:
    pool: str
    total_deposited: int
    vault_balance: int
    fund_lamports: int
    spendable: int
    ok: bool


class RewardsProgram:
    def __init__(
        self,
        *,
        ledger: InMemoryLedger,
        verifier: AuthorizationVerifier,
        config: Optional[RewardsConfig] = None,
        reserve_rule: Optional[ReserveRule] = None,
        store: Optional[AccountStore] = None,
    ) -> None:
        self.config = config or RewardsConfig()
        self.ledger = ledger
        self.verifier = verifier
        self.reserve_rule = reserve_rule or RentSchedule(
            lamports_per_byte_year=self.config.lamports_per_byte_year,
            exemption_threshold_years=self.config.exemption_threshold_years,
            account_storage_overhead=self.config.account_storage_overhead,
        )
        self.store = store or AccountStore()
        self.addresses = AddressDeriver(self.config.program_id)
        self.program_id = self.addresses.program_id

    # -- Record access -------------------------------------------------------

    def _owned_data(self, address: str) -> Optional[bytes]:
        acct = self.store.get(address)
        if acct is None:
            return None
        if acct.owner != self.program_id:
            raise AuthorizationError("invalid_account_owner", f"{address} owned by {acct.owner}")
        return acct.data

    def load_pool(self, address: str) -> PoolRecord:
        data = self._owned_data(address)
        if data is None:
            raise NotInitializedError("pool_not_initialized")
        return decode_pool(data)

    def load_holder(self, address: str) -> HolderRecord:
        data = self._owned_data(address)
        if data is None:
            raise NotInitializedError("holder_not_initialized")
        return decode_holder(data)

    def _require_token_account(self, address: str) -> TokenAccount:
        ta = self.ledger.token_account(address)
        if ta is None:
            raise MalformedRecordError("invalid_token_account", f"no token account at {address}")
        return ta

    def _check_pool_address(self, pool_address: str, mint: str) -> None:
        if pool_address != self.addresses.pool_address(mint):
            raise AddressMismatchError("incorrect_pool_address", f"{pool_address} is not the pool of {mint}")

    def _check_holder_address(self, holder_address: str, token_account: str) -> None:
        if holder_address != self.addresses.holder_address(token_account):
            raise AddressMismatchError(
                "incorrect_holder_address", f"{holder_address} is not the holder of {token_account}"
            )

    def _view(
        self, pool_address: str, pool: PoolRecord, ta: TokenAccount, holder_address: Optional[str] = None,
    ) -> LedgerView:
        vault = self._require_token_account(pool.vault)
        return LedgerView(
            fund_lamports=self.ledger.lamports(pool_address),
            fund_minimum_reserve=self.reserve_rule.minimum_balance(POOL_RECORD_LEN),
            vault_balance=vault.amount,
            owner_balance=ta.amount,
            owner_frozen=ta.frozen,
            holder_lamports=self.ledger.lamports(holder_address) if holder_address else 0,
        )

    def _run(
        self,
        pool: Optional[PoolRecord],
        holder: Optional[HolderRecord],
        view: LedgerView,
        params: CommandParams,
    ):
        logger.info("Instruction: %s", params.command.name)
        try:
            return step_or_raise(pool, holder, view, params)
        except RewardsError as exc:
            logger.warning("%s rejected: %s", params.command.name, exc.code)
            raise

    def _pay_rewards(self, pool_address: str, owner: str, sponsor: str, effect: Effect) -> None:
        if effect.paid_to_sponsor:
            self.ledger.move_lamports(pool_address, sponsor, effect.paid_to_sponsor)
        if effect.paid_to_owner:
            self.ledger.move_lamports(pool_address, owner, effect.paid_to_owner)
        if effect.harvested:
            logger.info(
                "Harvested %d lamports (owner %d, sponsor %d)",
                effect.harvested, effect.paid_to_owner, effect.paid_to_sponsor,
            )

    # -- Commands ------------------------------------------------------------

    def initialize_pool(
        self,
        *,
        pool_address: str,
        mint: str,
        vault: str,
        payer: str,
        vault_principal: str = ZERO_ADDRESS,
        document_hash: str = ZERO_HASH,
    ) -> PoolRecord:
        """Create the pool for *mint*, topping its lamports up to the reserve from *payer*."""
        self._check_pool_address(pool_address, mint)
        if self.store.get(pool_address) is not None:
            raise AlreadyInitializedError("pool_already_initialized")

        vault_acct = self._require_token_account(vault)
        if vault_acct.mint != mint:
            raise MalformedRecordError("token_account_mint_mismatch", "vault holds a different mint")
        if vault_acct.owner != pool_address:
            raise MalformedRecordError("token_account_owner_mismatch", "vault is not owned by the pool")

        reserve = self.reserve_rule.minimum_balance(POOL_RECORD_LEN)
        top_up = max(reserve - self.ledger.lamports(pool_address), 0)
        if self.ledger.lamports(payer) < top_up:
            raise InsufficientFundsError("insufficient_rent_funds", f"payer needs {top_up} lamports")

        view = LedgerView(
            fund_lamports=self.ledger.lamports(pool_address) + top_up,
            fund_minimum_reserve=reserve,
            vault_balance=vault_acct.amount,
        )
        params = CommandParams(
            command=Command.INITIALIZE_POOL,
            vault=vault,
            vault_principal=vault_principal,
            document_hash=document_hash,
        )
        result = self._run(None, None, view, params)

        if top_up:
            self.ledger.move_lamports(payer, pool_address, top_up)
        self.store.put(pool_address, self.program_id, encode_pool(result.pool))
        return result.pool

    def initialize_holder(
        self,
        *,
        pool_address: str,
        holder_address: str,
        token_account: str,
        signer: str,
        rent_sponsor: str = ZERO_ADDRESS,
        document_signature: Optional[object] = None,
    ) -> HolderRecord:
        """Create the holder record for *token_account*; *signer* pays its rent."""
        ta = self._require_token_account(token_account)
        self._check_pool_address(pool_address, ta.mint)
        self._check_holder_address(holder_address, token_account)
        pool = self.load_pool(pool_address)
        if self.store.get(holder_address) is not None:
            raise AlreadyInitializedError("holder_already_initialized")

        rent = self.reserve_rule.minimum_balance(HOLDER_RECORD_LEN)
        top_up = max(rent - self.ledger.lamports(holder_address), 0)
        if self.ledger.lamports(signer) < top_up:
            raise InsufficientFundsError("insufficient_rent_funds", f"signer needs {top_up} lamports")

        document_verified = False
        if document_signature is not None and pool.document_hash != ZERO_HASH:
            document_verified = (
                getattr(document_signature, "document_hash", None) == pool.document_hash
                and self.verifier.verify_authorization(ta.owner, document_signature)
            )

        params = CommandParams(
            command=Command.INITIALIZE_HOLDER,
            owner=ta.owner,
            signer=signer,
            rent_sponsor=rent_sponsor,
            rent_paid=rent,
            rent_debt_numerator=self.config.rent_debt_numerator,
            rent_debt_denominator=self.config.rent_debt_denominator,
            document_verified=document_verified,
        )
        result = self._run(pool, None, self._view(pool_address, pool, ta), params)

        if top_up:
            self.ledger.move_lamports(signer, holder_address, top_up)
        self.store.put(pool_address, self.program_id, encode_pool(result.pool))
        self.store.put(holder_address, self.program_id, encode_holder(result.holder))
        return result.holder

    def harvest(self, *, pool_address: str, holder_address: str, token_account: str) -> Effect:
        ta = self._require_token_account(token_account)
        self._check_pool_address(pool_address, ta.mint)
        self._check_holder_address(holder_address, token_account)
        pool = self.load_pool(pool_address)
        holder = self.load_holder(holder_address)

        result = self._run(pool, holder, self._view(pool_address, pool, ta), CommandParams(command=Command.HARVEST))

        self._pay_rewards(pool_address, ta.owner, holder.rent_sponsor, result.effect)
        self.store.put(pool_address, self.program_id, encode_pool(result.pool))
        self.store.put(holder_address, self.program_id, encode_holder(result.holder))
        return result.effect

    def deposit(
        self, *, pool_address: str, holder_address: str, token_account: str, signer: str, amount: int,
    ) -> Effect:
        ta = self._require_token_account(token_account)
        self._check_pool_address(pool_address, ta.mint)
        self._check_holder_address(holder_address, token_account)
        if signer != ta.owner:
            raise AuthorizationError("owner_not_signer")
        pool = self.load_pool(pool_address)
        holder = self.load_holder(holder_address)

        params = CommandParams(command=Command.DEPOSIT, amount=amount, owner=ta.owner, signer=signer)
        result = self._run(pool, holder, self._view(pool_address, pool, ta), params)

        self.ledger.transfer_tokens(token_account, pool.vault, result.effect.tokens_deposited)
        self._pay_rewards(pool_address, ta.owner, holder.rent_sponsor, result.effect)
        self.store.put(pool_address, self.program_id, encode_pool(result.pool))
        self.store.put(holder_address, self.program_id, encode_holder(result.holder))
        return result.effect

    def withdraw(
        self, *, pool_address: str, holder_address: str, token_account: str, signer: str, amount: int,
    ) -> Effect:
        """Withdraw *amount* tokens (``WITHDRAW_ALL`` for everything deposited)."""
        ta = self._require_token_account(token_account)
        self._check_pool_address(pool_address, ta.mint)
        self._check_holder_address(holder_address, token_account)
        if signer != ta.owner:
            raise AuthorizationError("owner_not_signer")
        pool = self.load_pool(pool_address)
        holder = self.load_holder(holder_address)

        params = CommandParams(command=Command.WITHDRAW, amount=amount, owner=ta.owner, signer=signer)
        result = self._run(pool, holder, self._view(pool_address, pool, ta), params)

        self.ledger.transfer_tokens(pool.vault, token_account, result.effect.tokens_withdrawn)
        self._pay_rewards(pool_address, ta.owner, holder.rent_sponsor, result.effect)
        self.store.put(pool_address, self.program_id, encode_pool(result.pool))
        self.store.put(holder_address, self.program_id, encode_holder(result.holder))
        return result.effect

    def close(self, *, pool_address: str, holder_address: str, token_account: str, signer: str) -> Effect:
        ta = self._require_token_account(token_account)
        self._check_pool_address(pool_address, ta.mint)
        self._check_holder_address(holder_address, token_account)
        pool = self.load_pool(pool_address)
        holder = self.load_holder(holder_address)

        params = CommandParams(command=Command.CLOSE, owner=ta.owner, signer=signer)
        result = self._run(pool, holder, self._view(pool_address, pool, ta, holder_address), params)

        effect = result.effect
        if effect.reclaimed_to_authority:
            self.ledger.move_lamports(holder_address, signer, effect.reclaimed_to_authority)
        if effect.reclaimed_to_owner:
            self.ledger.move_lamports(holder_address, ta.owner, effect.reclaimed_to_owner)
        self.store.delete(holder_address)
        return effect

    # -- Reporting -----------------------------------------------------------

    def audit_pool(self, pool_address: str, holder_addresses: Iterable[str]) -> PoolAudit:
        """Check that the listed holders' deposits fit in the pool's vault."""
        pool = self.load_pool(pool_address)
        holders = [self.load_holder(addr) for addr in holder_addresses]
        vault_balance = self._require_token_account(pool.vault).amount
        fund = self.ledger.lamports(pool_address)
        audit = PoolAudit(
            pool=pool_address,
            total_deposited=sum(h.deposited for h in holders),
            vault_balance=vault_balance,
            fund_lamports=fund,
            spendable=spendable_excess(fund, self.reserve_rule.minimum_balance(POOL_RECORD_LEN)),
            ok=check_conservation(holders, vault_balance),
        )
        if not audit.ok:
            logger.error(
                "Conservation violated for %s: deposited %d > vault %d",
                pool_address, audit.total_deposited, audit.vault_balance,
            )
        return audit

    def snapshot(self) -> dict:
        """All records owned by this program, decoded, keyed by address."""
        out: dict = {}
        for address in self.store.addresses():
            acct = self.store.get(address)
            if acct is None or acct.owner != self.program_id:
                continue
            if len(acct.data) == POOL_RECORD_LEN:
                out[address] = {"kind": "pool", **pool_to_dict(decode_pool(acct.data))}
            elif len(acct.data) == HOLDER_RECORD_LEN:
                out[address] = {"kind": "holder", **holder_to_dict(decode_holder(acct.data))}
            else:
                raise MalformedRecordError(message=f"record at {address} has unknown size {len(acct.data)}")
            out[address]["lamports"] = self.ledger.lamports(address)
        return out

    def state_digest(self) -> str:
        return sha256_hex(canonical_json_bytes(self.snapshot()))
