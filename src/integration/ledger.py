"""
External collaborators consumed by the rewards program (imperative shell).

The program never stores balances itself. It reads and moves them through
these interfaces:

- ``TokenLedger``: token accounts (mint, owner, amount, frozen) and transfers.
- ``LamportLedger``: native balances of any address, including record accounts.
- ``ReserveRule``: the minimum balance an account of a given size must keep.
- ``AuthorizationVerifier``: external signed-document check.

``InMemoryLedger`` implements both ledgers on one ``BalanceTable`` and backs
tests and the scenario runner.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Dict, Optional

from ..core.holder_rewards import InsufficientFundsError
from ..state.balances import NATIVE_ASSET, BalanceTable


@dataclass(frozen=True)
class TokenAccount:
    address: str
    mint: str
    owner: str
    amount: int = 0
    frozen: bool = False


class TokenLedger:
    """Interface for the external fungible-token ledger."""

    def token_account(self, address: str) -> Optional[TokenAccount]:
        raise NotImplementedError

    def transfer_tokens(self, src: str, dst: str, amount: int) -> None:
        raise NotImplementedError


class LamportLedger:
    """Interface for native-currency balances."""

    def lamports(self, address: str) -> int:
        raise NotImplementedError

    def move_lamports(self, src: str, dst: str, amount: int) -> None:
        raise NotImplementedError


class ReserveRule:
    """Interface for the minimum-reserve (rent-exemption) rule."""

    def minimum_balance(self, data_len: int) -> int:
        raise NotImplementedError


class AuthorizationVerifier:
    """Interface for the signed-document check gating holder initialization."""

    def verify_authorization(self, principal: str, artifact: object) -> bool:
        raise NotImplementedError


@dataclass(frozen=True)
class RentSchedule(ReserveRule):
    """Rent-exemption rule: ``(overhead + data_len) * per_byte_year * years``."""

    lamports_per_byte_year: int = 3480
    exemption_threshold_years: int = 2
    account_storage_overhead: int = 128

    def minimum_balance(self, data_len: int) -> int:
        if data_len < 0:
            raise ValueError("data_len must be non-negative")
        return (
            (self.account_storage_overhead + data_len)
            * self.lamports_per_byte_year
            * self.exemption_threshold_years
        )


class InMemoryLedger(TokenLedger, LamportLedger):
    """Token and lamport ledger held in memory."""

    def __init__(self) -> None:
        self._balances = BalanceTable()
        self._accounts: Dict[str, TokenAccount] = {}

    # -- Lamports ------------------------------------------------------------

    def lamports(self, address: str) -> int:
        return self._balances.get(address, NATIVE_ASSET)

    def credit_lamports(self, address: str, amount: int) -> None:
        """Deposit lamports from outside the system (e.g. rewards arriving)."""
        self._balances.credit(address, NATIVE_ASSET, amount)

    def move_lamports(self, src: str, dst: str, amount: int) -> None:
        try:
            self._balances.transfer(src, dst, NATIVE_ASSET, amount)
        except ValueError as exc:
            raise InsufficientFundsError("insufficient_lamports", f"{src}: {exc}") from exc

    # -- Tokens --------------------------------------------------------------

    def create_token_account(self, address: str, *, mint: str, owner: str) -> TokenAccount:
        if address in self._accounts:
            raise ValueError(f"token account already exists: {address}")
        self._accounts[address] = TokenAccount(address=address, mint=mint, owner=owner)
        return self.token_account(address)

    def token_account(self, address: str) -> Optional[TokenAccount]:
        meta = self._accounts.get(address)
        if meta is None:
            return None
        return replace(meta, amount=self._balances.get(address, meta.mint))

    def mint_to(self, address: str, amount: int) -> None:
        meta = self._require_account(address)
        self._balances.credit(address, meta.mint, amount)

    def set_frozen(self, address: str, frozen: bool) -> None:
        meta = self._require_account(address)
        self._accounts[address] = replace(meta, frozen=frozen)

    def transfer_tokens(self, src: str, dst: str, amount: int) -> None:
        src_meta = self._require_account(src)
        dst_meta = self._require_account(dst)
        if src_meta.mint != dst_meta.mint:
            raise ValueError("token transfer across mints")
        if src_meta.frozen or dst_meta.frozen:
            raise ValueError("token account is frozen")
        try:
            self._balances.transfer(src, dst, src_meta.mint, amount)
        except ValueError as exc:
            raise InsufficientFundsError("insufficient_tokens", f"{src}: {exc}") from exc

    def burn(self, address: str, amount: int) -> None:
        meta = self._require_account(address)
        self._balances.debit(address, meta.mint, amount)

    def _require_account(self, address: str) -> TokenAccount:
        meta = self._accounts.get(address)
        if meta is None:
            raise KeyError(f"unknown token account: {address}")
        return meta
