"""
Balance tracking keyed by (address, asset).

Implements BalanceTable[Address, AssetId] -> Amount. Native lamports and every
token mint share one table; lamports use ``NATIVE_ASSET`` as their asset id.
"""

from typing import Dict, Tuple


# Type aliases
Address = str  # 32-byte hex string (0x...)
AssetId = str  # mint address, or NATIVE_ASSET for lamports
Amount = int  # Non-negative integer

# Native (lamport) asset identifier
NATIVE_ASSET = "0x" + "00" * 32


class BalanceTable:
    """
    Balance table mapping (address, asset) -> amount.

    Zero balances are dropped to keep the table sparse. Iteration order is not
    meaningful; callers sort explicitly when producing snapshots.
    """

    def __init__(self):
        self._balances: Dict[Tuple[Address, AssetId], Amount] = {}

    def get(self, address: Address, asset: AssetId) -> Amount:
        """Get balance for (address, asset). Returns 0 if not found."""
        return self._balances.get((address, asset), 0)

    def set(self, address: Address, asset: AssetId, amount: Amount) -> None:
        """
        Set balance for (address, asset).

        Raises:
            ValueError: If amount is negative
        """
        if amount < 0:
            raise ValueError(f"Balance cannot be negative: {amount}")
        if amount == 0:
            self._balances.pop((address, asset), None)
        else:
            self._balances[(address, asset)] = amount

    def credit(self, address: Address, asset: AssetId, amount: Amount) -> None:
        if amount < 0:
            raise ValueError(f"Credit must be non-negative: {amount}")
        self.set(address, asset, self.get(address, asset) + amount)

    def debit(self, address: Address, asset: AssetId, amount: Amount) -> None:
        """
        Remove amount from (address, asset).

        Raises:
            ValueError: If amount is negative or exceeds the balance
        """
        if amount < 0:
            raise ValueError(f"Debit must be non-negative: {amount}")
        current = self.get(address, asset)
        if amount > current:
            raise ValueError(f"Insufficient balance: {current} < {amount}")
        self.set(address, asset, current - amount)

    def transfer(self, src: Address, dst: Address, asset: AssetId, amount: Amount) -> None:
        """Move amount from src to dst. Nothing changes if the debit fails."""
        self.debit(src, asset, amount)
        self.credit(dst, asset, amount)

    def __repr__(self) -> str:
        return f"BalanceTable({len(self._balances)} entries)"
