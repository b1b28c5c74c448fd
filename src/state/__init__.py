"""
Shared state helpers for holder rewards
"""

from .balances import NATIVE_ASSET, BalanceTable

__all__ = [
    "BalanceTable",
    "NATIVE_ASSET",
]
