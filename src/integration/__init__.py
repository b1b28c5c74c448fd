"""
Holder rewards integration layer (imperative shell)
"""

from .addresses import AddressDeriver
from .authorization import BlsDocumentVerifier, DocumentSignature, sign_document
from .config import RewardsConfig, load_config
from .ledger import InMemoryLedger, RentSchedule, TokenAccount
from .rewards_program import AccountStore, PoolAudit, RewardsProgram

__all__ = [
    "AddressDeriver",
    "BlsDocumentVerifier",
    "DocumentSignature",
    "sign_document",
    "RewardsConfig",
    "load_config",
    "InMemoryLedger",
    "RentSchedule",
    "TokenAccount",
    "AccountStore",
    "PoolAudit",
    "RewardsProgram",
]
