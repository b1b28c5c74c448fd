"""
Canonical record addresses.

Every record lives at an address derived from the program id and its seeds:
the pool from the token mint, a holder from the participant's token account.
Derivation is a domain-separated sha256, so a record supplied at any other
address is rejected before it is decoded.
"""

from __future__ import annotations

import hashlib

from ..state.canonical import canonical_hex_fixed_allow_0x, domain_sep_bytes, hex_to_bytes_fixed

POOL_SEED = b"holder_pool"
HOLDER_SEED = b"holder"


def derive_address(program_id: str, *seeds: bytes) -> str:
    h = hashlib.sha256()
    h.update(domain_sep_bytes("record_address", version=1))
    h.update(hex_to_bytes_fixed(program_id, nbytes=32, name="program_id"))
    for seed in seeds:
        h.update(len(seed).to_bytes(2, byteorder="little"))
        h.update(seed)
    return "0x" + h.hexdigest()


def principal_address(pubkey: bytes) -> str:
    """Address controlled by a BLS public key."""
    return "0x" + hashlib.sha256(domain_sep_bytes("principal", version=1) + bytes(pubkey)).hexdigest()


class AddressDeriver:
    def __init__(self, program_id: str) -> None:
        self.program_id = canonical_hex_fixed_allow_0x(program_id, nbytes=32, name="program_id")

    def pool_address(self, mint: str) -> str:
        return derive_address(self.program_id, POOL_SEED, hex_to_bytes_fixed(mint, nbytes=32, name="mint"))

    def holder_address(self, token_account: str) -> str:
        return derive_address(
            self.program_id,
            HOLDER_SEED,
            hex_to_bytes_fixed(token_account, nbytes=32, name="token_account"),
        )
