"""Fixed little-endian byte layout for persisted pool and holder records.

The layout is explicit and versionless: fields are packed one by one at fixed
offsets and every record ends in zero padding. A buffer that does not match
exactly (wrong length, non-zero padding) is rejected, never defaulted.

Pool (128 bytes)::

    0   accumulated_rewards_per_token   u128
    16  lamports_last                   u64
    24  vault                           [32]
    56  vault_principal                 [32]
    88  document_hash                   [32]
    120 padding                         [8]

Holder (80 bytes)::

    0   last_accumulated_rewards_per_token  u128
    16  deposited                           u64
    24  rent_debt                           u64
    32  minimum_balance                     u64
    40  rent_sponsor                        [32]
    72  padding                             [8]
"""

from __future__ import annotations

from ...state.canonical import hex_to_bytes_fixed
from .errors import MalformedRecordError
from .math import require_u64, require_u128
from .types import HolderRecord, PoolRecord

POOL_RECORD_LEN: int = 128
HOLDER_RECORD_LEN: int = 80

_PADDING_LEN = 8
_KEY_LEN = 32


def _u(value: int, nbytes: int) -> bytes:
    return value.to_bytes(nbytes, byteorder="little", signed=False)


def _key(hex_str: str, name: str) -> bytes:
    return hex_to_bytes_fixed(hex_str, nbytes=_KEY_LEN, name=name)


class _Reader:
    """Sequential cursor over a record buffer."""

    def __init__(self, data: bytes) -> None:
        self._data = data
        self._pos = 0

    def take(self, n: int) -> bytes:
        chunk = self._data[self._pos:self._pos + n]
        self._pos += n
        return chunk

    def uint(self, nbytes: int) -> int:
        return int.from_bytes(self.take(nbytes), byteorder="little", signed=False)

    def key(self) -> str:
        return "0x" + self.take(_KEY_LEN).hex()

    def padding(self, kind: str) -> None:
        if any(self.take(_PADDING_LEN)):
            raise MalformedRecordError(message=f"{kind} record padding must be zero")


def _reader(data: bytes, expected_len: int, kind: str) -> _Reader:
    if not isinstance(data, (bytes, bytearray)):
        raise MalformedRecordError(message=f"{kind} record must be bytes")
    if len(data) != expected_len:
        raise MalformedRecordError(
            message=f"{kind} record must be {expected_len} bytes, got {len(data)}"
        )
    return _Reader(bytes(data))


# -- Pool --------------------------------------------------------------------

def encode_pool(pool: PoolRecord) -> bytes:
    return b"".join((
        _u(require_u128(pool.accumulated_rewards_per_token, name="accumulated_rewards_per_token"), 16),
        _u(require_u64(pool.lamports_last, name="lamports_last"), 8),
        _key(pool.vault, "vault"),
        _key(pool.vault_principal, "vault_principal"),
        _key(pool.document_hash, "document_hash"),
        bytes(_PADDING_LEN),
    ))


def decode_pool(data: bytes) -> PoolRecord:
    r = _reader(data, POOL_RECORD_LEN, "pool")
    rate = r.uint(16)
    lamports_last = r.uint(8)
    vault = r.key()
    vault_principal = r.key()
    document_hash = r.key()
    r.padding("pool")
    return PoolRecord(
        accumulated_rewards_per_token=rate,
        lamports_last=lamports_last,
        vault=vault,
        vault_principal=vault_principal,
        document_hash=document_hash,
    )


# -- Holder ------------------------------------------------------------------

def encode_holder(holder: HolderRecord) -> bytes:
    return b"".join((
        _u(require_u128(holder.last_accumulated_rewards_per_token,
                        name="last_accumulated_rewards_per_token"), 16),
        _u(require_u64(holder.deposited, name="deposited"), 8),
        _u(require_u64(holder.rent_debt, name="rent_debt"), 8),
        _u(require_u64(holder.minimum_balance, name="minimum_balance"), 8),
        _key(holder.rent_sponsor, "rent_sponsor"),
        bytes(_PADDING_LEN),
    ))


def decode_holder(data: bytes) -> HolderRecord:
    r = _reader(data, HOLDER_RECORD_LEN, "holder")
    rate = r.uint(16)
    deposited = r.uint(8)
    debt = r.uint(8)
    minimum_balance = r.uint(8)
    rent_sponsor = r.key()
    r.padding("holder")
    return HolderRecord(
        last_accumulated_rewards_per_token=rate,
        deposited=deposited,
        rent_sponsor=rent_sponsor,
        rent_debt=debt,
        minimum_balance=minimum_balance,
    )
