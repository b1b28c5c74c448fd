"""
Signed-document authorization (BLS12-381, G2Basic).

A participant who is not the pool's vault principal must prove, before a
holder record is created for them, that they signed the pool's document.
The artifact is a ``DocumentSignature``:

    msg = domain_sep("holder_rewards_document:<chain_id>") || document_hash
    sig = G2Basic.Sign(sk, sha256(msg))

and the principal must be the address controlled by the signing key.
"""

from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass

from py_ecc.bls import G2Basic

from ..state.canonical import domain_sep_bytes, hex_to_bytes_fixed
from .addresses import principal_address
from .ledger import AuthorizationVerifier

logger = logging.getLogger(__name__)

PUBKEY_LEN = 48
SIGNATURE_LEN = 96


@dataclass(frozen=True)
class DocumentSignature:
    pubkey: str          # 0x-hex, 48 bytes
    signature: str       # 0x-hex, 96 bytes
    document_hash: str   # 0x-hex, 32 bytes


def document_message_hash(document_hash: str, *, chain_id: str) -> bytes:
    msg = domain_sep_bytes(f"holder_rewards_document:{chain_id}", version=1)
    msg += hex_to_bytes_fixed(document_hash, nbytes=32, name="document_hash")
    return hashlib.sha256(msg).digest()


def sign_document(secret_key: int, document_hash: str, *, chain_id: str) -> DocumentSignature:
    """Produce the artifact for *document_hash* (used by tooling and tests)."""
    pk = G2Basic.SkToPk(secret_key)
    sig = G2Basic.Sign(secret_key, document_message_hash(document_hash, chain_id=chain_id))
    return DocumentSignature(
        pubkey="0x" + bytes(pk).hex(),
        signature="0x" + bytes(sig).hex(),
        document_hash=document_hash.lower(),
    )


class BlsDocumentVerifier(AuthorizationVerifier):
    def __init__(self, chain_id: str) -> None:
        if not chain_id:
            raise ValueError("chain_id must be non-empty")
        self.chain_id = chain_id

    def verify_authorization(self, principal: str, artifact: object) -> bool:
        if not isinstance(artifact, DocumentSignature):
            return False
        try:
            pubkey = hex_to_bytes_fixed(artifact.pubkey, nbytes=PUBKEY_LEN, name="pubkey")
            sig = hex_to_bytes_fixed(artifact.signature, nbytes=SIGNATURE_LEN, name="signature")
            msg_hash = document_message_hash(artifact.document_hash, chain_id=self.chain_id)
        except (TypeError, ValueError) as exc:
            logger.warning("Malformed document signature for %s: %s", principal, exc)
            return False
        if principal_address(pubkey) != principal.lower():
            return False
        try:
            return bool(G2Basic.Verify(pubkey, msg_hash, sig))
        except Exception as exc:
            # py_ecc raises assorted errors for points off the curve.
            logger.warning("Document signature verification error for %s: %s", principal, exc)
            return False
