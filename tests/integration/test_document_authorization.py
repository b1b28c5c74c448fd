import hashlib

import pytest

pytest.importorskip("py_ecc.bls", reason="py_ecc not installed (install py-ecc to run signing tests)")
from py_ecc.bls import G2Basic  # type: ignore  # noqa: E402

from src.core.holder_rewards import AuthorizationError  # noqa: E402
from src.integration.addresses import principal_address  # noqa: E402
from src.integration.authorization import (  # noqa: E402
    BlsDocumentVerifier,
    DocumentSignature,
    document_message_hash,
    sign_document,
)
from src.integration.ledger import InMemoryLedger  # noqa: E402
from src.integration.rewards_program import RewardsProgram  # noqa: E402

CHAIN = "holder-rewards-test"
DOC = "0x" + hashlib.sha256(b"holder terms v1").hexdigest()
OTHER_DOC = "0x" + hashlib.sha256(b"holder terms v2").hexdigest()
SK = 7


@pytest.fixture(scope="module")
def signed() -> DocumentSignature:
    return sign_document(SK, DOC, chain_id=CHAIN)


@pytest.fixture(scope="module")
def principal() -> str:
    return principal_address(G2Basic.SkToPk(SK))


def test_signature_verifies(signed: DocumentSignature, principal: str) -> None:
    assert BlsDocumentVerifier(CHAIN).verify_authorization(principal, signed) is True


def test_signature_bound_to_chain(signed: DocumentSignature, principal: str) -> None:
    assert BlsDocumentVerifier("another-chain").verify_authorization(principal, signed) is False


def test_signature_bound_to_principal(signed: DocumentSignature) -> None:
    assert BlsDocumentVerifier(CHAIN).verify_authorization("0x" + "11" * 32, signed) is False


def test_signature_bound_to_document(signed: DocumentSignature, principal: str) -> None:
    swapped = DocumentSignature(pubkey=signed.pubkey, signature=signed.signature, document_hash=OTHER_DOC)
    assert BlsDocumentVerifier(CHAIN).verify_authorization(principal, swapped) is False


def test_malformed_artifacts_rejected(principal: str) -> None:
    verifier = BlsDocumentVerifier(CHAIN)
    assert verifier.verify_authorization(principal, {"signature": "0x00"}) is False
    bad = DocumentSignature(pubkey="0x1234", signature="0x" + "00" * 96, document_hash=DOC)
    assert verifier.verify_authorization(principal, bad) is False


def test_message_hash_is_domain_separated() -> None:
    assert document_message_hash(DOC, chain_id=CHAIN) != document_message_hash(DOC, chain_id="x")
    assert len(document_message_hash(DOC, chain_id=CHAIN)) == 32


def test_chain_id_required() -> None:
    with pytest.raises(ValueError):
        BlsDocumentVerifier("")


def test_program_gates_holder_on_signed_document(signed: DocumentSignature, principal: str) -> None:
    ledger = InMemoryLedger()
    program = RewardsProgram(ledger=ledger, verifier=BlsDocumentVerifier(CHAIN))
    mint = "0x" + "aa" * 32
    vault = "0x" + "b0" * 32
    token_account = "0x" + "a2" * 32
    pool = program.addresses.pool_address(mint)
    ledger.credit_lamports(principal, 10_000_000)
    ledger.create_token_account(vault, mint=mint, owner=pool)
    ledger.create_token_account(token_account, mint=mint, owner=principal)
    program.initialize_pool(pool_address=pool, mint=mint, vault=vault, payer=principal, document_hash=DOC)

    args = {
        "pool_address": pool,
        "holder_address": program.addresses.holder_address(token_account),
        "token_account": token_account,
        "signer": principal,
    }
    with pytest.raises(AuthorizationError) as exc_info:
        program.initialize_holder(**args)
    assert exc_info.value.code == "document_not_signed"

    wrong_doc = sign_document(SK, OTHER_DOC, chain_id=CHAIN)
    with pytest.raises(AuthorizationError):
        program.initialize_holder(**args, document_signature=wrong_doc)

    holder = program.initialize_holder(**args, document_signature=signed)
    assert holder.deposited == 0
