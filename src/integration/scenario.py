"""
YAML scenario runner.

A scenario names its wallets, mints and token accounts and lists commands to
run against an in-memory ``RewardsProgram``. Names are mapped to addresses
deterministically, so reports are reproducible.

Example::

    wallets:
      treasury: {lamports: 10000000}
      alice: {lamports: 5000000, bls_seed: 1}
    mints: [pal]
    token_accounts:
      alice_pal: {mint: pal, owner: alice, amount: 100}
    steps:
      - {op: init_pool, mint: pal, payer: treasury, document: "terms v1"}
      - {op: init_holder, account: alice_pal, sign_document: true}
      - {op: deposit, account: alice_pal, amount: 100}
      - {op: reward, mint: pal, lamports: 50}
      - {op: harvest, account: alice_pal}
      - {op: expect, deposited: {alice_pal: 100}}

Steps may carry ``expect_error: <code>`` to assert a rejection.
"""

from __future__ import annotations

import hashlib
import logging
from dataclasses import asdict
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml
from py_ecc.bls import G2Basic

from ..core.holder_rewards import WITHDRAW_ALL, ZERO_ADDRESS, ZERO_HASH, RewardsError
from ..state.canonical import domain_sep_bytes, sha256_hex
from .addresses import principal_address
from .authorization import BlsDocumentVerifier, sign_document
from .config import RewardsConfig
from .ledger import InMemoryLedger
from .rewards_program import RewardsProgram

logger = logging.getLogger(__name__)


class ScenarioError(Exception):
    pass


def _require_mapping(obj: Any, *, name: str) -> Mapping[str, Any]:
    if obj is None:
        return {}
    if not isinstance(obj, Mapping):
        raise ScenarioError(f"{name} must be a mapping")
    return obj


def _require_int(obj: Any, *, name: str) -> int:
    if not isinstance(obj, int) or isinstance(obj, bool) or obj < 0:
        raise ScenarioError(f"{name} must be a non-negative integer")
    return obj


def name_address(kind: str, name: str) -> str:
    return sha256_hex(domain_sep_bytes(f"scenario_{kind}", version=1) + name.encode("utf-8"))


def document_hash_of(text: str) -> str:
    return "0x" + hashlib.sha256(text.encode("utf-8")).hexdigest()


class ScenarioRunner:
    def __init__(self, doc: Mapping[str, Any], *, config: Optional[RewardsConfig] = None) -> None:
        self.doc = _require_mapping(doc, name="scenario")
        self.config = config or RewardsConfig()
        self.ledger = InMemoryLedger()
        self.program = RewardsProgram(
            ledger=self.ledger,
            verifier=BlsDocumentVerifier(self.config.chain_id),
            config=self.config,
        )
        self.wallets: Dict[str, str] = {}
        self.secret_keys: Dict[str, int] = {}
        self.mints: Dict[str, str] = {}
        self.accounts: Dict[str, str] = {}
        self.account_mint: Dict[str, str] = {}
        self.documents: Dict[str, str] = {}

    # -- Setup ---------------------------------------------------------------

    def _setup(self) -> None:
        for name, spec in _require_mapping(self.doc.get("wallets"), name="wallets").items():
            spec = _require_mapping(spec, name=f"wallets.{name}")
            seed = spec.get("bls_seed")
            if seed is not None:
                sk = G2Basic.KeyGen(_require_int(seed, name=f"wallets.{name}.bls_seed").to_bytes(32, "big"))
                self.secret_keys[name] = sk
                address = principal_address(G2Basic.SkToPk(sk))
            else:
                address = name_address("wallet", name)
            self.wallets[name] = address
            self.ledger.credit_lamports(address, _require_int(spec.get("lamports", 0), name=f"wallets.{name}.lamports"))

        mints = self.doc.get("mints") or []
        if not isinstance(mints, list):
            raise ScenarioError("mints must be a list")
        for name in mints:
            self.mints[str(name)] = name_address("mint", str(name))

        for name, spec in _require_mapping(self.doc.get("token_accounts"), name="token_accounts").items():
            spec = _require_mapping(spec, name=f"token_accounts.{name}")
            self._create_token_account(
                name,
                mint=self._mint(spec.get("mint")),
                owner=self._wallet(spec.get("owner")),
                amount=_require_int(spec.get("amount", 0), name=f"token_accounts.{name}.amount"),
            )

    def _create_token_account(self, name: str, *, mint: str, owner: str, amount: int = 0) -> str:
        address = name_address("token_account", name)
        self.ledger.create_token_account(address, mint=mint, owner=owner)
        if amount:
            self.ledger.mint_to(address, amount)
        self.accounts[name] = address
        self.account_mint[name] = mint
        return address

    def _wallet(self, name: Any) -> str:
        if name not in self.wallets:
            raise ScenarioError(f"unknown wallet: {name}")
        return self.wallets[name]

    def _mint(self, name: Any) -> str:
        if name not in self.mints:
            raise ScenarioError(f"unknown mint: {name}")
        return self.mints[name]

    def _account(self, name: Any) -> str:
        if name not in self.accounts:
            raise ScenarioError(f"unknown token account: {name}")
        return self.accounts[name]

    def _holder_args(self, step: Mapping[str, Any]) -> dict[str, str]:
        account = self._account(step.get("account"))
        mint = self.account_mint[step["account"]]
        return {
            "pool_address": self.program.addresses.pool_address(mint),
            "holder_address": self.program.addresses.holder_address(account),
            "token_account": account,
        }

    def _owner_name(self, account_name: str) -> str:
        ta = self.ledger.token_account(self.accounts[account_name])
        for name, address in self.wallets.items():
            if ta is not None and address == ta.owner:
                return name
        raise ScenarioError(f"token account {account_name} has no named owner")

    # -- Steps ---------------------------------------------------------------

    def _op_init_pool(self, step: Mapping[str, Any]) -> Any:
        mint_name = step.get("mint")
        mint = self._mint(mint_name)
        pool_address = self.program.addresses.pool_address(mint)
        vault = self._create_token_account(f"{mint_name}__vault", mint=mint, owner=pool_address)
        document_hash = ZERO_HASH
        if step.get("document"):
            document_hash = document_hash_of(str(step["document"]))
        self.documents[mint] = document_hash
        principal = step.get("vault_principal")
        return self.program.initialize_pool(
            pool_address=pool_address,
            mint=mint,
            vault=vault,
            payer=self._wallet(step.get("payer")),
            vault_principal=self._wallet(principal) if principal else ZERO_ADDRESS,
            document_hash=document_hash,
        )

    def _op_init_holder(self, step: Mapping[str, Any]) -> Any:
        args = self._holder_args(step)
        owner_name = self._owner_name(step["account"])
        sponsor = step.get("sponsor")
        signer = self._wallet(step.get("signer", sponsor or owner_name))
        signature = None
        if step.get("sign_document"):
            if owner_name not in self.secret_keys:
                raise ScenarioError(f"wallet {owner_name} has no bls_seed")
            signature = sign_document(
                self.secret_keys[owner_name],
                self.documents.get(self.account_mint[step["account"]], ZERO_HASH),
                chain_id=self.config.chain_id,
            )
        return self.program.initialize_holder(
            **args,
            signer=signer,
            rent_sponsor=self._wallet(sponsor) if sponsor else ZERO_ADDRESS,
            document_signature=signature,
        )

    def _op_deposit(self, step: Mapping[str, Any]) -> Any:
        owner = self._wallet(self._owner_name(step["account"]))
        amount = _require_int(step.get("amount"), name="deposit.amount")
        return self.program.deposit(**self._holder_args(step), signer=owner, amount=amount)

    def _op_withdraw(self, step: Mapping[str, Any]) -> Any:
        owner = self._wallet(self._owner_name(step["account"]))
        raw = step.get("amount", "all")
        amount = WITHDRAW_ALL if raw == "all" else _require_int(raw, name="withdraw.amount")
        return self.program.withdraw(**self._holder_args(step), signer=owner, amount=amount)

    def _op_harvest(self, step: Mapping[str, Any]) -> Any:
        return self.program.harvest(**self._holder_args(step))

    def _op_close(self, step: Mapping[str, Any]) -> Any:
        signer = self._wallet(step.get("signer", self._owner_name(step["account"])))
        return self.program.close(**self._holder_args(step), signer=signer)

    def _op_reward(self, step: Mapping[str, Any]) -> Any:
        pool_address = self.program.addresses.pool_address(self._mint(step.get("mint")))
        self.ledger.credit_lamports(pool_address, _require_int(step.get("lamports"), name="reward.lamports"))
        return None

    def _op_transfer_tokens(self, step: Mapping[str, Any]) -> Any:
        try:
            self.ledger.transfer_tokens(
                self._account(step.get("from")),
                self._account(step.get("to")),
                _require_int(step.get("amount"), name="transfer_tokens.amount"),
            )
        except ValueError as exc:
            raise ScenarioError(f"transfer_tokens: {exc}") from exc
        return None

    def _op_expect(self, step: Mapping[str, Any]) -> Any:
        for name, want in _require_mapping(step.get("lamports"), name="expect.lamports").items():
            got = self.ledger.lamports(self._wallet(name))
            if got != want:
                raise ScenarioError(f"expected {name} lamports {want}, got {got}")
        for name, want in _require_mapping(step.get("tokens"), name="expect.tokens").items():
            ta = self.ledger.token_account(self._account(name))
            got = ta.amount if ta is not None else None
            if got != want:
                raise ScenarioError(f"expected {name} tokens {want}, got {got}")
        for name, want in _require_mapping(step.get("deposited"), name="expect.deposited").items():
            got = self.program.load_holder(self._holder_args({"account": name})["holder_address"]).deposited
            if got != want:
                raise ScenarioError(f"expected {name} deposited {want}, got {got}")
        return None

    _OPS = {
        "init_pool": _op_init_pool,
        "init_holder": _op_init_holder,
        "deposit": _op_deposit,
        "withdraw": _op_withdraw,
        "harvest": _op_harvest,
        "close": _op_close,
        "reward": _op_reward,
        "transfer_tokens": _op_transfer_tokens,
        "expect": _op_expect,
    }

    def run(self) -> dict[str, Any]:
        self._setup()
        steps = self.doc.get("steps") or []
        if not isinstance(steps, list):
            raise ScenarioError("steps must be a list")

        results: list[dict[str, Any]] = []
        for idx, raw in enumerate(steps):
            step = _require_mapping(raw, name=f"steps[{idx}]")
            op = step.get("op")
            handler = self._OPS.get(op)
            if handler is None:
                raise ScenarioError(f"steps[{idx}]: unknown op {op!r}")
            expected_error = step.get("expect_error")
            try:
                out = handler(self, step)
            except RewardsError as exc:
                if expected_error != exc.code:
                    raise ScenarioError(f"steps[{idx}] {op}: unexpected error {exc.code}") from exc
                results.append({"step": idx, "op": op, "ok": False, "error": exc.code})
                continue
            if expected_error is not None:
                raise ScenarioError(f"steps[{idx}] {op}: expected error {expected_error}, succeeded")
            entry: dict[str, Any] = {"step": idx, "op": op, "ok": True}
            if out is not None and hasattr(out, "__dataclass_fields__"):
                entry["result"] = {
                    k: (v.value if hasattr(v, "value") else v) for k, v in asdict(out).items()
                }
            results.append(entry)
            logger.debug("step %d %s ok", idx, op)

        return {
            "steps": results,
            "wallets": {name: self.ledger.lamports(addr) for name, addr in sorted(self.wallets.items())},
            "token_accounts": {
                name: self.ledger.token_account(addr).amount for name, addr in sorted(self.accounts.items())
            },
            "records": self.program.snapshot(),
            "state_digest": self.program.state_digest(),
        }


def run_scenario_file(path: Path, *, config: Optional[RewardsConfig] = None) -> dict[str, Any]:
    doc = yaml.safe_load(Path(path).read_text(encoding="utf-8"))
    return ScenarioRunner(doc, config=config).run()
