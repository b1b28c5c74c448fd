from __future__ import annotations

import importlib.util
import json
from pathlib import Path

import pytest
import yaml

from src.integration.scenario import ScenarioError, ScenarioRunner, run_scenario_file

ROOT = Path(__file__).resolve().parents[2]
LIFECYCLE = ROOT / "scenarios" / "lifecycle.yaml"

POOL_RESERVE = 1_781_760
HOLDER_RENT = 1_447_680


@pytest.fixture(scope="module")
def report() -> dict:
    return run_scenario_file(LIFECYCLE)


def test_lifecycle_steps(report: dict) -> None:
    steps = report["steps"]
    assert len(steps) == 15
    assert steps[3] == {"step": 3, "op": "init_holder", "ok": False, "error": "document_not_signed"}
    assert steps[7]["result"]["harvested"] == 40
    assert steps[8]["result"]["harvested"] == 60
    # Carol joined after the reward arrived.
    assert steps[10]["result"]["harvested"] == 0
    assert steps[11]["result"]["tokens_withdrawn"] == 40
    assert steps[13]["result"]["event"] == "HolderClosed"
    assert steps[14]["error"] == "invariant:close_with_deposited_tokens"


def test_lifecycle_balances(report: dict) -> None:
    assert report["wallets"] == {
        "alice": 5_000_000 + 40,
        "bob": 5_000_000 - HOLDER_RENT + 60,
        "carol": 5_000_000 - HOLDER_RENT,
        "treasury": 10_000_000 - POOL_RESERVE,
    }
    assert report["token_accounts"] == {"alice_pal": 40, "bob_pal": 0, "carol_pal": 10, "pal__vault": 60}
    kinds = sorted(r["kind"] for r in report["records"].values())
    assert kinds == ["holder", "holder", "pool"]


def test_report_is_deterministic(report: dict) -> None:
    assert run_scenario_file(LIFECYCLE)["state_digest"] == report["state_digest"]


def _doc(steps: list) -> dict:
    return {
        "wallets": {"treasury": {"lamports": 10_000_000}, "dave": {"lamports": 5_000_000}},
        "mints": ["pal"],
        "token_accounts": {"dave_pal": {"mint": "pal", "owner": "dave", "amount": 5}},
        "steps": steps,
    }


def test_unknown_op() -> None:
    with pytest.raises(ScenarioError, match="unknown op"):
        ScenarioRunner(_doc([{"op": "mint"}])).run()


def test_failed_expectation() -> None:
    steps = [
        {"op": "init_pool", "mint": "pal", "payer": "treasury"},
        {"op": "init_holder", "account": "dave_pal"},
        {"op": "deposit", "account": "dave_pal", "amount": 5},
        {"op": "expect", "deposited": {"dave_pal": 4}},
    ]
    with pytest.raises(ScenarioError, match="expected dave_pal deposited 4, got 5"):
        ScenarioRunner(_doc(steps)).run()


def test_unexpected_success() -> None:
    steps = [
        {"op": "init_pool", "mint": "pal", "payer": "treasury"},
        {"op": "init_holder", "account": "dave_pal", "expect_error": "owner_not_signer"},
    ]
    with pytest.raises(ScenarioError, match="succeeded"):
        ScenarioRunner(_doc(steps)).run()


def test_unexpected_error() -> None:
    steps = [
        {"op": "init_pool", "mint": "pal", "payer": "treasury"},
        {"op": "deposit", "account": "dave_pal", "amount": 5},
    ]
    with pytest.raises(ScenarioError, match="holder_not_initialized"):
        ScenarioRunner(_doc(steps)).run()


def _cli():
    spec = importlib.util.spec_from_file_location("run_scenario", ROOT / "tools" / "run_scenario.py")
    assert spec is not None and spec.loader is not None
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def test_transfer_from_frozen_account() -> None:
    doc = _doc([])
    doc["wallets"]["erin"] = {"lamports": 0}
    doc["token_accounts"]["erin_pal"] = {"mint": "pal", "owner": "erin"}
    runner = ScenarioRunner(doc)
    runner._setup()
    runner.ledger.set_frozen(runner.accounts["dave_pal"], True)
    with pytest.raises(ScenarioError, match="frozen"):
        runner._op_transfer_tokens({"from": "dave_pal", "to": "erin_pal", "amount": 1})
    assert runner.ledger.token_account(runner.accounts["dave_pal"]).amount == 5


def test_transfer_across_mints_exits_with_failure(tmp_path: Path) -> None:
    doc = _doc([{"op": "transfer_tokens", "from": "dave_pal", "to": "dave_gem", "amount": 1}])
    doc["mints"].append("gem")
    doc["token_accounts"]["dave_gem"] = {"mint": "gem", "owner": "dave"}
    path = tmp_path / "bad_transfer.yaml"
    path.write_text(yaml.safe_dump(doc), encoding="utf-8")
    assert _cli().main([str(path)]) == 1


def test_cli_writes_report(tmp_path: Path) -> None:
    module = _cli()
    out = tmp_path / "report.json"
    assert module.main([str(LIFECYCLE), "--out", str(out)]) == 0
    assert json.loads(out.read_text(encoding="utf-8"))["token_accounts"]["pal__vault"] == 60
    assert module.main([str(tmp_path / "missing.yaml")]) == 2
