from pathlib import Path

import pytest

from src.integration.config import ConfigError, RewardsConfig, config_from_mapping, load_config

ROOT = Path(__file__).resolve().parents[2]


def test_defaults() -> None:
    cfg = load_config()
    assert cfg == RewardsConfig()
    assert cfg.rent_debt_numerator == 11
    assert cfg.rent_debt_denominator == 10


def test_repo_config_matches_defaults() -> None:
    assert load_config(ROOT / "config" / "holder_rewards.yaml") == RewardsConfig()


def test_yaml_file(tmp_path: Path) -> None:
    path = tmp_path / "cfg.yaml"
    path.write_text("chain_id: devnet\nlamports_per_byte_year: 10\nlog_level: debug\n", encoding="utf-8")
    cfg = load_config(path)
    assert cfg.chain_id == "devnet"
    assert cfg.lamports_per_byte_year == 10
    assert cfg.log_level == "DEBUG"


def test_program_id_canonicalized() -> None:
    cfg = config_from_mapping({"program_id": "AB" * 32})
    assert cfg.program_id == "0x" + "ab" * 32


def test_unknown_keys_rejected() -> None:
    with pytest.raises(ConfigError, match="unknown config keys: scale"):
        config_from_mapping({"scale": 1})


@pytest.mark.parametrize(
    "mapping",
    [
        {"rent_debt_denominator": 0},
        {"lamports_per_byte_year": True},
        {"lamports_per_byte_year": "3480"},
        {"chain_id": "  "},
        {"log_level": "LOUD"},
        {"program_id": "0x1234"},
    ],
)
def test_invalid_values_rejected(mapping: dict) -> None:
    with pytest.raises(ConfigError):
        config_from_mapping(mapping)


def test_non_mapping_rejected() -> None:
    with pytest.raises(ConfigError):
        config_from_mapping([1, 2])


def test_env_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("HOLDER_REWARDS_CHAIN_ID", "from-env")
    monkeypatch.setenv("HOLDER_REWARDS_RENT_DEBT_NUMERATOR", "12")
    cfg = load_config()
    assert cfg.chain_id == "from-env"
    assert cfg.rent_debt_numerator == 12


def test_env_override_must_be_integer(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("HOLDER_REWARDS_EXEMPTION_THRESHOLD_YEARS", "two")
    with pytest.raises(ConfigError):
        load_config()


def test_env_override_range(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("HOLDER_REWARDS_RENT_DEBT_DENOMINATOR", "0")
    with pytest.raises(ConfigError):
        load_config()
