import pytest

from src.state.canonical import (
    canonical_hex_fixed_allow_0x,
    canonical_json_bytes,
    domain_sep_bytes,
    hex_to_bytes_fixed,
    sha256_hex,
)


def test_canonical_json_sorted_and_compact() -> None:
    assert canonical_json_bytes({"b": 1, "a": [2, 3]}) == b'{"a":[2,3],"b":1}'


def test_canonical_json_rejects_floats() -> None:
    with pytest.raises(TypeError):
        canonical_json_bytes({"a": 1.5})
    with pytest.raises(TypeError):
        canonical_json_bytes({1: "x"})


def test_sha256_hex() -> None:
    assert sha256_hex(b"") == "0xe3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855"


def test_domain_sep() -> None:
    assert domain_sep_bytes("record_address") == b"holder_rewards:record_address:v1\x00"
    with pytest.raises(ValueError):
        domain_sep_bytes("a\x00b")
    with pytest.raises(TypeError):
        domain_sep_bytes("")


def test_hex_to_bytes_fixed() -> None:
    assert hex_to_bytes_fixed("0x" + "ab" * 4, nbytes=4, name="k") == b"\xab" * 4
    with pytest.raises(ValueError):
        hex_to_bytes_fixed("ab" * 4, nbytes=4, name="k")
    with pytest.raises(ValueError):
        hex_to_bytes_fixed("0x" + "zz" * 4, nbytes=4, name="k")
    with pytest.raises(TypeError):
        hex_to_bytes_fixed(b"\x00", nbytes=1, name="k")


def test_canonical_hex() -> None:
    assert canonical_hex_fixed_allow_0x(" 0XAB ", nbytes=1, name="k") == "0xab"
    with pytest.raises(ValueError):
        canonical_hex_fixed_allow_0x("abcd", nbytes=1, name="k")
