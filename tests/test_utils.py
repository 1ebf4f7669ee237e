"""Unit tests for utils.py and config.py."""

from __future__ import annotations

import os
from pathlib import Path
from unittest.mock import patch

import pytest

from obolus.config import DEFAULT_CHAIN_ID, DEFAULT_RPC_URL, Settings
from obolus.errors import ValidationError
from obolus.utils import (
    U128_MAX,
    U256_MAX,
    checksum_address,
    format_units,
    is_address,
    join_u256,
    parse_units,
    split_u256,
    validate_amount,
)

CHECKSUMMED = "0x5aAeb6053F3E94C9b9A09f33669435E7Ef1BeAed"


class TestAddresses:
    def test_checksummed_address_is_valid(self) -> None:
        assert is_address(CHECKSUMMED)

    def test_lowercase_address_is_valid(self) -> None:
        assert is_address(CHECKSUMMED.lower())

    def test_bad_checksum_rejected(self) -> None:
        assert not is_address(CHECKSUMMED.replace("a", "A", 1))

    @pytest.mark.parametrize(
        "value",
        [
            "",
            "0x1234",
            "5aaeb6053f3e94c9b9a09f33669435e7ef1beaed",
            CHECKSUMMED.lower() + "\n",
            " " + CHECKSUMMED,
            42,
            None,
        ],
    )
    def test_malformed_rejected(self, value: object) -> None:
        assert not is_address(value)

    def test_checksum_address_normalises(self) -> None:
        assert checksum_address(CHECKSUMMED.lower()) == CHECKSUMMED

    def test_checksum_address_raises_validation_error(self) -> None:
        with pytest.raises(ValidationError):
            checksum_address("not-an-address")

    def test_trailing_newline_raises_validation_error(self) -> None:
        with pytest.raises(ValidationError):
            checksum_address("0x" + "ab" * 20 + "\n")


class TestAmounts:
    def test_int_and_digit_string(self) -> None:
        assert validate_amount(5) == 5
        assert validate_amount(" 12 ") == 12

    @pytest.mark.parametrize(
        "value",
        [-1, 1.5, "1.5", "abc", True, None, U256_MAX + 1, "\u00b2", "\u0661\u0662", "1_000", "+5"],
    )
    def test_invalid_amounts(self, value: object) -> None:
        with pytest.raises(ValidationError):
            validate_amount(value)

    def test_u256_max_allowed(self) -> None:
        assert validate_amount(str(U256_MAX)) == U256_MAX

    def test_parse_units(self) -> None:
        assert parse_units("1", 18) == 10**18
        assert parse_units("1.5", 18) == 15 * 10**17
        assert parse_units("1000000", 18) == 1_000_000 * 10**18
        assert parse_units("0.000001", 6) == 1
        assert parse_units(".5", 1) == 5

    @pytest.mark.parametrize(
        "text,decimals,expected",
        [
            ("12345678901.123456789012345678", 18, 12345678901123456789012345678),
            ("98765432109876543210.987654321098765432", 18, 98765432109876543210987654321098765432),
            (str(U256_MAX), 0, U256_MAX),
        ],
    )
    def test_parse_units_is_exact(self, text: str, decimals: int, expected: int) -> None:
        assert parse_units(text, decimals) == expected

    def test_parse_units_too_precise(self) -> None:
        with pytest.raises(ValidationError, match="fractional digits"):
            parse_units("0.0000001", 6)

    @pytest.mark.parametrize("text", ["-1", "abc", "inf", "", ".", "1e3", "\u0661.5", "\u00b2"])
    def test_parse_units_rejects(self, text: str) -> None:
        with pytest.raises(ValidationError):
            parse_units(text, 18)

    def test_format_units(self) -> None:
        assert format_units(999_999 * 10**18, 18) == "999,999"
        assert format_units(15 * 10**17, 18) == "1.5"
        assert format_units(1, 18) == "0.000000000000000001"
        assert format_units(42, 0) == "42"


class TestU256Split:
    def test_split_and_join(self) -> None:
        value = (7 << 128) | 9
        assert split_u256(value) == (9, 7)
        assert join_u256(9, 7) == value

    def test_small_value_has_zero_high_word(self) -> None:
        assert split_u256(10**18) == (10**18, 0)

    def test_extremes(self) -> None:
        assert split_u256(U256_MAX) == (U128_MAX, U128_MAX)
        assert split_u256(0) == (0, 0)

    def test_out_of_range(self) -> None:
        with pytest.raises(ValidationError):
            split_u256(U256_MAX + 1)
        with pytest.raises(ValidationError):
            join_u256(U128_MAX + 1, 0)


class TestSettings:
    def _clean_env(self) -> dict[str, str]:
        return {k: v for k, v in os.environ.items() if not k.startswith("OBOLUS_")}

    def test_defaults(self, tmp_path: Path) -> None:
        with patch.dict(os.environ, self._clean_env(), clear=True):
            settings = Settings.from_env(tmp_path / "missing.env")
        assert settings.rpc_url == DEFAULT_RPC_URL
        assert settings.chain_id == DEFAULT_CHAIN_ID
        assert settings.token_address is None
        assert settings.gas_limit is None

    def test_env_file_is_loaded(self, tmp_path: Path) -> None:
        env_file = tmp_path / ".env"
        env_file.write_text(
            "OBOLUS_RPC_URL=http://127.0.0.1:8545\nOBOLUS_CHAIN_ID=0x7a69\nOBOLUS_GAS_LIMIT=90000\n",
            encoding="utf-8",
        )
        with patch.dict(os.environ, self._clean_env(), clear=True):
            settings = Settings.from_env(env_file)
        assert settings.rpc_url == "http://127.0.0.1:8545"
        assert settings.chain_id == 31337
        assert settings.gas_limit == 90000

    def test_environment_wins_over_file(self, tmp_path: Path) -> None:
        env_file = tmp_path / ".env"
        env_file.write_text("OBOLUS_RPC_URL=http://from-file\n", encoding="utf-8")
        env = self._clean_env() | {"OBOLUS_RPC_URL": "http://from-env"}
        with patch.dict(os.environ, env, clear=True):
            settings = Settings.from_env(env_file)
        assert settings.rpc_url == "http://from-env"

    @pytest.mark.parametrize(
        "name,value",
        [("OBOLUS_CHAIN_ID", "sepolia"), ("OBOLUS_RPC_TIMEOUT", "-3"), ("OBOLUS_RPC_TIMEOUT", "soon")],
    )
    def test_bad_numbers(self, tmp_path: Path, name: str, value: str) -> None:
        env = self._clean_env() | {name: value}
        with patch.dict(os.environ, env, clear=True):
            with pytest.raises(ValidationError, match=name):
                Settings.from_env(tmp_path / "missing.env")
