"""Unit tests for NameHash and Addresses."""

import pytest
from web3 import Web3

from reconciler.src.Addresses import (
    MOCK_USD_ADDRESS,
    ZERO_ADDRESS,
    is_malformed_asset,
    is_zero_address,
    normalize_address,
)
from reconciler.src.NameHash import compatibility_labels, namehash


class TestNameHash:
    """Registry node hashing."""

    def test_empty(self) -> None:
        assert namehash([]) == "0x" + "00" * 32

    def test_eth(self) -> None:
        assert namehash(["eth"]) == (
            "0x93cdeb708b7545dc668eb9280176169d1c33cfd8ed6f04690a0bcc88a93fc4ae"
        )

    def test_folds_from_last_label(self) -> None:
        parent = Web3.to_bytes(hexstr=namehash(["eth"]))
        expected = Web3.to_hex(Web3.keccak(parent + Web3.keccak(text="data")))
        assert namehash(["data", "eth"]) == expected

    def test_compatibility_labels(self) -> None:
        assert compatibility_labels("DAI") == ["aggregator", "dai-eth", "data", "eth"]

    def test_symbol_case_insensitive(self) -> None:
        assert namehash(compatibility_labels("Dai")) == namehash(compatibility_labels("DAI"))


class TestAddresses:
    """Address helpers."""

    @pytest.mark.parametrize(
        "address, expected",
        [
            ("0xABCDEF" + "1" * 34, "0xabcdef" + "1" * 34),
            ("abcdef" + "1" * 34, "0xabcdef" + "1" * 34),
            (None, ZERO_ADDRESS),
            ("", ZERO_ADDRESS),
        ],
    )
    def test_normalize(self, address, expected) -> None:
        assert normalize_address(address) == expected

    def test_zero(self) -> None:
        assert is_zero_address(ZERO_ADDRESS.upper()) is True
        assert is_zero_address(None) is True
        assert is_zero_address(MOCK_USD_ADDRESS) is False

    @pytest.mark.parametrize(
        "address, malformed",
        [
            ("0x" + "0" * 39 + "1", True),
            ("0x" + "0" * 38 + "11", True),
            ("0x" + "0" * 37 + "111", False),
            (ZERO_ADDRESS, True),
            (MOCK_USD_ADDRESS, False),
        ],
    )
    def test_malformed(self, address, malformed) -> None:
        """More than 38 zero characters, counting the prefix."""
        assert is_malformed_asset(address) is malformed
