"""
Tests for address and derivation path validation.
"""

import base58
import pytest

from kash_wallet.core.wallet_types import WalletVariant
from kash_wallet.utils.validation import is_valid_derivation_path, validate_address

ETH = "0x9858EfFD232B4033E47d90003D41EC34EcaEda94"
SEGWIT = "bc1qcr8te4kr609gcawutmrza0j4xv80jy8z306fyu"
TAPROOT = "bc1p5cyxnuxmeuwuvkwfem96lqzszd02n6xdcjrs20cac6yqjjwudpxqkedrcr"
LEGACY = "1LqBGSKuX5yYUonjxT5qGfpUsXKYYWeabA"
NESTED = "37VucYSaXLCAsxYyAPfbSi9eh4iEcbShgf"
SOLANA = "HAgk14JpMQLgt6rVgv7cBQFJWFto5Dqxi472uT3DKpqk"

class TestEvmAddresses:

    def test_checksummed(self):
        assert validate_address(ETH, "ethereum")

    def test_single_case_accepted(self):
        assert validate_address(ETH.lower(), "ethereum")
        assert validate_address("0x" + ETH[2:].upper(), "polygon")

    def test_bad_checksum_rejected(self):
        assert not validate_address(ETH[:-1] + "a", "ethereum")

    @pytest.mark.parametrize("address", [
        "0x" + "0" * 40,
        "9858EfFD232B4033E47d90003D41EC34EcaEda94",
        ETH[:-2],
        "0x" + "g" * 40,
    ])
    def test_malformed(self, address):
        assert not validate_address(address, "ethereum")

    def test_tron(self):
        address = base58.b58encode_check(b"\x41" + bytes.fromhex(ETH[2:])).decode()
        assert validate_address(address, "tron")
        assert not validate_address(ETH, "tron")
        assert not validate_address(base58.b58encode_check(b"\x41" + bytes(20)).decode(), "tron")

class TestBitcoinAddresses:

    @pytest.mark.parametrize("address", [SEGWIT, TAPROOT, LEGACY, NESTED])
    def test_every_variant_recognised(self, address):
        assert validate_address(address, "bitcoin")

    def test_variant_restriction(self):
        assert validate_address(TAPROOT, "bitcoin", variant=WalletVariant.TAPROOT)
        assert not validate_address(SEGWIT, "bitcoin", variant=WalletVariant.TAPROOT)

    def test_network_mismatch(self):
        assert not validate_address(SEGWIT, "bitcoin", network="testnet")
        assert validate_address("2Mww8dCYPUpKHofjgcXcBCEGmniw9CoaiD2", "bitcoin", network="testnet")

    def test_corrupted_checksum(self):
        assert not validate_address(SEGWIT[:-1] + "q", "bitcoin")
        assert not validate_address(LEGACY[:-1] + "B", "bitcoin")

class TestEd25519Addresses:

    def test_solana(self):
        assert validate_address(SOLANA, "solana")
        assert not validate_address(base58.b58encode(bytes(32)).decode(), "solana")
        assert not validate_address("0OIl", "solana")

    def test_sui(self):
        assert validate_address("0x" + "ab" * 32, "sui")
        assert not validate_address("0x" + "AB" * 32, "sui")
        assert not validate_address("0x" + "00" * 32, "sui")

class TestMisc:

    @pytest.mark.parametrize("address,chain", [
        ("", "ethereum"),
        (None, "ethereum"),
        (ETH, "dogecoin"),
    ])
    def test_rejects_without_raising(self, address, chain):
        assert validate_address(address, chain) is False

    def test_variant_the_chain_lacks(self):
        assert validate_address(ETH, "ethereum", variant=WalletVariant.TAPROOT) is False

    @pytest.mark.parametrize("path,expected", [
        ("m/44'/60'/0'/0/0", True),
        ("m/44h/501h/0h/0h", True),
        ("m", True),
        ("44'/60'", False),
        ("m/2147483648", False),
        ("m/-1", False),
        ("m//0", False),
        ("m/²", False),
        ("m/44'/１", False),
    ])
    def test_derivation_paths(self, path, expected):
        assert is_valid_derivation_path(path) is expected
