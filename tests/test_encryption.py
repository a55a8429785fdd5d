"""
Tests for the owner-bound key vault.
"""

import base64
import hashlib
import os

import pytest

from kash_wallet.core.config import WalletConfig
from kash_wallet.core.exceptions import ConfigurationError, EncryptionError
from kash_wallet.core.wallet_types import EncryptedKeyRecord, VaultScheme
from kash_wallet.crypto.encryption import KeyVault, LegacyXorVault, open_vault, rewrap

class TestKeyVault:
    """AES-SIV vault behaviour."""

    def test_raw_bytes_round_trip(self, vault):
        key = os.urandom(32)
        record = vault.encrypt(key, "user-1")
        assert record.encoding == "raw"
        assert record.scheme == VaultScheme.AES_SIV.value
        assert vault.decrypt(record, "user-1") == key

    @pytest.mark.parametrize("value", [
        os.urandom(32).hex(),
        "0x" + os.urandom(32).hex(),
        os.urandom(32).hex().upper(),
    ])
    def test_hex_string_preserved_exactly(self, vault, value):
        record = vault.encrypt(value, "user-1")
        assert record.encoding == "hex"
        assert vault.decrypt(record, "user-1") == value

    def test_text_round_trip(self, vault, abandon_mnemonic):
        record = vault.encrypt(abandon_mnemonic, "user-1")
        assert record.encoding == "text"
        assert vault.decrypt(record, "user-1") == abandon_mnemonic

    def test_deterministic_per_owner(self, vault):
        key = bytes(range(32))
        assert vault.encrypt(key, "user-1") == vault.encrypt(key, "user-1")
        assert vault.encrypt(key, "user-1").ciphertext != vault.encrypt(key, "user-2").ciphertext

    def test_wrong_owner_fails_integrity(self, vault):
        record = vault.encrypt(bytes(range(32)), "user-1")
        with pytest.raises(EncryptionError):
            vault.decrypt(record, "user-2")

    def test_tampered_ciphertext_fails(self, vault):
        record = vault.encrypt(bytes(range(32)), "user-1")
        raw = bytearray(base64.b64decode(record.ciphertext))
        raw[-1] ^= 0x01
        tampered = EncryptedKeyRecord("user-1", base64.b64encode(bytes(raw)).decode(), "raw", record.scheme)
        with pytest.raises(EncryptionError):
            vault.decrypt(tampered, "user-1")

    def test_different_master_secret_cannot_decrypt(self, vault):
        record = vault.encrypt(bytes(range(32)), "user-1")
        other = KeyVault("another-master-secret-of-sufficient-length!!", "test-salt")
        with pytest.raises(EncryptionError):
            other.decrypt(record, "user-1")

    def test_base64_string_accepted(self, vault):
        record = vault.encrypt(b"\x01" * 32, "user-1")
        assert vault.decrypt(record.ciphertext, "user-1") == b"\x01" * 32

    @pytest.mark.parametrize("value", ["ab" * 32, "0x" + "cd" * 32])
    def test_base64_string_of_hex_key_returns_str(self, vault, value):
        ciphertext = vault.encrypt(value, "user-1").ciphertext
        assert vault.decrypt(ciphertext, "user-1") == value
        assert LegacyXorVault().decrypt(LegacyXorVault().encrypt(value, "user-1").ciphertext, "user-1") == value

    def test_explicit_encoding_for_base64_string(self, vault):
        ciphertext = vault.encrypt("ab" * 32, "user-1").ciphertext
        assert vault.decrypt(ciphertext, "user-1", encoding="raw") == b"ab" * 32

    def test_no_owner_keys_retained(self, vault):
        for n in range(50):
            vault.encrypt(b"\x02" * 32, f"user-{n}")
        assert set(vars(vault)) == {"_master_secret", "_salt"}

    def test_invalid_base64_rejected(self, vault):
        with pytest.raises(EncryptionError):
            vault.decrypt("***not base64***", "user-1")

    def test_short_master_secret_rejected(self):
        with pytest.raises(ConfigurationError):
            KeyVault("too-short")

    @pytest.mark.parametrize("value", [b"", "", 42])
    def test_unencryptable_values(self, vault, value):
        with pytest.raises(EncryptionError):
            vault.encrypt(value, "user-1")

    def test_scheme_mismatch_rejected(self, vault):
        legacy = LegacyXorVault().encrypt("ab" * 32, "user-1")
        with pytest.raises(EncryptionError):
            vault.decrypt(legacy, "user-1")

class TestLegacyXorVault:
    """Compatibility with records written by the XOR scheme."""

    def test_matches_reference_keystream(self):
        owner = "user-1"
        key_hex = "ab" * 32
        keystream = hashlib.sha256(f"KASH_SECURE_SALT_DO_NOT_CHANGE_{owner}_SECURE".encode()).digest()
        expected = bytes(b ^ keystream[i % 32] for i, b in enumerate(key_hex.encode()))

        record = LegacyXorVault().encrypt(key_hex, owner)
        assert base64.b64decode(record.ciphertext) == expected
        assert LegacyXorVault().decrypt(record.ciphertext, owner) == key_hex

    def test_wrong_owner_yields_garbage_silently(self):
        record = LegacyXorVault().encrypt("ab" * 32, "user-1")
        assert LegacyXorVault().decrypt(record, "user-2") != "ab" * 32

    def test_rewrap_to_aead(self, vault):
        legacy = LegacyXorVault().encrypt("cd" * 32, "user-1")
        record = rewrap(legacy, "user-1", vault)
        assert record.scheme == VaultScheme.AES_SIV.value
        assert vault.decrypt(record, "user-1") == "cd" * 32

    def test_rewrap_is_noop_for_current_scheme(self, vault):
        record = vault.encrypt("cd" * 32, "user-1")
        assert rewrap(record, "user-1", vault) is record

class TestOpenVault:

    def test_default_is_aes_siv(self, master_secret):
        vault = open_vault(WalletConfig(vault_master_secret=master_secret))
        assert isinstance(vault, KeyVault)

    def test_missing_secret_refuses_to_start(self):
        with pytest.raises(ConfigurationError):
            open_vault(WalletConfig())

    def test_legacy_scheme(self):
        vault = open_vault(WalletConfig(vault_scheme="legacy-xor"))
        assert isinstance(vault, LegacyXorVault)
