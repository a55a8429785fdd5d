"""
Test configuration and fixtures
"""
import pytest

from kash_wallet.core.config import WalletConfig
from kash_wallet.core.wallet_types import MnemonicRecord
from kash_wallet.crypto.encryption import KeyVault
from kash_wallet.crypto.mnemonic import MnemonicEngine
from kash_wallet.core.provisioning import WalletProvisioner
from kash_wallet.storage.memory import InMemoryWalletStore

ABANDON_MNEMONIC = " ".join(["abandon"] * 11 + ["about"])

TEST_MASTER_SECRET = "test-master-secret-0123456789abcdef-not-for-production"

@pytest.fixture
def abandon_mnemonic():
    return ABANDON_MNEMONIC

@pytest.fixture
def engine():
    return MnemonicEngine()

@pytest.fixture
def abandon_seed(engine):
    return engine.to_seed(ABANDON_MNEMONIC)

@pytest.fixture
def master_secret():
    return TEST_MASTER_SECRET

@pytest.fixture
def vault():
    return KeyVault(TEST_MASTER_SECRET, "test-salt")

@pytest.fixture
def wallet_config():
    return WalletConfig(vault_master_secret=TEST_MASTER_SECRET, vault_salt="test-salt", max_workers=4)

@pytest.fixture
def store():
    return InMemoryWalletStore()

@pytest.fixture
def provisioner(wallet_config, store, vault):
    return WalletProvisioner(wallet_config, store, vault)

@pytest.fixture
def seeded_owner(store, vault):
    """Owner whose stored mnemonic is the well-known abandon phrase"""
    owner_id = "abandon-owner"
    store.put_mnemonic_if_absent(MnemonicRecord(
        owner_id=owner_id,
        encrypted_mnemonic=vault.encrypt(ABANDON_MNEMONIC, owner_id),
    ))
    return owner_id
