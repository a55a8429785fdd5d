from kash_wallet.core.provisioning import WalletProvisioner
from kash_wallet.core.config import WalletConfig, ConfigManager
from kash_wallet.core.wallet_types import ChainFamily, WalletVariant, ProvisioningStatus
from kash_wallet.crypto.mnemonic import generate_mnemonic, validate_mnemonic, mnemonic_to_seed
from kash_wallet.crypto.encryption import KeyVault, open_vault
from kash_wallet.storage.memory import InMemoryWalletStore

__version__ = "1.0.0"
__all__ = [
    'WalletProvisioner',
    'WalletConfig',
    'ConfigManager',
    'ChainFamily',
    'WalletVariant',
    'ProvisioningStatus',
    'generate_mnemonic',
    'validate_mnemonic',
    'mnemonic_to_seed',
    'KeyVault',
    'open_vault',
    'InMemoryWalletStore'
]
