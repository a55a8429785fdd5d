from kash_wallet.crypto.mnemonic import MnemonicEngine, generate_mnemonic, validate_mnemonic, mnemonic_to_seed
from kash_wallet.crypto.derivation import DerivationPath, master_key, derive_child, derive
from kash_wallet.crypto.address import encode_address
from kash_wallet.crypto.adapters import ChainAdapter, EvmAdapter, Ed25519Adapter, UtxoAdapter, get_adapter
from kash_wallet.crypto.encryption import KeyVault, LegacyXorVault, open_vault, rewrap

__all__ = [
    'MnemonicEngine',
    'generate_mnemonic',
    'validate_mnemonic',
    'mnemonic_to_seed',
    'DerivationPath',
    'master_key',
    'derive_child',
    'derive',
    'encode_address',
    'ChainAdapter',
    'EvmAdapter',
    'Ed25519Adapter',
    'UtxoAdapter',
    'get_adapter',
    'KeyVault',
    'LegacyXorVault',
    'open_vault',
    'rewrap'
]
