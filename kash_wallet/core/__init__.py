from .exceptions import (
    WalletError, ConfigurationError, DatabaseError, PersistenceConflictError,
    CryptoError, InvalidMnemonicError, DerivationError, EncryptionError,
    InvalidAddressError, PartialProvisioningError, ProvisioningFailedError, BackupAccessDeniedError,
)
from .wallet_types import (
    ChainFamily, Curve, WalletVariant, AddressFormat, VaultScheme, ProvisioningStatus,
    WalletRecord, MnemonicRecord, EncryptedKeyRecord, DerivedKeypair, ProvisioningResult,
)
from .chains import CHAINS, ChainSpec, TokenSpec, get_chain
from .config import WalletConfig, ConfigManager, init_config
from .provisioning import WalletProvisioner

__all__ = [
    'WalletError',
    'ConfigurationError',
    'DatabaseError',
    'PersistenceConflictError',
    'CryptoError',
    'InvalidMnemonicError',
    'DerivationError',
    'EncryptionError',
    'InvalidAddressError',
    'PartialProvisioningError',
    'ProvisioningFailedError',
    'BackupAccessDeniedError',
    'ChainFamily',
    'Curve',
    'WalletVariant',
    'AddressFormat',
    'VaultScheme',
    'ProvisioningStatus',
    'WalletRecord',
    'MnemonicRecord',
    'EncryptedKeyRecord',
    'DerivedKeypair',
    'ProvisioningResult',
    'CHAINS',
    'ChainSpec',
    'TokenSpec',
    'get_chain',
    'WalletConfig',
    'ConfigManager',
    'init_config',
    'WalletProvisioner'
]
