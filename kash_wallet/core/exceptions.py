class WalletError(Exception):
    """Base exception for wallet errors"""
    pass

class ConfigurationError(WalletError):
    """Invalid or incomplete configuration"""
    pass

class DatabaseError(WalletError):
    """Database-related errors"""
    pass

class PersistenceConflictError(DatabaseError):
    """A wallet or mnemonic record already exists for the same key"""

    def __init__(self, message: str, keys=None):
        super().__init__(message)
        self.keys = list(keys or [])

class CryptoError(WalletError):
    """Cryptography-related errors"""
    pass

class InvalidMnemonicError(CryptoError):
    """Mnemonic failed word-list or checksum validation"""
    pass

class DerivationError(CryptoError):
    """A key derivation or address encoding step failed"""

    def __init__(self, message: str, chain: str = None, variant: str = None):
        super().__init__(message)
        self.chain = chain
        self.variant = variant

class EncryptionError(CryptoError):
    """Key vault encryption or decryption failed"""
    pass

class InvalidAddressError(WalletError):
    """Invalid address error"""
    pass

class PartialProvisioningError(WalletError):
    """One or more chains failed while others were provisioned"""

    def __init__(self, message: str, result=None):
        super().__init__(message)
        self.result = result

    @property
    def failures(self):
        return self.result.failures if self.result is not None else {}

class BackupAccessDeniedError(WalletError):
    """Mnemonic backup requested without a successful re-verification"""
    pass

class ProvisioningFailedError(PartialProvisioningError):
    """Every slot failed and the owner holds no wallet at all"""
    pass
