# kash_wallet/crypto/encryption.py
import base64
import binascii
import hashlib
import re
from typing import Optional, Union

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers.aead import AESSIV
from cryptography.hazmat.primitives.kdf.hkdf import HKDF

from kash_wallet.core.wallet_types import EncryptedKeyRecord, VaultScheme
from kash_wallet.core.exceptions import EncryptionError, ConfigurationError
from kash_wallet.utils.logging import logger, AuditEventType

Plaintext = Union[bytes, str]

class VaultConstants:
    """Key vault parameters"""
    SIV_KEY_SIZE = 64
    MIN_MASTER_SECRET_SIZE = 32
    HKDF_INFO = b"kash-wallet key-vault v1"
    LEGACY_KEY_SUFFIX = "_SECURE"

ENCODING_RAW = "raw"
ENCODING_HEX = "hex"
ENCODING_TEXT = "text"

_HEX_PATTERN = re.compile(r"^(0x)?[0-9a-fA-F]+$")

def _to_bytes(plain: Plaintext):
    """Plaintext bytes plus the encoding tag needed to restore the original type"""
    if isinstance(plain, bytes):
        return plain, ENCODING_RAW
    if isinstance(plain, str):
        encoding = ENCODING_HEX if _HEX_PATTERN.match(plain) else ENCODING_TEXT
        return plain.encode("utf-8"), encoding
    raise EncryptionError(f"Cannot encrypt value of type {type(plain).__name__}")

def _from_bytes(data: bytes, encoding: str) -> Plaintext:
    if encoding == ENCODING_RAW:
        return data
    if encoding in (ENCODING_HEX, ENCODING_TEXT):
        try:
            return data.decode("utf-8")
        except UnicodeDecodeError as e:
            raise EncryptionError("Decrypted value is not valid text") from e
    raise EncryptionError(f"Unknown plaintext encoding: {encoding}")

def _infer_encoding(data: bytes) -> str:
    """Encoding for a bare ciphertext: ASCII hex comes back as str, anything else as bytes"""
    try:
        text = data.decode("ascii")
    except UnicodeDecodeError:
        return ENCODING_RAW
    return ENCODING_HEX if _HEX_PATTERN.match(text) else ENCODING_RAW

def _b64decode(ciphertext: str) -> bytes:
    try:
        return base64.b64decode(ciphertext, validate=True)
    except (binascii.Error, ValueError) as e:
        raise EncryptionError(f"Ciphertext is not valid base64: {e}") from e

class KeyVault:
    """Deterministic owner-bound authenticated encryption (AES-SIV)"""

    scheme = VaultScheme.AES_SIV

    def __init__(self, master_secret: Union[bytes, str], salt: Union[bytes, str] = b"kash-wallet-key-vault"):
        if isinstance(master_secret, str):
            master_secret = master_secret.encode("utf-8")
        if isinstance(salt, str):
            salt = salt.encode("utf-8")

        if not master_secret or len(master_secret) < VaultConstants.MIN_MASTER_SECRET_SIZE:
            raise ConfigurationError(
                f"Vault master secret must be at least {VaultConstants.MIN_MASTER_SECRET_SIZE} bytes")

        self._master_secret = master_secret
        self._salt = salt

    def _cipher(self, owner_id: str) -> AESSIV:
        """Per-owner AES-SIV instance, derived afresh on every call and never retained"""
        if not owner_id:
            raise EncryptionError("owner_id is required")

        hkdf = HKDF(
            algorithm=hashes.SHA256(),
            length=VaultConstants.SIV_KEY_SIZE,
            salt=self._salt,
            info=VaultConstants.HKDF_INFO + owner_id.encode("utf-8"),
        )
        return AESSIV(hkdf.derive(self._master_secret))

    def encrypt(self, plain: Plaintext, owner_id: str) -> EncryptedKeyRecord:
        """Encrypt a private key or mnemonic for ``owner_id``"""
        data, encoding = _to_bytes(plain)
        if not data:
            raise EncryptionError("Refusing to encrypt an empty value")

        try:
            ciphertext = self._cipher(owner_id).encrypt(data, [owner_id.encode("utf-8")])
        except EncryptionError:
            raise
        except Exception as e:
            raise EncryptionError(f"Encryption failed: {e}") from e

        return EncryptedKeyRecord(
            owner_id=owner_id,
            ciphertext=base64.b64encode(ciphertext).decode("ascii"),
            encoding=encoding,
            scheme=self.scheme.value,
        )

    def decrypt(self, record: Union[EncryptedKeyRecord, str], owner_id: str,
                encoding: Optional[str] = None) -> Plaintext:
        """Recover the original value; a foreign owner fails the integrity check

        A bare base64 string carries no encoding tag. Pass ``encoding`` to pick
        one, otherwise ASCII hex is returned as ``str`` and anything else as bytes.
        """
        if isinstance(record, str):
            record = EncryptedKeyRecord(owner_id=owner_id, ciphertext=record,
                                        encoding=encoding or "", scheme=self.scheme.value)

        if record.scheme != self.scheme.value:
            raise EncryptionError(f"Record uses scheme {record.scheme}, vault is {self.scheme.value}")

        ciphertext = _b64decode(record.ciphertext)
        try:
            data = self._cipher(owner_id).decrypt(ciphertext, [owner_id.encode("utf-8")])
        except InvalidTag as e:
            logger.log_security_event("vault_integrity_failure", severity="high",
                                      owner_id=owner_id)
            raise EncryptionError("Decryption failed: integrity check did not pass") from e
        except EncryptionError:
            raise
        except Exception as e:
            raise EncryptionError(f"Decryption failed: {e}") from e

        return _from_bytes(data, record.encoding or _infer_encoding(data))

class LegacyXorVault:
    """SHA-256 keystream XOR scheme, readable for records written before AES-SIV"""

    scheme = VaultScheme.LEGACY_XOR

    def __init__(self, salt: str = "KASH_SECURE_SALT_DO_NOT_CHANGE"):
        self.salt = salt

    def _keystream(self, owner_id: str) -> bytes:
        if not owner_id:
            raise EncryptionError("owner_id is required")
        base = f"{self.salt}_{owner_id}{VaultConstants.LEGACY_KEY_SUFFIX}"
        return hashlib.sha256(base.encode("utf-8")).digest()

    def _xor(self, data: bytes, owner_id: str) -> bytes:
        key = self._keystream(owner_id)
        return bytes(byte ^ key[i % len(key)] for i, byte in enumerate(data))

    def encrypt(self, plain: Plaintext, owner_id: str) -> EncryptedKeyRecord:
        data, encoding = _to_bytes(plain)
        if isinstance(plain, str):
            try:
                data = plain.encode("latin-1")
            except UnicodeEncodeError as e:
                raise EncryptionError("Legacy vault only handles single-byte text") from e
        if not data:
            raise EncryptionError("Refusing to encrypt an empty value")
        return EncryptedKeyRecord(
            owner_id=owner_id,
            ciphertext=base64.b64encode(self._xor(data, owner_id)).decode("ascii"),
            encoding=encoding,
            scheme=self.scheme.value,
        )

    def decrypt(self, record: Union[EncryptedKeyRecord, str], owner_id: str,
                encoding: Optional[str] = None) -> Plaintext:
        # No integrity: a wrong owner_id yields garbage, not an error
        if isinstance(record, str):
            record = EncryptedKeyRecord(owner_id=owner_id, ciphertext=record,
                                        encoding=encoding or "", scheme=self.scheme.value)
        if record.scheme != self.scheme.value:
            raise EncryptionError(f"Record uses scheme {record.scheme}, vault is {self.scheme.value}")
        data = self._xor(_b64decode(record.ciphertext), owner_id)
        if (record.encoding or _infer_encoding(data)) == ENCODING_RAW:
            return data
        # Legacy records were XORed character by character
        return data.decode("latin-1")

def open_vault(config) -> Union[KeyVault, LegacyXorVault]:
    """Build the vault named by ``config.vault_scheme``"""
    if config.vault_scheme == VaultScheme.LEGACY_XOR:
        logger.warning("Legacy XOR vault selected; records are not authenticated")
        return LegacyXorVault(config.legacy_vault_salt)

    if not config.vault_master_secret:
        raise ConfigurationError("Vault master secret is not configured (KASH_WALLET_VAULT_SECRET)")
    return KeyVault(config.vault_master_secret, config.vault_salt)

def rewrap(record: EncryptedKeyRecord, owner_id: str, target: KeyVault,
           source: Union[KeyVault, LegacyXorVault, None] = None) -> EncryptedKeyRecord:
    """Re-encrypt a record under ``target``'s scheme"""
    if record.scheme == target.scheme.value:
        return record
    if source is None:
        source = LegacyXorVault()
    plain = source.decrypt(record, owner_id)
    new_record = target.encrypt(plain, owner_id)
    logger.audit(AuditEventType.KEY_REWRAPPED, owner_id=owner_id,
                 source_scheme=record.scheme, target_scheme=new_record.scheme)
    return new_record
