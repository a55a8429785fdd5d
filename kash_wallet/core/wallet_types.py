# kash_wallet/core/wallet_types.py
import time
from enum import Enum
from dataclasses import dataclass, field, asdict
from typing import Dict, List, Optional, Any, Tuple

class ChainFamily(Enum):
    """Chain families with distinct key and address handling"""
    EVM = "evm"
    ED25519 = "ed25519"
    UTXO = "utxo"

class Curve(Enum):
    """Curves supported by the path derivation engine"""
    SECP256K1 = "secp256k1"
    ED25519 = "ed25519"

class WalletVariant(Enum):
    """Wallet variant labels persisted with each wallet record"""
    STANDARD = "standard"
    NATIVE_SEGWIT = "Native SegWit"
    TAPROOT = "Taproot"
    LEGACY = "Legacy"
    NESTED_SEGWIT = "Nested SegWit"
    TOKEN = "token"

class AddressFormat(Enum):
    """Address encodings"""
    EIP55 = "eip55"
    TRON = "tron"
    SOLANA = "solana"
    SUI = "sui"
    P2WPKH = "p2wpkh"
    P2TR = "p2tr"
    P2PKH = "p2pkh"
    P2SH_P2WPKH = "p2sh-p2wpkh"

class VaultScheme(Enum):
    """At-rest key protection schemes"""
    AES_SIV = "aes-256-siv"
    LEGACY_XOR = "legacy-xor"

class ProvisioningStatus(Enum):
    """Outcome of a provisioning call"""
    CREATED = "created"
    PARTIAL = "partial"
    EXISTING = "existing"
    BACKFILLED = "backfilled"

def slot_key(blockchain: str, currency: str, variant) -> str:
    """Unique wallet key within one owner, e.g. ``Bitcoin-BTC-Taproot``"""
    if isinstance(variant, WalletVariant):
        variant = variant.value
    return f"{blockchain}-{currency}-{variant}"

@dataclass(frozen=True)
class ExtendedKey:
    """(key, chain code) pair produced at one derivation level"""
    key: bytes = field(repr=False)
    chain_code: bytes = field(repr=False)
    curve: Curve = Curve.SECP256K1
    depth: int = 0
    index: int = 0
    path: str = "m"

@dataclass
class DerivedKeypair:
    """Chain-native address with the raw private key behind it"""
    chain: str
    currency: str
    family: ChainFamily
    variant: WalletVariant
    path: str
    address: str
    private_key: bytes = field(repr=False)
    public_key: bytes = b""

    @property
    def slot(self) -> str:
        return slot_key(self.chain, self.currency, self.variant)

    def drop_private_key(self) -> None:
        """Release the reference to the key. bytes are immutable, so the old value
        stays in memory until it is garbage collected."""
        self.private_key = b""

@dataclass(frozen=True)
class EncryptedKeyRecord:
    """The only form in which key material reaches durable storage"""
    owner_id: str
    ciphertext: str
    encoding: str = "raw"
    scheme: str = "aes-256-siv"

    def to_dict(self) -> Dict[str, str]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EncryptedKeyRecord":
        return cls(**data)

@dataclass
class WalletRecord:
    """Persisted wallet, one per (owner, blockchain, currency, variant)"""
    owner_id: str
    chain_family: ChainFamily
    blockchain: str
    currency_symbol: str
    address: str
    wallet_variant: WalletVariant
    encrypted_key: Optional[EncryptedKeyRecord] = None
    derivation_path: Optional[str] = None
    created_at: float = field(default_factory=time.time)

    def __post_init__(self):
        if isinstance(self.chain_family, str):
            self.chain_family = ChainFamily(self.chain_family)
        if isinstance(self.wallet_variant, str):
            self.wallet_variant = WalletVariant(self.wallet_variant)
        if isinstance(self.encrypted_key, dict):
            self.encrypted_key = EncryptedKeyRecord.from_dict(self.encrypted_key)

    @property
    def key(self) -> str:
        return slot_key(self.blockchain, self.currency_symbol, self.wallet_variant)

    @property
    def group(self) -> Tuple[str, str]:
        return (self.blockchain, self.currency_symbol)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'owner_id': self.owner_id,
            'chain_family': self.chain_family.value,
            'blockchain': self.blockchain,
            'currency_symbol': self.currency_symbol,
            'address': self.address,
            'wallet_variant': self.wallet_variant.value,
            'encrypted_key': self.encrypted_key.to_dict() if self.encrypted_key else None,
            'derivation_path': self.derivation_path,
            'created_at': self.created_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "WalletRecord":
        return cls(**data)

@dataclass
class MnemonicRecord:
    """Encrypted mnemonic, one per owner"""
    owner_id: str
    encrypted_mnemonic: EncryptedKeyRecord
    created_at: float = field(default_factory=time.time)

    def __post_init__(self):
        if isinstance(self.encrypted_mnemonic, dict):
            self.encrypted_mnemonic = EncryptedKeyRecord.from_dict(self.encrypted_mnemonic)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'owner_id': self.owner_id,
            'encrypted_mnemonic': self.encrypted_mnemonic.to_dict(),
            'created_at': self.created_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MnemonicRecord":
        return cls(**data)

@dataclass
class ProvisioningResult:
    """Outcome of provisioning one owner"""
    owner_id: str
    status: ProvisioningStatus
    wallets: List[WalletRecord] = field(default_factory=list)
    created: List[WalletRecord] = field(default_factory=list)
    failures: Dict[str, str] = field(default_factory=dict)
    mnemonic: Optional[str] = field(default=None, repr=False)

    @property
    def is_partial(self) -> bool:
        return bool(self.failures)

    @property
    def addresses(self) -> Dict[str, str]:
        return {wallet.key: wallet.address for wallet in self.wallets}
