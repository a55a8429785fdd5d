# kash_wallet/core/chains.py
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from kash_wallet.core.wallet_types import ChainFamily, Curve, WalletVariant, AddressFormat
from kash_wallet.core.exceptions import ConfigurationError

@dataclass(frozen=True)
class VariantSpec:
    """One derivation path and address encoding within a chain"""
    variant: WalletVariant
    path: str
    address_format: AddressFormat
    testnet_path: Optional[str] = None

    def path_for(self, network: str) -> str:
        if network != "mainnet" and self.testnet_path:
            return self.testnet_path
        return self.path

@dataclass(frozen=True)
class ChainSpec:
    """Static description of a supported chain"""
    key: str
    name: str
    symbol: str
    family: ChainFamily
    curve: Curve
    variants: Tuple[VariantSpec, ...]

    def variant(self, variant: WalletVariant) -> VariantSpec:
        for spec in self.variants:
            if spec.variant == variant:
                return spec
        raise ConfigurationError(f"{self.name} has no {variant.value} variant")

    @property
    def default_variant(self) -> WalletVariant:
        return self.variants[0].variant

@dataclass(frozen=True)
class TokenSpec:
    """Token held at the native address of its host chain"""
    chain: str
    symbol: str

CHAINS: Dict[str, ChainSpec] = {
    'ethereum': ChainSpec(
        key='ethereum', name='Ethereum', symbol='ETH',
        family=ChainFamily.EVM, curve=Curve.SECP256K1,
        variants=(VariantSpec(WalletVariant.STANDARD, "m/44'/60'/0'/0/0", AddressFormat.EIP55),),
    ),
    'polygon': ChainSpec(
        key='polygon', name='Polygon', symbol='MATIC',
        family=ChainFamily.EVM, curve=Curve.SECP256K1,
        variants=(VariantSpec(WalletVariant.STANDARD, "m/44'/60'/0'/0/0", AddressFormat.EIP55),),
    ),
    'tron': ChainSpec(
        key='tron', name='Tron', symbol='TRX',
        family=ChainFamily.EVM, curve=Curve.SECP256K1,
        variants=(VariantSpec(WalletVariant.STANDARD, "m/44'/195'/0'/0/0", AddressFormat.TRON),),
    ),
    'solana': ChainSpec(
        key='solana', name='Solana', symbol='SOL',
        family=ChainFamily.ED25519, curve=Curve.ED25519,
        variants=(VariantSpec(WalletVariant.STANDARD, "m/44'/501'/0'/0'", AddressFormat.SOLANA),),
    ),
    'sui': ChainSpec(
        key='sui', name='Sui', symbol='SUI',
        family=ChainFamily.ED25519, curve=Curve.ED25519,
        variants=(VariantSpec(WalletVariant.STANDARD, "m/44'/784'/0'/0'/0'", AddressFormat.SUI),),
    ),
    'bitcoin': ChainSpec(
        key='bitcoin', name='Bitcoin', symbol='BTC',
        family=ChainFamily.UTXO, curve=Curve.SECP256K1,
        variants=(
            VariantSpec(WalletVariant.NATIVE_SEGWIT, "m/84'/0'/0'/0/0",
                        AddressFormat.P2WPKH, "m/84'/1'/0'/0/0"),
            VariantSpec(WalletVariant.TAPROOT, "m/86'/0'/0'/0/0",
                        AddressFormat.P2TR, "m/86'/1'/0'/0/0"),
            VariantSpec(WalletVariant.LEGACY, "m/44'/0'/0'/0/0",
                        AddressFormat.P2PKH, "m/44'/1'/0'/0/0"),
            VariantSpec(WalletVariant.NESTED_SEGWIT, "m/49'/0'/0'/0/0",
                        AddressFormat.P2SH_P2WPKH, "m/49'/1'/0'/0/0"),
        ),
    ),
}

DEFAULT_CHAINS = ('bitcoin', 'ethereum', 'solana')
DEFAULT_BITCOIN_VARIANTS = (WalletVariant.NATIVE_SEGWIT, WalletVariant.TAPROOT)
DEFAULT_TOKENS = (
    TokenSpec('ethereum', 'USDT'),
    TokenSpec('solana', 'USDT'),
    TokenSpec('tron', 'USDT'),
)

def get_chain(key: str) -> ChainSpec:
    """Look up a chain by key or display name"""
    normalized = (key or "").strip().lower()
    if normalized in CHAINS:
        return CHAINS[normalized]
    for spec in CHAINS.values():
        if spec.name.lower() == normalized:
            return spec
    raise ConfigurationError(f"Unsupported chain: {key}")
