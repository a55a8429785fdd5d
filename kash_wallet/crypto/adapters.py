# kash_wallet/crypto/adapters.py
from abc import ABC, abstractmethod
from typing import Dict, Iterable, List, Optional, Type

from kash_wallet.core.chains import ChainSpec
from kash_wallet.core.wallet_types import ChainFamily, DerivedKeypair, WalletVariant
from kash_wallet.core.exceptions import DerivationError, ConfigurationError
from kash_wallet.crypto import derivation
from kash_wallet.crypto.address import encode_address
from kash_wallet.crypto.mnemonic import get_engine
from kash_wallet.utils.logging import logger

class ChainAdapter(ABC):
    """Turns a binary seed into chain-native keypairs for one chain"""

    family: ChainFamily

    def __init__(self, spec: ChainSpec, network: str = "mainnet",
                 enabled_variants: Optional[Iterable[WalletVariant]] = None):
        if spec.family != self.family:
            raise ConfigurationError(
                f"{type(self).__name__} cannot serve {spec.name} ({spec.family.value})")
        self.spec = spec
        self.network = network
        if enabled_variants is None:
            self._variants = [v.variant for v in spec.variants]
        else:
            self._variants = list(enabled_variants)
            for variant in self._variants:
                spec.variant(variant)

    def variants(self) -> List[WalletVariant]:
        """Variants this adapter produces"""
        return list(self._variants)

    def derive(self, seed: bytes, variant: Optional[WalletVariant] = None) -> DerivedKeypair:
        """Derive the keypair for one variant"""
        variant = variant or self._variants[0]
        variant_spec = self.spec.variant(variant)
        path = variant_spec.path_for(self.network)

        try:
            private_key, public_key, path = self._derive_keys(seed, path)
            address = encode_address(variant_spec.address_format, public_key, self.network)
        except DerivationError as e:
            e.chain = e.chain or self.spec.name
            e.variant = e.variant or variant.value
            raise
        except Exception as e:
            raise DerivationError(
                f"{self.spec.name} {variant.value} derivation failed: {e}",
                chain=self.spec.name, variant=variant.value) from e

        return DerivedKeypair(
            chain=self.spec.name,
            currency=self.spec.symbol,
            family=self.family,
            variant=variant,
            path=path,
            address=address,
            private_key=private_key,
            public_key=public_key,
        )

    def derive_from_mnemonic(self, mnemonic: str, variant: Optional[WalletVariant] = None,
                             passphrase: str = "") -> DerivedKeypair:
        """Validate, then derive; invalid phrases never reach the key schedule"""
        seed = get_engine().to_seed(mnemonic, passphrase)
        return self.derive(seed, variant)

    def derive_all(self, seed: bytes) -> List[DerivedKeypair]:
        """One keypair per enabled variant"""
        return [self.derive(seed, variant) for variant in self._variants]

    @abstractmethod
    def _derive_keys(self, seed: bytes, path: str):
        """Return (private_key, public_key, effective path)"""
        pass

class EvmAdapter(ChainAdapter):
    """secp256k1 account chains (Ethereum, Polygon, Tron)"""

    family = ChainFamily.EVM

    def _derive_keys(self, seed: bytes, path: str):
        node = derivation.derive(seed, path, self.spec.curve)
        public_key = derivation.secp256k1_public_key(node.key, compressed=False)
        return node.key, public_key, node.path

class Ed25519Adapter(ChainAdapter):
    """SLIP-10 ed25519 account chains (Solana, Sui)"""

    family = ChainFamily.ED25519

    def _derive_keys(self, seed: bytes, path: str):
        # ed25519 only defines hardened children
        hardened = derivation.DerivationPath.parse(path).hardened()
        node = derivation.derive(seed, hardened, self.spec.curve)
        return node.key, derivation.ed25519_public_key(node.key), str(hardened)

class UtxoAdapter(ChainAdapter):
    """Bitcoin-style chains with one keypair per address variant"""

    family = ChainFamily.UTXO

    def _derive_keys(self, seed: bytes, path: str):
        node = derivation.derive(seed, path, self.spec.curve)
        return node.key, derivation.secp256k1_public_key(node.key), node.path

ADAPTERS: Dict[ChainFamily, Type[ChainAdapter]] = {
    ChainFamily.EVM: EvmAdapter,
    ChainFamily.ED25519: Ed25519Adapter,
    ChainFamily.UTXO: UtxoAdapter,
}

_missing = set(ChainFamily) - set(ADAPTERS)
if _missing:
    raise ImportError(f"No chain adapter registered for {sorted(f.value for f in _missing)}")

def get_adapter(spec: ChainSpec, network: str = "mainnet",
                enabled_variants: Optional[Iterable[WalletVariant]] = None) -> ChainAdapter:
    """Adapter for ``spec`` picked by its chain family"""
    adapter = ADAPTERS[spec.family](spec, network, enabled_variants)
    logger.debug("Chain adapter ready", chain=spec.name, network=network,
                 variants=[v.value for v in adapter.variants()])
    return adapter
