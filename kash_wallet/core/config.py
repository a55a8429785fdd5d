#kash_wallet/core/config.py
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple

import yaml

from kash_wallet.core.wallet_types import WalletVariant, VaultScheme
from kash_wallet.core.chains import (
    ChainSpec, TokenSpec, get_chain,
    DEFAULT_CHAINS, DEFAULT_BITCOIN_VARIANTS, DEFAULT_TOKENS,
)
from kash_wallet.core.config_schema import validate_config
from kash_wallet.core.exceptions import ConfigurationError
from kash_wallet.utils.logging import logger

ENV_PREFIX = "KASH_WALLET_"

@dataclass
class WalletConfig:
    """Wallet configuration"""
    network: str = "mainnet"
    mnemonic_strength: int = 128
    passphrase: str = field(default="", repr=False)
    chains: List[str] = field(default_factory=lambda: list(DEFAULT_CHAINS))
    bitcoin_variants: List[WalletVariant] = field(default_factory=lambda: list(DEFAULT_BITCOIN_VARIANTS))
    tokens: List[TokenSpec] = field(default_factory=lambda: list(DEFAULT_TOKENS))
    max_workers: int = 4
    vault_scheme: VaultScheme = VaultScheme.AES_SIV
    vault_master_secret: Optional[str] = field(default=None, repr=False)
    vault_salt: str = "kash-wallet-key-vault"
    legacy_vault_salt: str = "KASH_SECURE_SALT_DO_NOT_CHANGE"
    log_level: str = "INFO"
    log_file: Optional[str] = None
    log_format: str = "detailed"
    db_path: str = "./kash_wallet_data"

    def __post_init__(self):
        """Normalise serialized values back to their typed forms"""
        self._validate_enum_types()

        if self.network not in ("mainnet", "testnet"):
            raise ConfigurationError(f"Unknown network: {self.network}")

        # Chain keys are canonicalised so display names are accepted too
        self.chains = [get_chain(chain).key for chain in self.chains]

    def _validate_enum_types(self):
        """Ensure all enum fields remain as enum types"""
        if isinstance(self.vault_scheme, str):
            self.vault_scheme = VaultScheme(self.vault_scheme)

        self.bitcoin_variants = [
            WalletVariant(variant) if isinstance(variant, str) else variant
            for variant in self.bitcoin_variants
        ]

        tokens = []
        for token in self.tokens:
            if isinstance(token, dict):
                token = TokenSpec(chain=get_chain(token['chain']).key, symbol=token['symbol'])
            elif isinstance(token, (tuple, list)):
                token = TokenSpec(chain=get_chain(token[0]).key, symbol=token[1])
            tokens.append(token)
        self.tokens = tokens

    def chain_specs(self) -> List[ChainSpec]:
        return [get_chain(chain) for chain in self.chains]

    def slots(self) -> List[Tuple[ChainSpec, WalletVariant]]:
        """Every (chain, variant) pair that provisioning should produce"""
        slots = []
        for spec in self.chain_specs():
            if spec.key == 'bitcoin':
                for variant in self.bitcoin_variants:
                    spec.variant(variant)
                    slots.append((spec, variant))
            else:
                slots.append((spec, spec.default_variant))
        return slots

    def enabled_tokens(self) -> List[TokenSpec]:
        """Tokens whose host chain is enabled"""
        return [token for token in self.tokens if token.chain in self.chains]

class ConfigManager:
    """Loads WalletConfig from YAML and the environment"""

    def __init__(self, config_path: Optional[str] = None,
                 environ: Optional[Mapping[str, str]] = None):
        self.config_path = config_path
        self.environ = os.environ if environ is None else environ
        self.raw: Dict[str, Any] = validate_config({})
        self.config = WalletConfig()

        self._load_config()
        self._apply_env_overrides()

    def _load_config(self):
        """Load configuration from file"""
        if not self.config_path:
            return

        config_file = Path(self.config_path)
        if not config_file.exists():
            raise ConfigurationError(f"Config file not found: {config_file}")

        try:
            with open(config_file, 'r') as f:
                config_data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            logger.error(f"Error loading config file: {e}")
            raise ConfigurationError(f"Error loading config file {config_file}: {e}") from e

        if not isinstance(config_data, dict):
            raise ConfigurationError("Config file must contain a mapping")

        self._update_config_from_dict(config_data)

    def _update_config_from_dict(self, config_data: Dict[str, Any]):
        """Update config from dictionary"""
        validated = validate_config(config_data)
        self.raw = validated

        # Only keys present in the file override the dataclass defaults
        overrides: Dict[str, Any] = {}
        section_fields = {
            'wallet': {
                'network': 'network',
                'mnemonic_strength': 'mnemonic_strength',
                'passphrase': 'passphrase',
                'chains': 'chains',
                'bitcoin_variants': 'bitcoin_variants',
                'tokens': 'tokens',
                'max_workers': 'max_workers',
            },
            'vault': {
                'scheme': 'vault_scheme',
                'salt': 'vault_salt',
                'legacy_salt': 'legacy_vault_salt',
                'master_secret': 'vault_master_secret',
            },
            'logging': {
                'level': 'log_level',
                'file': 'log_file',
                'format': 'log_format',
            },
            'storage': {
                'db_path': 'db_path',
            },
        }

        for section, mapping in section_fields.items():
            present = config_data.get(section) or {}
            for key, attribute in mapping.items():
                if key in present:
                    overrides[attribute] = validated[section][key]

        if overrides.get('vault_master_secret'):
            logger.warning("Vault master secret loaded from config file; prefer the environment")

        self.config = self._rebuild(overrides)

    def _apply_env_overrides(self):
        """Environment variables take precedence over the file"""
        overrides: Dict[str, Any] = {}
        env_fields = {
            'NETWORK': 'network',
            'VAULT_SECRET': 'vault_master_secret',
            'VAULT_SCHEME': 'vault_scheme',
            'LOG_LEVEL': 'log_level',
            'LOG_FILE': 'log_file',
            'DB_PATH': 'db_path',
            'MAX_WORKERS': 'max_workers',
        }

        for suffix, attribute in env_fields.items():
            value = self.environ.get(ENV_PREFIX + suffix)
            if value is None or value == "":
                continue
            if attribute == 'max_workers':
                try:
                    value = int(value)
                except ValueError as e:
                    raise ConfigurationError(f"{ENV_PREFIX}{suffix} must be an integer") from e
            overrides[attribute] = value

        if overrides:
            self.config = self._rebuild(overrides)

    def _rebuild(self, overrides: Dict[str, Any]) -> WalletConfig:
        current = {name: getattr(self.config, name) for name in self.config.__dataclass_fields__}
        current.update(overrides)
        try:
            return WalletConfig(**current)
        except ValueError as e:
            raise ConfigurationError(f"Invalid configuration value: {e}") from e

    def apply_overrides(self, overrides: Dict[str, Any]) -> WalletConfig:
        """Apply caller-supplied values, e.g. from command line flags"""
        self.config = self._rebuild(overrides)
        return self.config

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value using dot notation"""
        parts = key.split('.')
        if len(parts) == 1:
            return getattr(self.config, key, default)

        obj: Any = self.raw
        for part in parts:
            if isinstance(obj, dict) and part in obj:
                obj = obj[part]
            else:
                return default
        return obj

    def get_wallet_config(self) -> WalletConfig:
        return self.config

def init_config(config_path: Optional[str] = None) -> ConfigManager:
    """Initialize configuration manager"""
    return ConfigManager(config_path)
