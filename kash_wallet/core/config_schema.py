# kash_wallet/core/config_schema.py - Configuration schema validation

from typing import Dict, Any, List, Optional
from enum import Enum
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from kash_wallet.core.exceptions import ConfigurationError

class NetworkType(str, Enum):
    MAINNET = "mainnet"
    TESTNET = "testnet"

class VaultSchemeType(str, Enum):
    AES_SIV = "aes-256-siv"
    LEGACY_XOR = "legacy-xor"

class TokenSchema(BaseModel):
    chain: str
    symbol: str = Field(min_length=1, max_length=16)

class WalletSectionSchema(BaseModel):
    model_config = ConfigDict(extra="forbid")

    network: NetworkType = Field(default=NetworkType.MAINNET)
    mnemonic_strength: int = Field(default=128)
    passphrase: str = Field(default="")
    chains: List[str] = Field(default_factory=lambda: ["bitcoin", "ethereum", "solana"])
    bitcoin_variants: List[str] = Field(default_factory=lambda: ["Native SegWit", "Taproot"])
    tokens: List[TokenSchema] = Field(default_factory=list)
    max_workers: int = Field(default=4, ge=1, le=64)

    @field_validator("mnemonic_strength")
    @classmethod
    def _strength_is_bip39(cls, value: int) -> int:
        if value not in (128, 160, 192, 224, 256):
            raise ValueError("mnemonic_strength must be one of 128, 160, 192, 224, 256")
        return value

class VaultSectionSchema(BaseModel):
    model_config = ConfigDict(extra="forbid")

    scheme: VaultSchemeType = Field(default=VaultSchemeType.AES_SIV)
    salt: str = Field(default="kash-wallet-key-vault", min_length=1)
    legacy_salt: str = Field(default="KASH_SECURE_SALT_DO_NOT_CHANGE", min_length=1)
    master_secret: Optional[str] = Field(default=None)

class LoggingSectionSchema(BaseModel):
    model_config = ConfigDict(extra="forbid")

    level: str = Field(default="INFO")
    file: Optional[str] = Field(default=None)
    format: str = Field(default="detailed")

    @field_validator("level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        value = value.upper()
        if value not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"unknown log level {value}")
        return value

class StorageSectionSchema(BaseModel):
    model_config = ConfigDict(extra="forbid")

    db_path: str = Field(default="./kash_wallet_data")

class ConfigSchema(BaseModel):
    wallet: WalletSectionSchema = Field(default_factory=WalletSectionSchema)
    vault: VaultSectionSchema = Field(default_factory=VaultSectionSchema)
    logging: LoggingSectionSchema = Field(default_factory=LoggingSectionSchema)
    storage: StorageSectionSchema = Field(default_factory=StorageSectionSchema)

def validate_config(config_dict: Dict[str, Any]) -> Dict[str, Any]:
    """Validate configuration dictionary against schema"""
    try:
        validated_config = ConfigSchema.model_validate(config_dict or {})
        return validated_config.model_dump(mode="json")
    except ValidationError as e:
        raise ConfigurationError(f"Configuration validation error: {e}") from e
