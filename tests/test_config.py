"""
Tests for configuration loading and validation.
"""

import pytest
import yaml

from kash_wallet.core.config import ConfigManager, WalletConfig
from kash_wallet.core.exceptions import ConfigurationError
from kash_wallet.core.wallet_types import VaultScheme, WalletVariant

def write_config(tmp_path, data):
    path = tmp_path / "wallet.yaml"
    path.write_text(yaml.safe_dump(data))
    return str(path)

class TestDefaults:
    """Built-in configuration."""

    def test_default_values(self):
        config = WalletConfig()
        assert config.network == "mainnet"
        assert config.mnemonic_strength == 128
        assert config.chains == ["bitcoin", "ethereum", "solana"]
        assert config.bitcoin_variants == [WalletVariant.NATIVE_SEGWIT, WalletVariant.TAPROOT]
        assert config.vault_scheme == VaultScheme.AES_SIV

    def test_default_slots(self):
        slots = [(spec.key, variant) for spec, variant in WalletConfig().slots()]
        assert slots == [
            ("bitcoin", WalletVariant.NATIVE_SEGWIT),
            ("bitcoin", WalletVariant.TAPROOT),
            ("ethereum", WalletVariant.STANDARD),
            ("solana", WalletVariant.STANDARD),
        ]

    def test_tokens_on_disabled_chains_are_skipped(self):
        hosts = {token.chain for token in WalletConfig().enabled_tokens()}
        assert hosts == {"ethereum", "solana"}

    def test_display_names_are_canonicalised(self):
        assert WalletConfig(chains=["Ethereum", "TRON"]).chains == ["ethereum", "tron"]

    def test_secret_hidden_from_repr(self):
        assert "hunter2" not in repr(WalletConfig(vault_master_secret="hunter2"))

class TestFileLoading:
    """YAML configuration files."""

    def test_no_file_gives_defaults(self):
        manager = ConfigManager(environ={})
        assert manager.config == WalletConfig()

    def test_only_present_keys_override(self, tmp_path):
        path = write_config(tmp_path, {"wallet": {"network": "testnet"}})
        config = ConfigManager(path, environ={}).config

        assert config.network == "testnet"
        assert config.chains == ["bitcoin", "ethereum", "solana"]
        assert config.mnemonic_strength == 128

    def test_sections_map_to_fields(self, tmp_path):
        path = write_config(tmp_path, {
            "wallet": {"chains": ["ethereum", "tron", "sui"], "mnemonic_strength": 256,
                       "tokens": [{"chain": "tron", "symbol": "USDT"}]},
            "vault": {"scheme": "legacy-xor", "salt": "pepper"},
            "logging": {"level": "debug", "format": "json"},
            "storage": {"db_path": "/var/lib/wallets"},
        })
        config = ConfigManager(path, environ={}).config

        assert config.chains == ["ethereum", "tron", "sui"]
        assert config.mnemonic_strength == 256
        assert [(t.chain, t.symbol) for t in config.tokens] == [("tron", "USDT")]
        assert config.vault_scheme == VaultScheme.LEGACY_XOR
        assert config.vault_salt == "pepper"
        assert config.log_level == "DEBUG"
        assert config.log_format == "json"
        assert config.db_path == "/var/lib/wallets"

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError):
            ConfigManager(str(tmp_path / "absent.yaml"), environ={})

    def test_non_mapping_file(self, tmp_path):
        path = tmp_path / "wallet.yaml"
        path.write_text("- just\n- a list\n")
        with pytest.raises(ConfigurationError):
            ConfigManager(str(path), environ={})

    @pytest.mark.parametrize("data", [
        {"wallet": {"mnemonic_strength": 100}},
        {"wallet": {"network": "regtest"}},
        {"wallet": {"chains": ["dogecoin"]}},
        {"wallet": {"bitcoin_variants": ["Segwit v9"]}},
        {"wallet": {"max_workers": 0}},
        {"wallet": {"unexpected": True}},
        {"logging": {"level": "chatty"}},
    ])
    def test_invalid_values_rejected(self, tmp_path, data):
        with pytest.raises(ConfigurationError):
            ConfigManager(write_config(tmp_path, data), environ={})

    def test_dotted_get(self, tmp_path):
        path = write_config(tmp_path, {"vault": {"salt": "pepper"}})
        manager = ConfigManager(path, environ={})

        assert manager.get("vault.salt") == "pepper"
        assert manager.get("wallet.network") == "mainnet"
        assert manager.get("vault.nothing", "fallback") == "fallback"
        assert manager.get("network") == "mainnet"

class TestEnvironment:
    """KASH_WALLET_* environment overrides."""

    def test_env_beats_file(self, tmp_path):
        path = write_config(tmp_path, {"wallet": {"network": "testnet", "max_workers": 2}})
        config = ConfigManager(path, environ={
            "KASH_WALLET_NETWORK": "mainnet",
            "KASH_WALLET_MAX_WORKERS": "8",
            "KASH_WALLET_VAULT_SECRET": "s" * 32,
        }).config

        assert config.network == "mainnet"
        assert config.max_workers == 8
        assert config.vault_master_secret == "s" * 32

    def test_empty_values_ignored(self):
        config = ConfigManager(environ={"KASH_WALLET_NETWORK": ""}).config
        assert config.network == "mainnet"

    def test_bad_integer(self):
        with pytest.raises(ConfigurationError):
            ConfigManager(environ={"KASH_WALLET_MAX_WORKERS": "many"})

    def test_bad_scheme(self):
        with pytest.raises(ConfigurationError):
            ConfigManager(environ={"KASH_WALLET_VAULT_SCHEME": "rot13"})

class TestOverrides:

    def test_apply_overrides(self):
        manager = ConfigManager(environ={})
        config = manager.apply_overrides({"network": "testnet"})

        assert config.network == "testnet"
        assert manager.config is config
        assert manager.get_wallet_config() is config

    def test_invalid_override(self):
        with pytest.raises(ConfigurationError):
            ConfigManager(environ={}).apply_overrides({"network": "moon"})
