"""
Tests for the kash-wallet command line tool.
"""

import io
import json

import pytest

from kash_wallet import cli
from kash_wallet.utils.logging import LogManager

ABANDON = " ".join(["abandon"] * 11 + ["about"])

@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch, master_secret):
    for name in ("NETWORK", "VAULT_SCHEME", "LOG_LEVEL", "LOG_FILE", "DB_PATH", "MAX_WORKERS"):
        monkeypatch.delenv(f"KASH_WALLET_{name}", raising=False)
    monkeypatch.setenv("KASH_WALLET_VAULT_SECRET", master_secret)
    yield
    # Handlers bound to the captured stderr must not outlive the test
    LogManager().reset()

def run(capsys, *argv):
    code = cli.main(list(argv))
    out, err = capsys.readouterr()
    return code, out, err

class TestMnemonicCommands:

    def test_generate(self, capsys, engine):
        code, out, _ = run(capsys, "generate", "--strength", "256")
        data = json.loads(out)

        assert code == 0
        assert data["strength"] == 256
        assert len(data["mnemonic"].split()) == 24
        assert engine.validate(data["mnemonic"])

    def test_validate_argument(self, capsys):
        code, out, _ = run(capsys, "validate", ABANDON)
        assert code == 0
        assert json.loads(out) == {"valid": True}

    def test_validate_rejects(self, capsys):
        code, out, _ = run(capsys, "validate", " ".join(["abandon"] * 12))
        assert code == 1
        assert json.loads(out) == {"valid": False}

    def test_validate_from_stdin(self, capsys, monkeypatch):
        monkeypatch.setattr("sys.stdin", io.StringIO(ABANDON + "\n"))
        code, _, _ = run(capsys, "validate")
        assert code == 0

    def test_derive(self, capsys):
        code, out, _ = run(capsys, "derive", ABANDON)
        slots = {entry["slot"]: entry for entry in json.loads(out)}

        assert code == 0
        assert slots["Ethereum-ETH-standard"]["address"] == "0x9858EfFD232B4033E47d90003D41EC34EcaEda94"
        assert slots["Bitcoin-BTC-Native SegWit"]["path"] == "m/84'/0'/0'/0/0"
        assert all("private" not in key for entry in slots.values() for key in entry)

    def test_derive_testnet(self, capsys):
        code, out, _ = run(capsys, "--network", "testnet", "derive", ABANDON)
        slots = {entry["slot"]: entry for entry in json.loads(out)}

        assert code == 0
        assert slots["Bitcoin-BTC-Native SegWit"]["address"].startswith("tb1q")

    def test_derive_invalid_mnemonic(self, capsys):
        code, out, err = run(capsys, "derive", "not a mnemonic")
        assert code == 1
        assert out == ""
        assert '"error": "InvalidMnemonicError"' in err

class TestOwnerCommands:

    def test_provision_in_memory(self, capsys):
        code, out, _ = run(capsys, "provision", "user-1", "--memory")
        data = json.loads(out)

        assert code == 0
        assert data["status"] == "created"
        assert len(data["addresses"]) == 6
        assert "mnemonic" not in data

    def test_provision_show_mnemonic(self, capsys, engine):
        code, out, _ = run(capsys, "provision", "user-1", "--memory", "--show-mnemonic")
        assert code == 0
        assert engine.validate(json.loads(out)["mnemonic"])

    def test_provision_without_vault_secret(self, capsys, monkeypatch):
        monkeypatch.delenv("KASH_WALLET_VAULT_SECRET")
        code, out, err = run(capsys, "provision", "user-1", "--memory")

        assert code == 1
        assert '"error": "ConfigurationError"' in err

    def test_provision_leveldb(self, capsys, tmp_path):
        pytest.importorskip("plyvel")
        db_path = str(tmp_path / "wallets")

        _, first, _ = run(capsys, "provision", "user-1", "--db-path", db_path)
        _, second, _ = run(capsys, "provision", "user-1", "--db-path", db_path)

        assert json.loads(second)["status"] == "existing"
        assert json.loads(second)["addresses"] == json.loads(first)["addresses"]

    def test_reveal_denied(self, capsys, monkeypatch):
        monkeypatch.setattr("builtins.input", lambda prompt="": "someone-else")
        code, out, err = run(capsys, "reveal", "user-1", "--memory")

        assert code == 1
        assert '"error": "BackupAccessDeniedError"' in err

    def test_reveal_leveldb(self, capsys, monkeypatch, tmp_path):
        pytest.importorskip("plyvel")
        db_path = str(tmp_path / "wallets")
        _, out, _ = run(capsys, "provision", "user-1", "--db-path", db_path, "--show-mnemonic")
        generated = json.loads(out)["mnemonic"]

        monkeypatch.setattr("builtins.input", lambda prompt="": "user-1")
        code, out, _ = run(capsys, "reveal", "user-1", "--db-path", db_path)

        assert code == 0
        assert json.loads(out)["mnemonic"] == generated

    def test_no_command(self, capsys):
        assert cli.main([]) == 2
