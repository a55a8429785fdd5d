"""
Tests for BIP-39 mnemonic generation, validation and seed derivation.
"""

import pytest

from kash_wallet.core.exceptions import InvalidMnemonicError
from kash_wallet.crypto.mnemonic import MnemonicEngine, normalize_phrase, validate_mnemonic

TREZOR_SEED = (
    "c55257c360c07c72029aebc1b53c05ed0362ada38ead3e3e9efa3708e53495531f"
    "09a6987599d18264c1e1c92f2cf141630c7a3c4ab7c81b2f001698e7463b04"
)

class TestGenerate:
    """Tests for mnemonic generation."""

    @pytest.mark.parametrize("strength,words", [(128, 12), (160, 15), (192, 18), (224, 21), (256, 24)])
    def test_word_count_matches_strength(self, engine, strength, words):
        phrase = engine.generate(strength)
        assert len(phrase.split(" ")) == words
        assert engine.validate(phrase)

    def test_generated_phrases_are_unique(self, engine):
        phrases = {engine.generate() for _ in range(20)}
        assert len(phrases) == 20, "Each generation should use fresh entropy"

    @pytest.mark.parametrize("strength", [0, 64, 127, 129, 512])
    def test_rejects_unsupported_strength(self, engine, strength):
        with pytest.raises(InvalidMnemonicError):
            engine.generate(strength)

class TestValidate:
    """Tests for word-list and checksum validation."""

    def test_known_phrase_is_valid(self, engine, abandon_mnemonic):
        assert engine.validate(abandon_mnemonic)

    def test_bad_checksum_is_invalid(self, engine):
        assert not engine.validate(" ".join(["abandon"] * 12))

    def test_unknown_word_is_invalid(self, engine):
        assert not engine.validate(" ".join(["abandon"] * 11 + ["notaword"]))

    def test_wrong_word_count_is_invalid(self, engine):
        assert not engine.validate(" ".join(["abandon"] * 10 + ["about"]))

    @pytest.mark.parametrize("value", ["", "   ", None, 12345, b"abandon about"])
    def test_empty_and_non_string_are_invalid(self, engine, value):
        assert engine.validate(value) is False

    def test_whitespace_is_normalised(self, engine, abandon_mnemonic):
        messy = "  " + abandon_mnemonic.replace(" ", "   \t") + "\n"
        assert engine.validate(messy)
        assert engine.ensure_valid(messy) == abandon_mnemonic
        assert normalize_phrase(messy) == abandon_mnemonic

    def test_ensure_valid_raises(self, engine):
        with pytest.raises(InvalidMnemonicError):
            engine.ensure_valid("not a mnemonic at all")

    def test_module_helper(self, abandon_mnemonic):
        assert validate_mnemonic(abandon_mnemonic)

class TestSeed:
    """Tests for BIP-39 seed derivation."""

    def test_seed_with_passphrase_matches_reference_vector(self, engine, abandon_mnemonic):
        assert engine.to_seed(abandon_mnemonic, "TREZOR").hex() == TREZOR_SEED

    def test_seed_is_deterministic(self, engine, abandon_mnemonic):
        assert engine.to_seed(abandon_mnemonic) == engine.to_seed(abandon_mnemonic)
        assert len(engine.to_seed(abandon_mnemonic)) == 64

    def test_passphrase_changes_seed(self, engine, abandon_mnemonic):
        assert engine.to_seed(abandon_mnemonic) != engine.to_seed(abandon_mnemonic, "extra")

    def test_invalid_phrase_never_reaches_pbkdf2(self, engine, monkeypatch):
        calls = []
        monkeypatch.setattr("kash_wallet.crypto.mnemonic.Mnemonic.to_seed",
                            lambda *args, **kwargs: calls.append(args))
        with pytest.raises(InvalidMnemonicError):
            engine.to_seed(" ".join(["abandon"] * 12))
        assert calls == []

class TestEntropy:
    """Tests for entropy conversion used by backup tooling."""

    def test_zero_entropy_round_trip(self, engine, abandon_mnemonic):
        assert engine.to_entropy(abandon_mnemonic) == bytes(16)
        assert engine.from_entropy(bytes(16)) == abandon_mnemonic

    def test_from_entropy_rejects_bad_length(self, engine):
        with pytest.raises(InvalidMnemonicError):
            engine.from_entropy(bytes(15))
