# kash_wallet/crypto/mnemonic.py
from typing import Optional

from mnemonic import Mnemonic

from kash_wallet.core.exceptions import InvalidMnemonicError
from kash_wallet.utils.logging import logger

VALID_STRENGTHS = (128, 160, 192, 224, 256)
VALID_WORD_COUNTS = (12, 15, 18, 21, 24)
SEED_LENGTH = 64

def normalize_phrase(phrase: str) -> str:
    """Collapse runs of whitespace to single spaces"""
    return " ".join(phrase.split())

class MnemonicEngine:
    """BIP-39 English mnemonic generation, validation and seed derivation"""

    def __init__(self, language: str = "english"):
        self.language = language
        self._mnemo = Mnemonic(language)

    def generate(self, strength: int = 128) -> str:
        """Generate a new mnemonic from CSPRNG entropy"""
        if strength not in VALID_STRENGTHS:
            raise InvalidMnemonicError(
                f"Invalid strength {strength}; expected one of {VALID_STRENGTHS}")

        phrase = self._mnemo.generate(strength=strength)

        # Never hand out a phrase that would fail our own check
        if not self.validate(phrase):
            raise InvalidMnemonicError("Generated mnemonic failed validation")

        logger.debug("Mnemonic generated", strength=strength, words=len(phrase.split()))
        return phrase

    def validate(self, phrase) -> bool:
        """Word-list membership and checksum check"""
        if not isinstance(phrase, str):
            return False

        normalized = normalize_phrase(phrase)
        if not normalized:
            return False

        words = normalized.split(" ")
        if len(words) not in VALID_WORD_COUNTS:
            return False

        try:
            return bool(self._mnemo.check(normalized))
        except (ValueError, LookupError):
            return False

    def ensure_valid(self, phrase) -> str:
        """Return the normalised phrase or raise InvalidMnemonicError"""
        if not self.validate(phrase):
            raise InvalidMnemonicError("Mnemonic failed word-list or checksum validation")
        return normalize_phrase(phrase)

    def to_seed(self, phrase: str, passphrase: str = "") -> bytes:
        """BIP-39 binary seed"""
        normalized = self.ensure_valid(phrase)
        seed = Mnemonic.to_seed(normalized, passphrase or "")
        if len(seed) != SEED_LENGTH:
            raise InvalidMnemonicError(f"Unexpected seed length {len(seed)}")
        return seed

    def to_entropy(self, phrase: str) -> bytes:
        normalized = self.ensure_valid(phrase)
        return bytes(self._mnemo.to_entropy(normalized))

    def from_entropy(self, entropy: bytes) -> str:
        if len(entropy) * 8 not in VALID_STRENGTHS:
            raise InvalidMnemonicError(f"Invalid entropy length {len(entropy)} bytes")
        return self._mnemo.to_mnemonic(entropy)

_default_engine: Optional[MnemonicEngine] = None

def get_engine() -> MnemonicEngine:
    """Shared English engine; word list loading is not free"""
    global _default_engine
    if _default_engine is None:
        _default_engine = MnemonicEngine()
    return _default_engine

def generate_mnemonic(strength: int = 128) -> str:
    return get_engine().generate(strength)

def validate_mnemonic(phrase) -> bool:
    return get_engine().validate(phrase)

def mnemonic_to_seed(phrase: str, passphrase: str = "") -> bytes:
    return get_engine().to_seed(phrase, passphrase)
