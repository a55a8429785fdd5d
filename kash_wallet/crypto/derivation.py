# kash_wallet/crypto/derivation.py
import hashlib
import hmac
import struct
from dataclasses import dataclass
from typing import Tuple

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec, ed25519

from kash_wallet.core.wallet_types import Curve, ExtendedKey
from kash_wallet.core.exceptions import DerivationError

HARDENED_OFFSET = 0x80000000
MAX_INDEX = HARDENED_OFFSET - 1
SECP256K1_ORDER = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141

CURVE_SEEDS = {
    Curve.SECP256K1: b"Bitcoin seed",
    Curve.ED25519: b"ed25519 seed",
}

HARDENED_MARKERS = ("'", "h", "H")

@dataclass(frozen=True)
class DerivationPath:
    """Parsed ``m/...`` path; indexes already carry the hardened offset"""
    indexes: Tuple[int, ...]

    @classmethod
    def parse(cls, text: str) -> "DerivationPath":
        if not isinstance(text, str):
            raise DerivationError(f"Derivation path must be a string, got {type(text).__name__}")

        parts = text.strip().split("/")
        if not parts or parts[0] not in ("m", "M"):
            raise DerivationError(f"Derivation path must start with 'm': {text!r}")

        indexes = []
        for segment in parts[1:]:
            hardened = segment.endswith(HARDENED_MARKERS)
            digits = segment[:-1] if hardened else segment
            if not (digits.isascii() and digits.isdigit()):
                raise DerivationError(f"Invalid path segment {segment!r} in {text!r}")

            index = int(digits)
            if index > MAX_INDEX:
                raise DerivationError(f"Path index {index} out of range in {text!r}")

            indexes.append(index + HARDENED_OFFSET if hardened else index)

        return cls(tuple(indexes))

    def hardened(self) -> "DerivationPath":
        """Copy with every segment hardened"""
        return DerivationPath(tuple(index | HARDENED_OFFSET for index in self.indexes))

    @property
    def depth(self) -> int:
        return len(self.indexes)

    def __str__(self) -> str:
        segments = ["m"]
        for index in self.indexes:
            if index >= HARDENED_OFFSET:
                segments.append(f"{index - HARDENED_OFFSET}'")
            else:
                segments.append(str(index))
        return "/".join(segments)

def is_hardened(index: int) -> bool:
    return index >= HARDENED_OFFSET

def _hmac_sha512(key: bytes, data: bytes) -> Tuple[bytes, bytes]:
    digest = hmac.new(key, data, hashlib.sha512).digest()
    return digest[:32], digest[32:]

def secp256k1_public_key(private_key: bytes, compressed: bool = True) -> bytes:
    """SEC1 encoded public key for a 32-byte scalar"""
    try:
        key = ec.derive_private_key(int.from_bytes(private_key, 'big'), ec.SECP256K1())
    except ValueError as e:
        raise DerivationError(f"Invalid secp256k1 private key: {e}") from e

    encoding = (serialization.PublicFormat.CompressedPoint if compressed
                else serialization.PublicFormat.UncompressedPoint)
    return key.public_key().public_bytes(serialization.Encoding.X962, encoding)

def ed25519_public_key(private_key: bytes) -> bytes:
    """Raw 32-byte ed25519 public key"""
    try:
        key = ed25519.Ed25519PrivateKey.from_private_bytes(private_key)
    except ValueError as e:
        raise DerivationError(f"Invalid ed25519 private key: {e}") from e
    return key.public_key().public_bytes(serialization.Encoding.Raw, serialization.PublicFormat.Raw)

def master_key(seed: bytes, curve: Curve = Curve.SECP256K1) -> ExtendedKey:
    """Master extended key from a binary seed"""
    if not 16 <= len(seed) <= 64:
        raise DerivationError(f"Seed length {len(seed)} outside 16..64 bytes")

    key, chain_code = _hmac_sha512(CURVE_SEEDS[curve], seed)

    if curve == Curve.SECP256K1:
        scalar = int.from_bytes(key, 'big')
        if scalar == 0 or scalar >= SECP256K1_ORDER:
            raise DerivationError("Master key outside the secp256k1 group order")

    return ExtendedKey(key=key, chain_code=chain_code, curve=curve)

def derive_child(parent: ExtendedKey, index: int) -> ExtendedKey:
    """One derivation step (BIP-32 for secp256k1, SLIP-10 for ed25519)"""
    if not 0 <= index <= 0xFFFFFFFF:
        raise DerivationError(f"Child index {index} out of range")

    hardened = is_hardened(index)
    if hardened:
        data = b"\x00" + parent.key + struct.pack(">L", index)
    elif parent.curve == Curve.ED25519:
        raise DerivationError("ed25519 derivation supports hardened indexes only")
    else:
        data = secp256k1_public_key(parent.key) + struct.pack(">L", index)

    il, chain_code = _hmac_sha512(parent.chain_code, data)

    if parent.curve == Curve.ED25519:
        child_key = il
    else:
        tweak = int.from_bytes(il, 'big')
        if tweak >= SECP256K1_ORDER:
            raise DerivationError(f"Invalid child at index {index}: tweak exceeds group order")
        scalar = (tweak + int.from_bytes(parent.key, 'big')) % SECP256K1_ORDER
        if scalar == 0:
            raise DerivationError(f"Invalid child at index {index}: zero key")
        child_key = scalar.to_bytes(32, 'big')

    segment = f"{index - HARDENED_OFFSET}'" if hardened else str(index)
    return ExtendedKey(
        key=child_key,
        chain_code=chain_code,
        curve=parent.curve,
        depth=parent.depth + 1,
        index=index,
        path=f"{parent.path}/{segment}",
    )

def derive(seed: bytes, path, curve: Curve = Curve.SECP256K1) -> ExtendedKey:
    """Walk every segment of ``path`` from the seed's master key"""
    if not isinstance(path, DerivationPath):
        path = DerivationPath.parse(path)

    node = master_key(seed, curve)
    for index in path.indexes:
        node = derive_child(node, index)
    return node
