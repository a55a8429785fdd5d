# kash_wallet/crypto/address.py
import hashlib
from typing import Tuple

import base58
from bip_utils import SegwitBech32Decoder, SegwitBech32Encoder
from Crypto.Hash import RIPEMD160, keccak
from ecdsa import SECP256k1, VerifyingKey
from ecdsa.ellipticcurve import INFINITY

from kash_wallet.core.wallet_types import AddressFormat
from kash_wallet.core.exceptions import DerivationError, InvalidAddressError

TRON_PREFIX = b"\x41"
SUI_ED25519_FLAG = b"\x00"

SEGWIT_HRP = {"mainnet": "bc", "testnet": "tb"}
P2PKH_VERSION = {"mainnet": b"\x00", "testnet": b"\x6f"}
P2SH_VERSION = {"mainnet": b"\x05", "testnet": b"\xc4"}

def keccak256(data: bytes) -> bytes:
    """Keccak-256 (Ethereum flavour, not NIST SHA3)"""
    k = keccak.new(digest_bits=256)
    k.update(data)
    return k.digest()

def hash160(data: bytes) -> bytes:
    """RIPEMD160(SHA256(data))"""
    return RIPEMD160.new(hashlib.sha256(data).digest()).digest()

def tagged_hash(tag: str, data: bytes) -> bytes:
    """BIP-340 tagged hash"""
    tag_hash = hashlib.sha256(tag.encode()).digest()
    return hashlib.sha256(tag_hash + tag_hash + data).digest()

def _uncompressed_body(public_key: bytes) -> bytes:
    """64-byte X||Y from a SEC1 public key"""
    if len(public_key) == 64:
        return public_key
    if len(public_key) == 65 and public_key[0] == 0x04:
        return public_key[1:]
    if len(public_key) == 33 and public_key[0] in (0x02, 0x03):
        try:
            point = VerifyingKey.from_string(public_key, curve=SECP256k1)
        except Exception as e:
            raise DerivationError(f"Invalid compressed public key: {e}") from e
        return point.to_string("raw")
    raise DerivationError(f"Unsupported secp256k1 public key length {len(public_key)}")

def _compressed(public_key: bytes) -> bytes:
    if len(public_key) == 33 and public_key[0] in (0x02, 0x03):
        return public_key
    body = _uncompressed_body(public_key)
    prefix = b"\x03" if body[-1] & 1 else b"\x02"
    return prefix + body[:32]

def to_checksum_address(address_hex: str) -> str:
    """EIP-55 mixed-case checksum"""
    address_hex = address_hex.lower().replace("0x", "", 1)
    digest = keccak256(address_hex.encode("ascii")).hex()

    checksummed = "".join(
        char.upper() if char.isalpha() and int(digest[i], 16) >= 8 else char
        for i, char in enumerate(address_hex)
    )
    return "0x" + checksummed

def evm_address(public_key: bytes) -> str:
    """EIP-55 address from a secp256k1 public key"""
    body = keccak256(_uncompressed_body(public_key))[-20:]
    return to_checksum_address(body.hex())

def tron_address(public_key: bytes) -> str:
    """Base58check address with the 0x41 Tron prefix"""
    body = keccak256(_uncompressed_body(public_key))[-20:]
    return base58.b58encode_check(TRON_PREFIX + body).decode("ascii")

def solana_address(public_key: bytes) -> str:
    if len(public_key) != 32:
        raise DerivationError(f"Solana public key must be 32 bytes, got {len(public_key)}")
    return base58.b58encode(public_key).decode("ascii")

def sui_address(public_key: bytes) -> str:
    if len(public_key) != 32:
        raise DerivationError(f"Sui ed25519 public key must be 32 bytes, got {len(public_key)}")
    return "0x" + hashlib.blake2b(SUI_ED25519_FLAG + public_key, digest_size=32).hexdigest()

def _hrp(network: str) -> str:
    try:
        return SEGWIT_HRP[network]
    except KeyError:
        raise DerivationError(f"Unknown network: {network}") from None

def p2wpkh_address(public_key: bytes, network: str = "mainnet") -> str:
    """BIP-84 native segwit (witness v0, bech32)"""
    return SegwitBech32Encoder.Encode(_hrp(network), 0, hash160(_compressed(public_key)))

def taproot_output_key(public_key: bytes) -> bytes:
    """BIP-86 tweaked x-only output key with no script path"""
    x_only = _compressed(public_key)[1:]
    tweak = int.from_bytes(tagged_hash("TapTweak", x_only), "big")
    if tweak >= SECP256k1.order:
        raise DerivationError("Taproot tweak exceeds the group order")

    # Internal key lifted to even Y per BIP-340
    internal = VerifyingKey.from_string(b"\x02" + x_only, curve=SECP256k1).pubkey.point
    output = internal + SECP256k1.generator * tweak
    if output == INFINITY:
        raise DerivationError("Taproot output key is the point at infinity")
    return output.x().to_bytes(32, "big")

def p2tr_address(public_key: bytes, network: str = "mainnet") -> str:
    """BIP-86 taproot (witness v1, bech32m)"""
    return SegwitBech32Encoder.Encode(_hrp(network), 1, taproot_output_key(public_key))

def p2pkh_address(public_key: bytes, network: str = "mainnet") -> str:
    """BIP-44 legacy pay-to-pubkey-hash"""
    version = P2PKH_VERSION.get(network)
    if version is None:
        raise DerivationError(f"Unknown network: {network}")
    return base58.b58encode_check(version + hash160(_compressed(public_key))).decode("ascii")

def p2sh_p2wpkh_address(public_key: bytes, network: str = "mainnet") -> str:
    """BIP-49 segwit nested in pay-to-script-hash"""
    version = P2SH_VERSION.get(network)
    if version is None:
        raise DerivationError(f"Unknown network: {network}")
    redeem_script = b"\x00\x14" + hash160(_compressed(public_key))
    return base58.b58encode_check(version + hash160(redeem_script)).decode("ascii")

ENCODERS = {
    AddressFormat.EIP55: lambda pk, network: evm_address(pk),
    AddressFormat.TRON: lambda pk, network: tron_address(pk),
    AddressFormat.SOLANA: lambda pk, network: solana_address(pk),
    AddressFormat.SUI: lambda pk, network: sui_address(pk),
    AddressFormat.P2WPKH: p2wpkh_address,
    AddressFormat.P2TR: p2tr_address,
    AddressFormat.P2PKH: p2pkh_address,
    AddressFormat.P2SH_P2WPKH: p2sh_p2wpkh_address,
}

def encode_address(address_format: AddressFormat, public_key: bytes, network: str = "mainnet") -> str:
    """Encode ``public_key`` in the given address format"""
    return ENCODERS[address_format](public_key, network)

def decode_segwit(address: str, network: str = "mainnet") -> Tuple[int, bytes]:
    """(witness version, witness program) of a bech32/bech32m address"""
    hrp = SEGWIT_HRP.get(network)
    if hrp is None:
        raise InvalidAddressError(f"Unknown network: {network}")
    try:
        version, program = SegwitBech32Decoder.Decode(hrp, address)
    except Exception as e:
        raise InvalidAddressError(f"Invalid segwit address {address!r}: {e}") from e
    return version, bytes(program)

def decode_base58check(address: str) -> bytes:
    try:
        return base58.b58decode_check(address)
    except ValueError as e:
        raise InvalidAddressError(f"Invalid base58check address {address!r}: {e}") from e
