import re
from typing import Optional

import base58

from kash_wallet.core.chains import get_chain
from kash_wallet.core.wallet_types import AddressFormat, WalletVariant
from kash_wallet.core.exceptions import WalletError, InvalidAddressError
from kash_wallet.crypto.address import (
    TRON_PREFIX, P2PKH_VERSION, P2SH_VERSION,
    to_checksum_address, decode_segwit, decode_base58check,
)
from kash_wallet.crypto.derivation import DerivationPath

_EVM_PATTERN = re.compile(r'^0x[a-fA-F0-9]{40}$')
_SUI_PATTERN = re.compile(r'^0x[a-f0-9]{64}$')

def validate_address(address: str, chain: str, network: str = "mainnet",
                     variant: Optional[WalletVariant] = None) -> bool:
    """Validate an address for ``chain`` (any variant unless one is given)"""
    if not isinstance(address, str) or not address:
        return False

    try:
        spec = get_chain(chain)
    except WalletError:
        return False

    try:
        variants = [spec.variant(variant)] if variant else list(spec.variants)
    except WalletError:
        return False

    for variant_spec in variants:
        try:
            if _VALIDATORS[variant_spec.address_format](address, network):
                return True
        except InvalidAddressError:
            continue
    return False

def _not_placeholder(payload: bytes) -> bool:
    """All-zero payloads only come from stubbed derivation"""
    return any(payload)

def _validate_evm_address(address: str, network: str) -> bool:
    if not _EVM_PATTERN.match(address):
        return False
    if not _not_placeholder(bytes.fromhex(address[2:])):
        return False

    body = address[2:]
    # Single-case addresses carry no checksum
    if body == body.lower() or body == body.upper():
        return True
    return to_checksum_address(body) == address

def _validate_tron_address(address: str, network: str) -> bool:
    payload = decode_base58check(address)
    return len(payload) == 21 and payload[:1] == TRON_PREFIX and _not_placeholder(payload[1:])

def _validate_solana_address(address: str, network: str) -> bool:
    try:
        raw = base58.b58decode(address)
    except ValueError:
        return False
    return len(raw) == 32 and _not_placeholder(raw)

def _validate_sui_address(address: str, network: str) -> bool:
    return bool(_SUI_PATTERN.match(address)) and _not_placeholder(bytes.fromhex(address[2:]))

def _validate_segwit(address: str, network: str, version: int, length: int) -> bool:
    decoded_version, program = decode_segwit(address, network)
    return decoded_version == version and len(program) == length and _not_placeholder(program)

def _validate_p2wpkh_address(address: str, network: str) -> bool:
    return _validate_segwit(address, network, 0, 20)

def _validate_p2tr_address(address: str, network: str) -> bool:
    return _validate_segwit(address, network, 1, 32)

def _validate_base58_version(address: str, version: Optional[bytes]) -> bool:
    if version is None:
        return False
    payload = decode_base58check(address)
    return len(payload) == 21 and payload[:1] == version and _not_placeholder(payload[1:])

def _validate_p2pkh_address(address: str, network: str) -> bool:
    return _validate_base58_version(address, P2PKH_VERSION.get(network))

def _validate_p2sh_address(address: str, network: str) -> bool:
    return _validate_base58_version(address, P2SH_VERSION.get(network))

_VALIDATORS = {
    AddressFormat.EIP55: _validate_evm_address,
    AddressFormat.TRON: _validate_tron_address,
    AddressFormat.SOLANA: _validate_solana_address,
    AddressFormat.SUI: _validate_sui_address,
    AddressFormat.P2WPKH: _validate_p2wpkh_address,
    AddressFormat.P2TR: _validate_p2tr_address,
    AddressFormat.P2PKH: _validate_p2pkh_address,
    AddressFormat.P2SH_P2WPKH: _validate_p2sh_address,
}

def is_valid_derivation_path(path: str) -> bool:
    """Check derivation path syntax"""
    try:
        DerivationPath.parse(path)
    except WalletError:
        return False
    return True
