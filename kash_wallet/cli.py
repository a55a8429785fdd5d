#!/usr/bin/env python3
"""
kash-wallet command line tool

Generates and checks mnemonics, derives addresses and provisions owners
against the configured wallet store.
"""

import argparse
import json
import sys
from typing import Any, List, Optional

from kash_wallet.core.config import ConfigManager
from kash_wallet.core.exceptions import WalletError
from kash_wallet.core.provisioning import WalletProvisioner, derive_wallets
from kash_wallet.crypto.mnemonic import MnemonicEngine
from kash_wallet.storage.memory import InMemoryWalletStore
from kash_wallet.utils.logging import setup_logging, logger

def _emit(data: Any) -> None:
    print(json.dumps(data, indent=2, default=str))

def _read_phrase(args) -> str:
    if args.mnemonic:
        return args.mnemonic
    return sys.stdin.readline().strip()

def _open_store(args, config):
    if args.memory:
        return InMemoryWalletStore()
    # plyvel is an optional extra
    from kash_wallet.storage.database import LevelDBWalletStore
    return LevelDBWalletStore(args.db_path or config.db_path)

def cmd_generate(args, manager: ConfigManager) -> int:
    engine = MnemonicEngine()
    strength = args.strength or manager.config.mnemonic_strength
    _emit({'mnemonic': engine.generate(strength), 'strength': strength})
    return 0

def cmd_validate(args, manager: ConfigManager) -> int:
    valid = MnemonicEngine().validate(_read_phrase(args))
    _emit({'valid': valid})
    return 0 if valid else 1

def cmd_derive(args, manager: ConfigManager) -> int:
    keypairs = derive_wallets(manager.config, _read_phrase(args), args.passphrase)
    try:
        _emit([{
            'slot': keypair.slot,
            'path': keypair.path,
            'address': keypair.address,
        } for keypair in keypairs])
    finally:
        for keypair in keypairs:
            keypair.drop_private_key()
    return 0

def cmd_provision(args, manager: ConfigManager) -> int:
    store = _open_store(args, manager.config)
    try:
        result = WalletProvisioner(manager.config, store).provision(args.owner_id)
    finally:
        if hasattr(store, 'close'):
            store.close()

    output = {
        'owner_id': result.owner_id,
        'status': result.status.value,
        'addresses': result.addresses,
        'created': [record.key for record in result.created],
        'failures': result.failures,
    }
    if result.mnemonic and args.show_mnemonic:
        output['mnemonic'] = result.mnemonic
    _emit(output)
    return 1 if result.failures else 0

def cmd_reveal(args, manager: ConfigManager) -> int:
    store = _open_store(args, manager.config)

    def confirm() -> bool:
        answer = input(f"Type the owner id ({args.owner_id}) to confirm backup access: ")
        return answer.strip() == args.owner_id

    try:
        phrase = WalletProvisioner(manager.config, store).reveal_mnemonic(args.owner_id, confirm)
    finally:
        if hasattr(store, 'close'):
            store.close()
    _emit({'owner_id': args.owner_id, 'mnemonic': phrase})
    return 0

COMMANDS = {
    'generate': cmd_generate,
    'validate': cmd_validate,
    'derive': cmd_derive,
    'provision': cmd_provision,
    'reveal': cmd_reveal,
}

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog='kash-wallet', description='Custodial multi-chain HD wallet tool')
    parser.add_argument('--config', help='Path to YAML configuration file')
    parser.add_argument('--network', choices=['mainnet', 'testnet'], help='Override configured network')
    parser.add_argument('--log-level', choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
                        help='Override configured log level')

    subparsers = parser.add_subparsers(dest='command', help='Command to execute')

    generate_parser = subparsers.add_parser('generate', help='Generate a new mnemonic')
    generate_parser.add_argument('--strength', type=int, choices=[128, 160, 192, 224, 256],
                                 help='Entropy bits')

    validate_parser = subparsers.add_parser('validate', help='Check a mnemonic (reads stdin if omitted)')
    validate_parser.add_argument('mnemonic', nargs='?', help='Mnemonic phrase')

    derive_parser = subparsers.add_parser('derive', help='Derive configured addresses for a mnemonic')
    derive_parser.add_argument('mnemonic', nargs='?', help='Mnemonic phrase (reads stdin if omitted)')
    derive_parser.add_argument('--passphrase', default=None, help='BIP-39 passphrase')

    for name, help_text in (('provision', 'Provision wallets for an owner'),
                            ('reveal', 'Reveal an owner\'s backup mnemonic')):
        sub = subparsers.add_parser(name, help=help_text)
        sub.add_argument('owner_id', help='Owner identifier')
        sub.add_argument('--db-path', help='LevelDB directory (defaults to configured path)')
        sub.add_argument('--memory', action='store_true', help='Use a throwaway in-memory store')
        if name == 'provision':
            sub.add_argument('--show-mnemonic', action='store_true',
                             help='Print the mnemonic when this call generated it')

    return parser

def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point"""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 2

    try:
        manager = ConfigManager(args.config)
        if args.network or args.log_level:
            overrides = {}
            if args.network:
                overrides['network'] = args.network
            if args.log_level:
                overrides['log_level'] = args.log_level
            manager.apply_overrides(overrides)

        config = manager.config
        setup_logging(config.log_level, config.log_file, config.log_format)
        return COMMANDS[args.command](args, manager)
    except WalletError as e:
        logger.error(f"{args.command} failed: {e}")
        print(json.dumps({'error': type(e).__name__, 'message': str(e)}), file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("\nOperation cancelled", file=sys.stderr)
        return 130

if __name__ == "__main__":
    sys.exit(main())
