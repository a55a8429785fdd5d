import copy
import threading
from typing import Dict, List, Optional

from kash_wallet.core.wallet_types import WalletRecord, MnemonicRecord
from kash_wallet.core.exceptions import PersistenceConflictError
from kash_wallet.interfaces.storage import WalletStore
from kash_wallet.utils.logging import logger

class InMemoryWalletStore(WalletStore):
    """Thread-safe process-local store"""

    def __init__(self):
        self._lock = threading.RLock()
        self._wallets: Dict[str, Dict[str, WalletRecord]] = {}
        self._mnemonics: Dict[str, MnemonicRecord] = {}
        self.write_count = 0

    def get_wallets(self, owner_id: str) -> List[WalletRecord]:
        with self._lock:
            return [copy.copy(record) for record in self._wallets.get(owner_id, {}).values()]

    def put_wallets(self, records: List[WalletRecord]) -> None:
        if not records:
            return

        with self._lock:
            batch_keys = set()
            conflicts = []
            for record in records:
                ident = (record.owner_id, record.key)
                if ident in batch_keys or record.key in self._wallets.get(record.owner_id, {}):
                    conflicts.append(record.key)
                batch_keys.add(ident)

            if conflicts:
                raise PersistenceConflictError(
                    f"Wallets already exist: {', '.join(sorted(conflicts))}", keys=conflicts)

            for record in records:
                self._wallets.setdefault(record.owner_id, {})[record.key] = copy.copy(record)
            self.write_count += 1

        logger.debug("Wallet batch stored", count=len(records))

    def get_mnemonic(self, owner_id: str) -> Optional[MnemonicRecord]:
        with self._lock:
            return self._mnemonics.get(owner_id)

    def put_mnemonic_if_absent(self, record: MnemonicRecord) -> MnemonicRecord:
        with self._lock:
            return self._mnemonics.setdefault(record.owner_id, record)

    def delete_wallet(self, owner_id: str, key: str) -> bool:
        with self._lock:
            return self._wallets.get(owner_id, {}).pop(key, None) is not None

    def import_wallets(self, records: List[WalletRecord]) -> None:
        """Load records verbatim, replacing same-key entries"""
        with self._lock:
            for record in records:
                self._wallets.setdefault(record.owner_id, {})[record.key] = copy.copy(record)
