from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Tuple

from kash_wallet.core.wallet_types import ChainFamily, WalletRecord, MnemonicRecord

class WalletStore(ABC):
    """Abstract base class for wallet persistence"""

    @abstractmethod
    def get_wallets(self, owner_id: str) -> List[WalletRecord]:
        """Get all wallet records for an owner"""
        pass

    @abstractmethod
    def put_wallets(self, records: List[WalletRecord]) -> None:
        """Insert records atomically; raise PersistenceConflictError if any key exists"""
        pass

    @abstractmethod
    def get_mnemonic(self, owner_id: str) -> Optional[MnemonicRecord]:
        """Get the encrypted mnemonic record"""
        pass

    @abstractmethod
    def put_mnemonic_if_absent(self, record: MnemonicRecord) -> MnemonicRecord:
        """Store the record unless one exists; return whichever is stored"""
        pass

    @abstractmethod
    def delete_wallet(self, owner_id: str, key: str) -> bool:
        """Delete one wallet by its slot key"""
        pass

    def remove_duplicates(self, owner_id: str) -> List[WalletRecord]:
        """Keep only the newest record per (blockchain, currency) on account chains"""
        groups: Dict[Tuple[str, str], List[WalletRecord]] = {}
        for record in self.get_wallets(owner_id):
            # UTXO variants legitimately share a group
            if record.chain_family == ChainFamily.UTXO:
                continue
            groups.setdefault(record.group, []).append(record)

        removed = []
        for records in groups.values():
            if len(records) < 2:
                continue
            records.sort(key=lambda r: r.created_at, reverse=True)
            for stale in records[1:]:
                if self.delete_wallet(owner_id, stale.key):
                    removed.append(stale)
        return removed
