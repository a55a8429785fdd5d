import json
import os
import threading
import time
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional

import plyvel

from kash_wallet.core.wallet_types import WalletRecord, MnemonicRecord
from kash_wallet.core.exceptions import DatabaseError, PersistenceConflictError
from kash_wallet.interfaces.storage import WalletStore
from kash_wallet.utils.logging import logger

SCHEMA_VERSION = b'1'

class LevelDBWalletStore(WalletStore):
    """LevelDB wallet storage"""

    def __init__(self, db_path: str,
                 compression: Optional[str] = 'snappy',
                 lru_cache_size: int = 64 * 1024 * 1024,
                 write_buffer_size: int = 16 * 1024 * 1024,
                 create_if_missing: bool = True):

        self.db_path = db_path

        # Conflict checks and the batch write must not interleave
        self._write_lock = threading.Lock()

        self._db: Optional[plyvel.DB] = None
        self._is_open = False

        # Key prefixes for organized storage
        self._prefixes = {
            'metadata': b'meta_',
            'wallets': b'wallet_',
            'mnemonics': b'mnemonic_',
        }

        self._initialize_database(compression, lru_cache_size, write_buffer_size, create_if_missing)

    def _initialize_database(self, compression, lru_cache_size, write_buffer_size, create_if_missing):
        """Open LevelDB and write the schema marker on first use"""
        try:
            os.makedirs(self.db_path, exist_ok=True)
            self._db = plyvel.DB(
                self.db_path,
                create_if_missing=create_if_missing,
                compression=compression,
                lru_cache_size=lru_cache_size,
                write_buffer_size=write_buffer_size,
            )
            self._is_open = True

            if self._db.get(self._prefixes['metadata'] + b'schema_version') is None:
                with self._write_batch() as batch:
                    batch.put(self._prefixes['metadata'] + b'schema_version', SCHEMA_VERSION)
                    batch.put(self._prefixes['metadata'] + b'created_at', str(time.time()).encode())

            logger.info(f"LevelDB wallet store opened at {self.db_path}")
        except plyvel.Error as e:
            logger.error(f"Failed to open wallet store: {e}")
            raise DatabaseError(f"Failed to open wallet store at {self.db_path}: {e}") from e

    @contextmanager
    def _write_batch(self) -> Iterator[Any]:
        """Context manager for atomic batch writes"""
        if not self._is_open:
            raise DatabaseError("Database is not open")

        batch = self._db.write_batch(transaction=True)
        try:
            yield batch
            batch.write()
        except Exception as e:
            logger.error(f"Batch write failed: {e}")
            batch.clear()
            raise

    def _wallet_key(self, owner_id: str, slot: str) -> bytes:
        return self._prefixes['wallets'] + f"{owner_id}\x00{slot}".encode('utf-8')

    def _wallet_prefix(self, owner_id: str) -> bytes:
        return self._prefixes['wallets'] + f"{owner_id}\x00".encode('utf-8')

    def _mnemonic_key(self, owner_id: str) -> bytes:
        return self._prefixes['mnemonics'] + owner_id.encode('utf-8')

    @staticmethod
    def _serialize(data: Dict[str, Any]) -> bytes:
        return json.dumps(data, sort_keys=True).encode('utf-8')

    @staticmethod
    def _deserialize(raw: bytes) -> Dict[str, Any]:
        try:
            return json.loads(raw.decode('utf-8'))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise DatabaseError(f"Corrupt record in wallet store: {e}") from e

    def get_wallets(self, owner_id: str) -> List[WalletRecord]:
        self._ensure_open()
        records = []
        with self._db.iterator(prefix=self._wallet_prefix(owner_id)) as it:
            for _, value in it:
                records.append(WalletRecord.from_dict(self._deserialize(value)))
        return records

    def put_wallets(self, records: List[WalletRecord]) -> None:
        if not records:
            return
        self._ensure_open()

        with self._write_lock:
            seen = set()
            conflicts = []
            for record in records:
                key = self._wallet_key(record.owner_id, record.key)
                if key in seen or self._db.get(key) is not None:
                    conflicts.append(record.key)
                seen.add(key)

            if conflicts:
                raise PersistenceConflictError(
                    f"Wallets already exist: {', '.join(sorted(conflicts))}", keys=conflicts)

            try:
                with self._write_batch() as batch:
                    for record in records:
                        batch.put(self._wallet_key(record.owner_id, record.key),
                                  self._serialize(record.to_dict()))
            except plyvel.Error as e:
                raise DatabaseError(f"Failed to store wallets: {e}") from e

        logger.debug("Wallet batch stored", count=len(records))

    def get_mnemonic(self, owner_id: str) -> Optional[MnemonicRecord]:
        self._ensure_open()
        raw = self._db.get(self._mnemonic_key(owner_id))
        if raw is None:
            return None
        return MnemonicRecord.from_dict(self._deserialize(raw))

    def put_mnemonic_if_absent(self, record: MnemonicRecord) -> MnemonicRecord:
        self._ensure_open()
        with self._write_lock:
            existing = self.get_mnemonic(record.owner_id)
            if existing is not None:
                return existing
            try:
                self._db.put(self._mnemonic_key(record.owner_id), self._serialize(record.to_dict()))
            except plyvel.Error as e:
                raise DatabaseError(f"Failed to store mnemonic: {e}") from e
            return record

    def delete_wallet(self, owner_id: str, key: str) -> bool:
        self._ensure_open()
        db_key = self._wallet_key(owner_id, key)
        with self._write_lock:
            if self._db.get(db_key) is None:
                return False
            self._db.delete(db_key)
            return True

    def _ensure_open(self):
        if not self._is_open:
            raise DatabaseError("Database is not open")

    def close(self):
        """Close database connection"""
        if self._is_open:
            self._db.close()
            self._is_open = False
            logger.info("LevelDB wallet store closed")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
