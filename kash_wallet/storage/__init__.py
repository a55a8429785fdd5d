from .memory import InMemoryWalletStore

# LevelDBWalletStore lives in kash_wallet.storage.database (needs the leveldb extra)
__all__ = [
    'InMemoryWalletStore'
]
