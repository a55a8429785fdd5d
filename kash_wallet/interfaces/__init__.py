from .storage import WalletStore

__all__ = [
    'WalletStore'
]
