from .logging import setup_logging, get_logger, logger
from .secure import SecureString
from .validation import validate_address, is_valid_derivation_path

__all__ = [
    'setup_logging',
    'get_logger',
    'logger',
    'SecureString',
    'validate_address',
    'is_valid_derivation_path'
]
