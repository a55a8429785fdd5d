import ctypes
import ctypes.util
import os
import secrets
import sys
import threading
from contextlib import contextmanager
from typing import Iterator, Optional, Union

_libc = None

def _load_libc():
    global _libc
    if _libc is None and sys.platform != 'win32':
        name = ctypes.util.find_library('c')
        try:
            _libc = ctypes.CDLL(name, use_errno=True)
        except OSError:
            _libc = False
    return _libc or None

def _mlock(buffer) -> bool:
    """Pin ``buffer`` in RAM; failure (no libc, RLIMIT_MEMLOCK) is not fatal"""
    libc = _load_libc()
    if libc is None or not hasattr(libc, 'mlock'):
        return False
    address = ctypes.c_void_p(ctypes.addressof(buffer))
    return libc.mlock(address, ctypes.c_size_t(ctypes.sizeof(buffer))) == 0

def _munlock(buffer) -> None:
    libc = _load_libc()
    if libc is not None and hasattr(libc, 'munlock'):
        libc.munlock(ctypes.c_void_p(ctypes.addressof(buffer)), ctypes.c_size_t(ctypes.sizeof(buffer)))

class SecureString:
    """Holds a seed or phrase in a ctypes buffer that is overwritten on wipe()"""

    def __init__(self, value: Optional[Union[bytes, str]] = None, protect_memory: bool = True):
        self._buffer = None
        self._size = 0
        self._pinned = False
        self._protect_memory = protect_memory
        self._mutex = threading.RLock()

        if value is not None:
            self.set_value(value)

    def set_value(self, value: Union[bytes, str]) -> None:
        """Replace the held value, wiping the previous one"""
        if isinstance(value, str):
            value = value.encode('utf-8')
        if not isinstance(value, (bytes, bytearray)):
            raise TypeError(f"SecureString holds bytes or str, not {type(value).__name__}")

        with self._mutex:
            self.wipe()
            if not value:
                return
            self._size = len(value)
            self._buffer = (ctypes.c_char * self._size).from_buffer_copy(bytes(value))
            if self._protect_memory:
                self._pinned = _mlock(self._buffer)

    def get_value(self) -> bytes:
        with self._mutex:
            if self._buffer is None:
                raise ValueError("SecureString is empty or wiped")
            return ctypes.string_at(ctypes.addressof(self._buffer), self._size)

    def get_text(self) -> str:
        return self.get_value().decode('utf-8')

    def compare(self, other: Union[bytes, str]) -> bool:
        """Constant-time equality with ``other``"""
        if isinstance(other, str):
            other = other.encode('utf-8')
        with self._mutex:
            mine = b'' if self._buffer is None else self.get_value()
        return secure_memcmp(mine, other)

    def wipe(self) -> None:
        """Overwrite with random bytes, then zeros, then drop the buffer"""
        with self._mutex:
            buffer, self._buffer = self._buffer, None
            size, self._size = self._size, 0
            if buffer is None:
                return
            try:
                ctypes.memmove(ctypes.addressof(buffer), os.urandom(size), size)
                ctypes.memset(ctypes.addressof(buffer), 0, size)
            finally:
                if self._pinned:
                    _munlock(buffer)
                    self._pinned = False

    @property
    def is_wiped(self) -> bool:
        return self._buffer is None

    @contextmanager
    def temporary_access(self) -> Iterator[bytes]:
        with self._mutex:
            yield self.get_value()

    def __len__(self) -> int:
        return self._size

    def __bool__(self) -> bool:
        return self._buffer is not None

    def __repr__(self) -> str:
        return f"SecureString(<{self._size} bytes>)"

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.wipe()

    def __del__(self) -> None:
        # Interpreter shutdown may already have torn down ctypes
        if getattr(self, '_buffer', None) is not None:
            self.wipe()

def secure_memcmp(a: bytes, b: bytes) -> bool:
    """Constant-time comparison"""
    return secrets.compare_digest(a, b)
