"""
Tests for wipeable secret buffers.
"""

import pytest

from kash_wallet.utils.secure import SecureString, secure_memcmp

class TestSecureString:

    def test_holds_bytes_and_text(self):
        assert SecureString(b"\x00\x01seed").get_value() == b"\x00\x01seed"
        assert SecureString("abandon about").get_text() == "abandon about"

    def test_wipe(self):
        secret = SecureString("abandon about")
        secret.wipe()

        assert secret.is_wiped
        assert not secret
        assert len(secret) == 0
        with pytest.raises(ValueError):
            secret.get_value()

    def test_context_manager_wipes(self):
        with SecureString(b"k" * 64) as secret:
            assert len(secret) == 64
        assert secret.is_wiped

    def test_compare(self):
        secret = SecureString("hunter2-hunter2")
        assert secret.compare("hunter2-hunter2")
        assert not secret.compare(b"hunter3-hunter3")

    def test_repr_hides_value(self):
        assert "abandon" not in repr(SecureString("abandon about"))

    def test_rejects_other_types(self):
        with pytest.raises(TypeError):
            SecureString(12345)

    def test_set_value_replaces(self):
        secret = SecureString(b"first")
        secret.set_value(b"second")
        assert secret.get_value() == b"second"

def test_secure_memcmp():
    assert secure_memcmp(b"abc", b"abc")
    assert not secure_memcmp(b"abc", b"abd")
