"""Unit tests for TokenEncryption."""

from cryptography.fernet import Fernet

from app.core.encryption import TokenEncryption


class TestTokenEncryption:
    def test_round_trip_with_key(self):
        cipher = TokenEncryption(Fernet.generate_key().decode())

        encrypted = cipher.encrypt("gho_secret")

        assert cipher.is_enabled
        assert encrypted != "gho_secret"
        assert cipher.decrypt(encrypted) == "gho_secret"

    def test_passthrough_without_key(self):
        cipher = TokenEncryption("")

        assert not cipher.is_enabled
        assert cipher.encrypt("gho_secret") == "gho_secret"

    def test_invalid_key_disables_encryption(self):
        cipher = TokenEncryption("not-a-fernet-key")

        assert not cipher.is_enabled

    def test_legacy_plaintext_is_returned_as_is(self):
        cipher = TokenEncryption(Fernet.generate_key().decode())

        assert cipher.decrypt("gho_plaintext_from_before") == "gho_plaintext_from_before"
