"""Tests for bcrypt password hashing."""

from __future__ import annotations

from agrofund.auth.passwords import hash_password, verify_password

FAST_ROUNDS = 4


class TestHashPassword:
    def test_bcrypt_format(self):
        encoded = hash_password("secret", rounds=FAST_ROUNDS)
        assert encoded.startswith("$2b$04$")
        assert len(encoded) == 60

    def test_salted(self):
        assert hash_password("secret", rounds=FAST_ROUNDS) != hash_password(
            "secret", rounds=FAST_ROUNDS
        )

    def test_plaintext_not_stored(self):
        assert "secret" not in hash_password("secret", rounds=FAST_ROUNDS)


class TestVerifyPassword:
    def test_roundtrip(self):
        encoded = hash_password("admin123", rounds=FAST_ROUNDS)
        assert verify_password("admin123", encoded)
        assert not verify_password("admin124", encoded)

    def test_malformed_hash_never_matches(self):
        assert not verify_password("admin123", "admin123")
        assert not verify_password("x", "pbkdf2_sha256$1000$00$00")

    def test_long_password_truncated_to_72_bytes(self):
        long_password = "a" * 80
        encoded = hash_password(long_password, rounds=FAST_ROUNDS)
        assert verify_password(long_password, encoded)
        assert verify_password("a" * 72, encoded)
