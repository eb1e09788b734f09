"""Password hashing with bcrypt.

Credentials are stored as standard bcrypt strings (``$2b$<rounds>$...``),
which embed their own salt and cost.
"""

from __future__ import annotations

import logging

import bcrypt

logger = logging.getLogger(__name__)

DEFAULT_ROUNDS = 12
# bcrypt only looks at the first 72 bytes of a password
_MAX_PASSWORD_BYTES = 72


def _encode(password: str) -> bytes:
    password_bytes = password.encode("utf-8")
    if len(password_bytes) > _MAX_PASSWORD_BYTES:
        logger.warning(
            "Password exceeds %d bytes (%d bytes), truncating",
            _MAX_PASSWORD_BYTES,
            len(password_bytes),
        )
        password_bytes = password_bytes[:_MAX_PASSWORD_BYTES]
    return password_bytes


def hash_password(password: str, *, rounds: int = DEFAULT_ROUNDS) -> str:
    """Hash ``password`` with a fresh random salt.

    Args:
        password: Plaintext password.
        rounds: bcrypt cost factor (log2 of the work).

    Returns:
        Encoded hash string suitable for storage.

    """
    salt = bcrypt.gensalt(rounds=rounds)
    return bcrypt.hashpw(_encode(password), salt).decode("utf-8")


def verify_password(password: str, encoded: str) -> bool:
    """Check ``password`` against a stored bcrypt hash.

    Malformed stored values never match.
    """
    try:
        return bcrypt.checkpw(_encode(password), encoded.encode("utf-8"))
    except ValueError:
        logger.warning("Stored password hash is not a valid bcrypt string")
        return False
