"""
Crypto utilities — bcrypt password hashing.

Hashes are stored in ``User.password_hash`` as ``$2b$`` strings. Plain
passwords never leave the user service.
"""

import bcrypt


BCRYPT_ROUNDS = 12


def hash_password(plain_password: str, rounds: int | None = None) -> str:
    """Hash a plain-text password with bcrypt."""
    salt = bcrypt.gensalt(rounds=rounds or BCRYPT_ROUNDS)
    return bcrypt.hashpw(plain_password.encode("utf-8"), salt).decode("utf-8")


def verify_password(plain_password: str, password_hash: str) -> bool:
    """Verify a plain-text password against its bcrypt hash."""
    if not password_hash or not plain_password:
        return False

    if not password_hash.startswith(("$2b$", "$2a$", "$2y$")):
        return False

    return bcrypt.checkpw(
        plain_password.encode("utf-8"),
        password_hash.encode("utf-8"),
    )
