"""Password hashing.

Argon2id through ``argon2-cffi``.  The rest of the app only sees
``hash_password`` / ``verify_password``.
"""

from argon2 import PasswordHasher
from argon2 import exceptions as argon_exc

PASSWORD_HASHER = PasswordHasher(
    time_cost=3,
    memory_cost=65536,
    parallelism=4,
    hash_len=32,
    salt_len=16,
)


def hash_password(password: str) -> str:
    """Hash a password using Argon2id."""
    return PASSWORD_HASHER.hash(password)


def verify_password(password_hash: str, password: str) -> bool:
    """Return True if *password* matches *password_hash*."""
    try:
        return PASSWORD_HASHER.verify(password_hash, password)
    except (argon_exc.VerifyMismatchError, argon_exc.InvalidHashError, argon_exc.VerificationError):
        return False
