"""Argon2id password hashes for DocShare accounts.

Accounts are provisioned by operator scripts and the hash format is shared
with the login service in front of this backend. PASSWORD_PEPPER is appended
before hashing and never stored.
"""

from argon2 import PasswordHasher, Type
from argon2.exceptions import InvalidHashError, VerificationError, VerifyMismatchError

from config import settings


# 64 MiB, 3 passes, 4 lanes
_hasher = PasswordHasher(
    time_cost=3,
    memory_cost=64 * 1024,
    parallelism=4,
    hash_len=32,
    salt_len=16,
    type=Type.ID,
)


def _peppered(password: str) -> str:
    pepper = settings.PASSWORD_PEPPER
    if not pepper:
        raise ValueError("PASSWORD_PEPPER is not configured")
    return password + pepper


def check_password_policy(password: str) -> None:
    """Reject passwords too short to provision an account with.

    Raises:
        ValueError: With a message suitable for an operator
    """
    minimum = settings.PASSWORD_MIN_LENGTH
    if not password or len(password) < minimum:
        raise ValueError(f"Password must be at least {minimum} characters long")


def hash_password(password: str) -> str:
    """Argon2id hash of the peppered password.

    Raises:
        ValueError: If the password is empty or no pepper is configured
    """
    if not password:
        raise ValueError("Password cannot be empty")
    return _hasher.hash(_peppered(password))


def verify_password(password: str, password_hash: str) -> bool:
    if not password or not password_hash:
        return False
    try:
        return _hasher.verify(password_hash, _peppered(password))
    except (VerifyMismatchError, VerificationError, InvalidHashError):
        return False


def needs_rehash(password_hash: str) -> bool:
    """True when the stored hash was made with weaker parameters than today's."""
    try:
        return _hasher.check_needs_rehash(password_hash)
    except InvalidHashError:
        return True
