"""Password hashing for SecureShop: Argon2id plus a server-side pepper.

The pepper (PASSWORD_PEPPER) is appended to the password before hashing and
lives only in the environment, so a leaked users table alone is not enough
to mount an offline attack. Each hash carries its own random salt.

Argon2 cost defaults follow the OWASP recommendation and can be lowered for
tests through ARGON2_TIME_COST, ARGON2_MEMORY_COST (KiB) and
ARGON2_PARALLELISM. Hashes created with other parameters still verify and
are upgraded on the next successful login (see needs_rehash).
"""

import os
from functools import lru_cache

from argon2 import PasswordHasher, Type
from argon2.exceptions import InvalidHashError, VerificationError


def _cost(name: str, default: int) -> int:
    return int(os.getenv(name, str(default)))


_hasher = PasswordHasher(
    time_cost=_cost("ARGON2_TIME_COST", 3),
    memory_cost=_cost("ARGON2_MEMORY_COST", 65536),
    parallelism=_cost("ARGON2_PARALLELISM", 4),
    type=Type.ID,
)


def _peppered(password: str) -> str:
    pepper = os.getenv("PASSWORD_PEPPER")
    if not pepper:
        raise ValueError("PASSWORD_PEPPER environment variable is not set")
    return password + pepper


def hash_password(password: str) -> str:
    """Return an encoded Argon2id hash ($argon2id$v=19$m=...,t=...,p=...$salt$hash).

    Raises:
        ValueError: Empty password or PASSWORD_PEPPER not set
    """
    if not password:
        raise ValueError("Password cannot be empty")
    return _hasher.hash(_peppered(password))


def verify_password(password: str, stored_hash: str) -> bool:
    """Constant-time check of password against stored_hash.

    Malformed hashes and empty input count as a mismatch.
    """
    if not password or not stored_hash:
        return False
    try:
        return _hasher.verify(stored_hash, _peppered(password))
    except (VerificationError, InvalidHashError):
        return False


def needs_rehash(stored_hash: str) -> bool:
    try:
        return _hasher.check_needs_rehash(stored_hash)
    except InvalidHashError:
        return True


@lru_cache(maxsize=1)
def _dummy_hash() -> str:
    return hash_password("unused-dummy-credential")


def verify_dummy(password: str) -> bool:
    """Spend one full Argon2 verification and report failure.

    Called when the login identifier matches no user, so unknown identifiers
    cost the same as wrong passwords.
    """
    verify_password(password or "-", _dummy_hash())
    return False
