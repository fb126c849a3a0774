"""
security helpers:
- Argon2 password hashing via argon2-cffi
- The hashing cost comes from configuration, so tests can use cheap parameters
"""
from __future__ import annotations

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerifyMismatchError


def build_password_hasher(cost: int = 12, memory_kib: int = 65536) -> PasswordHasher:
    """Argon2id hasher; `cost` is the time cost (iterations)."""
    return PasswordHasher(time_cost=cost, memory_cost=memory_kib)


def hash_password(hasher: PasswordHasher, password: str) -> str:
    """Hash a plaintext password using Argon2
    """
    return hasher.hash(password)


def verify_password(hasher: PasswordHasher, password: str, password_hash: str) -> bool:
    """ Verify a plaintext password using argon2
    """
    try:
        return hasher.verify(password_hash, password)
    except (VerifyMismatchError, InvalidHashError):
        return False
