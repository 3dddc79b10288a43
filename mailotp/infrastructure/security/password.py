from __future__ import annotations

from functools import lru_cache

from passlib.context import CryptContext

from mailotp.settings import get_settings


@lru_cache(maxsize=1)
def _context() -> CryptContext:
    return CryptContext(
        schemes=["bcrypt"],
        deprecated="auto",
        bcrypt__rounds=get_settings().bcrypt_rounds,
    )


def hash_password(plain: str, *, rounds: int | None = None) -> str:
    """Hash the password given at registration. `rounds` overrides BCRYPT_ROUNDS (tests use 4)."""
    if rounds is None:
        return _context().hash(plain)
    return _context().hash(plain, rounds=rounds)


def verify_password(plain: str, password_hash: str) -> bool:
    return _context().verify(plain, password_hash)
