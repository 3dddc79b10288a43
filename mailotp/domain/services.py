# mailotp/domain/services.py
from __future__ import annotations

import base64
import hashlib
import hmac
import os
import secrets
from datetime import datetime, timezone

from mailotp.domain.errors import CodeGenerationFailed


def generate_numeric_code(length: int = 6) -> str:
    """Zero-padded numeric code of exactly `length` digits, from the OS CSPRNG."""
    if length < 1:
        raise ValueError("code length must be at least 1")
    try:
        return f"{secrets.randbelow(10**length):0{length}d}"
    except OSError as e:
        raise CodeGenerationFailed() from e


def new_challenge_id() -> str:
    return secrets.token_hex(16)


def _digest(salt: bytes, code: str, pepper: bytes) -> bytes:
    if pepper:
        return hmac.new(pepper, salt + code.encode("utf-8"), hashlib.sha256).digest()
    h = hashlib.sha256()
    h.update(salt)
    h.update(code.encode("utf-8"))
    return h.digest()


def make_code_digest(code: str, *, pepper: bytes = b"") -> tuple[str, str]:
    """
    Return (salt_b64, digest_b64) where digest = HMAC-SHA256(pepper, salt || code),
    or SHA256(salt || code) when no pepper is configured.
    """
    try:
        salt = os.urandom(16)
    except OSError as e:
        raise CodeGenerationFailed() from e
    digest = _digest(salt, code, pepper)
    return (
        base64.b64encode(salt).decode("utf-8"),
        base64.b64encode(digest).decode("utf-8"),
    )


def verify_code_digest(
    code: str, salt_b64: str, digest_b64: str, *, pepper: bytes = b""
) -> bool:
    """
    Verify code against (salt_b64, digest_b64) from make_code_digest().
    The comparison runs on digests, never on the raw codes.
    """
    try:
        salt = base64.b64decode(salt_b64.encode("utf-8"), validate=True)
        expected = base64.b64decode(digest_b64.encode("utf-8"), validate=True)
    except ValueError:
        return False

    calc = _digest(salt, code, pepper)
    return hmac.compare_digest(calc, expected)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)
