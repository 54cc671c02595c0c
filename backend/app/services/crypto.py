"""Encrypted identifiers for URLs and response bodies.

decrypt_id never raises on bad input: it returns InvalidIdentifier, which
callers map to a 404.
"""

from __future__ import annotations

from dataclasses import dataclass

from cryptography.fernet import Fernet, InvalidToken
from app.config import settings


@dataclass(frozen=True)
class Ok:
    value: int


@dataclass(frozen=True)
class InvalidIdentifier:
    reason: str


DecryptResult = Ok | InvalidIdentifier


def get_fernet() -> Fernet | None:
    if not settings.encryption_key:
        return None
    key = settings.encryption_key.encode() if isinstance(settings.encryption_key, str) else settings.encryption_key
    return Fernet(key)


def encrypt_id(value: int) -> str:
    f = get_fernet()
    if f is None:
        return str(value)  # dev: no key → plain id
    return f.encrypt(str(value).encode()).decode()


def decrypt_id(token: str) -> DecryptResult:
    if not token:
        return InvalidIdentifier("empty identifier")
    f = get_fernet()
    if f is None:
        plain = token  # dev: no key
    else:
        try:
            plain = f.decrypt(token.encode()).decode()
        except (InvalidToken, UnicodeError):
            return InvalidIdentifier("undecryptable identifier")
    if not (plain.isascii() and plain.isdigit()):
        return InvalidIdentifier("identifier is not numeric")
    return Ok(int(plain))
