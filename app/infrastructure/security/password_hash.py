from __future__ import annotations

from typing import Literal

import bcrypt
from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError

HashScheme = Literal["argon2", "bcrypt"]

_argon2_hasher = PasswordHasher()
_BCRYPT_PREFIXES = ("$2a$", "$2b$", "$2y$")


def hash_password(password: str, scheme: HashScheme = "argon2") -> str:
    if not password:
        raise ValueError("Password must not be empty")
    if scheme == "argon2":
        return _argon2_hasher.hash(password)
    if scheme == "bcrypt":
        return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")
    raise ValueError(f"Unsupported scheme: {scheme}")


def verify_password(password: str, hashed: str) -> bool:
    """Check ``password`` against an argon2 or bcrypt hash.

    Raises ValueError when the stored value is neither.
    """
    if hashed.startswith("$argon2"):
        try:
            return _argon2_hasher.verify(hashed, password)
        except (VerificationError, InvalidHashError):
            return False
    if hashed.startswith(_BCRYPT_PREFIXES):
        return bcrypt.checkpw(password.encode("utf-8"), hashed.encode("utf-8"))
    raise ValueError("Unknown password hash format")


def needs_rehash(hashed: str) -> bool:
    """True for bcrypt hashes and argon2 hashes made with outdated parameters."""
    if hashed.startswith(_BCRYPT_PREFIXES):
        return True
    try:
        return _argon2_hasher.check_needs_rehash(hashed)
    except (InvalidHashError, ValueError):
        return False
