from __future__ import annotations

import re
from typing import List, Optional, Tuple

from passlib.context import CryptContext

from sales_report.config import Config


# Default work factor keeps a single verify in the tens of milliseconds.
DEFAULT_PASSWORD_ROUNDS = 200000
MIN_PASSWORD_ROUNDS = 1000
MIN_PASSWORD_LENGTH = 8


class PasswordHasher:
    """pbkdf2_sha256 hashing with its own work factor.

    Each app holds its own instance (see `create_app`), so two apps built
    from different configs never change each other's rounds. Stored hashes
    carry their own rounds and verify under any instance.
    """

    def __init__(self, rounds: int = DEFAULT_PASSWORD_ROUNDS):
        self.rounds = max(MIN_PASSWORD_ROUNDS, int(rounds))
        self._ctx = CryptContext(
            schemes=["pbkdf2_sha256"],
            deprecated="auto",
            pbkdf2_sha256__default_rounds=self.rounds,
        )

    @classmethod
    def from_config(cls, cfg: Config) -> "PasswordHasher":
        return cls(cfg.AUTH_PASSWORD_ROUNDS)

    def hash(self, password: str) -> str:
        if not password:
            raise ValueError("password_blank")
        return self._ctx.hash(password)

    def verify(self, password: str, password_hash: str) -> bool:
        """Constant-time check of `password` against a stored hash.

        Any library-side failure (unknown scheme, truncated hash, ...) is a
        failed verification, never an exception.
        """
        if not password or not password_hash:
            return False
        try:
            return bool(self._ctx.verify(password, password_hash))
        except Exception:
            return False


_default_hasher = PasswordHasher()


def hash_password(password: str, hasher: Optional[PasswordHasher] = None) -> str:
    return (hasher or _default_hasher).hash(password)


def verify_password(password: str, password_hash: str, hasher: Optional[PasswordHasher] = None) -> bool:
    return (hasher or _default_hasher).verify(password, password_hash)


def validate_password_strength(password: str) -> Tuple[bool, List[str]]:
    """Return (is_valid, errors) for a candidate password.

    Rules: at least 8 characters, one uppercase, one lowercase, one digit.
    """
    p = password or ""
    errors: List[str] = []
    if len(p) < MIN_PASSWORD_LENGTH:
        errors.append("password_too_short")
    if not re.search(r"[A-Z]", p):
        errors.append("password_missing_uppercase")
    if not re.search(r"[a-z]", p):
        errors.append("password_missing_lowercase")
    if not re.search(r"\d", p):
        errors.append("password_missing_digit")
    return (not errors), errors
