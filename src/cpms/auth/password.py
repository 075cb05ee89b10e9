"""
Password hashing and validation using argon2id.

Accounts imported from the previous deployment still carry bcrypt hashes
($2a$/$2b$/$2y$). Those verify through bcrypt and always report that they
need a rehash, so the first successful login upgrades them to argon2id.
"""

from __future__ import annotations

from collections.abc import Callable

import argon2
import bcrypt

from cpms.config import get_settings

_hasher = argon2.PasswordHasher(
    time_cost=2,
    memory_cost=65536,  # 64 MB
    parallelism=1,
    hash_len=32,
    salt_len=16,
    type=argon2.Type.ID,  # argon2id
)

_BCRYPT_PREFIXES = ("$2a$", "$2b$", "$2y$")
_SPECIAL_CHARACTERS = frozenset("!@#$%^&*()_+-=[]{};':\"\\|,.<>/?")


class PasswordStrengthError(ValueError):
    """Raised when a password does not meet strength requirements."""


def hash_password(password: str) -> str:
    """Hash a password using argon2id. Returns the full hash string."""
    return _hasher.hash(password)


def is_legacy_hash(password_hash: str) -> bool:
    """True for bcrypt hashes carried over from the previous deployment."""
    return password_hash.startswith(_BCRYPT_PREFIXES)


def verify_password(password: str, password_hash: str) -> bool:
    """
    Verify a password against its stored hash.

    Returns True if the password matches. Never raises on mismatch or on a
    malformed hash.
    """
    if is_legacy_hash(password_hash):
        try:
            return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
        except ValueError:
            return False
    try:
        return _hasher.verify(password_hash, password)
    except argon2.exceptions.VerifyMismatchError:
        return False
    except argon2.exceptions.InvalidHashError:
        return False


def check_needs_rehash(password_hash: str) -> bool:
    """Check if the hash needs to be updated (legacy scheme or parameters changed)."""
    if is_legacy_hash(password_hash):
        return True
    try:
        return _hasher.check_needs_rehash(password_hash)
    except argon2.exceptions.InvalidHashError:
        return True


# Verified against when the email is unknown so a miss costs the same as a
# wrong password.
DUMMY_HASH: str = hash_password("cpms-timing-equalizer")


# (predicate, what the password is missing)
_CHARACTER_RULES: tuple[tuple[Callable[[str], bool], str], ...] = (
    (str.isupper, "an uppercase letter"),
    (str.islower, "a lowercase letter"),
    (str.isdigit, "a digit"),
    (_SPECIAL_CHARACTERS.__contains__, "a special character"),
)


def validate_password_strength(password: str) -> None:
    """Enforce the account password policy.

    Length must be within password_min_length..password_max_length and the
    password needs at least one character from each class in
    _CHARACTER_RULES. Raises PasswordStrengthError naming the first rule
    that fails.
    """
    settings = get_settings()
    if not password.strip():
        msg = "Password cannot be empty"
        raise PasswordStrengthError(msg)
    if not settings.password_min_length <= len(password) <= settings.password_max_length:
        msg = (
            f"Password must be at least {settings.password_min_length} "
            f"and at most {settings.password_max_length} characters"
        )
        raise PasswordStrengthError(msg)
    for predicate, requirement in _CHARACTER_RULES:
        if not any(predicate(c) for c in password):
            msg = f"Password must contain {requirement}"
            raise PasswordStrengthError(msg)
