"""Password hashing and verification using bcrypt."""

from __future__ import annotations

import re

import bcrypt

from taskdesk_service.settings import settings

MIN_PASSWORD_LENGTH = 8
MAX_PASSWORD_LENGTH = 128
MIN_CHARACTER_CLASSES = 3

_CHARACTER_CLASSES = (
    re.compile(r"[A-Z]"),
    re.compile(r"[a-z]"),
    re.compile(r"[0-9]"),
    re.compile(r"[^A-Za-z0-9]"),
)

PASSWORD_POLICY_MESSAGE = (
    "Password must be 8-128 characters and contain at least three of: "
    "upper case letter, lower case letter, digit, special character"
)


def hash_password(password: str, rounds: int | None = None) -> str:
    """Hash a plaintext password with bcrypt. Returns a utf-8 string."""
    salt = bcrypt.gensalt(rounds=rounds or settings.bcrypt_rounds)
    hashed = bcrypt.hashpw(password.encode("utf-8"), salt)
    return hashed.decode("utf-8")


def verify_password(password: str, hashed: str) -> bool:
    """Return True if password matches the stored bcrypt hash."""
    try:
        return bcrypt.checkpw(password.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        # Stored value isn't a bcrypt hash.
        return False


def meets_password_policy(password: str) -> bool:
    if not MIN_PASSWORD_LENGTH <= len(password) <= MAX_PASSWORD_LENGTH:
        return False
    matched = sum(1 for pattern in _CHARACTER_CLASSES if pattern.search(password))
    return matched >= MIN_CHARACTER_CLASSES
