"""Password hashing and the password policy."""

import re

import bcrypt

from app.config import get_settings

MIN_PASSWORD_LENGTH = 8
SPECIAL_CHARACTERS = re.compile(r"[!@#$%^&*()_+\-=\[\]{};':\"\\|,.<>/?]")

# (pattern, message) pairs; a password must match every pattern.
_CHARACTER_RULES = [
    (re.compile(r"[a-z]"), "Password must contain at least one lowercase letter"),
    (re.compile(r"[A-Z]"), "Password must contain at least one uppercase letter"),
    (re.compile(r"\d"), "Password must contain at least one digit"),
    (SPECIAL_CHARACTERS, "Password must contain at least one special character"),
]


def validate_password(password: str | None) -> list[str]:
    """Check a password against the policy. Returns the violated rules, empty if valid."""
    if not password or not isinstance(password, str):
        return ["Password is required"]

    errors = []
    if len(password) < MIN_PASSWORD_LENGTH:
        errors.append(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long")
    for pattern, message in _CHARACTER_RULES:
        if not pattern.search(password):
            errors.append(message)
    return errors


def hash_password(password: str) -> str:
    """Hash a password with a fresh bcrypt salt."""
    rounds = get_settings().BCRYPT_ROUNDS
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def check_password(password: str, password_hash: str) -> bool:
    """Compare a password against a stored bcrypt hash."""
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # Malformed stored hash
        return False
