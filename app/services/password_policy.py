"""Password strength policy: every rule is checked and every violation reported."""

import re
from dataclasses import dataclass, field

DEFAULT_MIN_LENGTH = 8
BANNED_SUBSTRING = "password"
SPECIAL_CHARACTERS = "!@#$%^&*()_+-=[]{};':\"\\|,.<>/?"

_UPPER = re.compile(r"[A-Z]")
_LOWER = re.compile(r"[a-z]")
_DIGIT = re.compile(r"[0-9]")
_SPECIAL = re.compile("[" + re.escape(SPECIAL_CHARACTERS) + "]")


@dataclass(frozen=True)
class PasswordValidation:
    """Result of validate_password: is_valid plus the ordered list of violated rules."""

    is_valid: bool
    errors: list[str] = field(default_factory=list)


def validate_password(password: str, min_length: int = DEFAULT_MIN_LENGTH) -> PasswordValidation:
    """
    Check a candidate password against the strength rules.

    Order of reported errors: length, uppercase, lowercase, digit, special
    character, banned word. Pure; never raises for any string (including "").
    """
    errors: list[str] = []

    if len(password) < min_length:
        errors.append(f"Password must be at least {min_length} characters long")
    if not _UPPER.search(password):
        errors.append("Password must include at least one uppercase letter")
    if not _LOWER.search(password):
        errors.append("Password must include at least one lowercase letter")
    if not _DIGIT.search(password):
        errors.append("Password must include at least one number")
    if not _SPECIAL.search(password):
        errors.append("Password must include at least one special character")
    if BANNED_SUBSTRING in password.lower():
        errors.append(f'Password must not contain the word "{BANNED_SUBSTRING}"')

    return PasswordValidation(is_valid=not errors, errors=errors)
