"""
Credential and input policy helpers.

Pure functions, no I/O: email syntax, password strength and HTML escaping for
free-text values echoed back into emails.
"""
from __future__ import annotations

from dataclasses import dataclass, field
import re
from typing import List

EMAIL_MAX_LENGTH = 254
MIN_PASSWORD_LENGTH = 8
STRONG_PASSWORD_LENGTH = 12

_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
_SPECIAL_RE = re.compile(r"[!@#$%^&*()_+\-=\[\]{};':\"\\|,.<>/?]")
_COMMON_PATTERNS = (
    re.compile(r"123456"),
    re.compile(r"password", re.IGNORECASE),
    re.compile(r"qwerty", re.IGNORECASE),
    re.compile(r"abc123", re.IGNORECASE),
    re.compile(r"111111"),
    re.compile(r"000000"),
)


def is_valid_email(email: object) -> bool:
    if not isinstance(email, str):
        return False
    return bool(_EMAIL_RE.match(email)) and len(email) <= EMAIL_MAX_LENGTH


@dataclass
class PasswordValidation:
    is_valid: bool
    strength: str
    errors: List[str] = field(default_factory=list)


def validate_password(password: str) -> PasswordValidation:
    errors: List[str] = []
    if len(password) < MIN_PASSWORD_LENGTH:
        errors.append(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long")

    has_upper = bool(re.search(r"[A-Z]", password))
    has_lower = bool(re.search(r"[a-z]", password))
    has_digit = bool(re.search(r"\d", password))
    has_special = bool(_SPECIAL_RE.search(password))

    if not has_upper:
        errors.append("Password must contain at least one uppercase letter")
    if not has_lower:
        errors.append("Password must contain at least one lowercase letter")
    if not has_digit:
        errors.append("Password must contain at least one number")
    if not has_special:
        errors.append("Password must contain at least one special character")

    common = any(p.search(password) for p in _COMMON_PATTERNS)
    if common:
        errors.append("Password contains common patterns that are easily guessed")

    classes = sum((has_upper, has_lower, has_digit, has_special))
    if len(password) >= STRONG_PASSWORD_LENGTH and classes >= 4 and not common:
        strength = "strong"
    elif len(password) >= MIN_PASSWORD_LENGTH and classes >= 3:
        strength = "medium"
    else:
        strength = "weak"
    return PasswordValidation(is_valid=not errors, strength=strength, errors=errors)


_ESCAPES = {"<": "&lt;", ">": "&gt;", '"': "&quot;", "'": "&#x27;", "/": "&#x2F;"}


def sanitize_input(text: str) -> str:
    """Escape characters that would let user text break out of HTML."""
    return "".join(_ESCAPES.get(ch, ch) for ch in text)


__all__ = ["is_valid_email", "validate_password", "PasswordValidation", "sanitize_input"]
