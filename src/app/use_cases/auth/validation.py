"""
Input rules for credentials, checked before any store access.
"""

import re
from typing import Optional

from email_validator import EmailNotValidError, validate_email

from src.domain.result import Error

USERNAME_MIN_LENGTH = 3
USERNAME_MAX_LENGTH = 30
PASSWORD_MIN_LENGTH = 8
PASSWORD_MAX_LENGTH = 100
PASSWORD_SPECIAL_CHARACTERS = "@$!%*?&"

_PASSWORD_RULES = [
    (re.compile(r"[a-z]"), "one lowercase letter"),
    (re.compile(r"[A-Z]"), "one uppercase letter"),
    (re.compile(r"\d"), "one number"),
    (
        re.compile(f"[{re.escape(PASSWORD_SPECIAL_CHARACTERS)}]"),
        f"one special character ({PASSWORD_SPECIAL_CHARACTERS})",
    ),
]


def _invalid(message: str, field: str) -> Error:
    return Error("VALIDATION_ERROR", message, {"field": field})


def validate_username(username: str) -> Optional[Error]:
    length = len((username or "").strip())
    if length < USERNAME_MIN_LENGTH or length > USERNAME_MAX_LENGTH:
        return _invalid(
            f"Username must be between {USERNAME_MIN_LENGTH} and {USERNAME_MAX_LENGTH} characters",
            "username",
        )
    if "@" in username:
        # Identifiers containing @ are looked up as emails at login
        return _invalid("Username must not contain @", "username")
    return None


def validate_email_address(email: str) -> Optional[Error]:
    try:
        validate_email(email or "", check_deliverability=False)
    except EmailNotValidError:
        return _invalid("Please provide a valid email", "email")
    return None


def validate_password(password: str, field: str = "password") -> Optional[Error]:
    password = password or ""
    if len(password) < PASSWORD_MIN_LENGTH or len(password) > PASSWORD_MAX_LENGTH:
        return _invalid(
            f"Password must be between {PASSWORD_MIN_LENGTH} and {PASSWORD_MAX_LENGTH} characters",
            field,
        )
    missing = [label for pattern, label in _PASSWORD_RULES if not pattern.search(password)]
    if missing:
        return _invalid(
            f"Password must contain at least {', '.join(missing)}",
            field,
        )
    return None


def validate_registration(username: str, email: str, password: str) -> Optional[Error]:
    return (
        validate_username(username)
        or validate_email_address(email)
        or validate_password(password)
    )
