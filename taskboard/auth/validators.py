from __future__ import annotations

import re

from ..errors import ValidationError

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def normalize_email(email: str) -> str:
    return email.strip().lower()


def is_valid_email(email: str) -> bool:
    return bool(EMAIL_RE.match(email))


def _string_field(data: dict, name: str) -> str:
    value = data.get(name, "")
    return value if isinstance(value, str) else ""


def _email_field(data: dict, errors: dict[str, str]) -> str:
    email = normalize_email(_string_field(data, "email"))
    if not is_valid_email(email):
        errors["email"] = "invalid email"
    return email


def parse_signup(data: dict, *, min_password_length: int) -> tuple[str, str]:
    errors: dict[str, str] = {}
    email = _email_field(data, errors)
    password = _string_field(data, "password")
    if len(password) < min_password_length:
        errors["password"] = f"Password must be at least {min_password_length} characters"
    if errors:
        raise ValidationError(errors)
    return email, password


def parse_verify(data: dict) -> tuple[str, str]:
    errors: dict[str, str] = {}
    email = _email_field(data, errors)
    code = _string_field(data, "code").strip()
    if len(code) != 6:
        errors["code"] = "code must be 6 characters"
    if errors:
        raise ValidationError(errors)
    return email, code


def parse_login(data: dict) -> tuple[str, str]:
    errors: dict[str, str] = {}
    email = _email_field(data, errors)
    password = _string_field(data, "password")
    if not password:
        errors["password"] = "password is required"
    if errors:
        raise ValidationError(errors)
    return email, password


def parse_email_only(data: dict) -> str:
    errors: dict[str, str] = {}
    email = _email_field(data, errors)
    if errors:
        raise ValidationError(errors)
    return email
