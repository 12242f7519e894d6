"""Field-level rules for user payloads.

Every rule is a pure function returning ``None`` when the value is valid and
a human-readable message otherwise. ``validate_full`` and ``validate_partial``
run the same rule table; they differ only in which fields they look at.
Errors are collected, never short-circuited, so a client sees every problem
in one response.
"""

import re
from collections.abc import Callable, Mapping

NAME_MAX_LENGTH = 40
EMAIL_MAX_LENGTH = 40
USERNAME_MAX_LENGTH = 30
PHONE_LENGTH = 10
PASSWORD_MIN_LENGTH = 8
# bcrypt only looks at the first 72 bytes of its input
PASSWORD_MAX_LENGTH = 72

NAME_RE = re.compile(r"(?:[^\W\d_]| )+")
PHONE_RE = re.compile(r"[0-9]+")
EMAIL_RE = re.compile(r"[^\s@]+@[^\s@]+\.[^\s@]+")
USERNAME_RE = re.compile(r"[A-Za-z0-9_]+")


def _is_blank(value) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def validate_name(value: str | None, label: str, required: bool = True) -> str | None:
    if _is_blank(value):
        return f"The {label} is required" if required else None
    if len(value) > NAME_MAX_LENGTH:
        return f"The {label} cannot be longer than {NAME_MAX_LENGTH} characters"
    if not NAME_RE.fullmatch(value):
        return f"The {label} can only contain letters and spaces"
    return None


def validate_phone(value: str | None) -> str | None:
    if _is_blank(value):
        return "The phone number is required"
    if len(value) != PHONE_LENGTH:
        return f"The phone number must have {PHONE_LENGTH} digits"
    if not PHONE_RE.fullmatch(value):
        return "The phone number can only contain digits"
    return None


def validate_email(value: str | None) -> str | None:
    if _is_blank(value):
        return "The email is required"
    if len(value) > EMAIL_MAX_LENGTH:
        return f"The email cannot be longer than {EMAIL_MAX_LENGTH} characters"
    if not EMAIL_RE.fullmatch(value):
        return "Please enter a valid email address"
    return None


def validate_username(value: str | None) -> str | None:
    if _is_blank(value):
        return "The username is required"
    if len(value) > USERNAME_MAX_LENGTH:
        return f"The username cannot be longer than {USERNAME_MAX_LENGTH} characters"
    if not USERNAME_RE.fullmatch(value):
        return "The username can only contain letters, numbers and underscores"
    return None


def validate_password(value: str | None) -> str | None:
    if value is None or value == "":
        return "The password is required"
    if len(value) < PASSWORD_MIN_LENGTH:
        return f"The password must be at least {PASSWORD_MIN_LENGTH} characters long"
    if len(value) > PASSWORD_MAX_LENGTH or len(value.encode()) > PASSWORD_MAX_LENGTH:
        return f"The password cannot be longer than {PASSWORD_MAX_LENGTH} characters"
    return None


# attribute name, API field name, rule
FIELD_RULES: list[tuple[str, str, Callable[[str | None], str | None]]] = [
    ("name", "name", lambda v: validate_name(v, "name")),
    ("last_name", "lastName", lambda v: validate_name(v, "last name")),
    (
        "mother_last_name",
        "motherLastName",
        lambda v: validate_name(v, "mother's last name", required=False),
    ),
    ("phone_number", "phoneNumber", validate_phone),
    ("email", "email", validate_email),
    ("username", "username", validate_username),
    ("password", "password", validate_password),
]


def _error(field: str, message: str) -> dict:
    return {"field": field, "message": message}


def validate_full(data: Mapping) -> list[dict]:
    """Check every field; absent fields count as missing."""
    errors = []
    for attr, field, rule in FIELD_RULES:
        message = rule(data.get(attr))
        if message:
            errors.append(_error(field, message))
    return errors


def validate_partial(data: Mapping) -> list[dict]:
    """Check only the fields present in ``data``."""
    errors = []
    for attr, field, rule in FIELD_RULES:
        if attr not in data:
            continue
        message = rule(data[attr])
        if message:
            errors.append(_error(field, message))
    return errors


def validate_login(data: Mapping) -> list[dict]:
    errors = []
    if _is_blank(data.get("identifier")):
        errors.append(_error("identifier", "An email or username is required"))
    if not data.get("password"):
        errors.append(_error("password", "The password is required"))
    return errors
