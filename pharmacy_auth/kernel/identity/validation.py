"""
Input validation for identity requests.

Rules are plain (field, check, message) entries evaluated in order; every
violated rule is reported, never just the first.
"""

import re
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Sequence

from email_validator import EmailNotValidError, validate_email

from pharmacy_auth.kernel.identity.password import PASSWORD_SYMBOLS


def _is_missing(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


@dataclass(frozen=True)
class FieldRule:
    """A single constraint on one input field."""

    field: str
    check: Callable[[Any], bool]
    message: str
    # Format rules skip absent values; presence is the job of ``required``.
    applies_to_missing: bool = False

    def violated_by(self, data: Mapping[str, Any]) -> bool:
        value = data.get(self.field)
        if _is_missing(value) and not self.applies_to_missing:
            return False
        return not self.check(value)


def required(field: str, message: str | None = None) -> FieldRule:
    return FieldRule(
        field,
        lambda v: not _is_missing(v),
        message or f"{field} is required",
        applies_to_missing=True,
    )


def _valid_email(value: Any) -> bool:
    if not isinstance(value, str):
        return False
    try:
        validate_email(value.strip(), check_deliverability=False)
    except EmailNotValidError:
        return False
    return True


def email(field: str) -> FieldRule:
    return FieldRule(field, _valid_email, f"{field} must be a valid email address")


def min_length(field: str, length: int) -> FieldRule:
    return FieldRule(
        field,
        lambda v: isinstance(v, str) and len(v) >= length,
        f"{field} must be at least {length} characters",
    )


def max_length(field: str, length: int) -> FieldRule:
    return FieldRule(
        field,
        lambda v: isinstance(v, str) and len(v) <= length,
        f"{field} must be at most {length} characters",
    )


def positive_integer(field: str) -> FieldRule:
    return FieldRule(
        field,
        lambda v: isinstance(v, int) and not isinstance(v, bool) and v > 0,
        f"{field} must be a positive number",
    )


PASSWORD_MIN_LENGTH = 8

LOGIN_RULES: tuple[FieldRule, ...] = (
    required("email"),
    email("email"),
    max_length("email", 100),
    required("password"),
)

CREATE_USER_RULES: tuple[FieldRule, ...] = (
    required("email"),
    email("email"),
    max_length("email", 100),
    required("password"),
    min_length("password", PASSWORD_MIN_LENGTH),
    required("first_name"),
    max_length("first_name", 50),
    max_length("last_name", 50),
    positive_integer("role_id"),
)


def validate_fields(
    data: Mapping[str, Any],
    rules: Sequence[FieldRule],
) -> list[str]:
    """Return the message of every rule the input violates."""
    return [rule.message for rule in rules if rule.violated_by(data)]


_SYMBOL_PATTERN = re.compile("[" + re.escape(PASSWORD_SYMBOLS) + "]")


def validate_password_strength(password: str) -> list[str]:
    """
    Check a registration password against the strength policy.

    Returns every unmet rule; an empty list means the password is strong.
    """
    errors: list[str] = []

    if len(password) < PASSWORD_MIN_LENGTH:
        errors.append(f"password must be at least {PASSWORD_MIN_LENGTH} characters")
    if not re.search(r"[A-Z]", password):
        errors.append("password must contain at least one uppercase letter")
    if not re.search(r"[a-z]", password):
        errors.append("password must contain at least one lowercase letter")
    if not re.search(r"\d", password):
        errors.append("password must contain at least one digit")
    if not _SYMBOL_PATTERN.search(password):
        errors.append("password must contain at least one special character")

    return errors
