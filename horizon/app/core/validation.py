"""
Form validation returning one tagged result per field.

Each check returns `Valid(value)` with the normalized value or `Invalid(message)`.
`require_valid` collects a mapping of field results and raises a single
ValidationError listing every failing field, so the action is blocked before any
remote call is made.
"""
from __future__ import annotations

import math
import re
from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, Mapping, Optional, Union

from horizon.app.core.errors import ValidationError

MIN_PASSWORD_LENGTH = 6
MIN_PHONE_DIGITS = 9


@dataclass(frozen=True)
class Valid:
    value: Any


@dataclass(frozen=True)
class Invalid:
    message: str


FieldResult = Union[Valid, Invalid]


def digits_only(raw: Optional[str]) -> str:
    return re.sub(r"\D", "", raw or "")


def is_email_format(raw: str) -> bool:
    return "@" in raw


def phone_to_email(phone: str, domain: str) -> str:
    """Phone-registered members sign in with `<digits>@<domain>`."""
    return f"{digits_only(phone)}@{domain}"


def validate_required(raw: Optional[str], label: str) -> FieldResult:
    if raw is None or not raw.strip():
        return Invalid(f"Please enter your {label}")
    return Valid(raw.strip())


def validate_password(raw: Optional[str]) -> FieldResult:
    if not raw:
        return Invalid("Please enter your password")
    if len(raw) < MIN_PASSWORD_LENGTH:
        return Invalid(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
    return Valid(raw)


def validate_password_confirmation(password: Optional[str], confirmation: Optional[str]) -> FieldResult:
    if password != confirmation:
        return Invalid("Passwords do not match")
    return Valid(confirmation)


def validate_phone(raw: Optional[str]) -> FieldResult:
    digits = digits_only(raw)
    if not digits:
        return Invalid("Please enter your phone number")
    if len(digits) < MIN_PHONE_DIGITS:
        return Invalid("Please enter a valid phone number")
    return Valid(digits)


def validate_credential(raw: Optional[str], phone_domain: str) -> FieldResult:
    """Email credentials pass through; anything else is read as a phone number."""
    required = validate_required(raw, "phone number or email")
    if isinstance(required, Invalid):
        return required
    value = required.value
    if is_email_format(value):
        return Valid(value.lower())
    phone = validate_phone(value)
    if isinstance(phone, Invalid):
        return phone
    return Valid(phone_to_email(phone.value, phone_domain))


def validate_amount(raw: Any) -> FieldResult:
    """Amounts must be finite numbers greater than zero."""
    try:
        amount = float(raw)
    except (TypeError, ValueError):
        return Invalid("Please enter a valid amount")
    if math.isnan(amount) or math.isinf(amount) or amount <= 0:
        return Invalid("Please enter a valid amount")
    return Valid(amount)


def validate_past_or_today(day: date, today: date) -> FieldResult:
    if day > today:
        return Invalid("You cannot contribute for future dates.")
    return Valid(day)


def require_valid(results: Mapping[str, FieldResult], message: str = "Please fix the highlighted fields") -> Dict[str, Any]:
    """Return the normalized values, or raise ValidationError naming every invalid field."""
    errors = {name: r.message for name, r in results.items() if isinstance(r, Invalid)}
    if errors:
        raise ValidationError(message, fields=errors)
    return {name: r.value for name, r in results.items()}
