"""
Registration input validation.

Role-specific profile shape checks and password strength rules. Every
failure raises ValidationFailed before anything is written to the code
store. Validators return a normalized copy of the profile fields; that copy
is what gets forwarded to the downstream profile service.
"""

import re
from datetime import date
from typing import Any

from .exceptions import ValidationFailed
from .models import Role

PASSWORD_PATTERN = re.compile(r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d)(?=.*[@$!%*?&])[A-Za-z\d@$!%*?&]{8,72}$")
PHONE_PATTERN = re.compile(r"^(?:\+91)?[6-9]\d{9}$")
IFSC_PATTERN = re.compile(r"^[A-Z]{4}0[A-Z0-9]{6}$")
ACCOUNT_NUMBER_PATTERN = re.compile(r"^\d{9,18}$")
UPI_PATTERN = re.compile(r"^[\w.\-]{2,256}@[A-Za-z]{2,64}$")
REGISTRATION_NUMBER_PATTERN = re.compile(r"^[A-Z0-9]{6,12}$")

VEHICLE_TYPES = frozenset({"2-wheeler", "mini-truck", "truck", "pickup"})
MINIMUM_PARTNER_AGE = 18

PASSWORD_RULES = (
    "Password must be at least 8 characters long, include an uppercase letter, "
    "a lowercase letter, a number, and a special character."
)


def validate_password(password: str | None) -> str:
    """Check password strength. Returns the password unchanged."""
    if not password or not PASSWORD_PATTERN.match(password):
        raise ValidationFailed(PASSWORD_RULES, field="password")
    return password


def validate_profile(role: Role, fields: dict[str, Any], today: date | None = None) -> dict[str, Any]:
    """
    Validate the role-specific profile fields.

    Args:
        role: Role being registered
        fields: Raw profile fields from the caller
        today: Reference date for age checks (defaults to date.today())

    Returns:
        Normalized profile draft

    Raises:
        ValidationFailed: On the first field that does not pass
    """
    if role is Role.END_USER:
        return _validate_end_user(fields)
    if role is Role.PARTNER:
        return _validate_partner(fields, today or date.today())
    raise ValidationFailed(f"Role '{role.value}' cannot self-register", field="role")


def _validate_end_user(fields: dict[str, Any]) -> dict[str, Any]:
    return {
        "full_name": _required_text(fields, "full_name", max_length=100),
        "phone": _phone(fields, "phone"),
    }


def _validate_partner(fields: dict[str, Any], today: date) -> dict[str, Any]:
    profile = {
        "full_name": _required_text(fields, "full_name", max_length=100),
        "mobile_number": _phone(fields, "mobile_number"),
        "date_of_birth": _date_of_birth(fields, today).isoformat(),
        "address": _required_text(fields, "address", max_length=300),
        "vehicle_type": _vehicle_type(fields),
        "registration_number": _registration_number(fields),
        "account_holder_name": _required_text(fields, "account_holder_name", max_length=100),
        "account_number": _matching(fields, "account_number", ACCOUNT_NUMBER_PATTERN),
        "ifsc_code": _matching(fields, "ifsc_code", IFSC_PATTERN, upper=True),
    }
    upi_id = str(fields.get("upi_id") or "").strip()
    if upi_id:
        if not UPI_PATTERN.match(upi_id):
            raise ValidationFailed("Invalid UPI id", field="upi_id")
        profile["upi_id"] = upi_id
    return profile


def _required_text(fields: dict[str, Any], name: str, max_length: int) -> str:
    value = fields.get(name)
    if not isinstance(value, str) or not value.strip():
        raise ValidationFailed(f"'{name}' is required", field=name)
    value = " ".join(value.split())
    if len(value) > max_length:
        raise ValidationFailed(f"'{name}' must be at most {max_length} characters", field=name)
    return value


def _phone(fields: dict[str, Any], name: str) -> str:
    value = _required_text(fields, name, max_length=16).replace(" ", "")
    if not PHONE_PATTERN.match(value):
        raise ValidationFailed("Invalid phone number format", field=name)
    return value


def _matching(fields: dict[str, Any], name: str, pattern: re.Pattern[str], upper: bool = False) -> str:
    value = _required_text(fields, name, max_length=64).replace(" ", "")
    if upper:
        value = value.upper()
    if not pattern.match(value):
        raise ValidationFailed(f"Invalid '{name}'", field=name)
    return value


def _registration_number(fields: dict[str, Any]) -> str:
    raw = _required_text(fields, "registration_number", max_length=20)
    value = re.sub(r"[^A-Z0-9]", "", raw.upper())
    if not REGISTRATION_NUMBER_PATTERN.match(value):
        raise ValidationFailed("Invalid vehicle registration number", field="registration_number")
    return value


def _vehicle_type(fields: dict[str, Any]) -> str:
    value = _required_text(fields, "vehicle_type", max_length=20).lower()
    if value not in VEHICLE_TYPES:
        raise ValidationFailed(
            f"'vehicle_type' must be one of: {', '.join(sorted(VEHICLE_TYPES))}",
            field="vehicle_type",
        )
    return value


def _date_of_birth(fields: dict[str, Any], today: date) -> date:
    raw = _required_text(fields, "date_of_birth", max_length=10)
    try:
        born = date.fromisoformat(raw)
    except ValueError:
        raise ValidationFailed("'date_of_birth' must be YYYY-MM-DD", field="date_of_birth") from None

    age = today.year - born.year - ((today.month, today.day) < (born.month, born.day))
    if age < MINIMUM_PARTNER_AGE:
        raise ValidationFailed(
            f"Partners must be at least {MINIMUM_PARTNER_AGE} years old", field="date_of_birth"
        )
    return born
