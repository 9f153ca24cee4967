"""
Unit tests for registration input validation.

Covers password strength and the role-specific profile field rules.
"""

from datetime import date

import pytest

from src.domain.exceptions import ValidationFailed
from src.domain.models import Role
from src.domain.validation import validate_password, validate_profile

TODAY = date(2026, 6, 1)


class TestPassword:
    @pytest.mark.parametrize("password", ["Str0ng!Pass", "aB3$efgh", "Zz9@" + "x" * 60])
    def test_strong_passwords_pass(self, password: str) -> None:
        assert validate_password(password) == password

    @pytest.mark.parametrize(
        "password",
        [
            None,
            "",
            "Sh0rt!",
            "alllowercase1!",
            "ALLUPPERCASE1!",
            "NoDigits!!",
            "NoSpecial123",
            "Has Space1!",
            "Str0ng!Pass" + "x" * 70,
        ],
    )
    def test_weak_passwords_fail(self, password: str | None) -> None:
        with pytest.raises(ValidationFailed) as exc_info:
            validate_password(password)

        assert exc_info.value.field == "password"


class TestEndUserProfile:
    def test_valid_profile_is_normalized(self) -> None:
        profile = validate_profile(
            Role.END_USER, {"full_name": "  Alice   Example ", "phone": "+91 98765 43210", "extra": "dropped"}
        )

        assert profile == {"full_name": "Alice Example", "phone": "+919876543210"}

    @pytest.mark.parametrize("phone", ["12345", "5876543210", "+1 9876543210", "98765432101"])
    def test_bad_phone_rejected(self, phone: str) -> None:
        with pytest.raises(ValidationFailed) as exc_info:
            validate_profile(Role.END_USER, {"full_name": "Alice", "phone": phone})

        assert exc_info.value.field == "phone"

    def test_missing_name_rejected(self) -> None:
        with pytest.raises(ValidationFailed) as exc_info:
            validate_profile(Role.END_USER, {"full_name": "   ", "phone": "9876543210"})

        assert exc_info.value.field == "full_name"


class TestPartnerProfile:
    def test_valid_profile_is_normalized(self, partner_profile: dict) -> None:
        profile = validate_profile(Role.PARTNER, {**partner_profile, "upi_id": "ravi.k@okbank"}, today=TODAY)

        assert profile["vehicle_type"] == "mini-truck"
        assert profile["registration_number"] == "KA01AB1234"
        assert profile["ifsc_code"] == "HDFC0001234"
        assert profile["date_of_birth"] == "1990-04-12"
        assert profile["upi_id"] == "ravi.k@okbank"

    def test_upi_is_optional(self, partner_profile: dict) -> None:
        assert "upi_id" not in validate_profile(Role.PARTNER, partner_profile, today=TODAY)

    def test_underage_partner_rejected(self, partner_profile: dict) -> None:
        with pytest.raises(ValidationFailed) as exc_info:
            validate_profile(Role.PARTNER, {**partner_profile, "date_of_birth": "2008-06-02"}, today=TODAY)

        assert exc_info.value.field == "date_of_birth"

    def test_eighteenth_birthday_is_old_enough(self, partner_profile: dict) -> None:
        profile = validate_profile(Role.PARTNER, {**partner_profile, "date_of_birth": "2008-06-01"}, today=TODAY)

        assert profile["date_of_birth"] == "2008-06-01"

    @pytest.mark.parametrize(
        "field,value",
        [
            ("date_of_birth", "12/04/1990"),
            ("vehicle_type", "spaceship"),
            ("registration_number", "K1"),
            ("account_number", "12ab"),
            ("ifsc_code", "HDFC1234567"),
            ("upi_id", "not-a-upi"),
            ("mobile_number", "0000"),
            ("address", ""),
        ],
    )
    def test_bad_field_rejected(self, partner_profile: dict, field: str, value: str) -> None:
        with pytest.raises(ValidationFailed) as exc_info:
            validate_profile(Role.PARTNER, {**partner_profile, field: value}, today=TODAY)

        assert exc_info.value.field == field


def test_administrator_cannot_self_register() -> None:
    with pytest.raises(ValidationFailed) as exc_info:
        validate_profile(Role.ADMINISTRATOR, {})

    assert exc_info.value.field == "role"
