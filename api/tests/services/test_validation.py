"""Tests for services.validation.

Covers create/update payload rules, the shared presence rule and id parsing.
"""

import pytest
from hypothesis import given
from hypothesis import strategies as st

from core.errors import InvalidIdError, NothingToUpdateError, ValidationError
from services.validation import (
    MAX_USER_ID,
    is_supplied,
    parse_user_id,
    validate_user_payload,
)
from tests.factories import UserPayloadFactory

pytestmark = pytest.mark.unit


class TestCreateMode:
    def test_accepts_valid_payload(self):
        validate_user_payload(UserPayloadFactory(), "create")

    def test_accepts_missing_and_null_age(self):
        validate_user_payload({"name": "Ann", "email": "ann@example.com"}, "create")
        validate_user_payload(
            {"name": "Ann", "email": "ann@example.com", "age": None}, "create"
        )

    @pytest.mark.parametrize(
        "payload, field",
        [
            ({"email": "a@b.co"}, "name"),
            ({"name": "", "email": "a@b.co"}, "name"),
            ({"name": "Ann"}, "email"),
            ({"name": "Ann", "email": ""}, "email"),
            ({}, "name"),
        ],
    )
    def test_requires_name_and_email(self, payload, field):
        with pytest.raises(ValidationError) as exc_info:
            validate_user_payload(payload, "create")

        assert exc_info.value.message == "Name and email are required"
        assert exc_info.value.field == field
        assert exc_info.value.reason == "required"

    @pytest.mark.parametrize(
        "email",
        ["plainaddress", "no-at.example.com", "a@b", "a b@c.com", "a@b .com", "@b.co"],
    )
    def test_rejects_bad_email_format(self, email):
        with pytest.raises(ValidationError) as exc_info:
            validate_user_payload({"name": "Ann", "email": email}, "create")

        assert exc_info.value.field == "email"
        assert exc_info.value.message == "Invalid email format"

    def test_rejects_overlong_name_and_email(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_user_payload({"name": "x" * 101, "email": "a@b.co"}, "create")
        assert exc_info.value.field == "name"

        long_email = "a" * 140 + "@example.com"
        with pytest.raises(ValidationError) as exc_info:
            validate_user_payload({"name": "Ann", "email": long_email}, "create")
        assert exc_info.value.field == "email"

    def test_accepts_boundary_lengths(self):
        email = "a" * 138 + "@example.com"
        assert len(email) == 150
        validate_user_payload({"name": "x" * 100, "email": email}, "create")

    @pytest.mark.parametrize("age", [1, 30, 130])
    def test_accepts_age_in_range(self, age):
        validate_user_payload({"name": "Ann", "email": "a@b.co", "age": age}, "create")

    @pytest.mark.parametrize("age", [0, -1, 131, 150])
    def test_rejects_age_out_of_range(self, age):
        with pytest.raises(ValidationError) as exc_info:
            validate_user_payload(
                {"name": "Ann", "email": "a@b.co", "age": age}, "create"
            )

        assert exc_info.value.field == "age"
        assert exc_info.value.message == "Age must be between 1 and 130"

    @pytest.mark.parametrize("age", ["30", 30.5, True])
    def test_rejects_non_integer_age(self, age):
        with pytest.raises(ValidationError) as exc_info:
            validate_user_payload(
                {"name": "Ann", "email": "a@b.co", "age": age}, "create"
            )

        assert exc_info.value.reason == "type"


class TestUpdateMode:
    def test_empty_payload_is_nothing_to_update(self):
        with pytest.raises(NothingToUpdateError) as exc_info:
            validate_user_payload({}, "update")

        assert exc_info.value.message == "No fields provided to update"

    def test_falsy_name_and_email_are_not_supplied(self):
        with pytest.raises(NothingToUpdateError):
            validate_user_payload({"name": "", "email": None}, "update")

    def test_age_zero_is_a_real_update(self):
        validate_user_payload({"age": 0}, "update")

    def test_age_null_clears_without_range_check(self):
        validate_user_payload({"age": None}, "update")

    @pytest.mark.parametrize("age", [0, 75, 150])
    def test_update_accepts_wider_age_range(self, age):
        validate_user_payload({"age": age}, "update")

    @pytest.mark.parametrize("age", [-1, 151])
    def test_update_rejects_age_outside_range(self, age):
        with pytest.raises(ValidationError) as exc_info:
            validate_user_payload({"age": age}, "update")

        assert exc_info.value.message == "Age must be between 0 and 150"

    def test_supplied_email_is_format_checked(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_user_payload({"email": "nope"}, "update")

        assert exc_info.value.field == "email"

    def test_partial_payload_with_single_field(self):
        validate_user_payload({"name": "New Name"}, "update")


class TestIsSupplied:
    @pytest.mark.parametrize(
        "payload, expected",
        [
            ({"age": 0}, True),
            ({"age": None}, True),
            ({}, False),
        ],
    )
    def test_age_uses_presence(self, payload, expected):
        assert is_supplied(payload, "age") is expected

    @pytest.mark.parametrize("value", ["", None])
    def test_name_uses_truthiness(self, value):
        assert is_supplied({"name": value}, "name") is False


class TestParseUserId:
    @pytest.mark.parametrize(
        "raw, expected",
        [("1", 1), ("42", 42), (" 7 ", 7), (5, 5), (str(MAX_USER_ID), MAX_USER_ID)],
    )
    def test_parses_positive_integers(self, raw, expected):
        assert parse_user_id(raw) == expected

    @pytest.mark.parametrize(
        "raw",
        ["abc", "0", "-5", "1.5", "", "1e3", "²", None, True, 0, -1, 2**31],
    )
    def test_rejects_everything_else(self, raw):
        with pytest.raises(InvalidIdError) as exc_info:
            parse_user_id(raw)

        assert exc_info.value.message == "Invalid user ID"
        assert exc_info.value.http_status == 400

    @given(st.integers(min_value=1, max_value=MAX_USER_ID))
    def test_any_positive_int_string_parses_back(self, user_id: int):
        assert parse_user_id(str(user_id)) == user_id

    @given(st.text().filter(lambda s: not s.strip().isdigit()))
    def test_non_digit_text_is_always_invalid(self, raw: str):
        with pytest.raises(InvalidIdError):
            parse_user_id(raw)
