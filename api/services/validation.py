"""Field validation for user payloads. Pure functions, no I/O."""

import re
from collections.abc import Mapping
from typing import Any, Literal

from core.errors import InvalidIdError, NothingToUpdateError, ValidationError

Mode = Literal["create", "update"]

NAME_MAX_LENGTH = 100
EMAIL_MAX_LENGTH = 150

# local@domain.tld - no whitespace anywhere, at least one dot after the @
EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

# inclusive (min, max) per mode
AGE_BOUNDS: dict[str, tuple[int, int]] = {
    "create": (1, 130),
    "update": (0, 150),
}

# users.id is a 32-bit SERIAL
MAX_USER_ID = 2**31 - 1

MUTABLE_FIELDS = ("name", "email", "age")


def is_supplied(payload: Mapping[str, Any], field: str) -> bool:
    """Whether ``field`` counts as supplied in an update payload.

    ``age`` is keyed off presence so that ``0`` and ``null`` are real updates;
    ``name`` and ``email`` must be truthy.
    """
    if field == "age":
        return "age" in payload
    return bool(payload.get(field))


def _validate_name(name: Any) -> None:
    if not isinstance(name, str):
        raise ValidationError("name", "type", "Name must be a string")
    if len(name) > NAME_MAX_LENGTH:
        raise ValidationError(
            "name",
            "too_long",
            f"Name must be at most {NAME_MAX_LENGTH} characters",
        )


def _validate_email(email: Any) -> None:
    if not isinstance(email, str):
        raise ValidationError("email", "type", "Email must be a string")
    if len(email) > EMAIL_MAX_LENGTH:
        raise ValidationError(
            "email",
            "too_long",
            f"Email must be at most {EMAIL_MAX_LENGTH} characters",
        )
    if not EMAIL_PATTERN.match(email):
        raise ValidationError("email", "format", "Invalid email format")


def _validate_age(age: Any, mode: Mode) -> None:
    # bool is an int subclass; True must not pass as age 1
    if isinstance(age, bool) or not isinstance(age, int):
        raise ValidationError("age", "type", "Age must be an integer")
    lower, upper = AGE_BOUNDS[mode]
    if not lower <= age <= upper:
        raise ValidationError(
            "age",
            "out_of_range",
            f"Age must be between {lower} and {upper}",
        )


def validate_user_payload(payload: Mapping[str, Any], mode: Mode) -> None:
    """Check a candidate user payload.

    In ``create`` mode ``name`` and ``email`` are required. In ``update``
    mode any subset may be supplied, but each supplied field obeys the same
    format rule, and supplying nothing is itself a failure.

    Raises:
        ValidationError: naming the offending field.
        NothingToUpdateError: update mode with no supplied fields.
    """
    if mode == "create":
        if not payload.get("name") or not payload.get("email"):
            missing = "name" if not payload.get("name") else "email"
            raise ValidationError(
                missing, "required", "Name and email are required"
            )
        _validate_name(payload["name"])
        _validate_email(payload["email"])
        # age: null on create means "not provided"
        if payload.get("age") is not None:
            _validate_age(payload["age"], mode)
        return

    supplied = [field for field in MUTABLE_FIELDS if is_supplied(payload, field)]
    if not supplied:
        raise NothingToUpdateError()

    if "name" in supplied:
        _validate_name(payload["name"])
    if "email" in supplied:
        _validate_email(payload["email"])
    # explicit null clears the age and skips the range check
    if "age" in supplied and payload["age"] is not None:
        _validate_age(payload["age"], mode)


def parse_user_id(raw_id: Any) -> int:
    """Parse a path id into a positive integer or raise InvalidIdError."""
    if isinstance(raw_id, bool):
        raise InvalidIdError(raw_id)
    if isinstance(raw_id, int):
        user_id = raw_id
    elif isinstance(raw_id, str) and raw_id.strip().isdigit():
        # isdigit() also accepts non-ASCII digits such as "²"
        try:
            user_id = int(raw_id.strip())
        except ValueError as e:
            raise InvalidIdError(raw_id) from e
    else:
        raise InvalidIdError(raw_id)

    if not 1 <= user_id <= MAX_USER_ID:
        raise InvalidIdError(raw_id)
    return user_id
