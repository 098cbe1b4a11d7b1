"""Turn a sparse user payload into the minimal write for the store."""

from collections.abc import Mapping
from typing import Any

from core.errors import NothingToUpdateError
from services.validation import MUTABLE_FIELDS, is_supplied


def compose_update(payload: Mapping[str, Any]) -> list[tuple[str, Any]]:
    """Ordered (field, value) pairs for the fields actually supplied.

    Uses the same presence rule as validation: ``name``/``email`` only when
    truthy, ``age`` whenever the key is present, including ``0`` and an
    explicit ``None`` (which clears the stored age).

    Raises:
        NothingToUpdateError: no pair survived.
    """
    pairs = [
        (field, payload[field])
        for field in MUTABLE_FIELDS
        if is_supplied(payload, field)
    ]
    if not pairs:
        raise NothingToUpdateError()
    return pairs


def compose_insert(payload: Mapping[str, Any]) -> dict[str, Any]:
    return {
        "name": payload["name"],
        "email": payload["email"],
        "age": payload.get("age"),
    }
