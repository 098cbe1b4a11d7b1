"""Typed errors shared by the validation, service and persistence layers.

Every error carries a machine-readable code and the HTTP status the route
layer should answer with. Validation and id errors are raised before any
storage call; only StoreError represents an unexpected failure.
"""

from typing import Any


class UserResourceError(Exception):
    """Base exception for all user resource failures."""

    code = "error"
    http_status = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_response(self) -> dict[str, Any]:
        """Render the standard {success, message, data} envelope."""
        return {"success": False, "message": self.message, "data": None}


class ValidationError(UserResourceError):
    """A supplied field failed a shape, format or range rule."""

    code = "validation_error"
    http_status = 400

    def __init__(self, field: str, reason: str, message: str):
        super().__init__(message)
        self.field = field
        self.reason = reason

    def to_response(self) -> dict[str, Any]:
        body = super().to_response()
        body["error"] = {"field": self.field, "reason": self.reason}
        return body


class NothingToUpdateError(ValidationError):
    def __init__(self, message: str = "No fields provided to update"):
        super().__init__(field="body", reason="empty", message=message)


class InvalidSortFieldError(ValidationError):
    def __init__(self, sort_by: str):
        super().__init__(
            field="sortBy",
            reason="not_allowed",
            message="Invalid sort field",
        )
        self.sort_by = sort_by


class InvalidIdError(UserResourceError):
    code = "invalid_id"
    http_status = 400

    def __init__(self, raw_id: object, message: str = "Invalid user ID"):
        super().__init__(message)
        self.raw_id = raw_id


class NotFoundError(UserResourceError):
    code = "not_found"
    http_status = 404

    def __init__(self, user_id: int, message: str = "User not found"):
        super().__init__(message)
        self.user_id = user_id


class ConflictError(UserResourceError):
    """The store rejected a write on the unique email constraint."""

    code = "conflict"
    http_status = 409

    def __init__(self, message: str = "Email already exists"):
        super().__init__(message)


class StoreError(UserResourceError):
    """Any other backend failure, including lost connectivity.

    The original exception is kept on ``__cause__`` for diagnostics; the
    message returned to clients never includes it.
    """

    code = "store_error"
    http_status = 500

    def __init__(self, operation: str, message: str = "Internal server error"):
        super().__init__(message)
        self.operation = operation
