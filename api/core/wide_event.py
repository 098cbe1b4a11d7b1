"""Request-scoped context for the per-request canonical log line.

RequestTimingMiddleware opens a dict at request start and logs it once as
``request.completed`` when the response finishes. Services and repositories
add fields along the way (user id, store operation, outcome).

Usage:
    from core.wide_event import set_wide_event_fields
    set_wide_event_fields(user_id=user.id, user_operation="update")
"""

from contextvars import ContextVar
from typing import Any

_wide_event: ContextVar[dict[str, Any] | None] = ContextVar(
    "wide_event", default=None
)


def init_wide_event(**fields: Any) -> dict[str, Any]:
    """Start a fresh event for the current async context."""
    event: dict[str, Any] = dict(fields)
    _wide_event.set(event)
    return event


def get_wide_event() -> dict[str, Any]:
    """Current event, or an empty throwaway dict outside a request."""
    event = _wide_event.get()
    return event if event is not None else {}


def set_wide_event_fields(**fields: Any) -> None:
    """Merge fields into the current event.

    No-op outside a request (CLI, tests without the middleware).
    """
    event = _wide_event.get()
    if event is not None:
        event.update(fields)


def clear_wide_event() -> None:
    _wide_event.set(None)
