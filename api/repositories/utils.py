"""Timing and error bookkeeping shared by the user store backends."""

import time
from collections.abc import Awaitable, Callable
from functools import wraps
from typing import ParamSpec, TypeVar

from core.errors import UserResourceError
from core.logger import get_logger
from core.wide_event import set_wide_event_fields

logger = get_logger(__name__)

# Threshold for logging slow store calls (milliseconds)
SLOW_QUERY_THRESHOLD_MS = 500

P = ParamSpec("P")
R = TypeVar("R")


def track_store_call(
    operation_name: str,
) -> Callable[[Callable[P, Awaitable[R]]], Callable[P, Awaitable[R]]]:
    """Record duration and failures of a store method on the wide event.

    Expected outcomes (NotFoundError, ConflictError) are recorded as
    ``db_outcome`` only; StoreError and anything unmapped also record the
    error type. The exception is always re-raised.

    Usage:
        @track_store_call("users.get_by_id")
        async def get_by_id(self, user_id: int) -> UserRecord:
            ...
    """

    def decorator(func: Callable[P, Awaitable[R]]) -> Callable[P, Awaitable[R]]:
        @wraps(func)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
            start_time = time.perf_counter()
            try:
                result = await func(*args, **kwargs)
            except UserResourceError as e:
                duration_ms = round((time.perf_counter() - start_time) * 1000, 2)
                set_wide_event_fields(
                    db_operation=operation_name,
                    db_duration_ms=duration_ms,
                    db_outcome=e.code,
                )
                raise
            except Exception as e:
                duration_ms = round((time.perf_counter() - start_time) * 1000, 2)
                set_wide_event_fields(
                    db_query_error=True,
                    db_operation=operation_name,
                    db_duration_ms=duration_ms,
                    db_error_type=type(e).__name__,
                )
                raise

            duration_ms = (time.perf_counter() - start_time) * 1000
            if duration_ms > SLOW_QUERY_THRESHOLD_MS:
                logger.warning(
                    "db.query.slow",
                    operation=operation_name,
                    duration_ms=round(duration_ms, 2),
                )
                set_wide_event_fields(
                    db_slow_query=True,
                    db_operation=operation_name,
                    db_duration_ms=round(duration_ms, 2),
                )
            return result

        return wrapper

    return decorator
