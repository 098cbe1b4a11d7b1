"""Request timing middleware and operation tracing."""

import os
import time
import uuid
from collections.abc import Awaitable, Callable
from functools import wraps
from typing import ParamSpec, TypeVar

from starlette.types import ASGIApp, Message, Receive, Scope, Send

from core.logger import get_logger
from core.wide_event import clear_wide_event, get_wide_event, init_wide_event

logger = get_logger(__name__)

TELEMETRY_ENABLED = bool(os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT"))

SERVICE_NAME = os.getenv("SERVICE_NAME", "users-api")
SERVICE_VERSION = os.getenv("SERVICE_VERSION", "1.0.0")

# Successful requests faster than this are not logged
SLOW_REQUEST_MS = 1000

if TELEMETRY_ENABLED:
    from opentelemetry import trace
    from opentelemetry.trace import Status, StatusCode

    tracer = trace.get_tracer(__name__)
else:
    trace = None
    tracer = None
    Status = None
    StatusCode = None

P = ParamSpec("P")
R = TypeVar("R")


class RequestTimingMiddleware:
    """Emits one ``request.completed`` wide event per request.

    Adds x-request-id and x-request-duration-ms response headers. Errors,
    slow requests and every mutation are always logged; fast successful
    reads are dropped.
    """

    def __init__(self, app: ASGIApp):
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        start_time = time.perf_counter()
        method = scope.get("method", "UNKNOWN")
        path = scope.get("path", "")
        client = scope.get("client")
        request_id = str(uuid.uuid4())

        init_wide_event(
            service_name=SERVICE_NAME,
            service_version=SERVICE_VERSION,
            request_id=request_id,
            http_method=method,
            http_path=path,
            http_client_ip=client[0] if client else "unknown",
        )
        response_status: int | None = None

        async def send_wrapper(message: Message) -> None:
            nonlocal response_status

            if message["type"] == "http.response.start":
                response_status = int(message.get("status", 0))
                duration_ms = (time.perf_counter() - start_time) * 1000
                headers: list[tuple[bytes, bytes]] = list(message.get("headers", []))
                headers.append(
                    (b"x-request-duration-ms", f"{duration_ms:.2f}".encode())
                )
                headers.append((b"x-request-id", request_id.encode()))
                message["headers"] = headers

            elif message["type"] == "http.response.body" and not message.get(
                "more_body", False
            ):
                self._emit(scope, start_time, response_status)

            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        except Exception as exc:
            event = get_wide_event()
            event["exception_type"] = type(exc).__name__
            self._emit(scope, start_time, None, outcome="exception")
            raise

    @staticmethod
    def _emit(
        scope: Scope,
        start_time: float,
        status: int | None,
        outcome: str | None = None,
    ) -> None:
        duration_ms = (time.perf_counter() - start_time) * 1000
        route = scope.get("route")
        event = get_wide_event()
        if not event:
            return
        event["http_route"] = getattr(route, "path", None) or scope.get("path", "")
        event["http_status_code"] = status
        event["duration_ms"] = round(duration_ms, 2)
        event["outcome"] = outcome or (
            "success" if status is not None and status < 400 else "error"
        )

        should_emit = (
            status is None
            or status >= 400
            or duration_ms > SLOW_REQUEST_MS
            or scope.get("method") != "GET"
        )
        if should_emit:
            logger.info("request.completed", **event)
        clear_wide_event()


def track_operation(
    operation_name: str,
) -> Callable[[Callable[P, Awaitable[R]]], Callable[P, Awaitable[R]]]:
    """Wrap an async business operation in an OpenTelemetry span.

    A plain pass-through unless OTEL_EXPORTER_OTLP_ENDPOINT is set.
    """

    def decorator(func: Callable[P, Awaitable[R]]) -> Callable[P, Awaitable[R]]:
        @wraps(func)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
            if not TELEMETRY_ENABLED or tracer is None:
                return await func(*args, **kwargs)

            with tracer.start_as_current_span(
                operation_name, attributes={"operation.name": operation_name}
            ) as span:
                start_time = time.perf_counter()
                try:
                    result = await func(*args, **kwargs)
                    span.set_attribute("operation.success", True)
                    return result
                except Exception as e:
                    span.set_attribute("operation.success", False)
                    span.record_exception(e)
                    if Status is not None and StatusCode is not None:
                        span.set_status(Status(StatusCode.ERROR, str(e)))
                    raise
                finally:
                    duration_ms = (time.perf_counter() - start_time) * 1000
                    span.set_attribute("operation.duration_ms", duration_ms)

        return wrapper

    return decorator
