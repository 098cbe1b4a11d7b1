"""FastAPI application for the users API."""

import asyncio
import logging
from contextlib import asynccontextmanager

import fastapi
from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException

from core.config import get_settings
from core.errors import StoreError, UserResourceError
from core.logger import configure_logging
from core.ratelimit import limiter, rate_limit_exceeded_handler
from core.telemetry import RequestTimingMiddleware
from repositories.factory import create_user_store
from routes import health_router, users_router
from services.users_service import UserService

configure_logging()
logger = logging.getLogger(__name__)


def _envelope(message: str, **extra) -> dict:
    return {"success": False, "message": message, "data": None, **extra}


async def user_resource_exception_handler(
    request: Request, exc: Exception
) -> JSONResponse:
    """Map the user error taxonomy onto status codes and the envelope."""
    if not isinstance(exc, UserResourceError):
        return JSONResponse(status_code=500, content=_envelope("Internal server error"))

    if isinstance(exc, StoreError):
        # The only unexpected kind; keep the cause for diagnostics
        logger.error(
            "user.store.failed",
            exc_info=exc,
            extra={
                "operation": exc.operation,
                "cause_type": type(exc.__cause__).__name__,
                "path": request.url.path,
                "method": request.method,
            },
        )
    return JSONResponse(status_code=exc.http_status, content=exc.to_response())


async def validation_exception_handler(
    request: Request, exc: Exception
) -> JSONResponse:
    """Malformed JSON or wrongly typed body fields."""
    if not isinstance(exc, RequestValidationError):
        return JSONResponse(status_code=500, content=_envelope("Unexpected error"))

    errors = exc.errors()
    logger.warning(
        "request.validation_error",
        extra={
            "path": request.url.path,
            "method": request.method,
            "error_count": len(errors),
        },
    )
    first = errors[0] if errors else {}
    # json_invalid errors end in a character offset, not a field name
    loc = [
        part
        for part in first.get("loc", ())
        if isinstance(part, str) and part != "body"
    ]
    return JSONResponse(
        status_code=400,
        content=_envelope(
            "Invalid request body",
            error={
                "field": loc[-1] if loc else "body",
                "reason": first.get("type", "invalid"),
            },
        ),
    )


async def http_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Unknown routes and framework HTTP errors, in the same envelope."""
    if not isinstance(exc, StarletteHTTPException):
        return JSONResponse(status_code=500, content=_envelope("Unexpected error"))

    if exc.status_code == 404 and exc.detail == "Not Found":
        message = f"Route not found: {request.method} {request.url.path}"
    else:
        message = str(exc.detail)
    return JSONResponse(
        status_code=exc.status_code,
        content=_envelope(message),
        headers=getattr(exc, "headers", None),
    )


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Last-resort handler for unhandled exceptions."""
    logger.exception(
        "unhandled.exception",
        extra={
            "exc_type": type(exc).__name__,
            "path": request.url.path,
            "method": request.method,
        },
    )
    return JSONResponse(status_code=500, content=_envelope("Internal server error"))


@asynccontextmanager
async def lifespan(app: fastapi.FastAPI):
    """Build the configured user store at startup, close it on shutdown."""
    settings = get_settings()
    app.state.user_store = None

    try:
        async with asyncio.timeout(60):
            store = await create_user_store(settings)
    except TimeoutError:
        logger.error(
            "init.timeout",
            extra={
                "backend": settings.persistence_backend,
                "hint": "Startup hung - check store connectivity",
            },
        )
        raise RuntimeError("Application startup timed out")
    except Exception as e:
        logger.error(
            "init.failed",
            extra={"backend": settings.persistence_backend, "error": str(e)},
            exc_info=True,
        )
        raise

    app.state.user_store = store
    app.state.user_service = UserService(
        store,
        existence_precheck=settings.user_existence_precheck,
        max_limit=settings.list_max_limit,
    )
    logger.info("init.complete", extra={"backend": store.backend})

    try:
        yield
    finally:
        await store.close()


_settings = get_settings()

app = fastapi.FastAPI(
    title="Users API",
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs" if _settings.docs_enabled else None,
    redoc_url="/redoc" if _settings.docs_enabled else None,
    openapi_url="/openapi.json" if _settings.docs_enabled else None,
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
app.add_exception_handler(UserResourceError, user_resource_exception_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(StarletteHTTPException, http_exception_handler)
app.add_exception_handler(Exception, global_exception_handler)

app.add_middleware(RequestTimingMiddleware)

app.include_router(health_router)
app.include_router(users_router)
