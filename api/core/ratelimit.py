"""Per-client rate limiting for the user routes (slowapi).

Counters live in RATELIMIT_STORAGE_URI. memory:// keeps separate counters
per worker process; use redis://host:port/db when running more than one.
"""

import logging

from fastapi import Request, Response
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from starlette.responses import JSONResponse

from core.config import get_settings

logger = logging.getLogger(__name__)

settings = get_settings()


def client_key(request: Request) -> str:
    """Rate-limit bucket for a request.

    Behind a proxy the socket peer is the proxy itself, so the left-most
    X-Forwarded-For entry is used when RATELIMIT_TRUST_FORWARDED is set.
    """
    if settings.ratelimit_trust_forwarded:
        forwarded = request.headers.get("x-forwarded-for", "")
        first_hop = forwarded.split(",")[0].strip()
        if first_hop:
            return first_hop
    return get_remote_address(request)


limiter = Limiter(
    key_func=client_key,
    storage_uri=settings.ratelimit_storage_uri,
    # Degrade to per-process counters while Redis is unreachable
    in_memory_fallback_enabled=settings.ratelimit_storage_uri.startswith("redis://"),
    key_prefix="users-api:",
)

USERS_LIMIT = settings.users_rate_limit


def rate_limit_exceeded_handler(request: Request, exc: Exception) -> Response:
    """Answer 429 in the standard {success, message, data} envelope."""
    if not isinstance(exc, RateLimitExceeded):
        return JSONResponse(
            status_code=500,
            content={"success": False, "message": "Unexpected error", "data": None},
        )

    logger.warning(
        "ratelimit.exceeded",
        extra={"client": client_key(request), "limit": exc.detail},
    )
    return JSONResponse(
        status_code=429,
        content={
            "success": False,
            "message": "Rate limit exceeded. Please slow down.",
            "data": None,
        },
        headers={"Retry-After": str(getattr(exc, "retry_after", 60))},
    )
