"""Service index, health and readiness endpoints."""

from fastapi import APIRouter, HTTPException, Request
from starlette import status

from core.database import get_pool_status
from core.logger import get_logger
from repositories.user_repository import UserRepository
from schemas import DetailedHealthResponse, HealthResponse, PoolStatusResponse

logger = get_logger(__name__)

router = APIRouter(tags=["health"])

SERVICE_NAME = "users-api"


@router.get("/")
async def index() -> dict:
    """List the user resource endpoints."""
    return {
        "success": True,
        "message": "API server is running",
        "data": {
            "service": SERVICE_NAME,
            "endpoints": {
                "GET /api/users": "List users (page, limit, sortBy, sortOrder)",
                "GET /api/users/{id}": "Get a user",
                "POST /api/users": "Create a user",
                "PUT /api/users/{id}": "Update a user",
                "DELETE /api/users/{id}": "Delete a user",
            },
        },
    }


@router.get("/health", response_model=HealthResponse)
async def health() -> HealthResponse:
    """Liveness only; never touches the store."""
    return HealthResponse(status="healthy", service=SERVICE_NAME)


async def _store_reachable(request: Request) -> bool:
    try:
        await request.app.state.user_store.ping()
    except Exception:
        logger.warning("health.store.unreachable", exc_info=True)
        return False
    return True


@router.get("/health/detailed", response_model=DetailedHealthResponse)
async def health_detailed(request: Request) -> DetailedHealthResponse:
    """Store connectivity and, for the sql backend, pool metrics.

    Always returns 200 - check the individual fields for health.
    """
    store = request.app.state.user_store
    reachable = await _store_reachable(request)

    pool = None
    if isinstance(store, UserRepository):
        pool_status = get_pool_status(store.engine)
        if pool_status is not None:
            pool = PoolStatusResponse(**pool_status._asdict())

    return DetailedHealthResponse(
        status="healthy" if reachable else "unhealthy",
        service=SERVICE_NAME,
        backend=store.backend,
        store=reachable,
        pool=pool,
    )


@router.get(
    "/ready",
    response_model=HealthResponse,
    responses={503: {"description": "Store not initialized or unreachable"}},
)
async def ready(request: Request) -> HealthResponse:
    """200 only once startup finished and the store answers."""
    if getattr(request.app.state, "user_store", None) is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Starting"
        )
    if not await _store_reachable(request):
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Store unavailable",
        )
    return HealthResponse(status="ready", service=SERVICE_NAME)
