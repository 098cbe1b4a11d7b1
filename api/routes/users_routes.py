"""User resource endpoints.

Handlers stay thin: they unpack the request, call UserService and wrap
the result in the {success, message, data} envelope. Errors raised by the
service are turned into responses by the handlers registered in main.py.
"""

from typing import Annotated

from fastapi import APIRouter, Body, Depends, Query, Request, status

from core.ratelimit import USERS_LIMIT, limiter
from schemas import (
    ApiResponse,
    DeletedUser,
    ErrorResponse,
    UserListResponse,
    UserPayload,
    UserRecord,
)
from services.users_service import UserService

router = APIRouter(prefix="/api/users", tags=["users"])

_INVALID = {400: {"model": ErrorResponse, "description": "Invalid input"}}
_NOT_FOUND = {404: {"model": ErrorResponse, "description": "User not found"}}
_CONFLICT = {409: {"model": ErrorResponse, "description": "Email already exists"}}


def get_user_service(request: Request) -> UserService:
    return request.app.state.user_service


UserServiceDep = Annotated[UserService, Depends(get_user_service)]
OptionalPayload = Annotated[UserPayload | None, Body()]


def _supplied_fields(payload: UserPayload | None) -> dict:
    """Only the keys the client actually sent; absence and null differ for age."""
    return payload.model_dump(exclude_unset=True) if payload else {}


@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    response_model=ApiResponse[UserRecord],
    responses={**_INVALID, **_CONFLICT},
)
@limiter.limit(USERS_LIMIT)
async def create_user(
    request: Request, service: UserServiceDep, payload: OptionalPayload = None
) -> ApiResponse[UserRecord]:
    """Create a user."""
    user = await service.create_user(_supplied_fields(payload))
    return ApiResponse(success=True, message="User created successfully", data=user)


@router.get("", response_model=UserListResponse, responses=_INVALID)
@limiter.limit(USERS_LIMIT)
async def list_users(
    request: Request,
    service: UserServiceDep,
    page: str | None = None,
    limit: str | None = None,
    sort_by: Annotated[str | None, Query(alias="sortBy")] = None,
    sort_order: Annotated[str | None, Query(alias="sortOrder")] = None,
) -> UserListResponse:
    """List users with pagination and sorting.

    - page: page number (default 1)
    - limit: page size (default 10)
    - sortBy: id | name | email | age | created_at (default created_at)
    - sortOrder: asc | desc (default desc)
    """
    result = await service.list_users(page, limit, sort_by, sort_order)
    return UserListResponse(
        success=True,
        message="Users retrieved successfully",
        data=result.rows,
        pagination=result.pagination,
    )


@router.get(
    "/{user_id}",
    response_model=ApiResponse[UserRecord],
    responses={**_INVALID, **_NOT_FOUND},
)
@limiter.limit(USERS_LIMIT)
async def get_user(
    request: Request, user_id: str, service: UserServiceDep
) -> ApiResponse[UserRecord]:
    """Get a single user by id."""
    user = await service.get_user(user_id)
    return ApiResponse(success=True, message="User retrieved successfully", data=user)


@router.put(
    "/{user_id}",
    response_model=ApiResponse[UserRecord],
    responses={**_INVALID, **_NOT_FOUND, **_CONFLICT},
)
@router.patch(
    "/{user_id}",
    response_model=ApiResponse[UserRecord],
    responses={**_INVALID, **_NOT_FOUND, **_CONFLICT},
)
@limiter.limit(USERS_LIMIT)
async def update_user(
    request: Request,
    user_id: str,
    service: UserServiceDep,
    payload: OptionalPayload = None,
) -> ApiResponse[UserRecord]:
    """Update any subset of name, email and age."""
    user = await service.update_user(user_id, _supplied_fields(payload))
    return ApiResponse(success=True, message="User updated successfully", data=user)


@router.delete(
    "/{user_id}",
    response_model=ApiResponse[DeletedUser],
    responses={**_INVALID, **_NOT_FOUND},
)
@limiter.limit(USERS_LIMIT)
async def delete_user(
    request: Request, user_id: str, service: UserServiceDep
) -> ApiResponse[DeletedUser]:
    """Delete a user permanently."""
    deleted = await service.delete_user(user_id)
    return ApiResponse(success=True, message="User deleted successfully", data=deleted)
