"""Pydantic schemas for API request/response validation."""

from datetime import datetime
from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field, StrictInt, StrictStr
from pydantic.alias_generators import to_camel

DataT = TypeVar("DataT")


class UserRecord(BaseModel):
    """A stored user, exactly the six public columns.

    Both persistence backends return this type; any extra column a backend
    hands back is dropped during validation.
    """

    model_config = ConfigDict(from_attributes=True, frozen=True, extra="ignore")

    id: int
    name: str
    email: str
    age: int | None = None
    created_at: datetime
    updated_at: datetime


class UserPayload(BaseModel):
    """Request body for create and update.

    Every field is optional at this layer. Which fields are required, and
    which count as supplied, is decided by services.validation using the
    set of keys the client actually sent (``model_dump(exclude_unset=True)``).
    Types are strict so JSON ``true`` or ``"25"`` is rejected, not coerced.
    """

    model_config = ConfigDict(extra="ignore")

    name: StrictStr | None = None
    email: StrictStr | None = None
    age: StrictInt | None = None


class Pagination(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    current_page: int
    total_pages: int
    total_users: int
    users_per_page: int


class UserPage(BaseModel):
    rows: list[UserRecord]
    pagination: Pagination


class DeletedUser(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    deleted_user_id: int


class ApiResponse(BaseModel, Generic[DataT]):
    """Envelope shared by every user endpoint."""

    success: bool
    message: str
    data: DataT | None = None


class UserListResponse(ApiResponse[list[UserRecord]]):
    pagination: Pagination


class ErrorDetail(BaseModel):
    field: str
    reason: str


class ErrorResponse(BaseModel):
    success: bool = False
    message: str
    data: None = None
    error: ErrorDetail | None = Field(default=None)


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    service: str


class PoolStatusResponse(BaseModel):
    pool_size: int
    checked_out: int
    overflow: int
    checked_in: int


class DetailedHealthResponse(BaseModel):
    status: str
    service: str
    backend: str
    store: bool
    pool: PoolStatusResponse | None = None
