"""Storage-agnostic contract every user backend implements.

Backends must:
- return UserRecord values carrying exactly the six public columns
- raise ConflictError for a unique-email violation
- raise NotFoundError when get/update/delete touch zero rows
- wrap every other backend failure in StoreError, chaining the cause
"""

from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from schemas import UserRecord


@dataclass(frozen=True, slots=True)
class ListQuery:
    """Safe pagination and ordering for a user listing.

    ``sort_by`` is always a member of the sort allow-list by the time a
    ListQuery exists, so backends may use it as a column identifier.
    """

    page: int
    limit: int
    sort_by: str
    ascending: bool

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


class UserStore(ABC):
    """Persistence port for the users table."""

    backend: str

    @abstractmethod
    async def create(self, fields: Mapping[str, Any]) -> UserRecord:
        """Insert a user and return the stored row."""

    @abstractmethod
    async def list_page(self, query: ListQuery) -> tuple[list[UserRecord], int]:
        """Return one page of users plus the total row count."""

    @abstractmethod
    async def get_by_id(self, user_id: int) -> UserRecord: ...

    @abstractmethod
    async def update(
        self, user_id: int, pairs: Sequence[tuple[str, Any]]
    ) -> UserRecord:
        """Apply ``pairs`` and refresh updated_at. Returns the updated row."""

    @abstractmethod
    async def delete(self, user_id: int) -> None: ...

    @abstractmethod
    async def ping(self) -> None:
        """Raise if the backend is unreachable."""

    @abstractmethod
    async def close(self) -> None:
        """Release the pool or client. Called once at shutdown."""
