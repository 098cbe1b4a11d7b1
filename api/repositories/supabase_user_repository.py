"""User repository over the Supabase (PostgREST) query builder."""

from collections.abc import Iterator, Mapping, Sequence
from contextlib import contextmanager
from typing import Any

from httpx import HTTPError
from postgrest import APIError, CountMethod
from supabase import AsyncClient

from core.errors import ConflictError, NotFoundError, StoreError
from core.supabase_client import close_supabase_client
from models import USER_COLUMNS, utcnow
from repositories.base import ListQuery, UserStore
from repositories.utils import track_store_call
from schemas import UserRecord

UNIQUE_VIOLATION = "23505"
# PostgREST answers 416 with this code when offset is past the last row
RANGE_NOT_SATISFIABLE = "PGRST103"


@contextmanager
def _translate_errors(operation: str) -> Iterator[None]:
    try:
        yield
    except APIError as e:
        if e.code == UNIQUE_VIOLATION:
            raise ConflictError() from e
        raise StoreError(operation) from e
    except HTTPError as e:
        raise StoreError(operation) from e


class SupabaseUserRepository(UserStore):
    """Users table access through a shared Supabase client."""

    backend = "supabase"

    def __init__(self, client: AsyncClient, table: str = "users"):
        self.client = client
        self.table_name = table

    def _table(self):
        return self.client.table(self.table_name)

    @track_store_call("users.create")
    async def create(self, fields: Mapping[str, Any]) -> UserRecord:
        now = utcnow().isoformat()
        row = {**fields, "created_at": now, "updated_at": now}
        with _translate_errors("create"):
            response = await self._table().insert(row).execute()
        return UserRecord.model_validate(response.data[0])

    async def _count(self) -> int:
        response = (
            await self._table()
            .select("id", count=CountMethod.exact)
            .limit(1)
            .execute()
        )
        return response.count or 0

    @track_store_call("users.list_page")
    async def list_page(self, query: ListQuery) -> tuple[list[UserRecord], int]:
        descending = not query.ascending
        builder = (
            self._table()
            .select(*USER_COLUMNS, count=CountMethod.exact)
            .order(query.sort_by, desc=descending)
        )
        if query.sort_by != "id":
            builder = builder.order("id", desc=descending)
        builder = builder.range(query.offset, query.offset + query.limit - 1)

        with _translate_errors("list"):
            try:
                response = await builder.execute()
            except APIError as e:
                if e.code != RANGE_NOT_SATISFIABLE:
                    raise
                return [], await self._count()

        rows = [UserRecord.model_validate(item) for item in response.data]
        return rows, response.count or 0

    @track_store_call("users.get_by_id")
    async def get_by_id(self, user_id: int) -> UserRecord:
        with _translate_errors("get"):
            response = (
                await self._table()
                .select(*USER_COLUMNS)
                .eq("id", user_id)
                .limit(1)
                .execute()
            )
        if not response.data:
            raise NotFoundError(user_id)
        return UserRecord.model_validate(response.data[0])

    @track_store_call("users.update")
    async def update(
        self, user_id: int, pairs: Sequence[tuple[str, Any]]
    ) -> UserRecord:
        changes = {**dict(pairs), "updated_at": utcnow().isoformat()}
        with _translate_errors("update"):
            response = (
                await self._table().update(changes).eq("id", user_id).execute()
            )
        if not response.data:
            raise NotFoundError(user_id)
        return UserRecord.model_validate(response.data[0])

    @track_store_call("users.delete")
    async def delete(self, user_id: int) -> None:
        with _translate_errors("delete"):
            response = await self._table().delete().eq("id", user_id).execute()
        if not response.data:
            raise NotFoundError(user_id)

    async def ping(self) -> None:
        with _translate_errors("ping"):
            await self._table().select("id").limit(1).execute()

    async def close(self) -> None:
        await close_supabase_client(self.client)
