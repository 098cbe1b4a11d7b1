"""User repository over the pooled SQLAlchemy engine."""

from collections.abc import Iterator, Mapping, Sequence
from contextlib import contextmanager
from typing import Any

from sqlalchemy import delete, func, insert, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine

from core.database import check_db_connection, create_session_maker, dispose_engine
from core.errors import ConflictError, NotFoundError, StoreError
from models import User, utcnow
from repositories.base import ListQuery, UserStore
from repositories.utils import track_store_call
from schemas import UserRecord

# SQLSTATE for unique_violation
UNIQUE_VIOLATION = "23505"

_USER_COLUMNS = (
    User.id,
    User.name,
    User.email,
    User.age,
    User.created_at,
    User.updated_at,
)

_SORT_COLUMNS = {
    "id": User.id,
    "name": User.name,
    "email": User.email,
    "age": User.age,
    "created_at": User.created_at,
}


def _is_unique_violation(exc: IntegrityError) -> bool:
    """Detect a unique violation across asyncpg and SQLite drivers."""
    orig = exc.orig
    for candidate in (orig, getattr(orig, "__cause__", None)):
        code = getattr(candidate, "sqlstate", None) or getattr(
            candidate, "pgcode", None
        )
        if code == UNIQUE_VIOLATION:
            return True
    return "UNIQUE constraint failed" in str(orig)


@contextmanager
def _translate_errors(operation: str) -> Iterator[None]:
    try:
        yield
    except IntegrityError as e:
        if _is_unique_violation(e):
            raise ConflictError() from e
        raise StoreError(operation) from e
    except (SQLAlchemyError, OSError, OverflowError) as e:
        raise StoreError(operation) from e


class UserRepository(UserStore):
    """Users table access through a SQL connection pool.

    Each call checks a connection out of the pool for the length of one
    transaction and returns it on exit.
    """

    backend = "sql"

    def __init__(self, engine: AsyncEngine):
        self.engine = engine
        self._session_maker = create_session_maker(engine)

    @track_store_call("users.create")
    async def create(self, fields: Mapping[str, Any]) -> UserRecord:
        now = utcnow()
        stmt = (
            insert(User)
            .values(**fields, created_at=now, updated_at=now)
            .returning(*_USER_COLUMNS)
        )
        with _translate_errors("create"):
            async with self._session_maker() as session, session.begin():
                row = (await session.execute(stmt)).one()
        return UserRecord.model_validate(row._asdict())

    @track_store_call("users.list_page")
    async def list_page(self, query: ListQuery) -> tuple[list[UserRecord], int]:
        sort_column = _SORT_COLUMNS[query.sort_by]
        ordering = [sort_column.asc() if query.ascending else sort_column.desc()]
        if query.sort_by != "id":
            # Stable pages when the sort column has duplicates
            ordering.append(User.id.asc() if query.ascending else User.id.desc())

        page_stmt = (
            select(*_USER_COLUMNS)
            .order_by(*ordering)
            .limit(query.limit)
            .offset(query.offset)
        )
        count_stmt = select(func.count()).select_from(User)

        with _translate_errors("list"):
            async with self._session_maker() as session, session.begin():
                total = (await session.execute(count_stmt)).scalar_one()
                rows = (await session.execute(page_stmt)).all()
        return [UserRecord.model_validate(row._asdict()) for row in rows], total

    @track_store_call("users.get_by_id")
    async def get_by_id(self, user_id: int) -> UserRecord:
        stmt = select(*_USER_COLUMNS).where(User.id == user_id)
        with _translate_errors("get"):
            async with self._session_maker() as session:
                row = (await session.execute(stmt)).first()
        if row is None:
            raise NotFoundError(user_id)
        return UserRecord.model_validate(row._asdict())

    @track_store_call("users.update")
    async def update(
        self, user_id: int, pairs: Sequence[tuple[str, Any]]
    ) -> UserRecord:
        stmt = (
            update(User)
            .where(User.id == user_id)
            .values(**dict(pairs), updated_at=utcnow())
            .returning(*_USER_COLUMNS)
        )
        with _translate_errors("update"):
            async with self._session_maker() as session, session.begin():
                row = (await session.execute(stmt)).first()
        # Zero rows: the user vanished after any existence check
        if row is None:
            raise NotFoundError(user_id)
        return UserRecord.model_validate(row._asdict())

    @track_store_call("users.delete")
    async def delete(self, user_id: int) -> None:
        stmt = delete(User).where(User.id == user_id)
        with _translate_errors("delete"):
            async with self._session_maker() as session, session.begin():
                result = await session.execute(stmt)
                deleted = result.rowcount
        if deleted == 0:
            raise NotFoundError(user_id)

    async def ping(self) -> None:
        await check_db_connection(self.engine)

    async def close(self) -> None:
        await dispose_engine(self.engine)
