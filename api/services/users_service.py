"""User service: the five user operations over the UserStore port.

Every operation is one linear pipeline (validate, resolve or compose,
persist) with no retries. Failures are raised as core.errors types and
travel unchanged to the route layer.
"""

from collections.abc import Mapping
from typing import Any

from core.errors import ConflictError, NotFoundError
from core.logger import get_logger
from core.telemetry import track_operation
from core.wide_event import set_wide_event_fields
from repositories.base import UserStore
from schemas import DeletedUser, Pagination, UserPage, UserRecord
from services.query_params import resolve_list_query, total_pages
from services.update_composer import compose_insert, compose_update
from services.validation import parse_user_id, validate_user_payload

logger = get_logger(__name__)


class UserService:
    """Orchestrates create/list/get/update/delete for the user resource.

    Args:
        store: the persistence backend chosen at startup.
        existence_precheck: read the user before update/delete. The
            mutation's own zero-row result still raises NotFoundError when a
            concurrent delete wins the race.
        max_limit: largest page size a client may request.
    """

    def __init__(
        self,
        store: UserStore,
        *,
        existence_precheck: bool = True,
        max_limit: int = 100,
    ):
        self.store = store
        self.existence_precheck = existence_precheck
        self.max_limit = max_limit

    @track_operation("user_create")
    async def create_user(self, payload: Mapping[str, Any]) -> UserRecord:
        validate_user_payload(payload, "create")
        fields = compose_insert(payload)
        try:
            user = await self.store.create(fields)
        except ConflictError:
            logger.info("user.create.conflict", backend=self.store.backend)
            set_wide_event_fields(user_operation="create", user_outcome="conflict")
            raise

        logger.info("user.created", user_id=user.id, backend=self.store.backend)
        set_wide_event_fields(user_operation="create", user_id=user.id)
        return user

    @track_operation("user_list")
    async def list_users(
        self,
        page: str | int | None = None,
        limit: str | int | None = None,
        sort_by: str | None = None,
        sort_order: str | None = None,
    ) -> UserPage:
        """One page of users. An empty page is a valid result, not an error."""
        query = resolve_list_query(
            page, limit, sort_by, sort_order, max_limit=self.max_limit
        )
        rows, total = await self.store.list_page(query)

        set_wide_event_fields(
            user_operation="list", list_page=query.page, list_total=total
        )
        return UserPage(
            rows=rows,
            pagination=Pagination(
                current_page=query.page,
                total_pages=total_pages(total, query.limit),
                total_users=total,
                users_per_page=query.limit,
            ),
        )

    @track_operation("user_get")
    async def get_user(self, raw_id: Any) -> UserRecord:
        user_id = parse_user_id(raw_id)
        set_wide_event_fields(user_operation="get", user_id=user_id)
        return await self.store.get_by_id(user_id)

    async def _ensure_exists(self, user_id: int) -> None:
        # Best-effort echo only; the mutation re-checks via affected rows
        if self.existence_precheck:
            await self.store.get_by_id(user_id)

    @track_operation("user_update")
    async def update_user(self, raw_id: Any, payload: Mapping[str, Any]) -> UserRecord:
        user_id = parse_user_id(raw_id)
        set_wide_event_fields(user_operation="update", user_id=user_id)

        await self._ensure_exists(user_id)
        validate_user_payload(payload, "update")
        pairs = compose_update(payload)

        try:
            user = await self.store.update(user_id, pairs)
        except NotFoundError:
            logger.info("user.update.vanished", user_id=user_id)
            raise
        except ConflictError:
            logger.info("user.update.conflict", user_id=user_id)
            set_wide_event_fields(user_outcome="conflict")
            raise

        logger.info(
            "user.updated",
            user_id=user_id,
            fields=[field for field, _ in pairs],
            backend=self.store.backend,
        )
        return user

    @track_operation("user_delete")
    async def delete_user(self, raw_id: Any) -> DeletedUser:
        user_id = parse_user_id(raw_id)
        set_wide_event_fields(user_operation="delete", user_id=user_id)

        await self._ensure_exists(user_id)
        await self.store.delete(user_id)

        logger.info("user.deleted", user_id=user_id, backend=self.store.backend)
        return DeletedUser(deleted_user_id=user_id)
