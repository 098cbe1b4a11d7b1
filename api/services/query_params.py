"""Resolve raw list-endpoint query parameters into a bounded ListQuery.

Pagination values are parsed leniently (bad input falls back to defaults),
while the sort field is checked strictly against an allow-list because it
ends up as an identifier in the ORDER BY clause.
"""

import math

from core.errors import InvalidSortFieldError
from repositories.base import ListQuery

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10
DEFAULT_SORT_FIELD = "created_at"

ALLOWED_SORT_FIELDS = frozenset({"id", "name", "email", "age", "created_at"})

# OFFSET is bound as a signed 64-bit integer by both Postgres and SQLite
MAX_OFFSET = 2**63 - 1


def _coerce_positive_int(raw: str | int | None, default: int) -> int:
    if raw is None:
        return default
    try:
        value = int(str(raw).strip())
    except ValueError:
        return default
    return value if value > 0 else default


def _resolve_sort_order(raw: str | None) -> bool:
    """Return True for ascending. Anything but "asc" sorts descending."""
    if raw is None:
        return False
    return raw.strip().lower() == "asc"


def resolve_list_query(
    page: str | int | None = None,
    limit: str | int | None = None,
    sort_by: str | None = None,
    sort_order: str | None = None,
    *,
    max_limit: int = 100,
) -> ListQuery:
    """Build a ListQuery from raw request parameters.

    Raises:
        InvalidSortFieldError: sort_by is not in ALLOWED_SORT_FIELDS.
    """
    resolved_sort = DEFAULT_SORT_FIELD if sort_by in (None, "") else sort_by
    if resolved_sort not in ALLOWED_SORT_FIELDS:
        raise InvalidSortFieldError(str(resolved_sort))

    resolved_limit = min(_coerce_positive_int(limit, DEFAULT_LIMIT), max_limit)
    # Pages beyond the last bindable offset are all empty anyway
    last_page = MAX_OFFSET // resolved_limit + 1

    return ListQuery(
        page=min(_coerce_positive_int(page, DEFAULT_PAGE), last_page),
        limit=resolved_limit,
        sort_by=resolved_sort,
        ascending=_resolve_sort_order(sort_order),
    )


def total_pages(total_count: int, limit: int) -> int:
    return math.ceil(total_count / limit) if limit else 0
