"""Repository layer for user persistence.

Both backends implement the UserStore port, so the service layer never
knows which one it is talking to:
- UserRepository: SQLAlchemy async engine (direct connection pool)
- SupabaseUserRepository: Supabase client (PostgREST query builder)
"""

from repositories.base import ListQuery, UserStore
from repositories.supabase_user_repository import SupabaseUserRepository
from repositories.user_repository import UserRepository
from repositories.utils import track_store_call

__all__ = [
    "ListQuery",
    "SupabaseUserRepository",
    "UserRepository",
    "UserStore",
    "track_store_call",
]
