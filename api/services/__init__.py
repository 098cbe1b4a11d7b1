"""Service layer for the user resource.

Layer hierarchy:
    Routes (HTTP) -> UserService -> validation / query_params / update_composer
                                 -> UserStore (repositories)

Services own every business rule and raise core.errors types. They never
build HTTP responses and never know which storage backend is in use.
"""

from services.users_service import UserService

__all__ = ["UserService"]
