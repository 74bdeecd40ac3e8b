"""Auth package: session JWT dependencies."""

from dealdesk.auth.dependencies import get_current_user, require_user_type

__all__ = [
    "get_current_user",
    "require_user_type",
]
