"""Auth schemas: CurrentUser."""

import uuid

from pydantic import BaseModel

from dealdesk.models.enums import UserType


class CurrentUser(BaseModel):
    """Lightweight user context extracted from the session JWT + DB lookup."""

    user_id: uuid.UUID
    user_type: UserType
    email: str
    name: str
