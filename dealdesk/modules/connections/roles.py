"""Which side of a connection an actor is on.

The role is resolved once per operation from the connection row and passed
along; services compare roles instead of re-checking ids.
"""

from __future__ import annotations

import enum
import uuid

from dealdesk.core.errors import NotAuthorized
from dealdesk.models.connections import Connection


class Role(str, enum.Enum):
    FOUNDER = "founder"
    INVESTOR = "investor"

    @property
    def counterpart(self) -> Role:
        return Role.INVESTOR if self is Role.FOUNDER else Role.FOUNDER


def resolve_role(connection: Connection, user_id: uuid.UUID) -> Role:
    """Return the actor's role on this connection; outsiders are rejected."""
    if user_id == connection.founder_id:
        return Role.FOUNDER
    if user_id == connection.investor_id:
        return Role.INVESTOR
    raise NotAuthorized("You are not part of this deal", connection_id=str(connection.id))


def user_for(connection: Connection, role: Role) -> uuid.UUID:
    return connection.founder_id if role is Role.FOUNDER else connection.investor_id


def require_role(connection: Connection, user_id: uuid.UUID, expected: Role) -> Role:
    role = resolve_role(connection, user_id)
    if role is not expected:
        raise NotAuthorized(
            f"Only the {expected.value} can perform this action",
            connection_id=str(connection.id),
        )
    return role
