"""FastAPI auth dependencies: get_current_user, require_user_type."""

import uuid

import sentry_sdk
import structlog
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from dealdesk.core.config import settings
from dealdesk.core.database import get_db
from dealdesk.models.core import User
from dealdesk.models.enums import UserType
from dealdesk.schemas.auth import CurrentUser

logger = structlog.get_logger()

bearer_scheme = HTTPBearer(auto_error=True)


def decode_session_token(token: str) -> dict:
    """Verify a session JWT issued by the account service."""
    return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(bearer_scheme),
    db: AsyncSession = Depends(get_db),
) -> CurrentUser:
    """
    Verify the session JWT and resolve the platform user.

    The `sub` claim carries the internal user id. Always checks is_active
    and is_deleted.
    """
    try:
        payload = decode_session_token(credentials.credentials)
        user_id = uuid.UUID(payload.get("sub", ""))
    except (JWTError, ValueError) as e:
        logger.warning("jwt_verification_failed", error=str(e))
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        ) from e

    stmt = select(User).where(
        User.id == user_id,
        User.is_active.is_(True),
        User.is_deleted.is_(False),
    )
    result = await db.execute(stmt)
    user = result.scalar_one_or_none()

    if user is None:
        logger.warning("user_not_found_for_token", user_id=str(user_id))
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found or inactive",
        )

    sentry_sdk.set_user({"id": str(user.id)})
    sentry_sdk.set_tag("user_type", user.user_type.value)

    return CurrentUser(
        user_id=user.id,
        user_type=user.user_type,
        email=user.email,
        name=user.name,
    )


def require_user_type(user_type: UserType):
    """
    Dependency factory: only founders (or only investors) may call the route.

    Usage:
        @router.post("/connections", dependencies=[Depends(require_user_type(UserType.INVESTOR))])
    """

    async def _check_type(
        current_user: CurrentUser = Depends(get_current_user),
    ) -> CurrentUser:
        if current_user.user_type != user_type:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Only {user_type.value}s may perform this action",
            )
        return current_user

    return _check_type
