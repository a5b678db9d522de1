"""FastAPI dependencies for service injection and authentication.

Authorization (Admin vs Tech) is decided here, at the HTTP boundary;
services never check roles.
"""

from typing import Annotated

import jwt
import structlog
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.ext.asyncio import AsyncSession

from ordertrack.db import get_session
from ordertrack.models.enums import UserRole
from ordertrack.models.user import User
from ordertrack.services.auth.security import decode_access_token
from ordertrack.services.auth.user_service import UserService
from ordertrack.services.catalog.catalog_service import CatalogService
from ordertrack.services.orders.order_service import OrderService
from ordertrack.services.serials.allocator import SerialAllocator
from ordertrack.services.serials.serial_service import SerialService

logger = structlog.get_logger(__name__)

SessionDep = Annotated[AsyncSession, Depends(get_session)]

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login", auto_error=False)


async def get_order_service(session: SessionDep) -> OrderService:
    """Get an OrderService instance with the current session."""
    return OrderService(session)


async def get_catalog_service(session: SessionDep) -> CatalogService:
    """Get a CatalogService instance with the current session."""
    return CatalogService(session)


async def get_serial_service(session: SessionDep) -> SerialService:
    """Get a SerialService instance with the current session."""
    return SerialService(session)


async def get_serial_allocator(session: SessionDep) -> SerialAllocator:
    """Get a SerialAllocator bound to the current session."""
    return SerialAllocator(session)


async def get_user_service(session: SessionDep) -> UserService:
    """Get a UserService instance with the current session."""
    return UserService(session)


UserServiceDep = Annotated[UserService, Depends(get_user_service)]


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user(
    token: Annotated[str | None, Depends(oauth2_scheme)],
    users: UserServiceDep,
) -> User:
    """Resolve the bearer token to a user."""
    if not token:
        raise _unauthorized("Access token required")

    try:
        payload = decode_access_token(token)
        user_id = int(payload["sub"])
    except (jwt.InvalidTokenError, ValueError) as e:
        logger.debug("Rejected access token", error=str(e))
        raise _unauthorized("Invalid token")

    user = await users.find_user(user_id)
    if user is None:
        raise _unauthorized("Invalid token")
    return user


CurrentUserDep = Annotated[User, Depends(get_current_user)]


async def require_admin(user: CurrentUserDep) -> User:
    """Allow only Admin users through."""
    if user.role != UserRole.ADMIN:
        logger.warning("Admin access denied", user_id=user.id, role=user.role)
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")
    return user


# Type aliases for cleaner endpoint signatures
AdminUserDep = Annotated[User, Depends(require_admin)]
OrderServiceDep = Annotated[OrderService, Depends(get_order_service)]
CatalogServiceDep = Annotated[CatalogService, Depends(get_catalog_service)]
SerialServiceDep = Annotated[SerialService, Depends(get_serial_service)]
SerialAllocatorDep = Annotated[SerialAllocator, Depends(get_serial_allocator)]
