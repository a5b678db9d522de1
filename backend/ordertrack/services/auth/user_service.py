"""User accounts and credential checks."""

import structlog
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from ordertrack.models.enums import UserRole
from ordertrack.models.user import User
from ordertrack.services.auth.security import hash_password, verify_password
from ordertrack.services.exceptions import AuthenticationError, NotFoundError, ValidationError

logger = structlog.get_logger(__name__)


class UserNotFound(NotFoundError):
    """User not found."""

    pass


class DuplicateUser(ValidationError):
    """Username or email already registered."""

    pass


class UserService:
    """Service for user accounts."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def find_user(self, user_id: int) -> User | None:
        return await self.session.get(User, user_id)

    async def get_by_username(self, username: str) -> User | None:
        result = await self.session.execute(select(User).where(User.username == username))
        return result.scalars().first()

    async def create_user(
        self,
        *,
        username: str,
        email: str,
        password: str,
        role: UserRole,
        phone: str | None = None,
    ) -> User:
        existing = await self.session.execute(
            select(User).where(or_(User.username == username, User.email == email))
        )
        clash = existing.scalars().first()
        if clash is not None:
            field = "Username" if clash.username == username else "Email"
            raise DuplicateUser(f"{field} already exists")

        user = User(
            username=username,
            email=email,
            phone=phone,
            password_hash=hash_password(password),
            role=role,
        )
        self.session.add(user)
        try:
            await self.session.commit()
        except IntegrityError as e:
            await self.session.rollback()
            raise DuplicateUser("Username or email already exists") from e

        logger.info("Created user", user_id=user.id, username=username, role=role.value)
        return user

    async def authenticate(self, username: str, password: str) -> User:
        """Return the user for valid credentials.

        Raises:
            AuthenticationError: unknown username or wrong password.
        """
        user = await self.get_by_username(username)
        if user is None or not verify_password(password, user.password_hash):
            logger.info("Rejected login", username=username)
            raise AuthenticationError("Invalid credentials")
        return user
