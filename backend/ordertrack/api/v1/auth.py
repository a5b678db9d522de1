"""Authentication API endpoints."""

from datetime import datetime

import structlog
from fastapi import APIRouter, HTTPException, status
from pydantic import BaseModel, Field, field_serializer

from ordertrack.api.v1.dependencies import AdminUserDep, CurrentUserDep, UserServiceDep
from ordertrack.config import settings
from ordertrack.models.enums import UserRole
from ordertrack.models.user import User
from ordertrack.services.auth.security import create_access_token
from ordertrack.services.auth.user_service import DuplicateUser
from ordertrack.services.exceptions import AuthenticationError
from ordertrack.utils.datetime_utils import serialize_api_datetime

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


class UserResponse(BaseModel):
    """User without credentials."""

    id: int
    username: str
    email: str
    phone: str | None
    role: UserRole
    created_at: datetime

    @field_serializer("created_at")
    def serialize_created_at(self, dt: datetime) -> str | None:
        return serialize_api_datetime(dt)

    @classmethod
    def from_model(cls, user: User) -> "UserResponse":
        return cls(
            id=user.id,  # type: ignore[arg-type]
            username=user.username,
            email=user.email,
            phone=user.phone,
            role=user.role,
            created_at=user.created_at,
        )


class LoginRequest(BaseModel):
    username: str
    password: str


class LoginResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    user: UserResponse


class RegisterRequest(BaseModel):
    username: str = Field(min_length=1, max_length=64)
    email: str = Field(pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
    phone: str | None = None
    # bcrypt only considers the first 72 bytes
    password: str = Field(min_length=1, max_length=72)
    role: UserRole


@router.post("/login", response_model=LoginResponse, operation_id="login")
async def login(body: LoginRequest, users: UserServiceDep) -> LoginResponse:
    """Exchange username and password for an access token."""
    try:
        user = await users.authenticate(body.username, body.password)
    except AuthenticationError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    assert user.id is not None
    return LoginResponse(
        access_token=create_access_token(user.id, user.role.value),
        expires_in=settings.access_token_expire_minutes * 60,
        user=UserResponse.from_model(user),
    )


@router.post(
    "/register",
    response_model=UserResponse,
    status_code=status.HTTP_201_CREATED,
    operation_id="registerUser",
)
async def register(body: RegisterRequest, users: UserServiceDep, admin: AdminUserDep) -> UserResponse:
    """Create a user account (Admin only)."""
    try:
        user = await users.create_user(
            username=body.username,
            email=body.email,
            phone=body.phone,
            password=body.password,
            role=body.role,
        )
    except DuplicateUser as e:
        raise HTTPException(status_code=400, detail=str(e))

    logger.info("User registered", user_id=user.id, registered_by=admin.id)
    return UserResponse.from_model(user)


@router.get("/me", response_model=UserResponse, operation_id="currentUser")
async def me(user: CurrentUserDep) -> UserResponse:
    """Return the authenticated user."""
    return UserResponse.from_model(user)
