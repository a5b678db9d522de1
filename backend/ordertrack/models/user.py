"""User database model."""

from datetime import datetime

from sqlalchemy import Column, DateTime
from sqlmodel import Field, SQLModel

from ordertrack.models.enums import UserRole, string_enum
from ordertrack.models.utils import utc_now


class User(SQLModel, table=True):
    """Application user (Admin or Tech)."""

    __tablename__ = "users"

    id: int | None = Field(default=None, primary_key=True)
    username: str = Field(unique=True, index=True)
    email: str = Field(unique=True)
    phone: str | None = None
    password_hash: str
    role: UserRole = Field(sa_column=Column(string_enum(UserRole, "userrole"), nullable=False))
    created_at: datetime = Field(default_factory=utc_now, sa_column=Column(DateTime(timezone=True), nullable=False))
