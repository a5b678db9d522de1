"""Product catalog models: countries, machines and their panels."""

from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Integer
from sqlmodel import Field, SQLModel

from ordertrack.models.utils import utc_now


class Country(SQLModel, table=True):
    """Shipping destination country."""

    __tablename__ = "countries"

    id: int | None = Field(default=None, primary_key=True)
    name: str
    code: str = Field(unique=True, max_length=2)


class Machine(SQLModel, table=True):
    """Sellable machine. Its product code prefixes every machine serial."""

    __tablename__ = "machines"

    id: int | None = Field(default=None, primary_key=True)
    name: str
    product_code: str = Field(unique=True, index=True, max_length=32)
    created_by: int = Field(foreign_key="users.id")
    created_at: datetime = Field(default_factory=utc_now, sa_column=Column(DateTime(timezone=True), nullable=False))


class Panel(SQLModel, table=True):
    """Panel attached to exactly one machine; minted once per ordered machine unit."""

    __tablename__ = "panels"

    id: int | None = Field(default=None, primary_key=True)
    name: str
    panel_code: str = Field(unique=True, index=True, max_length=32)
    parent_machine_id: int = Field(
        sa_column=Column(Integer, ForeignKey("machines.id"), index=True, nullable=False),
    )
    created_by: int = Field(foreign_key="users.id")
    created_at: datetime = Field(default_factory=utc_now, sa_column=Column(DateTime(timezone=True), nullable=False))
