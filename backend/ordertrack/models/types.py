"""Custom SQLAlchemy types for the application."""

from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field, TypeAdapter
from sqlalchemy import JSON, Uuid
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.types import TypeDecorator
from ulid import ULID


class ULIDType(TypeDecorator[str]):
    """SQLAlchemy type that stores ULID as UUID.

    - Database: UUID (16 bytes on PostgreSQL, CHAR(32) elsewhere)
    - Python: ULID object or string
    - API: 26-character string (via Pydantic serialization)
    """

    impl = Uuid
    cache_ok = True

    def process_bind_param(self, value: str | ULID | None, dialect: Any) -> UUID | None:
        """Convert ULID string/object to UUID for storage."""
        if value is None:
            return None
        if isinstance(value, str):
            value = ULID.from_str(value)
        if isinstance(value, ULID):
            return value.to_uuid()
        raise ValueError(f"Cannot convert {type(value)} to ULID")

    def process_result_value(self, value: UUID | None, dialect: Any) -> str | None:
        """Convert UUID back to ULID string."""
        if value is None:
            return None
        return str(ULID.from_uuid(value))


class MachineLine(BaseModel):
    """One ordered machine and how many units of it."""

    machine_id: int
    quantity: int = Field(ge=1)


_MACHINE_LINES_ADAPTER = TypeAdapter(list[MachineLine])


class MachineLines(TypeDecorator[list[MachineLine]]):
    """Ordered machine lines embedded in the order row as JSON (JSONB on PostgreSQL)."""

    impl = JSON
    cache_ok = True

    def load_dialect_impl(self, dialect: Any) -> Any:
        if dialect.name == "postgresql":
            return dialect.type_descriptor(JSONB())
        return dialect.type_descriptor(JSON())

    def process_bind_param(
        self, value: list[MachineLine] | list[dict[str, Any]] | None, dialect: Any
    ) -> list[dict[str, Any]] | None:
        """Convert MachineLine models to plain dicts for storage."""
        if value is None:
            return None
        return [line.model_dump() if isinstance(line, MachineLine) else dict(line) for line in value]

    def process_result_value(self, value: list[dict[str, Any]] | None, dialect: Any) -> list[MachineLine] | None:
        """Convert stored dicts back to MachineLine models."""
        if value is None:
            return None
        return _MACHINE_LINES_ADAPTER.validate_python(value)
