"""Database models."""

# ruff: noqa: I001 - Import order matters for SQLAlchemy relationship resolution
from sqlmodel import SQLModel

from ordertrack.models.enums import PaymentStatus, ProgressStatus, UserRole

from ordertrack.models.user import User
from ordertrack.models.catalog import Country, Machine, Panel
from ordertrack.models.order import Order, Serial
from ordertrack.models.serial_counter import SerialCounter
from ordertrack.models.types import MachineLine

__all__ = [
    "SQLModel",
    "User",
    "Country",
    "Machine",
    "Panel",
    "Order",
    "Serial",
    "SerialCounter",
    "MachineLine",
    "ProgressStatus",
    "PaymentStatus",
    "UserRole",
]
