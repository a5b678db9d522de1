"""Enum definitions for database models."""

from enum import StrEnum

from sqlalchemy import Enum


class ProgressStatus(StrEnum):
    """Manufacturing progress of an order.

    No transition graph is enforced; any value may follow any other.
    """

    PENDING = "Pending"
    IN_PROGRESS = "In Progress"
    COMPLETED = "Completed"
    CONFIRMED = "Confirmed"


class PaymentStatus(StrEnum):
    """Payment state of an order, independent of its progress."""

    PENDING = "Pending"
    PARTIAL = "Partial"
    PAID = "Paid"


class UserRole(StrEnum):
    """Role of an application user."""

    ADMIN = "Admin"
    TECH = "Tech"


def string_enum(enum_class: type[StrEnum], name: str) -> Enum:
    """Enum column stored as VARCHAR holding the member values."""
    return Enum(
        enum_class,
        name=name,
        native_enum=False,
        length=32,
        values_callable=lambda e: [member.value for member in e],
    )
