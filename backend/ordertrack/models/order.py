"""Order and Serial database models."""

from datetime import datetime

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Integer, UniqueConstraint
from sqlmodel import Field, Relationship, SQLModel

from ordertrack.models.enums import PaymentStatus, ProgressStatus, string_enum
from ordertrack.models.types import MachineLine, MachineLines, ULIDType
from ordertrack.models.utils import new_ulid, utc_now


class Order(SQLModel, table=True):
    """Customer order for one or more machines."""

    __tablename__ = "orders"

    # ULID stored as UUID
    id: str = Field(
        default_factory=new_ulid,
        max_length=26,
        sa_column=Column(ULIDType, primary_key=True),
    )

    customer_name: str
    shipping_location: str
    country_id: int = Field(foreign_key="countries.id", index=True)
    quote_number: str
    invoice_number: str
    confirmation_date: datetime = Field(
        default_factory=utc_now, sa_column=Column(DateTime(timezone=True), nullable=False)
    )
    due_date: datetime = Field(sa_column=Column(DateTime(timezone=True), nullable=False))
    progress_status: ProgressStatus = Field(
        default=ProgressStatus.PENDING,
        sa_column=Column(string_enum(ProgressStatus, "progressstatus"), nullable=False),
    )
    payment_status: PaymentStatus = Field(
        default=PaymentStatus.PENDING,
        sa_column=Column(string_enum(PaymentStatus, "paymentstatus"), nullable=False),
    )
    # Embedded, replaced only as a whole on full updates
    machine_lines: list[MachineLine] = Field(sa_column=Column(MachineLines, nullable=False))
    created_by: int = Field(foreign_key="users.id")
    created_at: datetime = Field(default_factory=utc_now, sa_column=Column(DateTime(timezone=True), nullable=False))
    updated_at: datetime = Field(default_factory=utc_now, sa_column=Column(DateTime(timezone=True), nullable=False))

    # Relationships
    serials: list["Serial"] = Relationship(
        back_populates="order",
        sa_relationship_kwargs={"cascade": "all, delete-orphan", "passive_deletes": True},
    )


# Named so conflicts can be recognised in IntegrityError messages
SERIAL_NUMBER_CONSTRAINT = UniqueConstraint("serial_number", name="uq_serials_serial_number")
SERIAL_OWNER_CONSTRAINT = CheckConstraint(
    "(machine_id IS NULL) <> (panel_id IS NULL)",
    name="ck_serials_single_owner",
)


class Serial(SQLModel, table=True):
    """Serial number minted for one machine unit or one panel unit of an order."""

    __tablename__ = "serials"
    __table_args__ = (SERIAL_NUMBER_CONSTRAINT, SERIAL_OWNER_CONSTRAINT)

    id: int | None = Field(default=None, primary_key=True)
    order_id: str = Field(
        sa_column=Column(ULIDType, ForeignKey("orders.id", ondelete="CASCADE"), index=True, nullable=False),
    )
    machine_id: int | None = Field(
        default=None,
        sa_column=Column(Integer, ForeignKey("machines.id"), index=True, nullable=True),
    )
    panel_id: int | None = Field(
        default=None,
        sa_column=Column(Integer, ForeignKey("panels.id"), index=True, nullable=True),
    )
    serial_number: str = Field(max_length=64)
    issued_by: int = Field(foreign_key="users.id")
    issued_at: datetime = Field(default_factory=utc_now, sa_column=Column(DateTime(timezone=True), nullable=False))

    # Relationships
    order: Order = Relationship(back_populates="serials")
