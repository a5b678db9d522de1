"""API schemas for orders and serials endpoints."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field, field_serializer

from ordertrack.models.enums import PaymentStatus, ProgressStatus
from ordertrack.models.order import Order, Serial
from ordertrack.services.orders.order_service import OrderInput, OrderLineInput
from ordertrack.utils.datetime_utils import serialize_api_datetime

# =============================================================================
# Response Schemas
# =============================================================================


class OrderLineSchema(BaseModel):
    """One ordered machine and its quantity.

    Quantity bounds are checked by the order service so a zero quantity is
    reported like any other invalid line.
    """

    machine_id: int
    quantity: int


class SerialResponse(BaseModel):
    """Serial number response schema."""

    id: int
    order_id: str
    machine_id: int | None
    panel_id: int | None
    serial_number: str
    issued_by: int
    issued_at: datetime

    @field_serializer("issued_at")
    def serialize_issued_at(self, dt: datetime) -> str | None:
        return serialize_api_datetime(dt)

    @classmethod
    def from_model(cls, serial: Serial) -> "SerialResponse":
        return cls(
            id=serial.id,  # type: ignore[arg-type]
            order_id=serial.order_id,
            machine_id=serial.machine_id,
            panel_id=serial.panel_id,
            serial_number=serial.serial_number,
            issued_by=serial.issued_by,
            issued_at=serial.issued_at,
        )


class OrderResponse(BaseModel):
    """Order response schema for list view."""

    id: str
    customer_name: str
    shipping_location: str
    country_id: int
    quote_number: str
    invoice_number: str
    confirmation_date: datetime
    due_date: datetime
    progress_status: ProgressStatus
    payment_status: PaymentStatus
    machine_lines: list[OrderLineSchema]
    created_by: int
    created_at: datetime
    updated_at: datetime

    @field_serializer("confirmation_date", "due_date", "created_at", "updated_at")
    def serialize_datetimes(self, dt: datetime) -> str | None:
        return serialize_api_datetime(dt)

    @classmethod
    def _fields_from_model(cls, order: Order) -> dict[str, Any]:
        return {
            "id": order.id,
            "customer_name": order.customer_name,
            "shipping_location": order.shipping_location,
            "country_id": order.country_id,
            "quote_number": order.quote_number,
            "invoice_number": order.invoice_number,
            "confirmation_date": order.confirmation_date,
            "due_date": order.due_date,
            "progress_status": order.progress_status,
            "payment_status": order.payment_status,
            "machine_lines": [
                OrderLineSchema(machine_id=line.machine_id, quantity=line.quantity) for line in order.machine_lines
            ],
            "created_by": order.created_by,
            "created_at": order.created_at,
            "updated_at": order.updated_at,
        }

    @classmethod
    def from_model(cls, order: Order) -> "OrderResponse":
        """Create response from Order model."""
        return cls(**cls._fields_from_model(order))


class OrderDetailResponse(OrderResponse):
    """Order with the serials minted for it."""

    serials: list[SerialResponse]

    @classmethod
    def from_model(cls, order: Order) -> "OrderDetailResponse":
        """Create response from Order model with serials loaded."""
        return cls(
            **cls._fields_from_model(order),
            serials=[SerialResponse.from_model(s) for s in sorted(order.serials, key=lambda s: s.id or 0)],
        )


class OrderListResponse(BaseModel):
    """Order list response schema."""

    orders: list[OrderResponse]
    total: int


class SerialListResponse(BaseModel):
    """Serial list response schema."""

    serials: list[SerialResponse]
    total: int


class NextSerialResponse(BaseModel):
    """Preview of the serial the next order would receive for a product code."""

    product_code: str
    next_serial: str


# =============================================================================
# Request Schemas
# =============================================================================


class OrderCreateRequest(BaseModel):
    """Request body for order creation and full replacement."""

    customer_name: str = Field(min_length=1)
    shipping_location: str = Field(min_length=1)
    country_id: int
    quote_number: str = Field(min_length=1)
    invoice_number: str = Field(min_length=1)
    confirmation_date: datetime | None = None
    due_date: datetime
    progress_status: ProgressStatus = ProgressStatus.PENDING
    payment_status: PaymentStatus = PaymentStatus.PENDING
    machine_lines: list[OrderLineSchema]

    def to_input(self) -> OrderInput:
        return OrderInput(
            customer_name=self.customer_name,
            shipping_location=self.shipping_location,
            country_id=self.country_id,
            quote_number=self.quote_number,
            invoice_number=self.invoice_number,
            confirmation_date=self.confirmation_date,
            due_date=self.due_date,
            progress_status=self.progress_status,
            payment_status=self.payment_status,
            machine_lines=[OrderLineInput(machine_id=li.machine_id, quantity=li.quantity) for li in self.machine_lines],
        )


class OrderUpdateRequest(BaseModel):
    """Partial order update. Only fields present in the body are changed."""

    customer_name: str | None = Field(default=None, min_length=1)
    shipping_location: str | None = Field(default=None, min_length=1)
    country_id: int | None = None
    quote_number: str | None = Field(default=None, min_length=1)
    invoice_number: str | None = Field(default=None, min_length=1)
    confirmation_date: datetime | None = None
    due_date: datetime | None = None
    progress_status: ProgressStatus | None = None
    payment_status: PaymentStatus | None = None
    machine_lines: list[OrderLineSchema] | None = None

    def changes(self) -> dict[str, Any]:
        """Fields explicitly sent with a non-null value."""
        return {
            name: getattr(self, name)
            for name in self.model_fields_set
            if getattr(self, name) is not None
        }
