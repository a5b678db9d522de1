"""Order management service.

Creating an order mints its serial numbers: every ordered machine unit gets
one serial for the machine and one for each panel attached to that machine.
The order row, all of its serials and the counter increments are written in
one transaction, so an order never exists with a partial serial set.
"""

from collections import Counter
from collections.abc import Iterator, Sequence
from dataclasses import dataclass
from datetime import datetime
from typing import Any

import structlog
from sqlalchemy import delete, func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from sqlmodel import select
from ulid import ULID

from ordertrack.config import MissingMachinePolicy, settings
from ordertrack.models.enums import PaymentStatus, ProgressStatus
from ordertrack.models.order import SERIAL_NUMBER_CONSTRAINT, Order, Serial
from ordertrack.models.types import MachineLine
from ordertrack.models.utils import utc_now
from ordertrack.services.catalog.catalog_service import CatalogService
from ordertrack.services.exceptions import StorageError
from ordertrack.services.orders.exceptions import (
    InvalidOrderLines,
    InvalidOrderUpdate,
    OrderNotFound,
    SerialConflictError,
    UnknownCountry,
    UnknownMachine,
)
from ordertrack.services.serials.allocator import SerialAllocator
from ordertrack.services.serials.serial_service import SerialService
from ordertrack.utils.conflict_retry import ConflictRetryConfig, get_conflict_retrying

logger = structlog.get_logger(__name__)

# Lower-cased fragments identifying serial collisions in IntegrityError messages
# (PostgreSQL reports constraint names, SQLite reports table.column)
_SERIAL_CONFLICT_MARKERS = (
    str(SERIAL_NUMBER_CONSTRAINT.name),
    "serial_counters_pkey",
    "serials.serial_number",
    "serial_counters.prefix",
)

UPDATABLE_FIELDS = frozenset(
    {
        "customer_name",
        "shipping_location",
        "country_id",
        "quote_number",
        "invoice_number",
        "confirmation_date",
        "due_date",
        "progress_status",
        "payment_status",
        "machine_lines",
    }
)


@dataclass(frozen=True)
class OrderLineInput:
    machine_id: int
    quantity: int


@dataclass(frozen=True)
class OrderInput:
    """Everything needed to create an order."""

    customer_name: str
    shipping_location: str
    country_id: int
    quote_number: str
    invoice_number: str
    due_date: datetime
    machine_lines: Sequence[OrderLineInput]
    progress_status: ProgressStatus = ProgressStatus.PENDING
    payment_status: PaymentStatus = PaymentStatus.PENDING
    confirmation_date: datetime | None = None


@dataclass(frozen=True)
class SerialUnit:
    """One serial to mint: the product code it is drawn from and its owner."""

    product_code: str
    machine_id: int | None = None
    panel_id: int | None = None


def _check_order_id(order_id: str) -> None:
    """Malformed ids cannot match any order."""
    try:
        ULID.from_str(order_id)
    except ValueError as e:
        raise OrderNotFound() from e


def _is_serial_conflict(exc: IntegrityError) -> bool:
    message = str(exc.orig if exc.orig is not None else exc).lower()
    return any(marker in message for marker in _SERIAL_CONFLICT_MARKERS)


class OrderService:
    """Service for order management operations."""

    def __init__(
        self,
        session: AsyncSession,
        *,
        retry_config: ConflictRetryConfig | None = None,
        missing_machine_policy: MissingMachinePolicy | None = None,
        max_line_quantity: int | None = None,
    ):
        self.session = session
        self.catalog = CatalogService(session)
        self.serials = SerialService(session)
        self.allocator = SerialAllocator(session)
        self.retry_config = retry_config
        self.missing_machine_policy = missing_machine_policy or settings.missing_machine_policy
        self.max_line_quantity = max_line_quantity or settings.max_order_line_quantity

    async def list_orders(self, *, skip: int = 0, limit: int = 50) -> tuple[list[Order], int]:
        """List orders with pagination, newest first. Returns (orders, total_count)."""
        orders_statement = (
            select(Order)
            .offset(skip)
            .limit(limit)
            .order_by(Order.created_at.desc())  # type: ignore[attr-defined]
        )
        orders_result = await self.session.execute(orders_statement)
        orders = list(orders_result.scalars().all())

        count_result = await self.session.execute(select(func.count()).select_from(Order))
        total = count_result.scalar() or 0

        return orders, total

    async def get_order(self, order_id: str) -> Order:
        """Get order with its serials eagerly loaded."""
        _check_order_id(order_id)
        statement = (
            select(Order)
            .options(selectinload(Order.serials))  # type: ignore[arg-type]
            .where(Order.id == order_id)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(statement)
        order = result.scalars().first()
        if not order:
            raise OrderNotFound()
        return order

    async def get_order_basic(self, order_id: str) -> Order:
        """Get order without eager loading (for simple checks and updates)."""
        _check_order_id(order_id)
        order = await self.session.get(Order, order_id)
        if not order:
            raise OrderNotFound()
        return order

    async def create_order_with_serials(self, data: OrderInput, acting_user_id: int) -> Order:
        """Create an order and mint all of its serials atomically.

        Raises:
            ValidationError: malformed lines, unknown country or machine, or
                no line left to mint after skipping. Nothing has been written.
            ConflictError: serial allocation kept colliding with concurrent
                orders after all retries.
            StorageError: any other database failure.
        """
        await self._validate_header(data)
        units = await self.expand_fan_out(data.machine_lines)
        if not units:
            raise InvalidOrderLines("None of the order lines reference an existing machine")

        order: Order | None = None
        async for attempt in get_conflict_retrying(self.retry_config):
            with attempt:
                order = await self._create_once(data, units, acting_user_id)
        assert order is not None

        logger.info(
            "Created order with serials",
            order_id=order.id,
            customer=order.customer_name,
            lines=len(data.machine_lines),
            serials=len(units),
        )
        return order

    async def expand_fan_out(self, lines: Sequence[OrderLineInput]) -> list[SerialUnit]:
        """Expand order lines into the serials to mint, in minting order.

        For each line, in order: ``quantity`` machine units, then for each
        attached panel (catalog insertion order) ``quantity`` panel units.
        """
        units: list[SerialUnit] = []
        for line in lines:
            machine = await self.catalog.find_machine(line.machine_id)
            if machine is None:
                if self.missing_machine_policy == MissingMachinePolicy.SKIP:
                    logger.warning("Skipping order line for unknown machine", machine_id=line.machine_id)
                    continue
                raise UnknownMachine(f"Machine {line.machine_id} does not exist")

            units.extend(SerialUnit(machine.product_code, machine_id=machine.id) for _ in range(line.quantity))

            for panel in await self.catalog.get_panels_by_machine(line.machine_id):
                units.extend(SerialUnit(panel.panel_code, panel_id=panel.id) for _ in range(line.quantity))
        return units

    async def update_order(self, order_id: str, **changes: Any) -> Order:
        """Update order fields.

        Progress and payment status accept any value at any time. Replacing
        ``machine_lines`` rewrites the stored lines only; already minted
        serials are left untouched.
        """
        unknown = set(changes) - UPDATABLE_FIELDS
        if unknown:
            raise InvalidOrderUpdate(f"Cannot update fields: {', '.join(sorted(unknown))}")

        order = await self.get_order_basic(order_id)

        if "country_id" in changes:
            await self._validate_country(changes["country_id"])
        if "machine_lines" in changes:
            lines = [OrderLineInput(machine_id=li.machine_id, quantity=li.quantity) for li in changes["machine_lines"]]
            self._validate_lines(lines)
            for line in lines:
                if await self.catalog.find_machine(line.machine_id) is None:
                    raise UnknownMachine(f"Machine {line.machine_id} does not exist")
            changes["machine_lines"] = [MachineLine(machine_id=li.machine_id, quantity=li.quantity) for li in lines]

        for key, value in changes.items():
            setattr(order, key, value)
        order.updated_at = utc_now()
        await self.session.commit()

        logger.info("Updated order", order_id=order_id, fields=sorted(changes))
        return order

    async def delete_order(self, order_id: str) -> None:
        """Delete an order together with its serials. Counters are not rewound."""
        order = await self.get_order_basic(order_id)
        await self.session.execute(delete(Serial).where(Serial.order_id == order_id))  # type: ignore[arg-type]
        await self.session.delete(order)
        await self.session.commit()
        logger.info("Deleted order", order_id=order_id)

    async def insert_order(self, order: Order) -> Order:
        """Stage the order row in the current transaction so serials can reference its id."""
        self.session.add(order)
        await self.session.flush()
        return order

    async def _create_once(self, data: OrderInput, units: list[SerialUnit], acting_user_id: int) -> Order:
        """One all-or-nothing attempt: order row, counter increments, serial batch."""
        try:
            order = Order(
                customer_name=data.customer_name,
                shipping_location=data.shipping_location,
                country_id=data.country_id,
                quote_number=data.quote_number,
                invoice_number=data.invoice_number,
                due_date=data.due_date,
                progress_status=data.progress_status,
                payment_status=data.payment_status,
                machine_lines=[MachineLine(machine_id=li.machine_id, quantity=li.quantity) for li in data.machine_lines],
                created_by=acting_user_id,
            )
            if data.confirmation_date is not None:
                order.confirmation_date = data.confirmation_date
            await self.insert_order(order)

            numbers = await self._reserve_numbers(units)
            batch = [
                Serial(
                    order_id=order.id,
                    machine_id=unit.machine_id,
                    panel_id=unit.panel_id,
                    serial_number=next(numbers[unit.product_code]),
                    issued_by=acting_user_id,
                )
                for unit in units
            ]
            if batch:
                await self.serials.insert_serials(batch)

            await self.session.commit()
            return order

        except IntegrityError as e:
            await self.session.rollback()
            if _is_serial_conflict(e):
                raise SerialConflictError("Serial number allocation collided with a concurrent order") from e
            raise StorageError("Failed to store order") from e
        except SQLAlchemyError as e:
            await self.session.rollback()
            raise StorageError("Failed to store order") from e
        except Exception:
            await self.session.rollback()
            raise

    async def _reserve_numbers(self, units: list[SerialUnit]) -> dict[str, Iterator[str]]:
        """Reserve one contiguous block per product code.

        Prefixes are locked in sorted order so two orders touching the same
        codes always acquire counter rows in the same sequence.
        """
        counts = Counter(unit.product_code for unit in units)
        numbers: dict[str, Iterator[str]] = {}
        for prefix in sorted(counts):
            numbers[prefix] = iter(await self.allocator.reserve(prefix, counts[prefix]))
        return numbers

    async def _validate_header(self, data: OrderInput) -> None:
        self._validate_lines(data.machine_lines)
        await self._validate_country(data.country_id)

    def _validate_lines(self, lines: Sequence[OrderLineInput]) -> None:
        if not lines:
            raise InvalidOrderLines("An order needs at least one machine line")
        for line in lines:
            if line.quantity < 1:
                raise InvalidOrderLines(f"Quantity for machine {line.machine_id} must be at least 1")
            if line.quantity > self.max_line_quantity:
                raise InvalidOrderLines(
                    f"Quantity for machine {line.machine_id} must be at most {self.max_line_quantity}"
                )

    async def _validate_country(self, country_id: int) -> None:
        if await self.catalog.find_country(country_id) is None:
            raise UnknownCountry(f"Country {country_id} does not exist")
