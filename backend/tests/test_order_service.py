"""Tests for order creation with serial fan-out, updates and deletion."""

import pytest
from sqlalchemy import func, select, update
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from ordertrack.config import MissingMachinePolicy
from ordertrack.models.catalog import Machine, Panel
from ordertrack.models.enums import PaymentStatus, ProgressStatus
from ordertrack.models.order import Order, Serial
from ordertrack.models.serial_counter import SerialCounter
from ordertrack.models.types import MachineLine
from ordertrack.models.user import User
from ordertrack.services.catalog.exceptions import DuplicateProductCode
from ordertrack.services.exceptions import ConflictError, StorageError, ValidationError
from ordertrack.services.orders import OrderLineInput, OrderService
from ordertrack.services.orders.exceptions import (
    InvalidOrderLines,
    InvalidOrderUpdate,
    OrderNotFound,
    SerialConflictError,
    UnknownCountry,
    UnknownMachine,
)
from ordertrack.services.serials import SerialAllocator
from ordertrack.services.serials.serial_service import SerialService


async def _count(session: AsyncSession, model: type) -> int:
    result = await session.execute(select(func.count()).select_from(model))
    return result.scalar() or 0


async def _counter_value(session: AsyncSession, prefix: str) -> int | None:
    result = await session.execute(select(SerialCounter.last_value).where(SerialCounter.prefix == prefix))
    return result.scalar_one_or_none()


@pytest.fixture
def service(session: AsyncSession, retry_config) -> OrderService:
    return OrderService(session, retry_config=retry_config)


@pytest.fixture
async def laser(session: AsyncSession, admin: User) -> Machine:
    machine = Machine(name="Laser Cutter LX200", product_code="LSR200", created_by=admin.id)
    session.add(machine)
    await session.commit()
    for name, code in (("Control Panel", "CP200"), ("Safety Panel", "SP200")):
        session.add(Panel(name=name, panel_code=code, parent_machine_id=machine.id, created_by=admin.id))
    await session.commit()
    return machine


class TestCreateOrder:
    async def test_machine_with_panel(
        self, service: OrderService, admin: User, machine: Machine, panel: Panel, make_order
    ) -> None:
        order = await service.create_order_with_serials(make_order((machine.id, 2)), admin.id)

        serials = await service.serials.list_for_order(order.id)
        assert [s.serial_number for s in serials] == ["CNC001001", "CNC001002", "CP001001", "CP001002"]
        assert [(s.machine_id, s.panel_id) for s in serials] == [
            (machine.id, None),
            (machine.id, None),
            (None, panel.id),
            (None, panel.id),
        ]
        assert {s.order_id for s in serials} == {order.id}
        assert {s.issued_by for s in serials} == {admin.id}

    async def test_order_header_is_stored(
        self, service: OrderService, session: AsyncSession, admin: User, machine: Machine, make_order
    ) -> None:
        order = await service.create_order_with_serials(make_order((machine.id, 1)), admin.id)

        stored = await service.get_order(order.id)
        assert stored.customer_name == "Acme Manufacturing"
        assert stored.progress_status == ProgressStatus.PENDING
        assert stored.payment_status == PaymentStatus.PENDING
        assert stored.machine_lines == [MachineLine(machine_id=machine.id, quantity=1)]
        assert stored.created_by == admin.id
        assert len(stored.serials) == 1

    async def test_fan_out_counts_per_line(
        self, service: OrderService, admin: User, machine: Machine, panel: Panel, laser: Machine, make_order
    ) -> None:
        order = await service.create_order_with_serials(make_order((laser.id, 3), (machine.id, 1)), admin.id)

        serials = await service.serials.list_for_order(order.id)
        numbers = [s.serial_number for s in serials]
        assert numbers == [
            "LSR200001",
            "LSR200002",
            "LSR200003",
            "CP200001",
            "CP200002",
            "CP200003",
            "SP200001",
            "SP200002",
            "SP200003",
            "CNC001001",
            "CP001001",
        ]
        assert sum(1 for s in serials if s.machine_id == laser.id) == 3
        assert sum(1 for s in serials if s.panel_id is not None) == 3 * 2 + 1

    async def test_repeated_machine_lines_continue_numbering(
        self, service: OrderService, admin: User, machine: Machine, make_order
    ) -> None:
        order = await service.create_order_with_serials(make_order((machine.id, 1), (machine.id, 2)), admin.id)

        serials = await service.serials.list_for_order(order.id)
        assert [s.serial_number for s in serials] == ["CNC001001", "CNC001002", "CNC001003"]

    async def test_numbers_increase_across_orders(
        self, service: OrderService, admin: User, machine: Machine, panel: Panel, make_order
    ) -> None:
        first = await service.create_order_with_serials(make_order((machine.id, 2)), admin.id)
        second = await service.create_order_with_serials(make_order((machine.id, 1)), admin.id)

        first_serials = [s.serial_number for s in await service.serials.list_for_order(first.id)]
        second_serials = [s.serial_number for s in await service.serials.list_for_order(second.id)]
        assert second_serials == ["CNC001003", "CP001003"]
        assert not set(first_serials) & set(second_serials)

    async def test_width_grows_past_999(
        self, service: OrderService, session: AsyncSession, admin: User, machine: Machine, make_order
    ) -> None:
        session.add(SerialCounter(prefix="CNC001", last_value=998))
        await session.commit()

        order = await service.create_order_with_serials(make_order((machine.id, 2)), admin.id)

        serials = await service.serials.list_for_order(order.id)
        assert [s.serial_number for s in serials] == ["CNC001999", "CNC0011000"]

    async def test_overlapping_product_code_never_shares_serials(
        self, service: OrderService, session: AsyncSession, admin: User, machine: Machine, make_order
    ) -> None:
        first = await service.create_order_with_serials(make_order((machine.id, 1)), admin.id)
        # CNC00 number 1001 would render as CNC001001, already issued to CNC001
        with pytest.raises(DuplicateProductCode):
            await service.catalog.create_machine(name="CNC Mill Pro X0", product_code="CNC00", created_by=admin.id)
        neighbour = await service.catalog.create_machine(
            name="CNC Mill Pro X1 Mk2", product_code="CNC001B", created_by=admin.id
        )

        second = await service.create_order_with_serials(make_order((neighbour.id, 1), (machine.id, 1)), admin.id)

        assert [s.serial_number for s in await service.serials.list_for_order(first.id)] == ["CNC001001"]
        assert [s.serial_number for s in await service.serials.list_for_order(second.id)] == [
            "CNC001B001",
            "CNC001002",
        ]
        assert await _counter_value(session, "CNC00") is None

    async def test_explicit_statuses_and_confirmation_date(
        self, service: OrderService, admin: User, machine: Machine, make_order
    ) -> None:
        data = make_order((machine.id, 1))
        confirmed = data.due_date.replace(microsecond=0)
        data = type(data)(
            **{
                **vars(data),
                "progress_status": ProgressStatus.IN_PROGRESS,
                "payment_status": PaymentStatus.PARTIAL,
                "confirmation_date": confirmed,
            }
        )

        order = await service.create_order_with_serials(data, admin.id)

        assert order.progress_status == ProgressStatus.IN_PROGRESS
        assert order.payment_status == PaymentStatus.PARTIAL
        assert order.confirmation_date == confirmed


class TestCreateOrderValidation:
    async def test_unknown_machine_persists_nothing(
        self, service: OrderService, session: AsyncSession, admin: User, machine: Machine, make_order
    ) -> None:
        with pytest.raises(UnknownMachine):
            await service.create_order_with_serials(make_order((machine.id, 1), (9999, 1)), admin.id)

        assert await _count(session, Order) == 0
        assert await _count(session, Serial) == 0
        assert await _count(session, SerialCounter) == 0

    async def test_empty_lines(self, service: OrderService, admin: User, make_order) -> None:
        with pytest.raises(InvalidOrderLines):
            await service.create_order_with_serials(make_order(), admin.id)

    @pytest.mark.parametrize("quantity", [0, -1])
    async def test_quantity_below_one(
        self, service: OrderService, session: AsyncSession, admin: User, machine: Machine, make_order, quantity: int
    ) -> None:
        with pytest.raises(ValidationError):
            await service.create_order_with_serials(make_order((machine.id, quantity)), admin.id)
        assert await _count(session, Order) == 0

    async def test_unknown_country(self, service: OrderService, admin: User, machine: Machine, make_order) -> None:
        data = make_order((machine.id, 1))
        data = type(data)(**{**vars(data), "country_id": 4242})

        with pytest.raises(UnknownCountry):
            await service.create_order_with_serials(data, admin.id)

    async def test_skip_policy_ignores_unknown_machines(
        self, session: AsyncSession, retry_config, admin: User, machine: Machine, make_order
    ) -> None:
        service = OrderService(session, retry_config=retry_config, missing_machine_policy=MissingMachinePolicy.SKIP)

        order = await service.create_order_with_serials(make_order((9999, 2), (machine.id, 1)), admin.id)

        serials = await service.serials.list_for_order(order.id)
        assert [s.serial_number for s in serials] == ["CNC001001"]
        # The stored lines are kept as submitted
        assert [line.machine_id for line in order.machine_lines] == [9999, machine.id]

    async def test_skip_policy_with_nothing_left_to_mint(
        self, session: AsyncSession, retry_config, admin: User, machine: Machine, make_order
    ) -> None:
        service = OrderService(session, retry_config=retry_config, missing_machine_policy=MissingMachinePolicy.SKIP)

        with pytest.raises(InvalidOrderLines):
            await service.create_order_with_serials(make_order((9998, 1), (9999, 3)), admin.id)

        assert await _count(session, Order) == 0
        assert await _count(session, SerialCounter) == 0

    async def test_quantity_above_ceiling(
        self, session: AsyncSession, retry_config, admin: User, machine: Machine, make_order
    ) -> None:
        service = OrderService(session, retry_config=retry_config, max_line_quantity=50)

        with pytest.raises(InvalidOrderLines):
            await service.create_order_with_serials(make_order((machine.id, 1), (machine.id, 51)), admin.id)
        assert await _count(session, Order) == 0

        order = await service.create_order_with_serials(make_order((machine.id, 50)), admin.id)
        assert len(await service.serials.list_for_order(order.id)) == 50

    async def test_update_respects_quantity_ceiling(
        self, session: AsyncSession, retry_config, admin: User, machine: Machine, make_order
    ) -> None:
        service = OrderService(session, retry_config=retry_config, max_line_quantity=5)
        order = await service.create_order_with_serials(make_order((machine.id, 1)), admin.id)

        with pytest.raises(InvalidOrderLines):
            await service.update_order(order.id, machine_lines=[OrderLineInput(machine_id=machine.id, quantity=6)])


class TestAtomicity:
    async def test_failure_mid_batch_rolls_everything_back(
        self,
        service: OrderService,
        session: AsyncSession,
        admin: User,
        machine: Machine,
        panel: Panel,
        make_order,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        await service.create_order_with_serials(make_order((machine.id, 1)), admin.id)

        async def fail_halfway(self: SerialService, batch: list[Serial]) -> list[Serial]:
            self.session.add_all(batch[: len(batch) // 2])
            await self.session.flush()
            raise OperationalError("INSERT INTO serials", {}, Exception("disk I/O error"))

        monkeypatch.setattr(SerialService, "insert_serials", fail_halfway)

        with pytest.raises(StorageError):
            await service.create_order_with_serials(make_order((machine.id, 2)), admin.id)

        assert await _count(session, Order) == 1
        assert await _count(session, Serial) == 2
        assert await _counter_value(session, "CNC001") == 1
        assert await _counter_value(session, "CP001") == 1

    async def test_failed_cold_start_leaves_no_counter(
        self,
        service: OrderService,
        session: AsyncSession,
        admin: User,
        machine: Machine,
        make_order,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        async def broken_insert(self: SerialService, batch: list[Serial]) -> list[Serial]:
            raise OperationalError("INSERT INTO serials", {}, Exception("database is locked"))

        monkeypatch.setattr(SerialService, "insert_serials", broken_insert)

        with pytest.raises(StorageError):
            await service.create_order_with_serials(make_order((machine.id, 1)), admin.id)

        assert await _count(session, Order) == 0
        assert await _count(session, SerialCounter) == 0

    async def test_unexpected_errors_propagate_after_rollback(
        self,
        service: OrderService,
        session: AsyncSession,
        admin: User,
        machine: Machine,
        make_order,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        async def explode(self: SerialAllocator, prefix: str, count: int) -> list[str]:
            raise RuntimeError("boom")

        monkeypatch.setattr(SerialAllocator, "reserve", explode)

        with pytest.raises(RuntimeError):
            await service.create_order_with_serials(make_order((machine.id, 1)), admin.id)
        assert await _count(session, Order) == 0


class TestConflictRetry:
    async def test_conflict_is_retried(
        self,
        service: OrderService,
        admin: User,
        machine: Machine,
        make_order,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        original_reserve = SerialAllocator.reserve
        calls = 0

        async def lose_first_race(self: SerialAllocator, prefix: str, count: int) -> list[str]:
            nonlocal calls
            calls += 1
            if calls == 1:
                raise SerialConflictError("lost the race")
            return await original_reserve(self, prefix, count)

        monkeypatch.setattr(SerialAllocator, "reserve", lose_first_race)

        order = await service.create_order_with_serials(make_order((machine.id, 1)), admin.id)

        assert calls == 2
        serials = await service.serials.list_for_order(order.id)
        assert [s.serial_number for s in serials] == ["CNC001001"]

    async def test_gives_up_after_max_attempts(
        self,
        service: OrderService,
        session: AsyncSession,
        admin: User,
        machine: Machine,
        make_order,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        calls = 0

        async def always_conflict(self: SerialAllocator, prefix: str, count: int) -> list[str]:
            nonlocal calls
            calls += 1
            raise SerialConflictError("lost the race")

        monkeypatch.setattr(SerialAllocator, "reserve", always_conflict)

        with pytest.raises(ConflictError):
            await service.create_order_with_serials(make_order((machine.id, 1)), admin.id)

        assert calls == 3
        assert await _count(session, Order) == 0

    async def test_duplicate_serial_is_reported_as_conflict(
        self, service: OrderService, session: AsyncSession, admin: User, machine: Machine, make_order
    ) -> None:
        await service.create_order_with_serials(make_order((machine.id, 1)), admin.id)
        # A counter behind the issued serials makes every attempt collide on the unique constraint
        await session.execute(update(SerialCounter).values(last_value=0))
        await session.commit()

        with pytest.raises(ConflictError):
            await service.create_order_with_serials(make_order((machine.id, 1)), admin.id)

        assert await _count(session, Order) == 1
        assert await _count(session, Serial) == 1


class TestUpdateOrder:
    async def test_status_changes_in_any_direction(
        self, service: OrderService, admin: User, machine: Machine, make_order
    ) -> None:
        order = await service.create_order_with_serials(make_order((machine.id, 1)), admin.id)

        await service.update_order(order.id, progress_status=ProgressStatus.CONFIRMED)
        updated = await service.update_order(
            order.id, progress_status=ProgressStatus.PENDING, payment_status=PaymentStatus.PAID
        )

        assert updated.progress_status == ProgressStatus.PENDING
        assert updated.payment_status == PaymentStatus.PAID

    async def test_replacing_lines_keeps_serials(
        self, service: OrderService, admin: User, machine: Machine, panel: Panel, laser: Machine, make_order
    ) -> None:
        order = await service.create_order_with_serials(make_order((machine.id, 1)), admin.id)

        updated = await service.update_order(
            order.id, machine_lines=[OrderLineInput(machine_id=laser.id, quantity=4)]
        )

        assert updated.machine_lines == [MachineLine(machine_id=laser.id, quantity=4)]
        serials = await service.serials.list_for_order(order.id)
        assert [s.serial_number for s in serials] == ["CNC001001", "CP001001"]

    async def test_rejects_invalid_lines(self, service: OrderService, admin: User, machine: Machine, make_order) -> None:
        order = await service.create_order_with_serials(make_order((machine.id, 1)), admin.id)

        with pytest.raises(InvalidOrderLines):
            await service.update_order(order.id, machine_lines=[])
        with pytest.raises(UnknownMachine):
            await service.update_order(order.id, machine_lines=[OrderLineInput(machine_id=9999, quantity=1)])

    async def test_rejects_unknown_fields(self, service: OrderService, admin: User, machine: Machine, make_order) -> None:
        order = await service.create_order_with_serials(make_order((machine.id, 1)), admin.id)

        with pytest.raises(InvalidOrderUpdate):
            await service.update_order(order.id, created_by=42)

    async def test_missing_order(self, service: OrderService) -> None:
        with pytest.raises(OrderNotFound):
            await service.update_order("01ARZ3NDEKTSV4RRFFQ69G5FAV", customer_name="Nobody")
        with pytest.raises(OrderNotFound):
            await service.get_order("not-a-ulid")


class TestDeleteOrder:
    async def test_delete_removes_serials_without_reusing_numbers(
        self, service: OrderService, session: AsyncSession, admin: User, machine: Machine, panel: Panel, make_order
    ) -> None:
        order = await service.create_order_with_serials(make_order((machine.id, 2)), admin.id)

        await service.delete_order(order.id)

        assert await _count(session, Order) == 0
        assert await _count(session, Serial) == 0

        replacement = await service.create_order_with_serials(make_order((machine.id, 1)), admin.id)
        serials = await service.serials.list_for_order(replacement.id)
        assert [s.serial_number for s in serials] == ["CNC001003", "CP001003"]

    async def test_delete_missing_order(self, service: OrderService) -> None:
        with pytest.raises(OrderNotFound):
            await service.delete_order("01ARZ3NDEKTSV4RRFFQ69G5FAV")


class TestListOrders:
    async def test_newest_first_with_total(self, service: OrderService, admin: User, machine: Machine, make_order) -> None:
        for customer in ("First", "Second", "Third"):
            await service.create_order_with_serials(make_order((machine.id, 1), customer=customer), admin.id)

        orders, total = await service.list_orders(skip=0, limit=2)

        assert total == 3
        assert [o.customer_name for o in orders] == ["Third", "Second"]
