"""Tests for machines, panels and product code rules."""

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from ordertrack.models.catalog import Country, Machine, Panel
from ordertrack.models.user import User
from ordertrack.services.catalog import CatalogService
from ordertrack.services.catalog.exceptions import (
    CatalogItemInUse,
    DuplicateProductCode,
    MachineNotFound,
    PanelNotFound,
    UnknownParentMachine,
)
from ordertrack.services.orders import OrderService


@pytest.fixture
def catalog(session: AsyncSession) -> CatalogService:
    return CatalogService(session)


async def test_create_machine_and_panels(catalog: CatalogService, admin: User) -> None:
    machine = await catalog.create_machine(name="Laser Cutter LX200", product_code="LSR200", created_by=admin.id)
    control = await catalog.create_panel(
        name="Control Panel", panel_code="CP200", parent_machine_id=machine.id, created_by=admin.id
    )
    safety = await catalog.create_panel(
        name="Safety Panel", panel_code="SP200", parent_machine_id=machine.id, created_by=admin.id
    )

    assert await catalog.get_machine(machine.id) is machine
    assert [p.id for p in await catalog.get_panels_by_machine(machine.id)] == [control.id, safety.id]


async def test_product_codes_are_unique_across_machines_and_panels(
    catalog: CatalogService, admin: User, machine: Machine, panel: Panel
) -> None:
    with pytest.raises(DuplicateProductCode):
        await catalog.create_machine(name="Clone", product_code="CNC001", created_by=admin.id)
    with pytest.raises(DuplicateProductCode):
        await catalog.create_machine(name="Panel clash", product_code="CP001", created_by=admin.id)
    with pytest.raises(DuplicateProductCode):
        await catalog.create_panel(
            name="Machine clash", panel_code="CNC001", parent_machine_id=machine.id, created_by=admin.id
        )


@pytest.mark.parametrize("code", ["CNC00", "CNC", "CNC0011", "CNC001999", "CP0", "CP0012"])
async def test_codes_differing_by_trailing_digits_are_rejected(
    catalog: CatalogService, admin: User, machine: Machine, panel: Panel, code: str
) -> None:
    with pytest.raises(DuplicateProductCode):
        await catalog.create_machine(name="Overlap", product_code=code, created_by=admin.id)
    with pytest.raises(DuplicateProductCode):
        await catalog.create_panel(name="Overlap", panel_code=code, parent_machine_id=machine.id, created_by=admin.id)


@pytest.mark.parametrize("code", ["CN", "CNC001A", "CNCX01", "cnc00", "ACNC001"])
async def test_codes_sharing_a_non_numeric_stem_are_allowed(
    catalog: CatalogService, admin: User, machine: Machine, code: str
) -> None:
    created = await catalog.create_machine(name="Neighbour", product_code=code, created_by=admin.id)

    assert created.product_code == code
    assert await catalog.find_overlapping_code("CNC00") == "CNC001"


async def test_panel_requires_existing_machine(catalog: CatalogService, admin: User) -> None:
    with pytest.raises(UnknownParentMachine):
        await catalog.create_panel(name="Orphan", panel_code="OP001", parent_machine_id=404, created_by=admin.id)


async def test_code_in_use(catalog: CatalogService, machine: Machine, panel: Panel) -> None:
    assert await catalog.code_in_use("CNC001")
    assert await catalog.code_in_use("CP001")
    assert not await catalog.code_in_use("CNC00")


async def test_update_machine_renames_only(catalog: CatalogService, machine: Machine) -> None:
    updated = await catalog.update_machine(machine.id, name="CNC Mill Pro X2")

    assert updated.name == "CNC Mill Pro X2"
    assert updated.product_code == "CNC001"


async def test_move_panel_to_other_machine(catalog: CatalogService, admin: User, machine: Machine, panel: Panel) -> None:
    other = await catalog.create_machine(name="3D Printer Z300", product_code="3DP300", created_by=admin.id)

    moved = await catalog.update_panel(panel.id, parent_machine_id=other.id)

    assert moved.parent_machine_id == other.id
    assert await catalog.get_panels_by_machine(machine.id) == []
    with pytest.raises(UnknownParentMachine):
        await catalog.update_panel(panel.id, parent_machine_id=404)


async def test_delete_machine_with_panels_is_refused(catalog: CatalogService, machine: Machine, panel: Panel) -> None:
    with pytest.raises(CatalogItemInUse):
        await catalog.delete_machine(machine.id)


async def test_delete_items_with_serials_is_refused(
    session: AsyncSession,
    catalog: CatalogService,
    admin: User,
    machine: Machine,
    panel: Panel,
    make_order,
    retry_config,
) -> None:
    await OrderService(session, retry_config=retry_config).create_order_with_serials(
        make_order((machine.id, 1)), admin.id
    )

    with pytest.raises(CatalogItemInUse):
        await catalog.delete_panel(panel.id)


async def test_delete_unused_items(catalog: CatalogService, machine: Machine, panel: Panel) -> None:
    await catalog.delete_panel(panel.id)
    await catalog.delete_machine(machine.id)

    with pytest.raises(PanelNotFound):
        await catalog.get_panel(panel.id)
    with pytest.raises(MachineNotFound):
        await catalog.get_machine(machine.id)


async def test_list_countries_sorted_by_name(catalog: CatalogService, session: AsyncSession, country: Country) -> None:
    session.add(Country(name="Canada", code="CA"))
    await session.commit()

    assert [c.code for c in await catalog.list_countries()] == ["CA", "US"]
