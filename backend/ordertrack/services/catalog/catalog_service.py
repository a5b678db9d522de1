"""Product catalog service: countries, machines and panels.

Product codes are unique across machines and panels together, because the
code is also the serial prefix and two products must never share one. A code
is also refused when it extends an existing code by digits (or the reverse),
since the two would mint overlapping serial strings. Codes are immutable once
created.
"""

import structlog
from sqlalchemy import func, literal, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from ordertrack.models.catalog import Country, Machine, Panel
from ordertrack.models.order import Serial
from ordertrack.services.catalog.exceptions import (
    CatalogItemInUse,
    DuplicateProductCode,
    MachineNotFound,
    PanelNotFound,
    UnknownParentMachine,
)

logger = structlog.get_logger(__name__)


class CatalogService:
    """Service for catalog operations."""

    def __init__(self, session: AsyncSession):
        self.session = session

    # -------------------------------------------------------------------------
    # Countries
    # -------------------------------------------------------------------------

    async def list_countries(self) -> list[Country]:
        result = await self.session.execute(select(Country).order_by(Country.name))
        return list(result.scalars().all())

    async def find_country(self, country_id: int) -> Country | None:
        return await self.session.get(Country, country_id)

    # -------------------------------------------------------------------------
    # Machines
    # -------------------------------------------------------------------------

    async def list_machines(self) -> list[Machine]:
        """List machines, newest first."""
        statement = select(Machine).order_by(Machine.created_at.desc(), Machine.id.desc())  # type: ignore[attr-defined,union-attr]
        result = await self.session.execute(statement)
        return list(result.scalars().all())

    async def find_machine(self, machine_id: int) -> Machine | None:
        """Machine by id, or None."""
        return await self.session.get(Machine, machine_id)

    async def get_machine(self, machine_id: int) -> Machine:
        machine = await self.find_machine(machine_id)
        if machine is None:
            raise MachineNotFound()
        return machine

    async def create_machine(self, *, name: str, product_code: str, created_by: int) -> Machine:
        await self._ensure_code_available(product_code)

        machine = Machine(name=name, product_code=product_code, created_by=created_by)
        self.session.add(machine)
        await self._commit_new_code(product_code)

        logger.info("Created machine", machine_id=machine.id, product_code=product_code)
        return machine

    async def update_machine(self, machine_id: int, *, name: str) -> Machine:
        """Rename a machine. The product code cannot change."""
        machine = await self.get_machine(machine_id)
        machine.name = name
        await self.session.commit()
        return machine

    async def delete_machine(self, machine_id: int) -> None:
        machine = await self.get_machine(machine_id)

        if await self._count(Panel, Panel.parent_machine_id == machine_id):  # type: ignore[arg-type]
            raise CatalogItemInUse(f"Machine {machine.product_code} still has panels")
        if await self._count(Serial, Serial.machine_id == machine_id):  # type: ignore[arg-type]
            raise CatalogItemInUse(f"Machine {machine.product_code} has issued serials")

        await self.session.delete(machine)
        await self.session.commit()
        logger.info("Deleted machine", machine_id=machine_id, product_code=machine.product_code)

    # -------------------------------------------------------------------------
    # Panels
    # -------------------------------------------------------------------------

    async def list_panels(self) -> list[Panel]:
        """List panels, newest first."""
        statement = select(Panel).order_by(Panel.created_at.desc(), Panel.id.desc())  # type: ignore[attr-defined,union-attr]
        result = await self.session.execute(statement)
        return list(result.scalars().all())

    async def get_panels_by_machine(self, machine_id: int) -> list[Panel]:
        """Panels attached to a machine, in catalog insertion order."""
        statement = select(Panel).where(Panel.parent_machine_id == machine_id).order_by(Panel.id)  # type: ignore[arg-type]
        result = await self.session.execute(statement)
        return list(result.scalars().all())

    async def get_panel(self, panel_id: int) -> Panel:
        panel = await self.session.get(Panel, panel_id)
        if panel is None:
            raise PanelNotFound()
        return panel

    async def create_panel(
        self,
        *,
        name: str,
        panel_code: str,
        parent_machine_id: int,
        created_by: int,
    ) -> Panel:
        if await self.find_machine(parent_machine_id) is None:
            raise UnknownParentMachine(f"Machine {parent_machine_id} does not exist")
        await self._ensure_code_available(panel_code)

        panel = Panel(
            name=name,
            panel_code=panel_code,
            parent_machine_id=parent_machine_id,
            created_by=created_by,
        )
        self.session.add(panel)
        await self._commit_new_code(panel_code)

        logger.info("Created panel", panel_id=panel.id, panel_code=panel_code, machine_id=parent_machine_id)
        return panel

    async def update_panel(
        self,
        panel_id: int,
        *,
        name: str | None = None,
        parent_machine_id: int | None = None,
    ) -> Panel:
        """Rename and/or re-attach a panel. The panel code cannot change."""
        panel = await self.get_panel(panel_id)

        if parent_machine_id is not None and parent_machine_id != panel.parent_machine_id:
            if await self.find_machine(parent_machine_id) is None:
                raise UnknownParentMachine(f"Machine {parent_machine_id} does not exist")
            panel.parent_machine_id = parent_machine_id
        if name is not None:
            panel.name = name

        await self.session.commit()
        return panel

    async def delete_panel(self, panel_id: int) -> None:
        panel = await self.get_panel(panel_id)

        if await self._count(Serial, Serial.panel_id == panel_id):  # type: ignore[arg-type]
            raise CatalogItemInUse(f"Panel {panel.panel_code} has issued serials")

        await self.session.delete(panel)
        await self.session.commit()
        logger.info("Deleted panel", panel_id=panel_id, panel_code=panel.panel_code)

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    async def code_in_use(self, code: str) -> bool:
        """Whether a machine or a panel carries this product code."""
        statement = select(func.count()).select_from(
            select(Machine.id)
            .where(Machine.product_code == code)
            .union_all(select(Panel.id).where(Panel.panel_code == code))
            .subquery()
        )
        result = await self.session.execute(statement)
        return bool(result.scalar())

    async def find_overlapping_code(self, code: str) -> str | None:
        """An existing code that equals ``code`` plus digits, or ``code`` minus trailing digits.

        Serials are the code followed by a number, so such a pair can mint the
        same string: ``CNC00`` number 1001 and ``CNC001`` number 1 are both
        ``CNC001001``.
        """
        machine_code = Machine.product_code
        panel_code = Panel.panel_code
        statement = (
            select(machine_code)
            .where(or_(machine_code.startswith(code), literal(code).startswith(machine_code)))  # type: ignore[attr-defined]
            .union_all(
                select(panel_code).where(or_(panel_code.startswith(code), literal(code).startswith(panel_code)))  # type: ignore[attr-defined]
            )
        )
        result = await self.session.execute(statement)
        for existing in result.scalars().all():
            shorter, longer = sorted((code, existing), key=len)
            remainder = longer[len(shorter) :]
            # LIKE is case-insensitive on SQLite, serials are not
            if longer.startswith(shorter) and remainder.isdigit():
                return existing
        return None

    async def _ensure_code_available(self, code: str) -> None:
        if await self.code_in_use(code):
            raise DuplicateProductCode(f"Product code {code} is already in use")
        overlapping = await self.find_overlapping_code(code)
        if overlapping is not None:
            raise DuplicateProductCode(
                f"Product code {code} overlaps {overlapping}; their serial numbers could collide"
            )

    async def _commit_new_code(self, code: str) -> None:
        """Commit a new machine/panel; a racing insert of the same code becomes DuplicateProductCode."""
        try:
            await self.session.commit()
        except IntegrityError as e:
            await self.session.rollback()
            raise DuplicateProductCode(f"Product code {code} is already in use") from e

    async def _count(self, model: type, *where: object) -> int:
        result = await self.session.execute(select(func.count()).select_from(model).where(*where))  # type: ignore[arg-type]
        return result.scalar() or 0
