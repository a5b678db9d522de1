"""Reference and demo data for a fresh database."""

from dataclasses import dataclass

import structlog
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from ordertrack.models.catalog import Country, Machine
from ordertrack.models.enums import UserRole
from ordertrack.models.user import User
from ordertrack.services.auth.user_service import UserService
from ordertrack.services.catalog.catalog_service import CatalogService

logger = structlog.get_logger(__name__)

SEED_COUNTRIES = [
    ("United States", "US"),
    ("Canada", "CA"),
    ("United Kingdom", "GB"),
    ("Germany", "DE"),
    ("France", "FR"),
]

SEED_USERS = [
    # username, email, phone, password, role
    ("admin", "admin@company.com", "+1-555-0101", "admin123", UserRole.ADMIN),
    ("tech", "tech@company.com", "+1-555-0102", "tech123", UserRole.TECH),
]

SEED_MACHINES = [
    ("CNC Mill Pro X1", "CNC001"),
    ("Laser Cutter LX200", "LSR200"),
    ("3D Printer Z300", "3DP300"),
]


@dataclass
class SeedResult:
    countries: int = 0
    users: int = 0
    machines: int = 0
    panels: int = 0


class SeedService:
    """Idempotently creates countries, default users and sample machines.

    Each sample machine gets a Control Panel (``CP`` + last three characters
    of its code) and a Safety Panel (``SP`` + the same), only when the
    machine itself is created by this run.
    """

    def __init__(self, session: AsyncSession):
        self.session = session
        self.users = UserService(session)
        self.catalog = CatalogService(session)

    async def run(self) -> SeedResult:
        result = SeedResult()

        existing_codes = set((await self.session.execute(select(Country.code))).scalars().all())
        for name, code in SEED_COUNTRIES:
            if code not in existing_codes:
                self.session.add(Country(name=name, code=code))
                result.countries += 1
        await self.session.commit()

        admin: User | None = None
        for username, email, phone, password, role in SEED_USERS:
            user = await self.users.get_by_username(username)
            if user is None:
                user = await self.users.create_user(
                    username=username, email=email, phone=phone, password=password, role=role
                )
                result.users += 1
            if role == UserRole.ADMIN:
                admin = user
        assert admin is not None and admin.id is not None

        for name, product_code in SEED_MACHINES:
            found = await self.session.execute(select(Machine).where(Machine.product_code == product_code))
            if found.scalars().first() is not None:
                continue

            machine = await self.catalog.create_machine(name=name, product_code=product_code, created_by=admin.id)
            result.machines += 1
            assert machine.id is not None
            suffix = product_code[-3:]
            for panel_name, panel_code in (("Control Panel", f"CP{suffix}"), ("Safety Panel", f"SP{suffix}")):
                await self.catalog.create_panel(
                    name=panel_name,
                    panel_code=panel_code,
                    parent_machine_id=machine.id,
                    created_by=admin.id,
                )
                result.panels += 1

        logger.info("Seed data created", **vars(result))
        return result
