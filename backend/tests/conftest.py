"""Shared fixtures: a throwaway SQLite database per test and seeded catalog rows."""

from collections.abc import AsyncIterator, Callable
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlmodel import SQLModel

import ordertrack.models  # noqa: F401
from ordertrack.db import get_session
from ordertrack.main import app
from ordertrack.models.catalog import Country, Machine, Panel
from ordertrack.models.enums import UserRole
from ordertrack.models.user import User
from ordertrack.services.auth.security import create_access_token, hash_password
from ordertrack.services.orders.order_service import OrderInput, OrderLineInput
from ordertrack.utils.conflict_retry import ConflictRetryConfig


@pytest.fixture
def retry_config() -> ConflictRetryConfig:
    """Three attempts without backoff sleeps."""
    return ConflictRetryConfig(max_attempts=3, min_wait=0, max_wait=0)


@pytest.fixture
async def engine(tmp_path: Path) -> AsyncIterator[AsyncEngine]:
    # A file rather than :memory: so concurrent sessions get their own connections
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'ordertrack.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def session(session_maker: async_sessionmaker[AsyncSession]) -> AsyncIterator[AsyncSession]:
    async with session_maker() as session:
        yield session


async def _add_user(session: AsyncSession, username: str, role: UserRole) -> User:
    user = User(
        username=username,
        email=f"{username}@example.com",
        password_hash=hash_password(f"{username}-pass"),
        role=role,
    )
    session.add(user)
    await session.commit()
    return user


@pytest.fixture
async def admin(session: AsyncSession) -> User:
    return await _add_user(session, "admin", UserRole.ADMIN)


@pytest.fixture
async def tech(session: AsyncSession) -> User:
    return await _add_user(session, "tech", UserRole.TECH)


@pytest.fixture
async def country(session: AsyncSession) -> Country:
    country = Country(name="United States", code="US")
    session.add(country)
    await session.commit()
    return country


@pytest.fixture
async def machine(session: AsyncSession, admin: User) -> Machine:
    assert admin.id is not None
    machine = Machine(name="CNC Mill Pro X1", product_code="CNC001", created_by=admin.id)
    session.add(machine)
    await session.commit()
    return machine


@pytest.fixture
async def panel(session: AsyncSession, admin: User, machine: Machine) -> Panel:
    assert admin.id is not None and machine.id is not None
    panel = Panel(name="Control Panel", panel_code="CP001", parent_machine_id=machine.id, created_by=admin.id)
    session.add(panel)
    await session.commit()
    return panel


@pytest.fixture
def make_order(country: Country) -> Callable[..., OrderInput]:
    """Build an OrderInput from (machine_id, quantity) pairs."""

    def _make(*lines: tuple[int, int], customer: str = "Acme Manufacturing") -> OrderInput:
        assert country.id is not None
        return OrderInput(
            customer_name=customer,
            shipping_location="Springfield, IL",
            country_id=country.id,
            quote_number="Q-1001",
            invoice_number="INV-1001",
            due_date=datetime.now(UTC) + timedelta(days=30),
            machine_lines=[OrderLineInput(machine_id=machine_id, quantity=qty) for machine_id, qty in lines],
        )

    return _make


@pytest.fixture
async def client(session_maker: async_sessionmaker[AsyncSession]) -> AsyncIterator[AsyncClient]:
    async def override_get_session() -> AsyncIterator[AsyncSession]:
        async with session_maker() as session:
            yield session

    app.dependency_overrides[get_session] = override_get_session
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers() -> Callable[[User], dict[str, str]]:
    def _headers(user: User) -> dict[str, str]:
        assert user.id is not None
        return {"Authorization": f"Bearer {create_access_token(user.id, user.role.value)}"}

    return _headers
