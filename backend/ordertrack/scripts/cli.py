"""Administrative CLI: seed reference data and manage users."""

import asyncio

import click
import structlog

from ordertrack.db import async_session_maker, dispose_engine
from ordertrack.logging import setup_logging
from ordertrack.models.enums import UserRole
from ordertrack.services.auth.user_service import DuplicateUser, UserService
from ordertrack.services.seed_service import SeedResult, SeedService

logger = structlog.get_logger(__name__)


async def _seed() -> SeedResult:
    try:
        async with async_session_maker() as session:
            return await SeedService(session).run()
    finally:
        await dispose_engine()


async def _create_user(username: str, email: str, phone: str | None, password: str, role: UserRole) -> int:
    try:
        async with async_session_maker() as session:
            user = await UserService(session).create_user(
                username=username,
                email=email,
                phone=phone,
                password=password,
                role=role,
            )
            assert user.id is not None
            return user.id
    finally:
        await dispose_engine()


@click.group()
def cli() -> None:
    """Order tracking administration."""
    setup_logging()


@cli.command()
def seed() -> None:
    """Create countries, default users and sample machines (idempotent)."""
    result = asyncio.run(_seed())
    click.echo(
        f"Created {result.countries} countries, {result.users} users, "
        f"{result.machines} machines, {result.panels} panels."
    )


@cli.command("create-user")
@click.option("--username", required=True)
@click.option("--email", required=True)
@click.option("--phone", default=None)
@click.option("--password", prompt=True, hide_input=True, confirmation_prompt=True)
@click.option(
    "--role",
    type=click.Choice([role.value for role in UserRole]),
    default=UserRole.TECH.value,
    show_default=True,
)
def create_user(username: str, email: str, phone: str | None, password: str, role: str) -> None:
    """Create an application user."""
    try:
        user_id = asyncio.run(_create_user(username, email, phone, password, UserRole(role)))
    except DuplicateUser as e:
        raise click.ClickException(str(e)) from e
    click.secho(f"Created user {username} (id {user_id}, {role})", fg="green")
