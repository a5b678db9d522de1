"""Read access to issued serials and batch insertion for order fulfillment."""

from collections.abc import Sequence

from sqlalchemy import func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from ordertrack.models.order import Serial


class SerialService:
    """Queries over the serials table.

    Serials are never created or changed here outside of order creation;
    ``insert_serials`` only stages a batch in the caller's transaction.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def list_serials(self, *, skip: int = 0, limit: int = 50) -> tuple[list[Serial], int]:
        """List serials, newest first. Returns (serials, total_count)."""
        statement = (
            select(Serial)
            .offset(skip)
            .limit(limit)
            .order_by(Serial.issued_at.desc(), Serial.id.desc())  # type: ignore[attr-defined,union-attr]
        )
        result = await self.session.execute(statement)
        serials = list(result.scalars().all())

        count_result = await self.session.execute(select(func.count()).select_from(Serial))
        total = count_result.scalar() or 0

        return serials, total

    async def list_for_order(self, order_id: str) -> list[Serial]:
        """Serials of one order in issuance order."""
        statement = select(Serial).where(Serial.order_id == order_id).order_by(Serial.id)  # type: ignore[arg-type]
        result = await self.session.execute(statement)
        return list(result.scalars().all())

    async def insert_serials(self, batch: Sequence[Serial]) -> list[Serial]:
        """Stage a batch of serials and flush it in a single round of INSERTs."""
        self.session.add_all(batch)
        await self.session.flush()
        return list(batch)
