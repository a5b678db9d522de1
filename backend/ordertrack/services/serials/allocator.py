"""Serial number allocation per product code prefix.

Serials are ``<product code><number>`` with the number zero-padded to a
minimum width (3 by default). Numbers for a prefix only ever grow: the
highest issued value lives in a ``serial_counters`` row that is incremented
atomically, so two transactions can never receive the same block. When no
counter row exists yet (first allocation, or serials that predate counters),
the starting point is recovered by scanning the serials already issued for
the product.
"""

import re

import structlog
from sqlalchemy import or_, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from ordertrack.config import settings
from ordertrack.models.catalog import Machine, Panel
from ordertrack.models.order import Serial
from ordertrack.models.serial_counter import SerialCounter

logger = structlog.get_logger(__name__)


def format_serial(prefix: str, number: int, min_width: int = 3) -> str:
    """Format a serial; numbers wider than ``min_width`` are kept whole.

    >>> format_serial("CNC001", 7)
    'CNC001007'
    >>> format_serial("CNC001", 1000)
    'CNC0011000'
    """
    return f"{prefix}{number:0{min_width}d}"


def parse_serial_number(prefix: str, serial_number: str) -> int | None:
    """Return the numeric suffix following ``prefix``, or None if it does not match."""
    match = re.fullmatch(re.escape(prefix) + r"(\d+)", serial_number)
    if match is None:
        return None
    return int(match.group(1))


class SerialAllocator:
    """Reserves serial numbers inside the caller's transaction.

    Reserved numbers become permanent only when the caller commits; a
    rollback releases the counter increment together with everything else.
    """

    def __init__(self, session: AsyncSession, *, min_width: int | None = None):
        self.session = session
        self.min_width = min_width if min_width is not None else settings.serial_min_width

    async def next_serial(self, prefix: str) -> str:
        """Reserve and return the next serial for ``prefix``."""
        (serial_number,) = await self.reserve(prefix, 1)
        return serial_number

    async def reserve(self, prefix: str, count: int) -> list[str]:
        """Reserve ``count`` consecutive serials for ``prefix``, in increasing order."""
        if count < 1:
            raise ValueError(f"count must be >= 1, got {count}")

        stmt = (
            update(SerialCounter)
            .where(SerialCounter.prefix == prefix)  # type: ignore[arg-type]
            .values(last_value=SerialCounter.last_value + count)
            .returning(SerialCounter.last_value)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        last_value = result.scalar_one_or_none()

        if last_value is None:
            current = await self.get_current_number(prefix, use_counter=False)
            last_value = current + count
            # A concurrent first allocation collides on the primary key here
            self.session.add(SerialCounter(prefix=prefix, last_value=last_value))
            await self.session.flush()
            logger.info("Initialized serial counter", prefix=prefix, recovered_max=current)

        first = last_value - count + 1
        return [format_serial(prefix, number, self.min_width) for number in range(first, last_value + 1)]

    async def preview_next_serial(self, prefix: str) -> str:
        """Serial the next allocation would return. Reserves nothing."""
        current = await self.get_current_number(prefix)
        return format_serial(prefix, current + 1, self.min_width)

    async def get_current_number(self, prefix: str, *, use_counter: bool = True) -> int:
        """Highest number issued so far for ``prefix`` (0 when none)."""
        if use_counter:
            # Column query, the identity map may hold a counter older than the last UPDATE
            result = await self.session.execute(
                select(SerialCounter.last_value).where(SerialCounter.prefix == prefix)  # type: ignore[arg-type]
            )
            last_value = result.scalar_one_or_none()
            if last_value is not None:
                return last_value

        serial = await self.get_max_serial_for_prefix(prefix)
        if serial is None:
            return 0
        number = parse_serial_number(prefix, serial.serial_number)
        assert number is not None
        return number

    async def get_max_serial_for_prefix(self, prefix: str) -> Serial | None:
        """Serial with the numerically highest suffix for ``prefix``.

        Only serials owned by the machine or panel carrying this code are
        considered, so a longer code that merely starts with ``prefix``
        (``CNC001`` vs ``CNC0012``) cannot leak into the result. Insertion
        order is irrelevant.
        """
        machine_ids = select(Machine.id).where(Machine.product_code == prefix)
        panel_ids = select(Panel.id).where(Panel.panel_code == prefix)
        stmt = select(Serial).where(
            or_(
                Serial.machine_id.in_(machine_ids),  # type: ignore[union-attr]
                Serial.panel_id.in_(panel_ids),  # type: ignore[union-attr]
            ),
            Serial.serial_number.startswith(prefix, autoescape=True),  # type: ignore[attr-defined]
        )
        result = await self.session.execute(stmt)

        best: Serial | None = None
        best_number = -1
        for serial in result.scalars():
            number = parse_serial_number(prefix, serial.serial_number)
            if number is not None and number > best_number:
                best, best_number = serial, number
        return best
