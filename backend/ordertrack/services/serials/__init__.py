"""Serial number allocation and lookup."""

from ordertrack.services.serials.allocator import SerialAllocator, format_serial, parse_serial_number
from ordertrack.services.serials.serial_service import SerialService

__all__ = [
    "SerialAllocator",
    "SerialService",
    "format_serial",
    "parse_serial_number",
]
