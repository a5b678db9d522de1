"""Utility functions and helpers."""

from ordertrack.utils.datetime_utils import serialize_api_datetime, to_api_timezone

__all__ = [
    "serialize_api_datetime",
    "to_api_timezone",
]
