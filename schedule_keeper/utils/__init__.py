"""Utility functions for the schedule keeper."""

from .formatters import (
    format_address,
    format_duration,
    format_schedule_identity,
    format_timestamp
)

__all__ = [
    "format_address",
    "format_duration",
    "format_schedule_identity",
    "format_timestamp"
]
