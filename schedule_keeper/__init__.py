"""Keeper for Superfluid vesting, flow and auto-wrap schedules."""

from .config import Config
from .exceptions import (
    AllowlistError,
    APIError,
    ConfigurationError,
    ConsistencyError,
    EventParseError,
    ExecutionError,
    FetchError,
    ReorgError,
    ScheduleExistsError,
    ScheduleNotFoundError,
    SchedulerError,
    ScheduleStateError,
    StateFileError,
    UnknownEventError
)

__version__ = "0.1.0"

__all__ = [
    "Config",
    "AllowlistError",
    "APIError",
    "ConfigurationError",
    "ConsistencyError",
    "EventParseError",
    "ExecutionError",
    "FetchError",
    "ReorgError",
    "ScheduleExistsError",
    "ScheduleNotFoundError",
    "SchedulerError",
    "ScheduleStateError",
    "StateFileError",
    "UnknownEventError"
]
