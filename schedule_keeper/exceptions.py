"""
Exception hierarchy for the schedule keeper.

Fatal errors abort a run before (or without) touching persisted state;
per-item errors are caught by the dispatcher and logged.
"""

from typing import Optional, Tuple


class SchedulerError(Exception):
    """Base class for all schedule keeper errors."""


class ConfigurationError(SchedulerError):
    """Missing or invalid configuration (RPC, signer, network, contract address)."""


class APIError(SchedulerError):
    """An HTTP collaborator (allowlist, metadata, status page) returned an error."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class FetchError(SchedulerError):
    """A log sub-range request failed; the checkpoint must not move past it."""

    def __init__(self, from_block: int, to_block: int, reason: str):
        super().__init__(f"failed to fetch logs for blocks {from_block}-{to_block}: {reason}")
        self.from_block = from_block
        self.to_block = to_block


class EventParseError(SchedulerError):
    """A raw log could not be turned into a typed event."""


class ReorgError(EventParseError):
    """A log was flagged as removed by the provider. Reorgs are not handled."""


class UnknownEventError(EventParseError):
    """No handler exists for the event name."""


class ConsistencyError(SchedulerError):
    """An event does not fit the local projection (missed event or invariant breach)."""

    def __init__(self, message: str, identity: Optional[Tuple[str, ...]] = None):
        super().__init__(message)
        self.identity = identity


class ScheduleExistsError(ConsistencyError):
    pass


class ScheduleNotFoundError(ConsistencyError):
    pass


class ScheduleStateError(ConsistencyError):
    """The schedule exists but is in the wrong state for the event."""


class StateFileError(SchedulerError):
    """The persisted state file is corrupt, partial or unreadable."""


class AllowlistError(SchedulerError):
    """No allowlist is available while enforcement is required."""


class ExecutionError(SchedulerError):
    """A single dispatch attempt (estimate, submit, confirm) failed."""
