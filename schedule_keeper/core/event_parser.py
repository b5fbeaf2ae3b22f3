"""
Turns raw decoded logs into typed event records of one schedule kind.
"""

import logging
from typing import Any, Iterable, List

from pydantic import ValidationError

from ..exceptions import EventParseError, ReorgError, UnknownEventError
from .events import RawLog
from .kinds import ScheduleKind

logger = logging.getLogger(__name__)


def parse_event(raw: RawLog, kind: ScheduleKind) -> Any:
    """
    Parse one raw log into the kind's typed event union.

    Args:
        raw: Decoded log from the chain client
        kind: Schedule kind owning the emitting contract

    Returns:
        Typed event model, discriminated by its `name`

    Raises:
        ReorgError: If the provider flagged the log as removed
        UnknownEventError: If the kind has no handler for the event name
        EventParseError: If the arguments do not fit the event model
    """
    if raw.removed:
        raise ReorgError(
            f"removed flag set on {raw.event} in block {raw.blockNumber} "
            f"(tx {raw.transactionHash}), reorgs are not handled"
        )

    if raw.event not in kind.transitions:
        raise UnknownEventError(
            f"no handler for event {raw.event} of {kind.contract_name} "
            f"in block {raw.blockNumber} (tx {raw.transactionHash})"
        )

    payload = dict(raw.args)
    payload.update(
        name=raw.event,
        blockNumber=raw.blockNumber,
        logIndex=raw.logIndex,
        transactionHash=raw.transactionHash,
    )

    try:
        return kind.event_adapter.validate_python(payload)
    except ValidationError as e:
        raise EventParseError(
            f"invalid {raw.event} in block {raw.blockNumber} (tx {raw.transactionHash}): {e}"
        ) from e


def parse_events(raws: Iterable[RawLog], kind: ScheduleKind) -> List[Any]:
    """Parse a batch, failing on the first bad log."""
    parsed = [parse_event(raw, kind) for raw in raws]
    logger.debug(f"Parsed {len(parsed)} {kind.name} events")
    return parsed
