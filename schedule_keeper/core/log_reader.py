"""
Event log reader: fetches contract logs over a block range in chunks.
"""

import logging
from typing import Iterator, List, Protocol, Sequence, Tuple

from ..exceptions import ConfigurationError, FetchError
from .events import RawLog

logger = logging.getLogger(__name__)


class LogSource(Protocol):
    def query_logs(self, event_names: Sequence[str], from_block: int, to_block: int) -> List[RawLog]:
        ...


class EventLogReader:
    """
    Reads the logs of one contract between two block heights, inclusive,
    in consecutive sub-ranges of at most `chunk_size` blocks.
    """

    def __init__(self, source: LogSource, event_names: Sequence[str], chunk_size: int):
        if chunk_size <= 0:
            raise ConfigurationError(f"logs query range must be positive, got {chunk_size}")
        self.source = source
        self.event_names = tuple(event_names)
        self.chunk_size = chunk_size

    def iter_ranges(self, from_block: int, to_block: int) -> Iterator[Tuple[int, int]]:
        """Yield inclusive (start, end) sub-ranges covering [from_block, to_block]."""
        start = from_block
        while start <= to_block:
            end = min(start + self.chunk_size - 1, to_block)
            yield start, end
            start = end + 1

    def fetch(self, from_block: int, to_block: int) -> List[RawLog]:
        """
        Fetch one sub-range, ordered by (blockNumber, logIndex).

        Raises:
            FetchError: If the underlying request fails
        """
        try:
            logs = self.source.query_logs(self.event_names, from_block, to_block)
        except FetchError:
            raise
        except Exception as e:
            raise FetchError(from_block, to_block, str(e)) from e

        logs = sorted(logs, key=lambda log: (log.blockNumber, log.logIndex))
        logger.debug(f"blocks {from_block}-{to_block}: {len(logs)} logs")
        return logs
