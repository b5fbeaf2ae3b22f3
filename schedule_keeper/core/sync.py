"""
Incremental sync: reader -> parser -> reconciler -> checkpoint, one chunk at a time.
"""

import logging
from dataclasses import dataclass

from .event_parser import parse_events
from .log_reader import EventLogReader
from .reconciler import Reconciler
from .schedules import SchedulerState
from .state_store import StateStore

logger = logging.getLogger(__name__)


@dataclass
class SyncResult:
    last_block: int
    chunks: int = 0
    events: int = 0


class StateSynchronizer:
    """
    Replays a contract's events from the checkpoint up to a target block.

    Each chunk is parsed completely before anything is applied and the
    state is saved after every applied chunk, so a failure loses at most
    the chunk in progress.
    """

    def __init__(self, reader: EventLogReader, reconciler: Reconciler, store: StateStore):
        self.reader = reader
        self.reconciler = reconciler
        self.store = store

    def sync(self, state: SchedulerState, end_block: int) -> SyncResult:
        """
        Args:
            state: Loaded state; only its lastBlock is read here
            end_block: Last block to process, inclusive

        Returns:
            SyncResult with the checkpoint reached
        """
        start_block = state.lastBlock + 1
        result = SyncResult(last_block=state.lastBlock)

        if start_block > end_block:
            logger.info(f"Nothing to sync: next block {start_block} is past end block {end_block}")
            return result

        kind = self.reconciler.kind
        logger.info(f"Syncing {kind.name} schedules from block {start_block} to {end_block}")

        for from_block, to_block in self.reader.iter_ranges(start_block, end_block):
            logs = self.reader.fetch(from_block, to_block)
            logger.info(
                f"*** query for past events from {from_block} to {to_block} (of {end_block}) "
                f"returned {len(logs)} events"
            )
            events = parse_events(logs, kind)
            self.reconciler.apply_all(events)

            self.store.save(self.reconciler.to_state(to_block))
            result.last_block = to_block
            result.chunks += 1
            result.events += len(events)

        logger.info(
            f"Sync done at block {result.last_block}: {result.events} events in {result.chunks} chunks, "
            f"{len(self.reconciler.active)} active, {len(self.reconciler.removed)} removed"
        )
        return result
