"""
State reconciler: replays typed contract events into the projection of
active and removed schedules.

Every handler checks its precondition before touching the projection, so a
rejected event leaves the state exactly as it was.
"""

import logging
from typing import Dict, Iterable, List, Optional

from ..exceptions import (
    ConsistencyError,
    ScheduleExistsError,
    ScheduleNotFoundError,
    ScheduleStateError,
    UnknownEventError,
)
from .kinds import ScheduleKind, Transition
from .schedules import Identity, ScheduleBase, SchedulerState

logger = logging.getLogger(__name__)


class Reconciler:
    """In-memory projection of one contract's schedules."""

    def __init__(
        self,
        kind: ScheduleKind,
        active: Optional[Iterable[ScheduleBase]] = None,
        removed: Optional[Iterable[ScheduleBase]] = None,
    ):
        self.kind = kind
        self._active: Dict[Identity, ScheduleBase] = {}
        self._removed: List[ScheduleBase] = list(removed or [])

        for schedule in active or []:
            if schedule.identity in self._active:
                raise ConsistencyError(
                    f"duplicate active schedule {kind.describe(schedule.identity)} in loaded state",
                    schedule.identity,
                )
            self._active[schedule.identity] = schedule

    @classmethod
    def from_state(cls, kind: ScheduleKind, state: SchedulerState) -> "Reconciler":
        return cls(kind, state.activeSchedules, state.removedSchedules)

    @property
    def active(self) -> List[ScheduleBase]:
        return list(self._active.values())

    @property
    def removed(self) -> List[ScheduleBase]:
        return list(self._removed)

    def get(self, identity: Identity) -> Optional[ScheduleBase]:
        return self._active.get(identity)

    def to_state(self, last_block: int) -> SchedulerState:
        return SchedulerState[self.kind.schedule_model](
            lastBlock=last_block,
            activeSchedules=self.active,
            removedSchedules=self.removed,
        )

    def apply_all(self, events: Iterable) -> int:
        count = 0
        for event in events:
            self.apply(event)
            count += 1
        return count

    def apply(self, event) -> None:
        """
        Apply one typed event.

        Raises:
            UnknownEventError: If the kind has no transition for the event
            ConsistencyError: If the event does not fit the projection
        """
        transition = self.kind.transitions.get(event.name)
        if transition is None:
            raise UnknownEventError(f"no transition for event {event.name} of {self.kind.contract_name}")

        identity = self.kind.identity_of(event)
        label = self.kind.describe(identity)
        where = f"(block {event.blockNumber}, tx {event.transactionHash})"
        current = self._active.get(identity)

        if transition is Transition.CREATE:
            self._create(event, identity, label, current)
            return

        if current is None:
            if event.name in self.kind.lenient_events:
                logger.warning(f"{event.name}: no active schedule for {label} {where}, ignoring")
                return
            raise ScheduleNotFoundError(
                f"{event.name}: schedule not found for {label} {where}",
                identity,
            )

        if transition is Transition.UPDATE:
            if self.kind.update is None:
                raise UnknownEventError(f"{self.kind.name} schedules do not support updates")
            self.kind.update(current, event)
        elif transition is Transition.START:
            if current.started:
                raise ScheduleStateError(f"{event.name}: schedule already started for {label}", identity)
            current.started = True
            logger.info(f"STARTED: {label} {where}")
        elif transition is Transition.CLAIM:
            if current.claimed:
                raise ScheduleStateError(f"{event.name}: schedule already claimed for {label}", identity)
            current.claimed = True
            logger.info(f"CLAIMED: {label} by {getattr(event, 'claimer', None) or 'receiver'} {where}")
        elif transition is Transition.STOP:
            current.stopped = True
            self._remove(identity)
            logger.info(f"STOPPED: {label} {where}")
        elif transition is Transition.FAIL:
            current.failed = True
            self._remove(identity)
            logger.info(f"FAILED: {label} {where}")
        elif transition is Transition.DELETE:
            self._remove(identity)
            logger.info(f"DELETED: {label} {where}")
        elif transition is Transition.EXECUTE:
            current.executionCounter += 1
            logger.info(f"EXECUTED: {label}, was executed {current.executionCounter} times {where}")
        else:
            raise UnknownEventError(f"unhandled transition {transition} for {event.name}")

    def _create(self, event, identity: Identity, label: str, current: Optional[ScheduleBase]) -> None:
        if current is not None:
            if not self.kind.overwrite_on_create:
                raise ScheduleExistsError(
                    f"{event.name}: schedule already exists for {label} "
                    f"(block {event.blockNumber}, tx {event.transactionHash})",
                    identity,
                )
            logger.warning(f"UPDATE: schedule already exists for {label}, overwriting")
            del self._active[identity]

        self._active[identity] = self.kind.build(event)
        logger.info(f"CREATED: {label} (block {event.blockNumber}, tx {event.transactionHash})")

    def _remove(self, identity: Identity) -> None:
        schedule = self._active.pop(identity)
        self._removed.append(schedule.model_copy(deep=True))
