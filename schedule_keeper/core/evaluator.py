"""
Window/status evaluation for schedules.

Everything here is a pure function of (schedule, now): no chain access, no
caching across calls. Version- and kind-specific interpretation of the
temporal fields lives in the window policies.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Tuple

from ..config import DEFAULT_START_DATE_VALID_AFTER, END_DATE_VALID_BEFORE
from .schedules import FlowSchedule, ScheduleBase, SchedulerState, VestingSchedule, WrapSchedule

logger = logging.getLogger(__name__)


class ScheduleStatus(str, Enum):
    NOT_STARTED = "not_started"
    CLAIMABLE = "claimable"
    ACTIVE = "active"
    ENDED = "ended"
    FAILED = "failed"


@dataclass
class StatusReport:
    """Derived status of one schedule at one point in time."""
    schedule: ScheduleBase
    status: ScheduleStatus
    removed: bool = False
    is_in_start_window: bool = False
    is_in_stop_window: bool = False
    is_start_expired: bool = False
    is_claimable: bool = False
    is_claimed: bool = False
    start_window_opens_at: Optional[int] = None
    start_window_closes_at: Optional[int] = None
    stop_window_opens_at: Optional[int] = None


class WindowPolicy:
    """
    Interprets a schedule's temporal fields.

    Subclasses return None for a window the schedule does not have.
    """

    # start window stays meaningful after the first execution
    repeatable_start = False
    # stop is only due once the schedule was started
    stop_requires_start = True

    def __init__(
        self,
        start_date_valid_after: int = DEFAULT_START_DATE_VALID_AFTER,
        end_date_valid_before: int = END_DATE_VALID_BEFORE,
    ):
        self.start_date_valid_after = start_date_valid_after
        self.end_date_valid_before = end_date_valid_before

    def start_window(self, schedule) -> Optional[Tuple[int, int]]:
        raise NotImplementedError

    def stop_window_opens_at(self, schedule) -> Optional[int]:
        raise NotImplementedError

    def is_started(self, schedule) -> bool:
        return getattr(schedule, "started", False)

    def is_stopped(self, schedule) -> bool:
        return getattr(schedule, "stopped", False)

    def is_failed(self, schedule) -> bool:
        return getattr(schedule, "failed", False)

    def is_claimable(self, schedule) -> bool:
        return False

    def is_claimed(self, schedule) -> bool:
        return False


class VestingWindowPolicy(WindowPolicy):
    """
    Vesting: startable from cliffAndFlowDate until START_DATE_VALID_AFTER
    later (or until claimValidityDate for claimable v2 schedules), stoppable
    from END_DATE_VALID_BEFORE ahead of endDate.
    """

    def start_window(self, schedule: VestingSchedule) -> Optional[Tuple[int, int]]:
        opens_at = schedule.cliffAndFlowDate
        if schedule.claimValidityDate:
            return opens_at, schedule.claimValidityDate
        return opens_at, opens_at + self.start_date_valid_after

    def stop_window_opens_at(self, schedule: VestingSchedule) -> Optional[int]:
        if schedule.endDate <= 0:
            return None
        return schedule.endDate - self.end_date_valid_before

    def is_claimable(self, schedule: VestingSchedule) -> bool:
        return schedule.claimValidityDate != 0

    def is_claimed(self, schedule: VestingSchedule) -> bool:
        return schedule.claimed

    def is_started(self, schedule: VestingSchedule) -> bool:
        return schedule.started or schedule.claimed


class FlowWindowPolicy(WindowPolicy):
    """
    Flow: startable from startDate for startDateMaxDelay seconds, stoppable
    from endDate whether or not it was started. A zero startDate means only the stop was scheduled, so the
    flow is treated as already running.
    """

    stop_requires_start = False

    def start_window(self, schedule: FlowSchedule) -> Optional[Tuple[int, int]]:
        if schedule.startDate == 0:
            return None
        return schedule.startDate, schedule.startDate + schedule.startDateMaxDelay

    def stop_window_opens_at(self, schedule: FlowSchedule) -> Optional[int]:
        if schedule.endDate <= 0:
            return None
        return schedule.endDate

    def is_started(self, schedule: FlowSchedule) -> bool:
        return schedule.started or schedule.startDate == 0


class WrapWindowPolicy(WindowPolicy):
    """Wrap: executable any time before expiry, never stopped."""

    repeatable_start = True

    def start_window(self, schedule: WrapSchedule) -> Optional[Tuple[int, int]]:
        # expiry itself is already invalid
        return 0, schedule.expiry - 1

    def stop_window_opens_at(self, schedule: WrapSchedule) -> Optional[int]:
        return None

    def is_started(self, schedule: WrapSchedule) -> bool:
        return True


class WindowEvaluator:
    """Computes StatusReports for the schedules of one kind."""

    def __init__(self, policy: WindowPolicy):
        self.policy = policy

    def status(self, schedule: ScheduleBase, removed: bool = False) -> ScheduleStatus:
        """
        Status label by fixed precedence:
        deleted > failed > ended > active > claimable > not_started.
        """
        policy = self.policy
        stopped = policy.is_stopped(schedule)
        failed = policy.is_failed(schedule)

        if removed and not stopped and not failed:
            return ScheduleStatus.ENDED
        if failed:
            return ScheduleStatus.FAILED
        if stopped or removed:
            return ScheduleStatus.ENDED
        if policy.is_started(schedule):
            return ScheduleStatus.ACTIVE
        if policy.is_claimable(schedule):
            return ScheduleStatus.CLAIMABLE
        return ScheduleStatus.NOT_STARTED

    def evaluate(self, schedule: ScheduleBase, now: int, removed: bool = False) -> StatusReport:
        policy = self.policy
        status = self.status(schedule, removed)
        report = StatusReport(
            schedule=schedule,
            status=status,
            removed=removed,
            is_claimable=policy.is_claimable(schedule),
            is_claimed=policy.is_claimed(schedule),
        )

        window = policy.start_window(schedule)
        if window is not None:
            opens_at, closes_at = window
            report.start_window_opens_at = opens_at
            report.start_window_closes_at = closes_at
            if status in (ScheduleStatus.NOT_STARTED, ScheduleStatus.CLAIMABLE):
                report.is_in_start_window = opens_at <= now <= closes_at
                report.is_start_expired = now > closes_at
            elif status is ScheduleStatus.ACTIVE and policy.repeatable_start:
                report.is_in_start_window = now <= closes_at
                report.is_start_expired = now > closes_at

        stop_opens_at = policy.stop_window_opens_at(schedule)
        report.stop_window_opens_at = stop_opens_at
        if stop_opens_at is not None and status is ScheduleStatus.ACTIVE:
            report.is_in_stop_window = now >= stop_opens_at

        return report

    def evaluate_state(self, state: SchedulerState, now: int, include_removed: bool = True) -> List[StatusReport]:
        """Evaluate every schedule in a state, active ones first."""
        reports = [self.evaluate(s, now) for s in state.activeSchedules]
        if include_removed:
            reports.extend(self.evaluate(s, now, removed=True) for s in state.removedSchedules)
        return reports
