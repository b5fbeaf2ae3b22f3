"""
Human-readable summary of a persisted state file.

Usage: keeper-report vesting eth-mainnet [--verbose] [--print-finished]
"""

import argparse
import sys
import time
from typing import List

from .config import Config
from .core.evaluator import ScheduleStatus, StatusReport
from .core.kinds import ScheduleKind, get_kind
from .exceptions import SchedulerError
from .runner import read_statuses
from .utils.formatters import format_duration, format_schedule_identity, format_timestamp

SEPARATOR = "----------------"


def _start_window_line(r: StatusReport, now: int) -> str:
    in_window = now - r.start_window_opens_at
    remaining = r.start_window_closes_at - now
    return f"in window for {format_duration(in_window)}, remaining {format_duration(remaining)}"


def build_report(
    kind: ScheduleKind,
    reports: List[StatusReport],
    now: int,
    verbose: bool = False,
    print_finished: bool = False,
) -> List[str]:
    """Report lines for the given status reports."""
    by_status = {status: [r for r in reports if r.status is status] for status in ScheduleStatus}
    active_set = [r for r in reports if not r.removed]

    pre_start = [r for r in active_set if r.status in (ScheduleStatus.NOT_STARTED, ScheduleStatus.CLAIMABLE)]
    claimable = [r for r in pre_start if r.is_claimable]
    auto_start = [r for r in pre_start if not r.is_claimable]
    auto_start_in_window = [r for r in auto_start if r.is_in_start_window]
    in_start_window = [r for r in active_set if r.is_in_start_window]
    start_expired = [r for r in active_set if r.is_start_expired]
    flowing = by_status[ScheduleStatus.ACTIVE]
    in_stop_window = [r for r in flowing if r.is_in_stop_window]

    lines: List[str] = []

    lines.extend(["", "Schedules in start window:", SEPARATOR])
    for r in in_start_window:
        lines.append(format_schedule_identity(r.schedule.identity))
        lines.append(_start_window_line(r, now))
        lines.append(SEPARATOR)

    lines.extend(["", "Schedules in stop window:", SEPARATOR])
    for r in in_stop_window:
        lines.append(format_schedule_identity(r.schedule.identity))
        lines.append(f"stoppable since {format_duration(now - r.stop_window_opens_at)}")
        lines.append(SEPARATOR)

    if verbose:
        lines.extend(["", "Active Schedules:", SEPARATOR])
        for r in flowing:
            lines.append(format_schedule_identity(r.schedule.identity))
            if r.stop_window_opens_at is None:
                lines.append("(No end date)")
            elif r.is_in_stop_window:
                lines.append("(Can be stopped now)")
            else:
                lines.append(f"(Can be stopped in: {format_duration(r.stop_window_opens_at - now)})")
            lines.append(SEPARATOR)

        lines.extend(["", "Not Started Schedules:", SEPARATOR])
        for r in pre_start:
            lines.append(format_schedule_identity(r.schedule.identity))
            if r.is_claimable:
                lines.append(f"Claimable until: {format_timestamp(r.start_window_closes_at)}")
                lines.append(f"Status: {'Claimed' if r.is_claimed else 'Not claimed'}")
            elif r.start_window_opens_at is not None:
                lines.append(f"Start date: {format_timestamp(r.start_window_opens_at)}")
            lines.append(SEPARATOR)

    if verbose or print_finished:
        for title, status in (("Ended Schedules:", ScheduleStatus.ENDED), ("Failed Schedules:", ScheduleStatus.FAILED)):
            lines.extend(["", title, SEPARATOR])
            for r in by_status[status]:
                lines.append(format_schedule_identity(r.schedule.identity))
                lines.append(SEPARATOR)

    lines.extend([
        "",
        f"Summary ({kind.contract_name}):",
        f"Total Schedules: {len(reports)}",
        f"  Pre-start: {len(pre_start)}",
        f"    Claimable: {len(claimable)}",
        f"    Auto-start: {len(auto_start)}",
        f"      In start window: {len(auto_start_in_window)}",
        f"  Flowing: {len(flowing)}",
        f"    In stop window: {len(in_stop_window)}",
        f"  Ended: {len(by_status[ScheduleStatus.ENDED])}",
        f"  Failed: {len(by_status[ScheduleStatus.FAILED])}",
        f"  Start expired: {len(start_expired)}",
    ])
    return lines


def main() -> None:
    parser = argparse.ArgumentParser(description="Summarize a schedule keeper state file")
    parser.add_argument("kind", choices=["vesting", "flow", "wrap"])
    parser.add_argument("network", help="network name, e.g. eth-mainnet")
    parser.add_argument("--verbose", action="store_true")
    parser.add_argument("--print-finished", action="store_true")
    args = parser.parse_args()

    config = Config.from_env()
    kind = get_kind(args.kind, config.use_v2)
    now = int(time.time())

    try:
        state, reports = read_statuses(kind, config, args.network, now)
    except SchedulerError as e:
        print(f"Error processing schedules: {e}", file=sys.stderr)
        sys.exit(1)

    if state is None:
        print(f"No state file for {kind.contract_name} on {args.network} in {config.data_dir}", file=sys.stderr)
        sys.exit(1)

    print(f"State at block {state.lastBlock}, now {format_timestamp(now)}")
    for line in build_report(kind, reports, now, args.verbose, args.print_finished):
        print(line)


if __name__ == "__main__":
    main()
