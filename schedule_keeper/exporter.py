"""
Prometheus exporter for the schedule keeper.
Periodically evaluates the persisted state files and republishes schedule
counts as gauges.
"""

import logging
import sys
import time
from collections import Counter
from typing import Dict, Iterator, List, Optional, Tuple

from prometheus_client import CollectorRegistry, Gauge, start_http_server

from .config import Config
from .core.evaluator import ScheduleStatus, StatusReport
from .core.kinds import FLOW, WRAP, ScheduleKind, vesting_kind
from .exceptions import SchedulerError
from .runner import read_statuses
from .utils.formatters import format_duration, format_schedule_identity, format_timestamp

logger = logging.getLogger(__name__)

TWO_DAYS = 2 * 24 * 60 * 60

EXPORTED_KINDS: Tuple[ScheduleKind, ...] = (vesting_kind(False), vesting_kind(True), FLOW, WRAP)


class SchedulerMetrics:
    """Gauges describing the keeper's schedules across networks."""

    def __init__(self, config: Config, registry: Optional[CollectorRegistry] = None):
        self.config = config
        self.registry = registry or CollectorRegistry()

        self.schedules_by_status = Gauge(
            "schedules_by_status",
            "Number of schedules per derived status",
            ["kind", "network", "status"],
            registry=self.registry,
        )

        self.vesting_end_overdue = Gauge(
            "vesting_end_overdue",
            "Number of active vesting schedules that have been in the stop window for at least the overdue threshold",
            ["network"],
            registry=self.registry,
        )

        self.flow_end_overdue = Gauge(
            "flow_end_overdue",
            "Number of active flow schedules that have been in the stop window for at least the overdue threshold",
            ["network"],
            registry=self.registry,
        )

        self.schedules_in_start_window = Gauge(
            "schedules_in_start_window",
            "Number of active schedules that can be started now",
            ["kind", "network"],
            registry=self.registry,
        )

        self.schedules_start_expired = Gauge(
            "schedules_start_expired",
            "Number of active schedules whose start window has passed",
            ["kind", "network"],
            registry=self.registry,
        )

        self.last_synced_block = Gauge(
            "last_synced_block",
            "Checkpoint block of the state file",
            ["kind", "network"],
            registry=self.registry,
        )

    def discover(self) -> Iterator[Tuple[ScheduleKind, str]]:
        """(kind, network name) pairs with a state file in the data dir."""
        data_path = self.config.data_path
        for kind in EXPORTED_KINDS:
            prefix = f"{kind.state_file_prefix}_"
            for path in sorted(data_path.glob(f"{prefix}*.json")):
                yield kind, path.stem[len(prefix):]

    def update(self, now: Optional[int] = None) -> None:
        """Re-evaluate every state file. A failing file does not stop the others."""
        now = now if now is not None else int(time.time())
        overdue: Dict[Tuple[str, str], int] = {}

        for kind, network_name in self.discover():
            try:
                state, reports = read_statuses(kind, self.config, network_name, now)
            except SchedulerError as e:
                logger.error(f"Error updating {kind.contract_name} metrics for {network_name}: {e}")
                continue
            if state is None:
                continue

            label = kind.contract_name
            self.last_synced_block.labels(kind=label, network=network_name).set(state.lastBlock)

            counts = Counter(r.status for r in reports)
            for status in ScheduleStatus:
                self.schedules_by_status.labels(kind=label, network=network_name, status=status.value).set(counts[status])

            active = [r for r in reports if not r.removed]
            self.schedules_in_start_window.labels(kind=label, network=network_name).set(
                sum(1 for r in active if r.is_in_start_window)
            )
            self.schedules_start_expired.labels(kind=label, network=network_name).set(
                sum(1 for r in active if r.is_start_expired)
            )

            if kind.name in ("vesting", "flow"):
                key = (kind.name, network_name)
                overdue[key] = overdue.get(key, 0) + self.count_overdue(active, now)

            if kind.name == "vesting":
                self.log_ending_soon(network_name, active, now)

            logger.info(f"{network_name} - Updated {label} metrics: {len(active)} active schedules")

        for (kind_name, network_name), count in overdue.items():
            gauge = self.vesting_end_overdue if kind_name == "vesting" else self.flow_end_overdue
            gauge.labels(network=network_name).set(count)

    def count_overdue(self, reports: List[StatusReport], now: int) -> int:
        """Active schedules that have been stoppable for at least the overdue threshold."""
        return sum(
            1 for r in reports
            if r.status is ScheduleStatus.ACTIVE
            and r.stop_window_opens_at is not None
            and now - r.stop_window_opens_at >= self.config.overdue_threshold
        )

    def log_ending_soon(self, network_name: str, reports: List[StatusReport], now: int) -> None:
        ending_soon = sorted(
            (r for r in reports
             if r.status is ScheduleStatus.ACTIVE and 0 < r.schedule.endDate - now <= TWO_DAYS),
            key=lambda r: r.schedule.endDate,
            reverse=True,
        )
        if not ending_soon:
            return

        logger.info(f"{network_name} - Vesting Schedules ending in next 2 days:")
        for r in ending_soon:
            logger.info(
                f"  {format_schedule_identity(r.schedule.identity)} ends in "
                f"{format_duration(r.schedule.endDate - now)} ({format_timestamp(r.schedule.endDate)})"
            )

    def start(self) -> None:
        """Serve /metrics and update on a fixed interval until killed."""
        start_http_server(self.config.exporter_port, registry=self.registry)
        logger.info(f"Exporter listening on port {self.config.exporter_port}")

        while True:
            self.update()
            time.sleep(self.config.exporter_update_interval)


def main() -> None:
    config = Config.from_env()
    config.setup_logging()

    try:
        SchedulerMetrics(config).start()
    except KeyboardInterrupt:
        logger.info("Interrupted by user. Exiting gracefully...")
        sys.exit(0)
    except Exception as e:
        logger.error(f"FATAL ERROR in exporter: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
