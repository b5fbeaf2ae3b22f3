"""
Execution dispatcher: submits the start/stop transactions for schedules
whose windows are open.

The dispatcher never touches schedule flags. They change only when the
resulting contract events are replayed on a later sync.
"""

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from typing import Any, List, Optional, Protocol, Sequence, Tuple

from ..exceptions import ExecutionError
from .evaluator import ScheduleStatus, StatusReport, WindowEvaluator
from .kinds import ScheduleKind
from .schedules import ScheduleBase

logger = logging.getLogger(__name__)

START = "start"
STOP = "stop"


class ContractWriter(Protocol):
    def call(self, method: str, *args: Any) -> Any:
        ...

    def estimate_gas(self, method: str, *args: Any) -> int:
        ...

    def send_transaction(self, method: str, *args: Any, gas_limit: int) -> Any:
        ...


class AccountGate(Protocol):
    enforced: bool

    def is_allowed(self, account: str, chain_id: int) -> bool:
        ...


@dataclass
class DispatchResult:
    schedule: ScheduleBase
    action: str
    success: bool = False
    skipped: bool = False
    tx_hash: Optional[str] = None
    gas_limit: Optional[int] = None
    error: Optional[str] = None


def pad_gas(estimate: int, margin_percent: int) -> int:
    """Gas estimate plus a safety margin, in whole gas units."""
    return estimate * (100 + margin_percent) // 100


class ExecutionDispatcher:
    """Runs the due actions of one schedule kind, one transaction at a time."""

    def __init__(
        self,
        contract: ContractWriter,
        kind: ScheduleKind,
        evaluator: WindowEvaluator,
        chain_id: int,
        allowlist: Optional[AccountGate] = None,
        execution_delay: int = 0,
        gas_margin_percent: int = 40,
        due_check_workers: int = 8,
    ):
        self.contract = contract
        self.kind = kind
        self.evaluator = evaluator
        self.chain_id = chain_id
        self.allowlist = allowlist
        self.execution_delay = execution_delay
        self.gas_margin_percent = gas_margin_percent
        self.due_check_workers = due_check_workers

    # Selection

    def select(self, schedules: Sequence[ScheduleBase], now: int) -> Tuple[List[ScheduleBase], List[ScheduleBase]]:
        """Split active schedules into (to_start, to_stop) at time `now`."""
        to_start: List[ScheduleBase] = []
        to_stop: List[ScheduleBase] = []

        for schedule in schedules:
            report = self.evaluator.evaluate(schedule, now)
            if self._start_due(report, now):
                to_start.append(schedule)
            elif report.is_start_expired and report.status is ScheduleStatus.NOT_STARTED:
                logger.warning(
                    f"### start window missed for {self.kind.describe(schedule.identity)} "
                    f"by {now - report.start_window_closes_at} s, skipping"
                )
            if self._stop_due(report, now):
                to_stop.append(schedule)

        if self.kind.due_check_method and to_start:
            to_start = self._filter_due(to_start)

        logger.info(f"{len(to_start)} {self.kind.name} schedules to be started, {len(to_stop)} to be stopped")
        return to_start, to_stop

    def _start_due(self, report: StatusReport, now: int) -> bool:
        if self.kind.start_method is None or not report.is_in_start_window:
            return False
        if report.status is ScheduleStatus.NOT_STARTED:
            return now >= report.start_window_opens_at + self.execution_delay
        # repeatable starts are gated by the on-chain due check instead
        return report.status is ScheduleStatus.ACTIVE and self.kind.due_check_method is not None

    def _stop_due(self, report: StatusReport, now: int) -> bool:
        if self.kind.stop_method is None or report.stop_window_opens_at is None:
            return False
        if not report.is_in_stop_window:
            # a never started schedule still has to be cleaned up once it ends
            if self.evaluator.policy.stop_requires_start or report.status is not ScheduleStatus.NOT_STARTED:
                return False
        return now >= report.stop_window_opens_at + self.execution_delay

    def _filter_due(self, schedules: List[ScheduleBase]) -> List[ScheduleBase]:
        """Keep schedules whose read-only due check returns a positive amount."""
        method = self.kind.due_check_method
        due_ids = set()

        with ThreadPoolExecutor(max_workers=self.due_check_workers) as executor:
            futures = {
                executor.submit(self.contract.call, method, *schedule.identity): schedule
                for schedule in schedules
            }
            for future in as_completed(futures):
                schedule = futures[future]
                try:
                    amount = future.result()
                except Exception as e:
                    logger.error(f"{method} failed for {self.kind.describe(schedule.identity)}: {e}")
                    continue
                logger.debug(f"{method} for {self.kind.describe(schedule.identity)}: {amount}")
                if amount and int(amount) > 0:
                    due_ids.add(schedule.identity)

        # preserve projection order
        due = [s for s in schedules if s.identity in due_ids]
        logger.info(f"{len(due)} of {len(schedules)} {self.kind.name} schedules due")
        return due

    # Execution

    def dispatch(self, schedules: Sequence[ScheduleBase], now: int) -> List[DispatchResult]:
        """Select and execute all due actions. Starts run before stops."""
        to_start, to_stop = self.select(schedules, now)
        results = [self._process(s, START) for s in to_start]
        results.extend(self._process(s, STOP) for s in to_stop)
        return results

    def _process(self, schedule: ScheduleBase, action: str) -> DispatchResult:
        label = self.kind.describe(schedule.identity)
        result = DispatchResult(schedule=schedule, action=action)

        if self.allowlist is not None and not self.allowlist.is_allowed(schedule.account, self.chain_id):
            logger.warning(f"### Account {schedule.account} not in allowlist for chain {self.chain_id}")
            if self.allowlist.enforced:
                logger.warning(f"skipping {label}")
                result.skipped = True
                return result

        try:
            tx_hash, gas_limit = self.execute(schedule, action)
            result.success = True
            result.tx_hash = tx_hash
            result.gas_limit = gas_limit
        except Exception as e:
            logger.error(f"### {action} failed for {label}: {e}")
            result.error = str(e)
        return result

    def execute(self, schedule: ScheduleBase, action: str) -> Tuple[str, int]:
        """
        Estimate, pad, submit and await one transaction.

        Returns:
            (transaction hash, gas limit used)

        Raises:
            ExecutionError: If any step fails or the transaction reverts
        """
        if action == START:
            method, args = self.kind.start_method, self.kind.start_args(schedule)
        else:
            method, args = self.kind.stop_method, self.kind.stop_args(schedule)

        label = self.kind.describe(schedule.identity)
        logger.info(f"+++ {method}: {label}")

        try:
            estimate = self.contract.estimate_gas(method, *args)
        except Exception as e:
            raise ExecutionError(f"gas estimation for {method} failed: {e}") from e

        gas_limit = pad_gas(int(estimate), self.gas_margin_percent)
        logger.info(f"gas estimate {estimate}, limit {gas_limit}")

        try:
            receipt = self.contract.send_transaction(method, *args, gas_limit=gas_limit)
        except Exception as e:
            raise ExecutionError(f"{method} transaction failed: {e}") from e

        tx_hash = getattr(receipt, "txn_hash", None) or getattr(receipt, "tx_hash", None)
        if getattr(receipt, "failed", False):
            raise ExecutionError(f"{method} transaction {tx_hash} reverted")

        logger.info(f"+++ receipt: {tx_hash}")
        return str(tx_hash), gas_limit
