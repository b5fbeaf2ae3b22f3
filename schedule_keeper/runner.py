"""
One keeper pass over one schedule kind: load state, sync, evaluate, dispatch.

Chain access is injected, so this module does not depend on ape.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from .allowlist import AllowlistGate
from .api.client import APIClient
from .api.models import NetworkDescriptor
from .config import Config
from .core.dispatcher import DispatchResult, ExecutionDispatcher
from .core.evaluator import StatusReport, WindowEvaluator
from .core.kinds import ScheduleKind
from .core.log_reader import EventLogReader
from .core.reconciler import Reconciler
from .core.schedules import SchedulerState
from .core.state_store import StateStore
from .core.sync import StateSynchronizer, SyncResult
from .exceptions import ConfigurationError
from .networks import bootstrap_block

logger = logging.getLogger(__name__)


@dataclass
class RunResult:
    kind: ScheduleKind
    network_name: str
    sync: SyncResult
    now: int
    results: List[DispatchResult] = field(default_factory=list)

    @property
    def failed(self) -> List[DispatchResult]:
        return [r for r in self.results if not r.success and not r.skipped]


def resolve_contract_address(kind: ScheduleKind, config: Config, network: NetworkDescriptor) -> str:
    """Env override first, then network metadata."""
    address = config.contract_address_override(kind.name) or kind.metadata_address(network)
    if not address:
        raise ConfigurationError(f"Missing {kind.contract_name} address for network {network.name}")
    return address


def make_evaluator(kind: ScheduleKind, config: Config) -> WindowEvaluator:
    return WindowEvaluator(kind.window_policy(config.start_date_valid_after, config.end_date_valid_before))


def make_state_store(kind: ScheduleKind, config: Config, network: NetworkDescriptor) -> StateStore:
    path = config.data_path / kind.state_file_name(network.name)
    logger.info(f"Using state file: {path}")
    return StateStore(path, kind.schedule_model, bootstrap_block(network, config.start_block))


def run_pass(
    kind: ScheduleKind,
    config: Config,
    chain_client,
    network: NetworkDescriptor,
    api_client: APIClient,
) -> RunResult:
    """
    Run one sync-and-dispatch pass.

    Args:
        kind: Schedule kind to process
        config: Process configuration
        chain_client: Chain provider bound to the kind's contract
        network: Descriptor of the connected network
        api_client: HTTP client for the allowlist

    Returns:
        RunResult with the sync checkpoint and dispatch results
    """
    store = make_state_store(kind, config, network)
    state = store.load()
    reconciler = Reconciler.from_state(kind, state)

    chunk_size = config.logs_query_range or network.logsQueryRange
    reader = EventLogReader(chain_client, kind.event_names, chunk_size)
    end_block = chain_client.get_block_number() - config.end_block_offset

    sync_result = StateSynchronizer(reader, reconciler, store).sync(state, end_block)

    now = chain_client.get_block_timestamp()
    logger.info(f"*** blockTime: {now}, executionDelay: {config.execution_delay} s")

    allowlist = AllowlistGate.load(api_client, config.data_path, config.enforce_allowlist)

    dispatcher = ExecutionDispatcher(
        chain_client,
        kind,
        make_evaluator(kind, config),
        chain_id=network.chainId,
        allowlist=allowlist,
        execution_delay=config.execution_delay,
        gas_margin_percent=config.gas_limit_margin_percent,
        due_check_workers=config.wrap_check_workers,
    )
    results = dispatcher.dispatch(reconciler.active, now)

    return RunResult(kind=kind, network_name=network.name, sync=sync_result, now=now, results=results)


def read_statuses(
    kind: ScheduleKind,
    config: Config,
    network_name: str,
    now: int,
    include_removed: bool = True,
) -> Tuple[Optional[SchedulerState], List[StatusReport]]:
    """
    Evaluate a persisted state file read-only.

    Returns:
        (state, reports), or (None, []) if the state file does not exist yet
    """
    path = config.data_path / kind.state_file_name(network_name)
    if not path.exists():
        return None, []
    state = StateStore(path, kind.schedule_model, bootstrap_block=0).load()
    reports = make_evaluator(kind, config).evaluate_state(state, now, include_removed=include_removed)
    return state, reports
