"""
Main Orchestration Script for the schedule keeper.

One invocation runs one pass for one schedule kind:
1. Connect to the chain and resolve the network
2. Sync the state file from contract events
3. Dispatch due start/stop transactions
4. Report the run (Slack, status page)
"""

import logging
import sys
from typing import Optional

from ape import chain

from .api.client import APIClient
from .chain import ApeChainClient, connect, load_signer
from .config import Config
from .core.kinds import ScheduleKind, get_kind
from .networks import NetworkRegistry
from .notifier import notify_run
from .runner import RunResult, resolve_contract_address, run_pass
from .status_page import StatusPageReporter, component_type

logger = logging.getLogger(__name__)


def run(kind: ScheduleKind, config: Config, chain_client=None, api_client: Optional[APIClient] = None) -> RunResult:
    """
    Run one keeper pass, connecting through ape unless a chain client is given.
    """
    api_client = api_client or APIClient(config)
    registry = NetworkRegistry(api_client, config.data_path)

    if chain_client is not None:
        network = registry.resolve(chain_client.chain_id)
        return run_pass(kind, config, chain_client, network, api_client)

    with connect(config):
        network = registry.resolve(chain.chain_id)
        signer = load_signer(config)
        address = resolve_contract_address(kind, config, network)
        client = ApeChainClient(address, kind.contract_name, signer)
        return run_pass(kind, config, client, network, api_client)


def main(kind_name: str) -> None:
    """
    Entry point for one schedule kind.

    Flow:
    1. Load configuration and logging
    2. Sync and dispatch
    3. Notify and update the status page
    """
    config = Config.from_env()
    config.setup_logging()
    kind = get_kind(kind_name, config.use_v2)

    api_client = APIClient(config)
    status_page = StatusPageReporter(api_client, config.instatus_components_file)

    try:
        logger.info(f"Starting {kind.contract_name} keeper...")
        logger.info("")

        logger.info("=" * 80)
        logger.info("STEP 1: Syncing state and dispatching due schedules")
        logger.info("=" * 80)

        result = run(kind, config, api_client=api_client)

        logger.info(f"{len(result.results)} transactions attempted, {len(result.failed)} failed")
        logger.info("")

        logger.info("=" * 80)
        logger.info("STEP 2: Reporting run")
        logger.info("=" * 80)

        notify_run(kind, result.network_name, result.sync.last_block, result.results, config.slack_webhook_url)
        status_page.report(result.network_name, component_type(kind.name), healthy=not result.failed)

        logger.info("")
        logger.info("=" * 80)
        logger.info(f"{kind.contract_name} keeper completed successfully")
        logger.info("=" * 80)

    except KeyboardInterrupt:
        logger.info("Interrupted by user. Exiting gracefully...")
        sys.exit(0)
    except Exception as e:
        logger.error("=" * 80)
        logger.error(f"FATAL ERROR in {kind.contract_name} keeper")
        logger.error("=" * 80)
        logger.error(f"Error: {e}", exc_info=True)
        sys.exit(1)


def main_vesting() -> None:
    main("vesting")


def main_flow() -> None:
    main("flow")


def main_wrap() -> None:
    main("wrap")


if __name__ == "__main__":
    main(sys.argv[1] if len(sys.argv) > 1 else "vesting")
