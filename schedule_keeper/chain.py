"""
Chain access using the Ape framework.
Provides block data, contract logs, read calls and signed transactions for
one scheduler contract.
"""

import json
import logging
from contextlib import contextmanager
from importlib import resources
from typing import Any, Iterator, List, Optional, Sequence

from ape import Contract, accounts, chain, networks

from .config import Config
from .core.events import RawLog
from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)


def load_abi(contract_name: str) -> list:
    """
    Load ABI from the package's abis/ directory.

    Args:
        contract_name: Name of the contract (e.g., 'VestingScheduler')

    Returns:
        Contract ABI as a list of fragments

    Raises:
        ConfigurationError: If the ABI file is missing or invalid
    """
    try:
        text = resources.files("schedule_keeper").joinpath("abis", f"{contract_name}.json").read_text()
        abi = json.loads(text)
    except (FileNotFoundError, json.JSONDecodeError) as e:
        raise ConfigurationError(f"Failed to load ABI for {contract_name}: {e}") from e

    logger.debug(f"Loaded ABI for {contract_name}")
    return abi


@contextmanager
def connect(config: Config) -> Iterator[Any]:
    """Connect to the configured network for the duration of the block."""
    with networks.parse_network_choice(config.network_choice) as provider:
        logger.info(f"init: connected to network via RPC {config.rpc_url} with chainId {chain.chain_id}")
        yield provider


def load_signer(config: Config):
    """
    Load the keeper's signing account, importing PRIVKEY on first use.

    Raises:
        ConfigurationError: If no account exists under the alias and no key is set
    """
    if config.signer_alias in accounts.aliases:
        signer = accounts.load(config.signer_alias)
    elif config.private_key:
        from ape_accounts import import_account_from_private_key

        signer = import_account_from_private_key(
            config.signer_alias, config.signer_passphrase, config.private_key
        )
        logger.info(f"Imported signer account under alias {config.signer_alias}")
    else:
        raise ConfigurationError("missing PRIVKEY env var")

    signer.set_autosign(True, passphrase=config.signer_passphrase)
    logger.info(f"init: signer account: {signer.address}")
    return signer


def _to_raw_log(log) -> RawLog:
    return RawLog(
        event=log.event_name,
        args=dict(log.event_arguments),
        blockNumber=log.block_number,
        logIndex=log.log_index,
        transactionHash=log.transaction_hash,
        address=getattr(log, "contract_address", None),
        removed=getattr(log, "removed", False),
    )


class ApeChainClient:
    """Chain provider for one scheduler contract on the connected network."""

    def __init__(self, address: str, contract_name: str, signer=None):
        self.address = address
        self.contract = Contract(address, abi=load_abi(contract_name))
        self.signer = signer
        logger.info(f"Using {contract_name} address: {address}")

    @property
    def chain_id(self) -> int:
        return chain.chain_id

    def get_block_number(self) -> int:
        return chain.blocks.height

    def get_block_timestamp(self, block_number: Optional[int] = None) -> int:
        block = chain.blocks.head if block_number is None else chain.blocks[block_number]
        return int(block.timestamp)

    def query_logs(self, event_names: Sequence[str], from_block: int, to_block: int) -> List[RawLog]:
        """Logs of the given events in [from_block, to_block], unordered across events."""
        logs: List[RawLog] = []
        for name in event_names:
            event = getattr(self.contract, name)
            # range stop is exclusive
            logs.extend(_to_raw_log(log) for log in event.range(from_block, to_block + 1))
        return logs

    def call(self, method: str, *args: Any) -> Any:
        return getattr(self.contract, method)(*args)

    def estimate_gas(self, method: str, *args: Any) -> int:
        return getattr(self.contract, method).estimate_gas_cost(*args, sender=self._require_signer())

    def send_transaction(self, method: str, *args: Any, gas_limit: int) -> Any:
        """Submit and wait for the receipt."""
        receipt = getattr(self.contract, method)(*args, sender=self._require_signer(), gas_limit=gas_limit)
        logger.info(f"+++ tx {receipt.txn_hash} confirmed")
        return receipt

    def _require_signer(self):
        if self.signer is None:
            raise ConfigurationError("no signer loaded")
        return self.signer
