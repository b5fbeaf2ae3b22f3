"""
Test configuration and fixtures
"""

from types import SimpleNamespace
from typing import Any, Dict, List, Optional, Sequence

import pytest

from schedule_keeper.config import Config
from schedule_keeper.core.events import RawLog

TOKEN = "0x" + "11" * 20
ALICE = "0x" + "aa" * 20
BOB = "0x" + "bb" * 20
CAROL = "0x" + "cc" * 20
DAVE = "0x" + "dd" * 20
LIQUIDITY_TOKEN = "0x" + "22" * 20
WRAP_ID = "0x" + "ab" * 32


def make_log(event: str, block: int, log_index: int = 0, removed: bool = False, **args) -> RawLog:
    """Raw log as the chain client would return it."""
    return RawLog(
        event=event,
        args=args,
        blockNumber=block,
        logIndex=log_index,
        transactionHash="0x" + f"{block:04x}{log_index:04x}".rjust(64, "0"),
        removed=removed,
    )


def vesting_created(block: int, sender: str = ALICE, receiver: str = BOB, start: int = 100, end: int = 200,
                    cliff: int = 0, log_index: int = 0, **extra) -> RawLog:
    return make_log(
        "VestingScheduleCreated", block, log_index,
        superToken=TOKEN, sender=sender, receiver=receiver,
        startDate=start, cliffDate=cliff, flowRate=1000, endDate=end, cliffAmount=0, **extra,
    )


def vesting_event(name: str, block: int, sender: str = ALICE, receiver: str = BOB, log_index: int = 0, **extra) -> RawLog:
    return make_log(name, block, log_index, superToken=TOKEN, sender=sender, receiver=receiver, **extra)


def flow_created(block: int, sender: str = ALICE, receiver: str = BOB, start: int = 100, max_delay: int = 50,
                 end: int = 200, log_index: int = 0) -> RawLog:
    return make_log(
        "FlowScheduleCreated", block, log_index,
        superToken=TOKEN, sender=sender, receiver=receiver,
        startDate=start, startDateMaxDelay=max_delay, flowRate=1000, endDate=end,
        startAmount=0, userData=b"",
    )


def wrap_created(block: int, wrap_id: str = WRAP_ID, expiry: int = 10_000, log_index: int = 0) -> RawLog:
    return make_log(
        "WrapScheduleCreated", block, log_index,
        id=bytes.fromhex(wrap_id[2:]), user=ALICE, superToken=TOKEN, strategy=CAROL,
        liquidityToken=LIQUIDITY_TOKEN, expiry=expiry, lowerLimit=3600, upperLimit=86400,
    )


class FakeChainClient:
    """In-memory chain provider bound to one contract."""

    def __init__(self, logs: Optional[List[RawLog]] = None, block_number: int = 100,
                 timestamp: int = 1_000, chain_id: int = 1):
        self.logs = list(logs or [])
        self.block_number = block_number
        self.timestamp = timestamp
        self.chain_id = chain_id
        self.gas_estimate = 100_000
        self.queries: List[tuple] = []
        self.sent: List[Dict[str, Any]] = []
        self.call_results: Dict[tuple, Any] = {}
        self.fail_query_from: Optional[int] = None
        self.fail_estimate_for: set = set()
        self.revert_for: set = set()

    def get_block_number(self) -> int:
        return self.block_number

    def get_block_timestamp(self, block_number: Optional[int] = None) -> int:
        return self.timestamp

    def query_logs(self, event_names: Sequence[str], from_block: int, to_block: int) -> List[RawLog]:
        self.queries.append((from_block, to_block))
        if self.fail_query_from is not None and from_block >= self.fail_query_from:
            raise ConnectionError("rpc unavailable")
        # reverse to make sure callers sort
        return [
            log for log in reversed(self.logs)
            if from_block <= log.blockNumber <= to_block and log.event in event_names
        ]

    def call(self, method: str, *args: Any) -> Any:
        result = self.call_results.get((method,) + args, 0)
        if isinstance(result, Exception):
            raise result
        return result

    def estimate_gas(self, method: str, *args: Any) -> int:
        if args in self.fail_estimate_for:
            raise RuntimeError("execution reverted")
        return self.gas_estimate

    def send_transaction(self, method: str, *args: Any, gas_limit: int) -> Any:
        tx_hash = "0x" + f"{len(self.sent) + 1:064x}"
        self.sent.append({"method": method, "args": args, "gas_limit": gas_limit})
        return SimpleNamespace(txn_hash=tx_hash, failed=args in self.revert_for)


@pytest.fixture
def data_dir(tmp_path):
    return tmp_path / "data"


@pytest.fixture
def config(data_dir, tmp_path):
    return Config(
        rpc_url="http://localhost:8545",
        data_dir=str(data_dir),
        log_file=str(tmp_path / "keeper.log"),
        instatus_components_file=str(tmp_path / "instatus-components.json"),
    )


@pytest.fixture
def fake_chain():
    return FakeChainClient()
