"""
Tests for chunked log fetching.
"""

import pytest

from schedule_keeper.core.log_reader import EventLogReader
from schedule_keeper.exceptions import ConfigurationError, FetchError

from conftest import FakeChainClient, flow_created, vesting_created, vesting_event

VESTING_EVENTS = ("VestingScheduleCreated", "VestingScheduleDeleted")


class TestEventLogReader:
    """Tests for EventLogReader"""

    def test_ranges_cover_interval(self):
        reader = EventLogReader(FakeChainClient(), VESTING_EVENTS, chunk_size=4)

        assert list(reader.iter_ranges(1, 10)) == [(1, 4), (5, 8), (9, 10)]
        assert list(reader.iter_ranges(7, 7)) == [(7, 7)]
        assert list(reader.iter_ranges(8, 7)) == []

    def test_chunk_size_must_be_positive(self):
        with pytest.raises(ConfigurationError):
            EventLogReader(FakeChainClient(), VESTING_EVENTS, chunk_size=0)

    def test_fetch_orders_by_block_and_log_index(self):
        chain = FakeChainClient([
            vesting_created(2, log_index=5),
            vesting_event("VestingScheduleDeleted", 2, log_index=1),
            vesting_created(1, log_index=9),
        ])
        reader = EventLogReader(chain, VESTING_EVENTS, chunk_size=10)

        logs = reader.fetch(1, 2)

        assert [(log.blockNumber, log.logIndex) for log in logs] == [(1, 9), (2, 1), (2, 5)]

    def test_fetch_filters_event_names(self):
        chain = FakeChainClient([vesting_created(1), flow_created(1, log_index=1)])
        reader = EventLogReader(chain, VESTING_EVENTS, chunk_size=10)

        assert [log.event for log in reader.fetch(1, 1)] == ["VestingScheduleCreated"]

    def test_fetch_failure_raises_fetch_error(self):
        chain = FakeChainClient()
        chain.fail_query_from = 0
        reader = EventLogReader(chain, VESTING_EVENTS, chunk_size=10)

        with pytest.raises(FetchError) as exc_info:
            reader.fetch(3, 9)

        assert exc_info.value.from_block == 3
        assert exc_info.value.to_block == 9

