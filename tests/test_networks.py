"""
Tests for network metadata resolution.
"""

from unittest.mock import Mock

import pytest

from schedule_keeper.api.models import ContractsV1, NetworkDescriptor
from schedule_keeper.exceptions import APIError, ConfigurationError
from schedule_keeper.networks import NETWORKS_CACHE_FILE, NetworkRegistry, bootstrap_block


def descriptor(name="eth-mainnet", chain_id=1, **kwargs):
    return NetworkDescriptor(name=name, chainId=chain_id, **kwargs)


@pytest.fixture
def client():
    client = Mock()
    client.get_network_metadata.return_value = [
        descriptor(),
        descriptor("optimism-sepolia", 11155420, isTestnet=True, logsQueryRange=5000,
                   contractsV1=ContractsV1(flowScheduler="0x" + "33" * 20)),
    ]
    return client


class TestNetworkRegistry:
    """Tests for NetworkRegistry"""

    def test_resolve(self, client, data_dir):
        network = NetworkRegistry(client, data_dir).resolve(11155420)

        assert network.name == "optimism-sepolia"
        assert network.logsQueryRange == 5000
        assert network.contractsV1.flowScheduler == "0x" + "33" * 20

    def test_unknown_chain(self, client, data_dir):
        with pytest.raises(ConfigurationError):
            NetworkRegistry(client, data_dir).resolve(999)

    def test_fetches_once(self, client, data_dir):
        registry = NetworkRegistry(client, data_dir)
        registry.resolve(1)
        registry.resolve(11155420)

        assert client.get_network_metadata.call_count == 1

    def test_falls_back_to_cache(self, client, data_dir):
        NetworkRegistry(client, data_dir).load()
        assert (data_dir / NETWORKS_CACHE_FILE).exists()

        client.get_network_metadata.side_effect = APIError("HTTP 502 error", 502)

        assert NetworkRegistry(client, data_dir).resolve(1).name == "eth-mainnet"

    def test_no_metadata_at_all(self, client, data_dir):
        client.get_network_metadata.side_effect = APIError("HTTP 502 error", 502)

        with pytest.raises(ConfigurationError):
            NetworkRegistry(client, data_dir).load()


class TestBootstrapBlock:
    """Tests for bootstrap_block"""

    def test_override_wins(self):
        assert bootstrap_block(descriptor(), 123) == 123

    def test_known_deployment_block(self):
        assert bootstrap_block(descriptor(chain_id=8453)) == 13848318

    def test_metadata_start_block(self):
        assert bootstrap_block(descriptor("op-sepolia", 11155420, startBlockV1=77)) == 77
