"""
Network metadata registry.
Resolves a chain id to its descriptor (name, contract addresses, recommended
logs query range) and to the block a fresh sync starts from.
"""

import json
import logging
from pathlib import Path
from typing import Dict, List, Optional

import requests
from pydantic import ValidationError

from .api.client import APIClient
from .api.models import NetworkDescriptor
from .exceptions import APIError, ConfigurationError

logger = logging.getLogger(__name__)

NETWORKS_CACHE_FILE = "networks.json"

# Scheduler deployment blocks, more precise than the metadata's startBlockV1
DEPLOYMENT_BLOCKS: Dict[int, int] = {
    100: 25992375,    # xdai-mainnet
    137: 33383487,    # polygon-mainnet
    10: 67820482,     # optimism-mainnet
    42161: 53448990,  # arbitrum-one
    43114: 25012325,  # avalanche-c
    1: 16418958,      # eth-mainnet
    8453: 13848318,   # base-mainnet
}


class NetworkRegistry:
    """Network descriptors fetched from the metadata URL, cached in the data dir."""

    def __init__(self, client: APIClient, data_dir: Path):
        self.client = client
        self.cache_path = Path(data_dir) / NETWORKS_CACHE_FILE
        self._networks: Optional[List[NetworkDescriptor]] = None

    def load(self) -> List[NetworkDescriptor]:
        """
        Fetch descriptors, falling back to the cached copy.

        Raises:
            ConfigurationError: If neither the service nor the cache is usable
        """
        if self._networks is not None:
            return self._networks

        try:
            networks = self.client.get_network_metadata()
            self._save_cache(networks)
        except (APIError, requests.RequestException) as e:
            logger.warning(f"Failed to fetch network metadata: {e}")
            networks = self._load_cache()

        self._networks = networks
        return networks

    def _save_cache(self, networks: List[NetworkDescriptor]) -> None:
        self.cache_path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.cache_path, "w") as f:
            json.dump([n.model_dump(mode="json") for n in networks], f, indent=2)

    def _load_cache(self) -> List[NetworkDescriptor]:
        if not self.cache_path.exists():
            raise ConfigurationError("network metadata unavailable and no cached copy found")
        logger.info(f"Using previously saved network metadata from {self.cache_path}")
        try:
            with open(self.cache_path, "r") as f:
                return [NetworkDescriptor.model_validate(item) for item in json.load(f)]
        except (json.JSONDecodeError, ValidationError) as e:
            raise ConfigurationError(f"cached network metadata {self.cache_path} is invalid: {e}") from e

    def resolve(self, chain_id: int) -> NetworkDescriptor:
        """Descriptor for a chain id; unknown chains are a configuration error."""
        for network in self.load():
            if network.chainId == chain_id:
                logger.info(f"init: network {network.name}")
                return network
        raise ConfigurationError(f"no network found for chainId {chain_id}")


def bootstrap_block(network: NetworkDescriptor, override: Optional[int] = None) -> int:
    """First block of a fresh sync: override, known deployment block, then metadata."""
    if override:
        return override
    return DEPLOYMENT_BLOCKS.get(network.chainId, network.startBlockV1)
