"""
Status page reporting.
Marks the (kind, network) component of an Instatus page as operational or
partially degraded after each run.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import requests

from .api.client import APIClient
from .api.models import StatusComponentUpdate
from .exceptions import APIError

logger = logging.getLogger(__name__)

OPERATIONAL = "OPERATIONAL"
PARTIAL_OUTAGE = "PARTIALOUTAGE"


def component_type(kind_name: str) -> str:
    """Component group name for a schedule kind, e.g. 'vesting_scheduler'."""
    return f"{kind_name}_scheduler"


class StatusPageReporter:
    """
    Updates status page components listed in a components file of the form
    {type: {pageId, networks: {name: {id}}}}.
    """

    def __init__(self, client: APIClient, components_file: str):
        self.client = client
        self.components_file = Path(components_file)

    def _read_components(self) -> Dict[str, Any]:
        with open(self.components_file, "r") as f:
            return json.load(f)

    def component_info(self, network_name: str, type_name: str) -> Tuple[str, str]:
        """
        Returns:
            (page id, component id)

        Raises:
            KeyError: If the type or network is not listed
        """
        components = self._read_components()
        if type_name not in components:
            raise KeyError(f"Type {type_name} not found in components")
        group = components[type_name]
        if network_name not in group.get("networks", {}):
            raise KeyError(f"Network {network_name} not found in type {type_name}")
        return group["pageId"], group["networks"][network_name]["id"]

    def report(self, network_name: str, type_name: str, healthy: bool) -> Optional[Dict[str, Any]]:
        """
        Set the component status. Errors are logged, never raised.

        Returns:
            API response, or None if the update did not happen
        """
        if not self.components_file.exists():
            logger.debug(f"No status components file at {self.components_file}, skipping status update")
            return None

        try:
            page_id, component_id = self.component_info(network_name, type_name)
            payload = StatusComponentUpdate(
                name=f"{network_name} {type_name}",
                message=f"Network {network_name} is healthy." if healthy else f"Network {network_name} is experiencing issues.",
                status=OPERATIONAL if healthy else PARTIAL_OUTAGE,
                components=[component_id],
            )
            response = self.client.update_status_component(page_id, component_id, payload)
            logger.info(f"Set component {component_id} of network {network_name} ({type_name}) to {payload.status}")
            return response
        except (KeyError, OSError, json.JSONDecodeError, APIError, requests.RequestException) as e:
            logger.error(f"Error updating status for network {network_name}-{type_name}: {e}")
            return None
