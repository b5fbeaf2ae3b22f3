"""
HTTP client for the keeper's web collaborators.
Handles the allowlist service, the network metadata registry and the status
page API with retries and error handling.
"""

import logging
import time
from typing import Any, Dict, List, Optional

import requests
from pydantic import ValidationError
from requests.adapters import HTTPAdapter
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential
from urllib3.util.retry import Retry

from ..config import Config
from ..exceptions import APIError
from .models import AllowlistResponse, NetworkDescriptor, StatusComponentUpdate

logger = logging.getLogger(__name__)

INSTATUS_API_URL = "https://api.instatus.com/v1"


class APIClient:
    """
    API client shared by the allowlist gate, network registry and status page.
    """

    def __init__(self, config: Config):
        self.config = config
        self.session = self._create_session()

        logger.debug("APIClient initialized")

    def _create_session(self) -> requests.Session:
        """Create a requests session with retry strategy and timeouts."""
        session = requests.Session()

        # Configure retry strategy
        retry_strategy = Retry(
            total=self.config.api_max_retries,
            backoff_factor=1,
            status_forcelist=[429, 500, 502, 503, 504],
            allowed_methods=["HEAD", "GET", "PUT", "OPTIONS"]
        )

        adapter = HTTPAdapter(max_retries=retry_strategy)
        session.mount("http://", adapter)
        session.mount("https://", adapter)

        session.headers.update({"Accept": "application/json"})

        return session

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=4, max=10),
        retry=retry_if_exception_type((requests.ConnectionError, requests.Timeout)),
        reraise=True,
    )
    def _make_request(
        self,
        method: str,
        url: str,
        json: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> Any:
        """
        Make HTTP request with retries.

        Args:
            method: HTTP method
            url: Absolute URL
            json: Optional JSON body
            headers: Extra headers for this request

        Returns:
            Decoded JSON response

        Raises:
            APIError: On HTTP error status or undecodable body
            requests.RequestException: On connection errors after retries
        """
        logger.info(f"Making {method} request to {url}")

        start_time = time.time()
        response = self.session.request(
            method=method,
            url=url,
            json=json,
            headers=headers,
            timeout=self.config.api_timeout
        )
        request_duration = time.time() - start_time

        logger.info(f"Request completed in {request_duration:.2f}s - Status: {response.status_code}")

        try:
            response.raise_for_status()
        except requests.HTTPError as e:
            raise APIError(f"HTTP {response.status_code} error for {url}", response.status_code) from e

        try:
            return response.json()
        except ValueError as e:
            raise APIError(f"Invalid JSON from {url}: {e}", response.status_code) from e

    def get_allowlist(self) -> AllowlistResponse:
        """Fetch the allowlist of wallets eligible for automated execution."""
        data = self._make_request("GET", self.config.allowlist_url)
        try:
            response = AllowlistResponse.model_validate(data)
        except ValidationError as e:
            raise APIError(f"Invalid allowlist data: {e}") from e

        logger.info(f"Successfully fetched allowlist with {len(response.entries)} entries")
        return response

    def get_network_metadata(self) -> List[NetworkDescriptor]:
        """Fetch the list of network descriptors."""
        data = self._make_request("GET", self.config.network_metadata_url)
        if not isinstance(data, list):
            raise APIError("Invalid network metadata: expected a list")
        try:
            networks = [NetworkDescriptor.model_validate(item) for item in data]
        except ValidationError as e:
            raise APIError(f"Invalid network metadata: {e}") from e

        logger.info(f"Successfully fetched metadata for {len(networks)} networks")
        return networks

    def update_status_component(
        self,
        page_id: str,
        component_id: str,
        payload: StatusComponentUpdate,
    ) -> Dict[str, Any]:
        """Set the status of one status page component."""
        if not self.config.instatus_api_key:
            raise APIError("INSTATUS_API_KEY not configured")

        url = f"{INSTATUS_API_URL}/{page_id}/components/{component_id}"
        return self._make_request(
            "PUT",
            url,
            json=payload.model_dump(),
            headers={
                "Content-Type": "application/json",
                "Authorization": f"Bearer {self.config.instatus_api_key}",
            },
        )
