"""
Allowlist gate.
Decides which accounts' schedules the dispatcher may execute.
"""

import json
import logging
from pathlib import Path
from typing import List, Optional

import requests
from pydantic import ValidationError

from .api.client import APIClient
from .api.models import AllowlistEntry, AllowlistResponse
from .exceptions import APIError, AllowlistError

logger = logging.getLogger(__name__)

ALLOWLIST_FILE = "allowlist.json"


class AllowlistGate:
    """Allowlist entries plus the enforcement toggle."""

    def __init__(self, entries: List[AllowlistEntry], enforced: bool = False):
        self.entries = entries
        self.enforced = enforced
        self._chains_by_wallet = {e.wallet.lower(): set(e.chains) for e in entries}

    def is_allowed(self, account: str, chain_id: int) -> bool:
        """Case-insensitive wallet match that also lists the chain."""
        chains = self._chains_by_wallet.get(account.lower())
        return chains is not None and chain_id in chains

    @classmethod
    def load(cls, client: APIClient, data_dir: Path, enforced: bool = False) -> "AllowlistGate":
        """
        Fetch the allowlist, persisting it; fall back to the persisted copy.

        Raises:
            AllowlistError: If nothing is available and enforcement is on
        """
        try:
            entries = fetch_allowlist(client, Path(data_dir) / ALLOWLIST_FILE)
            logger.info(f"Fetched allowlist with {len(entries)} entries | allowlist enforcement: {enforced}")
        except AllowlistError as e:
            if enforced:
                logger.error(f"Failed to fetch allowlist and enforcement is required: {e}")
                raise
            logger.warning(f"Failed to fetch allowlist, but enforcement is not required. Proceeding with empty allowlist: {e}")
            entries = []
        return cls(entries, enforced)


def fetch_allowlist(client: APIClient, cache_path: Path) -> List[AllowlistEntry]:
    try:
        response = client.get_allowlist()
        cache_path.parent.mkdir(parents=True, exist_ok=True)
        with open(cache_path, "w") as f:
            json.dump(response.model_dump(mode="json"), f, indent=2)
        return response.entries
    except (APIError, requests.RequestException) as e:
        logger.warning(f"Failed to fetch allowlist: {e}")

    cached = _load_cached(cache_path)
    if cached is None:
        raise AllowlistError("No valid allowlist available")
    logger.info("Using previously saved allowlist")
    return cached


def _load_cached(cache_path: Path) -> Optional[List[AllowlistEntry]]:
    if not cache_path.exists():
        return None
    try:
        with open(cache_path, "r") as f:
            return AllowlistResponse.model_validate(json.load(f)).entries
    except (json.JSONDecodeError, ValidationError) as e:
        logger.error(f"Saved allowlist {cache_path} is invalid: {e}")
        return None
