"""
Configuration module for the schedule keeper.
Collects all settings from environment variables into one object that is
built once at process start and handed to every component.
"""

import os
import logging
import logging.handlers
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from .exceptions import ConfigurationError

DEFAULT_ALLOWLIST_URL = "https://allowlist.superfluid.dev/api/_allowlist"
DEFAULT_NETWORK_METADATA_URL = "https://cdn.jsdelivr.net/npm/@superfluid-finance/metadata/networks.json"

# Contract-enforced time constants
END_DATE_VALID_BEFORE = 24 * 60 * 60  # 1 day
DEFAULT_START_DATE_VALID_AFTER = 3 * 24 * 60 * 60  # 3 days


def _get_int(name: str, default: Optional[int]) -> Optional[int]:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}")


def _get_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    return raw.lower() == "true"


@dataclass
class Config:
    """Main configuration for one keeper process."""

    # Chain access
    rpc_url: str = ""
    ape_ecosystem: str = "ethereum"
    ape_network: str = "mainnet"
    private_key: str = ""
    signer_alias: str = "schedule-keeper"
    signer_passphrase: str = ""

    # Contract address overrides
    vesting_scheduler_address: str = ""
    flow_scheduler_address: str = ""
    wrap_manager_address: str = ""
    use_v2: bool = False

    # Sync settings
    start_block: Optional[int] = None
    end_block_offset: int = 30
    logs_query_range: Optional[int] = None
    execution_delay: int = 0
    data_dir: str = "data"

    # Time windows
    start_date_valid_after: int = DEFAULT_START_DATE_VALID_AFTER
    end_date_valid_before: int = END_DATE_VALID_BEFORE

    # Dispatch
    gas_limit_margin_percent: int = 40
    wrap_check_workers: int = 8

    # Collaborators
    allowlist_url: str = DEFAULT_ALLOWLIST_URL
    enforce_allowlist: bool = False
    network_metadata_url: str = DEFAULT_NETWORK_METADATA_URL
    api_timeout: int = 30
    api_max_retries: int = 3
    slack_webhook_url: str = ""
    instatus_api_key: str = ""
    instatus_components_file: str = "instatus-components.json"

    # Exporter
    exporter_port: int = 9090
    exporter_update_interval: int = 20 * 60
    overdue_threshold: int = 2 * 60 * 60

    # Logging
    log_level: str = "INFO"
    log_format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    log_file: str = "schedule_keeper.log"
    log_max_bytes: int = 10485760  # 10MB
    log_backup_count: int = 5

    @classmethod
    def from_env(cls, env_file: Optional[str] = None) -> "Config":
        """
        Build a Config from environment variables.

        Args:
            env_file: Optional path to a .env file (default: search from cwd)

        Returns:
            Populated Config

        Raises:
            ConfigurationError: If a numeric variable cannot be parsed
        """
        load_dotenv(env_file)

        return cls(
            rpc_url=os.getenv("RPC", ""),
            ape_ecosystem=os.getenv("APE_ECOSYSTEM", "ethereum"),
            ape_network=os.getenv("APE_NETWORK", "mainnet"),
            private_key=os.getenv("PRIVKEY", ""),
            signer_alias=os.getenv("SIGNER_ALIAS", "schedule-keeper"),
            signer_passphrase=os.getenv("SIGNER_PASSPHRASE", ""),
            vesting_scheduler_address=os.getenv("VSCHED_ADDR", ""),
            flow_scheduler_address=os.getenv("FSCHED_ADDR", ""),
            wrap_manager_address=os.getenv("WRAP_MGR_ADDR", ""),
            use_v2=_get_bool("USE_V2"),
            start_block=_get_int("START_BLOCK", None),
            end_block_offset=_get_int("END_BLOCK_OFFSET", 30),
            logs_query_range=_get_int("LOGS_QUERY_RANGE", None),
            execution_delay=_get_int("EXECUTION_DELAY", 0),
            data_dir=os.getenv("DATA_DIR", "data"),
            start_date_valid_after=_get_int("START_DATE_VALID_AFTER", DEFAULT_START_DATE_VALID_AFTER),
            gas_limit_margin_percent=_get_int("GAS_LIMIT_MARGIN_PERCENT", 40),
            wrap_check_workers=_get_int("WRAP_CHECK_WORKERS", 8),
            allowlist_url=os.getenv("ALLOWLIST_URL", DEFAULT_ALLOWLIST_URL),
            enforce_allowlist=_get_bool("ENFORCE_ALLOWLIST"),
            network_metadata_url=os.getenv("NETWORK_METADATA_URL", DEFAULT_NETWORK_METADATA_URL),
            api_timeout=_get_int("API_TIMEOUT", 30),
            api_max_retries=_get_int("API_MAX_RETRIES", 3),
            slack_webhook_url=os.getenv("SLACK_WEBHOOK_URL", ""),
            instatus_api_key=os.getenv("INSTATUS_API_KEY", ""),
            instatus_components_file=os.getenv("INSTATUS_COMPONENTS_FILE", "instatus-components.json"),
            exporter_port=_get_int("EXPORTER_PORT", 9090),
            exporter_update_interval=_get_int("EXPORTER_UPDATE_INTERVAL", 20 * 60),
            overdue_threshold=_get_int("OVERDUE_THRESHOLD", 2 * 60 * 60),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            log_format=os.getenv("LOG_FORMAT", "%(asctime)s - %(name)s - %(levelname)s - %(message)s"),
            log_file=os.getenv("LOG_FILE", "schedule_keeper.log"),
            log_max_bytes=_get_int("LOG_MAX_BYTES", 10485760),
            log_backup_count=_get_int("LOG_BACKUP_COUNT", 5),
        )

    @property
    def network_choice(self) -> str:
        """Ape network choice string, e.g. 'ethereum:mainnet:https://...'."""
        if not self.rpc_url:
            raise ConfigurationError("missing RPC env var")
        return f"{self.ape_ecosystem}:{self.ape_network}:{self.rpc_url}"

    @property
    def data_path(self) -> Path:
        return Path(self.data_dir)

    def contract_address_override(self, kind_name: str) -> str:
        """Return the env-provided contract address for a schedule kind, if any."""
        overrides = {
            "vesting": self.vesting_scheduler_address,
            "flow": self.flow_scheduler_address,
            "wrap": self.wrap_manager_address,
        }
        return overrides.get(kind_name, "")

    def setup_logging(self) -> None:
        """
        Configure application logging with file and console handlers.
        """
        logger = logging.getLogger()
        level = getattr(logging, self.log_level.upper(), logging.INFO)
        logger.setLevel(level)

        # Clear any existing handlers
        logger.handlers.clear()

        formatter = logging.Formatter(self.log_format)

        console_handler = logging.StreamHandler()
        console_handler.setLevel(level)
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

        log_path = Path(self.log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        # File handler with rotation
        file_handler = logging.handlers.RotatingFileHandler(
            self.log_file,
            maxBytes=self.log_max_bytes,
            backupCount=self.log_backup_count
        )
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

        # Reduce noise from external libraries
        logging.getLogger("urllib3").setLevel(logging.WARNING)
        logging.getLogger("requests").setLevel(logging.WARNING)
        logging.getLogger("ape").setLevel(logging.WARNING)

        logger.info("Logging system initialized")
        logger.info(f"Log level: {self.log_level}")
        logger.info(f"Log file: {self.log_file}")
