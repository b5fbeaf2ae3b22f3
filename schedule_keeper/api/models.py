"""
Pydantic models for API response validation and type safety.
"""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class AllowlistEntry(BaseModel):
    """Model for one allowlisted wallet."""
    wallet: str
    chains: List[int] = []


class AllowlistResponse(BaseModel):
    """Response model for the allowlist endpoint."""
    model_config = ConfigDict(extra="allow")

    entries: List[AllowlistEntry]


class AutowrapContracts(BaseModel):
    model_config = ConfigDict(extra="ignore")

    manager: Optional[str] = None
    wrapStrategy: Optional[str] = None


class ContractsV1(BaseModel):
    """Protocol contract addresses of a network."""
    model_config = ConfigDict(extra="ignore")

    vestingScheduler: Optional[str] = None
    vestingSchedulerV2: Optional[str] = None
    vestingSchedulerV3: Optional[str] = None
    flowScheduler: Optional[str] = None
    autowrap: Optional[AutowrapContracts] = None


class NetworkDescriptor(BaseModel):
    """Model for one entry of the network metadata list."""
    model_config = ConfigDict(extra="ignore")

    name: str
    chainId: int
    isTestnet: bool = False
    logsQueryRange: int = 10000
    startBlockV1: int = 0
    contractsV1: ContractsV1 = Field(default_factory=ContractsV1)


class StatusComponentUpdate(BaseModel):
    """Request body for a status page component update."""
    name: str
    message: str
    status: str
    components: List[str]
