"""
Pydantic models for locally materialized schedules and the persisted state file.
Field names follow the JSON layout of the state file.
"""

from typing import Generic, List, Tuple, TypeVar

from pydantic import BaseModel, ConfigDict


Identity = Tuple[str, ...]


class ScheduleBase(BaseModel):
    """Common base for all schedule kinds."""

    model_config = ConfigDict(extra="ignore", validate_assignment=True)

    @property
    def identity(self) -> Identity:
        raise NotImplementedError

    @property
    def account(self) -> str:
        """Account whose tokens the schedule moves (checked against the allowlist)."""
        raise NotImplementedError


class VestingSchedule(ScheduleBase):
    """Model for a vesting schedule."""
    superToken: str
    sender: str
    receiver: str
    # cliffDate if set, else startDate
    cliffAndFlowDate: int
    endDate: int
    # v2+: non-zero means the receiver has to claim instead of an automatic start
    claimValidityDate: int = 0
    contractVersion: int = 1
    started: bool = False
    stopped: bool = False
    failed: bool = False
    claimed: bool = False

    @property
    def identity(self) -> Identity:
        return (self.superToken, self.sender, self.receiver)

    @property
    def account(self) -> str:
        return self.sender


class FlowSchedule(ScheduleBase):
    """Model for a flow schedule (scheduled stream start and/or stop)."""
    superToken: str
    sender: str
    receiver: str
    startDate: int
    startDateMaxDelay: int = 0
    endDate: int
    flowRate: int = 0
    userData: str = "0x"
    started: bool = False
    stopped: bool = False
    failed: bool = False

    @property
    def identity(self) -> Identity:
        return (self.superToken, self.sender, self.receiver)

    @property
    def account(self) -> str:
        return self.sender


class WrapSchedule(ScheduleBase):
    """Model for an auto-wrap schedule, keyed by the manager's precomputed id."""
    id: str
    user: str
    superToken: str
    liquidityToken: str
    strategy: str = ""
    expiry: int
    lowerLimit: int
    upperLimit: int
    executionCounter: int = 0

    @property
    def identity(self) -> Identity:
        return (self.id,)

    @property
    def account(self) -> str:
        return self.user


S = TypeVar("S", bound=ScheduleBase)


class SchedulerState(BaseModel, Generic[S]):
    """Persisted projection: checkpoint plus active and removed schedules."""
    lastBlock: int
    activeSchedules: List[S] = []
    removedSchedules: List[S] = []
