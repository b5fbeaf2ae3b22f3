"""
Raw and typed contract events.

Every typed event carries a literal `name` tag so that each schedule kind's
events form a discriminated union.
"""

from typing import Annotated, Any, Dict, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator


def _hex(value: Any) -> Any:
    if isinstance(value, (bytes, bytearray)):
        return "0x" + bytes(value).hex()
    return value


class RawLog(BaseModel):
    """A decoded log as returned by the chain client, before typing."""
    event: str
    args: Dict[str, Any] = {}
    blockNumber: int
    logIndex: int
    transactionHash: str
    address: Optional[str] = None
    removed: bool = False

    @field_validator("transactionHash", mode="before")
    @classmethod
    def _hash_to_hex(cls, value: Any) -> Any:
        return _hex(value)


class EventBase(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    blockNumber: int
    logIndex: int = 0
    transactionHash: str


class SenderReceiverEvent(EventBase):
    superToken: str
    sender: str
    receiver: str


# Vesting scheduler

class VestingScheduleCreated(SenderReceiverEvent):
    name: Literal["VestingScheduleCreated"] = "VestingScheduleCreated"
    startDate: int
    cliffDate: int = 0
    flowRate: int = 0
    endDate: int
    cliffAmount: int = 0
    claimValidityDate: int = 0

    @property
    def cliffAndFlowDate(self) -> int:
        return self.cliffDate if self.cliffDate != 0 else self.startDate


class VestingScheduleUpdated(SenderReceiverEvent):
    name: Literal["VestingScheduleUpdated"] = "VestingScheduleUpdated"
    oldEndDate: Optional[int] = None
    endDate: int


class VestingScheduleDeleted(SenderReceiverEvent):
    name: Literal["VestingScheduleDeleted"] = "VestingScheduleDeleted"


class VestingCliffAndFlowExecuted(SenderReceiverEvent):
    name: Literal["VestingCliffAndFlowExecuted"] = "VestingCliffAndFlowExecuted"


class VestingEndExecuted(SenderReceiverEvent):
    name: Literal["VestingEndExecuted"] = "VestingEndExecuted"


class VestingEndFailed(SenderReceiverEvent):
    name: Literal["VestingEndFailed"] = "VestingEndFailed"


class VestingClaimed(SenderReceiverEvent):
    name: Literal["VestingClaimed"] = "VestingClaimed"


VestingEvent = Annotated[
    Union[
        VestingScheduleCreated,
        VestingScheduleUpdated,
        VestingScheduleDeleted,
        VestingCliffAndFlowExecuted,
        VestingEndExecuted,
        VestingEndFailed,
        VestingClaimed,
    ],
    Field(discriminator="name"),
]


# Flow scheduler

class FlowScheduleCreated(SenderReceiverEvent):
    name: Literal["FlowScheduleCreated"] = "FlowScheduleCreated"
    startDate: int
    startDateMaxDelay: int = 0
    flowRate: int = 0
    endDate: int
    startAmount: int = 0
    userData: str = "0x"

    @field_validator("userData", mode="before")
    @classmethod
    def _user_data_to_hex(cls, value: Any) -> Any:
        return _hex(value)


class FlowScheduleDeleted(SenderReceiverEvent):
    name: Literal["FlowScheduleDeleted"] = "FlowScheduleDeleted"


class CreateFlowExecuted(SenderReceiverEvent):
    name: Literal["CreateFlowExecuted"] = "CreateFlowExecuted"


class DeleteFlowExecuted(SenderReceiverEvent):
    name: Literal["DeleteFlowExecuted"] = "DeleteFlowExecuted"


FlowEvent = Annotated[
    Union[
        FlowScheduleCreated,
        FlowScheduleDeleted,
        CreateFlowExecuted,
        DeleteFlowExecuted,
    ],
    Field(discriminator="name"),
]


# Auto-wrap manager

class WrapEventBase(EventBase):
    id: str

    @field_validator("id", mode="before")
    @classmethod
    def _id_to_hex(cls, value: Any) -> Any:
        return _hex(value)


class WrapScheduleCreated(WrapEventBase):
    name: Literal["WrapScheduleCreated"] = "WrapScheduleCreated"
    user: str
    superToken: str
    strategy: str = ""
    liquidityToken: str
    expiry: int
    lowerLimit: int
    upperLimit: int


class WrapScheduleDeleted(WrapEventBase):
    name: Literal["WrapScheduleDeleted"] = "WrapScheduleDeleted"
    user: Optional[str] = None
    superToken: Optional[str] = None
    liquidityToken: Optional[str] = None


class WrapExecuted(WrapEventBase):
    name: Literal["WrapExecuted"] = "WrapExecuted"
    wrapAmount: int = 0


WrapEvent = Annotated[
    Union[
        WrapScheduleCreated,
        WrapScheduleDeleted,
        WrapExecuted,
    ],
    Field(discriminator="name"),
]


vesting_event_adapter = TypeAdapter(VestingEvent)
flow_event_adapter = TypeAdapter(FlowEvent)
wrap_event_adapter = TypeAdapter(WrapEvent)
