"""
Schedule kind definitions.

A ScheduleKind bundles everything that differs between vesting, flow and
auto-wrap schedules: the event-to-transition table, identity extraction,
window policy, leniency flags and the contract methods the dispatcher calls.
The reconciler, evaluator and dispatcher are generic over it.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, FrozenSet, Optional, Tuple, Type

from pydantic import TypeAdapter

from ..exceptions import ScheduleStateError
from ..utils.formatters import format_schedule_identity
from . import events as ev
from .evaluator import FlowWindowPolicy, VestingWindowPolicy, WindowPolicy, WrapWindowPolicy
from .schedules import FlowSchedule, Identity, ScheduleBase, VestingSchedule, WrapSchedule

logger = logging.getLogger(__name__)


class Transition(Enum):
    CREATE = "create"
    UPDATE = "update"
    START = "start"
    CLAIM = "claim"
    STOP = "stop"
    FAIL = "fail"
    DELETE = "delete"
    EXECUTE = "execute"


@dataclass(frozen=True)
class ScheduleKind:
    name: str
    contract_name: str
    state_file_prefix: str
    schedule_model: Type[ScheduleBase]
    event_adapter: TypeAdapter
    transitions: Dict[str, Transition]
    identity_of: Callable[[Any], Identity]
    build: Callable[[Any], ScheduleBase]
    window_policy: Type[WindowPolicy]
    update: Optional[Callable[[ScheduleBase, Any], None]] = None
    # re-creating an active identity replaces it instead of failing
    overwrite_on_create: bool = False
    # events that only warn when their schedule is not active
    lenient_events: FrozenSet[str] = frozenset()
    start_method: Optional[str] = None
    start_args: Optional[Callable[[Any], Tuple]] = None
    stop_method: Optional[str] = None
    stop_args: Optional[Callable[[Any], Tuple]] = None
    # read-only method returning a non-zero amount when a start is due
    due_check_method: Optional[str] = None
    metadata_address: Callable[[Any], Optional[str]] = field(default=lambda network: None)

    @property
    def event_names(self) -> Tuple[str, ...]:
        return tuple(self.transitions)

    def state_file_name(self, network_name: str) -> str:
        return f"{self.state_file_prefix}_{network_name}.json"

    def describe(self, identity: Identity) -> str:
        return format_schedule_identity(identity)


def _sender_receiver_identity(event) -> Identity:
    return (event.superToken, event.sender, event.receiver)


def _sender_receiver_args(schedule) -> Tuple:
    return (schedule.superToken, schedule.sender, schedule.receiver)


# Vesting

def _build_vesting(version: int) -> Callable[[ev.VestingScheduleCreated], VestingSchedule]:
    def build(event: ev.VestingScheduleCreated) -> VestingSchedule:
        return VestingSchedule(
            superToken=event.superToken,
            sender=event.sender,
            receiver=event.receiver,
            cliffAndFlowDate=event.cliffAndFlowDate,
            endDate=event.endDate,
            claimValidityDate=event.claimValidityDate,
            contractVersion=version,
        )
    return build


def _update_vesting(schedule: VestingSchedule, event: ev.VestingScheduleUpdated) -> None:
    if event.oldEndDate is not None and event.oldEndDate != schedule.endDate:
        raise ScheduleStateError(
            f"mismatch of old endDate for {format_schedule_identity(schedule.identity)}: "
            f"persisted {schedule.endDate}, in event {event.oldEndDate}",
            schedule.identity,
        )
    schedule.endDate = event.endDate
    logger.info(f"UPDATED: endDate {event.endDate} for {format_schedule_identity(schedule.identity)}")


def _vesting_address(v2: bool) -> Callable[[Any], Optional[str]]:
    def resolve(network) -> Optional[str]:
        contracts = network.contractsV1
        return contracts.vestingSchedulerV2 if v2 else contracts.vestingScheduler
    return resolve


def vesting_kind(v2: bool = False) -> ScheduleKind:
    """Vesting scheduler kind; v2 adds claimable schedules."""
    transitions = {
        "VestingScheduleCreated": Transition.CREATE,
        "VestingScheduleUpdated": Transition.UPDATE,
        "VestingScheduleDeleted": Transition.DELETE,
        "VestingCliffAndFlowExecuted": Transition.START,
        "VestingEndExecuted": Transition.STOP,
        "VestingEndFailed": Transition.FAIL,
    }
    if v2:
        transitions["VestingClaimed"] = Transition.CLAIM

    return ScheduleKind(
        name="vesting",
        contract_name="VestingSchedulerV2" if v2 else "VestingScheduler",
        state_file_prefix="vestingschedulesv2" if v2 else "vestingschedules",
        schedule_model=VestingSchedule,
        event_adapter=ev.vesting_event_adapter,
        transitions=transitions,
        identity_of=_sender_receiver_identity,
        build=_build_vesting(2 if v2 else 1),
        window_policy=VestingWindowPolicy,
        update=_update_vesting,
        start_method="executeCliffAndFlow",
        start_args=_sender_receiver_args,
        stop_method="executeEndVesting",
        stop_args=_sender_receiver_args,
        metadata_address=_vesting_address(v2),
    )


# Flow

def _build_flow(event: ev.FlowScheduleCreated) -> FlowSchedule:
    return FlowSchedule(
        superToken=event.superToken,
        sender=event.sender,
        receiver=event.receiver,
        startDate=event.startDate,
        startDateMaxDelay=event.startDateMaxDelay,
        endDate=event.endDate,
        flowRate=event.flowRate,
        userData=event.userData,
    )


def _flow_args(schedule: FlowSchedule) -> Tuple:
    return (schedule.superToken, schedule.sender, schedule.receiver, schedule.userData)


FLOW = ScheduleKind(
    name="flow",
    contract_name="FlowScheduler",
    state_file_prefix="flowschedules",
    schedule_model=FlowSchedule,
    event_adapter=ev.flow_event_adapter,
    transitions={
        "FlowScheduleCreated": Transition.CREATE,
        "FlowScheduleDeleted": Transition.DELETE,
        "CreateFlowExecuted": Transition.START,
        "DeleteFlowExecuted": Transition.STOP,
    },
    identity_of=_sender_receiver_identity,
    build=_build_flow,
    window_policy=FlowWindowPolicy,
    lenient_events=frozenset({"FlowScheduleDeleted", "DeleteFlowExecuted"}),
    start_method="executeCreateFlow",
    start_args=_flow_args,
    stop_method="executeDeleteFlow",
    stop_args=_flow_args,
    metadata_address=lambda network: network.contractsV1.flowScheduler,
)


# Auto-wrap

def _build_wrap(event: ev.WrapScheduleCreated) -> WrapSchedule:
    return WrapSchedule(
        id=event.id,
        user=event.user,
        superToken=event.superToken,
        liquidityToken=event.liquidityToken,
        strategy=event.strategy,
        expiry=event.expiry,
        lowerLimit=event.lowerLimit,
        upperLimit=event.upperLimit,
    )


def _wrap_address(network) -> Optional[str]:
    autowrap = network.contractsV1.autowrap
    return autowrap.manager if autowrap else None


WRAP = ScheduleKind(
    name="wrap",
    contract_name="WrapManager",
    state_file_prefix="wrapschedules",
    schedule_model=WrapSchedule,
    event_adapter=ev.wrap_event_adapter,
    transitions={
        "WrapScheduleCreated": Transition.CREATE,
        "WrapScheduleDeleted": Transition.DELETE,
        "WrapExecuted": Transition.EXECUTE,
    },
    identity_of=lambda event: (event.id,),
    build=_build_wrap,
    window_policy=WrapWindowPolicy,
    overwrite_on_create=True,
    start_method="executeWrap",
    start_args=lambda s: (s.user, s.superToken, s.liquidityToken),
    due_check_method="checkWrapByIndex",
    metadata_address=_wrap_address,
)


def get_kind(name: str, use_v2: bool = False) -> ScheduleKind:
    """Look up a schedule kind by its short name."""
    if name == "vesting":
        return vesting_kind(use_v2)
    if name == "flow":
        return FLOW
    if name == "wrap":
        return WRAP
    raise ValueError(f"unknown schedule kind: {name}")
