"""
Core of the schedule keeper: event replay, projection, windows and dispatch.
"""

from .dispatcher import DispatchResult, ExecutionDispatcher, pad_gas
from .evaluator import ScheduleStatus, StatusReport, WindowEvaluator
from .event_parser import parse_event, parse_events
from .events import RawLog
from .kinds import FLOW, WRAP, ScheduleKind, Transition, get_kind, vesting_kind
from .log_reader import EventLogReader
from .reconciler import Reconciler
from .schedules import FlowSchedule, SchedulerState, VestingSchedule, WrapSchedule
from .state_store import StateStore
from .sync import StateSynchronizer, SyncResult

__all__ = [
    "DispatchResult",
    "ExecutionDispatcher",
    "pad_gas",
    "ScheduleStatus",
    "StatusReport",
    "WindowEvaluator",
    "parse_event",
    "parse_events",
    "RawLog",
    "FLOW",
    "WRAP",
    "ScheduleKind",
    "Transition",
    "get_kind",
    "vesting_kind",
    "EventLogReader",
    "Reconciler",
    "FlowSchedule",
    "SchedulerState",
    "VestingSchedule",
    "WrapSchedule",
    "StateStore",
    "StateSynchronizer",
    "SyncResult",
]
