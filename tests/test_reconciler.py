"""
Tests for replaying contract events into the schedule projection.

Tests cover:
- Create/start/stop lifecycle per schedule kind
- Strict and lenient handling of missing schedules
- Duplicate creates, updates, claims and wrap executions
- Partition of identities between active and removed schedules
"""

import pytest

from schedule_keeper.core.event_parser import parse_event
from schedule_keeper.core.kinds import FLOW, WRAP, vesting_kind
from schedule_keeper.core.reconciler import Reconciler
from schedule_keeper.exceptions import (
    ConsistencyError,
    ScheduleExistsError,
    ScheduleNotFoundError,
    ScheduleStateError,
    UnknownEventError,
)

from conftest import (
    ALICE,
    BOB,
    CAROL,
    DAVE,
    TOKEN,
    WRAP_ID,
    flow_created,
    make_log,
    vesting_created,
    vesting_event,
    wrap_created,
)

VESTING = vesting_kind()
VESTING_V2 = vesting_kind(v2=True)


def apply_logs(reconciler, logs):
    for log in logs:
        reconciler.apply(parse_event(log, reconciler.kind))


def snapshot(reconciler):
    return (
        [s.model_dump() for s in reconciler.active],
        [s.model_dump() for s in reconciler.removed],
    )


class TestVestingLifecycle:
    """Tests for the strict vesting state machine."""

    def test_create_start_stop(self):
        """A started then stopped schedule ends up removed with both flags set."""
        reconciler = Reconciler(VESTING)
        apply_logs(reconciler, [
            vesting_created(1),
            vesting_event("VestingCliffAndFlowExecuted", 5),
            vesting_event("VestingEndExecuted", 10),
        ])

        assert reconciler.active == []
        assert len(reconciler.removed) == 1
        removed = reconciler.removed[0]
        assert removed.started is True
        assert removed.stopped is True
        assert removed.failed is False

    def test_create_sets_cliff_and_flow_date(self):
        """cliffAndFlowDate is the cliff date when set, else the start date."""
        reconciler = Reconciler(VESTING)
        apply_logs(reconciler, [
            vesting_created(1, receiver=BOB, start=100, cliff=0),
            vesting_created(2, receiver=CAROL, start=100, cliff=150),
        ])

        by_receiver = {s.receiver: s for s in reconciler.active}
        assert by_receiver[BOB].cliffAndFlowDate == 100
        assert by_receiver[CAROL].cliffAndFlowDate == 150
        assert all(not s.started and not s.stopped and not s.failed for s in reconciler.active)

    def test_duplicate_create_rejected(self):
        """A second create for an active identity fails and leaves the projection untouched."""
        reconciler = Reconciler(VESTING)
        apply_logs(reconciler, [vesting_created(1)])
        before = snapshot(reconciler)

        with pytest.raises(ScheduleExistsError):
            apply_logs(reconciler, [vesting_created(2, end=300)])

        assert snapshot(reconciler) == before

    def test_delete_unknown_is_fatal(self):
        """Deleting a schedule that was never created is a consistency error."""
        reconciler = Reconciler(VESTING)

        with pytest.raises(ScheduleNotFoundError) as exc_info:
            apply_logs(reconciler, [vesting_event("VestingScheduleDeleted", 1, sender=CAROL, receiver=DAVE)])

        assert exc_info.value.identity == (TOKEN, CAROL, DAVE)
        assert reconciler.active == []
        assert reconciler.removed == []

    def test_delete_moves_schedule_unchanged(self):
        """A plain delete removes the schedule without setting terminal flags."""
        reconciler = Reconciler(VESTING)
        apply_logs(reconciler, [vesting_created(1), vesting_event("VestingScheduleDeleted", 2)])

        assert reconciler.active == []
        removed = reconciler.removed[0]
        assert (removed.started, removed.stopped, removed.failed) == (False, False, False)

    def test_end_failed_sets_failed(self):
        reconciler = Reconciler(VESTING)
        apply_logs(reconciler, [
            vesting_created(1),
            vesting_event("VestingCliffAndFlowExecuted", 2),
            vesting_event("VestingEndFailed", 3, endDate=200),
        ])

        assert reconciler.removed[0].failed is True
        assert reconciler.removed[0].stopped is False

    def test_start_twice_rejected(self):
        """A second start event for the same schedule is rejected."""
        reconciler = Reconciler(VESTING)
        apply_logs(reconciler, [vesting_created(1), vesting_event("VestingCliffAndFlowExecuted", 2)])

        with pytest.raises(ScheduleStateError):
            apply_logs(reconciler, [vesting_event("VestingCliffAndFlowExecuted", 3)])

    def test_stop_unknown_is_fatal(self):
        reconciler = Reconciler(VESTING)

        with pytest.raises(ScheduleNotFoundError):
            apply_logs(reconciler, [vesting_event("VestingEndExecuted", 1)])

    def test_update_changes_end_date(self):
        reconciler = Reconciler(VESTING)
        apply_logs(reconciler, [
            vesting_created(1, end=200),
            vesting_event("VestingScheduleUpdated", 2, oldEndDate=200, endDate=500),
        ])

        assert reconciler.active[0].endDate == 500

    def test_update_with_stale_old_end_date_rejected(self):
        reconciler = Reconciler(VESTING)
        apply_logs(reconciler, [vesting_created(1, end=200)])

        with pytest.raises(ScheduleStateError):
            apply_logs(reconciler, [vesting_event("VestingScheduleUpdated", 2, oldEndDate=250, endDate=500)])

        assert reconciler.active[0].endDate == 200

    def test_update_unknown_is_fatal(self):
        reconciler = Reconciler(VESTING)

        with pytest.raises(ScheduleNotFoundError):
            apply_logs(reconciler, [vesting_event("VestingScheduleUpdated", 1, oldEndDate=200, endDate=500)])

    def test_recreate_after_removal(self):
        """An identity can be created again once its previous schedule was removed."""
        reconciler = Reconciler(VESTING)
        apply_logs(reconciler, [
            vesting_created(1),
            vesting_event("VestingScheduleDeleted", 2),
            vesting_created(3, end=400),
        ])

        assert len(reconciler.active) == 1
        assert reconciler.active[0].endDate == 400
        assert len(reconciler.removed) == 1
        assert reconciler.removed[0].endDate == 200

    def test_removed_copy_is_detached(self):
        """Removed schedules are not affected by later changes to the active set."""
        reconciler = Reconciler(VESTING)
        apply_logs(reconciler, [vesting_created(1), vesting_event("VestingScheduleDeleted", 2), vesting_created(3)])

        reconciler.active[0].started = True
        assert reconciler.removed[0].started is False


class TestVestingV2:
    """Tests for claimable vesting schedules."""

    def test_claim_marks_claimed(self):
        reconciler = Reconciler(VESTING_V2)
        apply_logs(reconciler, [
            vesting_created(1, claimValidityDate=500, remainderAmount=0),
            vesting_event("VestingClaimed", 2, claimer=BOB),
        ])

        schedule = reconciler.active[0]
        assert schedule.claimValidityDate == 500
        assert schedule.contractVersion == 2
        assert schedule.claimed is True

    def test_v1_has_no_claim_handler(self):
        """Version 1 contracts do not emit claims, so the event is unknown."""
        reconciler = Reconciler(VESTING)
        apply_logs(reconciler, [vesting_created(1)])

        with pytest.raises(UnknownEventError):
            apply_logs(reconciler, [vesting_event("VestingClaimed", 2, claimer=BOB)])


class TestFlowLeniency:
    """Tests for the lenient flow scheduler variant."""

    def test_delete_unknown_is_noop(self):
        """Deleting an unknown flow schedule only logs a warning."""
        reconciler = Reconciler(FLOW)
        apply_logs(reconciler, [make_log("FlowScheduleDeleted", 1, superToken=TOKEN, sender=CAROL, receiver=DAVE)])

        assert reconciler.active == []
        assert reconciler.removed == []

    def test_delete_executed_unknown_is_noop(self):
        reconciler = Reconciler(FLOW)
        apply_logs(reconciler, [
            make_log("DeleteFlowExecuted", 1, superToken=TOKEN, sender=CAROL, receiver=DAVE, endDate=200, userData=b""),
        ])

        assert reconciler.active == []
        assert reconciler.removed == []

    def test_create_executed_unknown_is_fatal(self):
        """Starting an unknown flow schedule stays strict."""
        reconciler = Reconciler(FLOW)

        with pytest.raises(ScheduleNotFoundError):
            apply_logs(reconciler, [
                make_log("CreateFlowExecuted", 1, superToken=TOKEN, sender=ALICE, receiver=BOB,
                         startDate=100, startDateMaxDelay=50, flowRate=1000, startAmount=0, userData=b""),
            ])

    def test_duplicate_create_rejected(self):
        """A second create for an active flow identity fails and keeps the first schedule."""
        reconciler = Reconciler(FLOW)
        apply_logs(reconciler, [flow_created(1, end=200)])
        before = snapshot(reconciler)

        with pytest.raises(ScheduleExistsError):
            apply_logs(reconciler, [flow_created(2, end=900)])

        assert snapshot(reconciler) == before
        assert [s.endDate for s in reconciler.active + reconciler.removed] == [200]

    def test_recreate_after_delete(self):
        reconciler = Reconciler(FLOW)
        apply_logs(reconciler, [
            flow_created(1, end=200),
            make_log("FlowScheduleDeleted", 2, superToken=TOKEN, sender=ALICE, receiver=BOB),
            flow_created(3, end=900),
        ])

        assert [s.endDate for s in reconciler.active] == [900]
        assert [s.endDate for s in reconciler.removed] == [200]

    def test_lifecycle(self):
        reconciler = Reconciler(FLOW)
        apply_logs(reconciler, [
            flow_created(1),
            make_log("CreateFlowExecuted", 2, superToken=TOKEN, sender=ALICE, receiver=BOB,
                     startDate=100, startDateMaxDelay=50, flowRate=1000, startAmount=0, userData=b""),
            make_log("DeleteFlowExecuted", 3, superToken=TOKEN, sender=ALICE, receiver=BOB,
                     endDate=200, userData=b""),
        ])

        assert reconciler.active == []
        assert reconciler.removed[0].started is True
        assert reconciler.removed[0].stopped is True
        assert reconciler.removed[0].userData == "0x"


class TestWrap:
    """Tests for auto-wrap schedules keyed by id."""

    def test_executions_are_counted(self):
        reconciler = Reconciler(WRAP)
        apply_logs(reconciler, [
            wrap_created(1),
            make_log("WrapExecuted", 2, id=bytes.fromhex(WRAP_ID[2:]), wrapAmount=10),
            make_log("WrapExecuted", 3, id=bytes.fromhex(WRAP_ID[2:]), wrapAmount=20),
        ])

        assert len(reconciler.active) == 1
        assert reconciler.active[0].id == WRAP_ID
        assert reconciler.active[0].executionCounter == 2

    def test_recreate_overwrites_and_resets_counter(self):
        reconciler = Reconciler(WRAP)
        apply_logs(reconciler, [
            wrap_created(1, expiry=1000),
            make_log("WrapExecuted", 2, id=bytes.fromhex(WRAP_ID[2:]), wrapAmount=10),
            wrap_created(3, expiry=2000),
        ])

        assert reconciler.active[0].expiry == 2000
        assert reconciler.active[0].executionCounter == 0

    def test_delete_unknown_is_fatal(self):
        reconciler = Reconciler(WRAP)

        with pytest.raises(ScheduleNotFoundError):
            apply_logs(reconciler, [make_log("WrapScheduleDeleted", 1, id=bytes.fromhex(WRAP_ID[2:]))])


class TestProjectionInvariants:
    """Tests for properties that hold for every event sequence."""

    EVENTS = [
        vesting_created(1, receiver=BOB),
        vesting_created(1, receiver=CAROL, log_index=1),
        vesting_created(2, receiver=DAVE),
        vesting_event("VestingCliffAndFlowExecuted", 3, receiver=BOB),
        vesting_event("VestingScheduleDeleted", 4, receiver=CAROL),
        vesting_event("VestingEndExecuted", 5, receiver=BOB),
    ]

    def test_every_created_identity_in_exactly_one_collection(self):
        reconciler = Reconciler(VESTING)
        apply_logs(reconciler, self.EVENTS)

        active_ids = {s.identity for s in reconciler.active}
        removed_ids = {s.identity for s in reconciler.removed}
        created_ids = {(TOKEN, ALICE, r) for r in (BOB, CAROL, DAVE)}

        assert active_ids | removed_ids == created_ids
        assert active_ids & removed_ids == set()

    def test_replay_is_deterministic(self):
        """Two fresh projections fed the same events end identical."""
        first, second = Reconciler(VESTING), Reconciler(VESTING)
        apply_logs(first, self.EVENTS)
        apply_logs(second, self.EVENTS)

        assert snapshot(first) == snapshot(second)

    def test_reapplying_an_event_is_rejected(self):
        reconciler = Reconciler(VESTING)
        apply_logs(reconciler, self.EVENTS)

        with pytest.raises(ConsistencyError):
            apply_logs(reconciler, [self.EVENTS[-1]])

    def test_duplicate_identities_in_loaded_state_rejected(self):
        reconciler = Reconciler(VESTING)
        apply_logs(reconciler, [vesting_created(1)])
        schedule = reconciler.active[0]

        with pytest.raises(ConsistencyError):
            Reconciler(VESTING, active=[schedule, schedule.model_copy()])

    def test_to_state_round_trips_through_from_state(self):
        reconciler = Reconciler(VESTING)
        apply_logs(reconciler, self.EVENTS)

        restored = Reconciler.from_state(VESTING, reconciler.to_state(5))
        assert snapshot(restored) == snapshot(reconciler)
