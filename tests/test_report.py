"""
Tests for the state file report.
"""

from schedule_keeper.core.evaluator import VestingWindowPolicy, WindowEvaluator, WrapWindowPolicy
from schedule_keeper.core.kinds import WRAP, vesting_kind
from schedule_keeper.core.schedules import SchedulerState, VestingSchedule, WrapSchedule
from schedule_keeper.report import build_report

from conftest import ALICE, BOB, CAROL, DAVE, LIQUIDITY_TOKEN, TOKEN, WRAP_ID

NOW = 10_000_000
VESTING_V2 = vesting_kind(True)


def vesting(receiver, **overrides):
    fields = dict(superToken=TOKEN, sender=ALICE, receiver=receiver, cliffAndFlowDate=NOW - 100, endDate=NOW + 30 * 86400)
    fields.update(overrides)
    return VestingSchedule(**fields)


def reports():
    state = SchedulerState[VestingSchedule](
        lastBlock=1,
        activeSchedules=[
            vesting(BOB),
            vesting(CAROL, started=True, endDate=NOW + 100),
            vesting(DAVE, claimValidityDate=NOW + 86400, contractVersion=2),
        ],
        removedSchedules=[vesting(ALICE, started=True, stopped=True)],
    )
    return WindowEvaluator(VestingWindowPolicy()).evaluate_state(state, NOW)


class TestBuildReport:
    """Tests for build_report"""

    def test_summary(self):
        lines = build_report(VESTING_V2, reports(), NOW)

        assert "Summary (VestingSchedulerV2):" in lines
        assert "Total Schedules: 4" in lines
        assert "  Pre-start: 2" in lines
        assert "    Claimable: 1" in lines
        assert "    Auto-start: 1" in lines
        assert "      In start window: 1" in lines
        assert "  Flowing: 1" in lines
        assert "    In stop window: 1" in lines
        assert "  Ended: 1" in lines
        assert "  Failed: 0" in lines

    def test_windows_listed(self):
        lines = build_report(VESTING_V2, reports(), NOW)
        start_section = lines[lines.index("Schedules in start window:"):lines.index("Schedules in stop window:")]
        stop_section = lines[lines.index("Schedules in stop window:"):lines.index("Summary (VestingSchedulerV2):")]

        assert any(BOB in line for line in start_section)
        assert any(CAROL in line for line in stop_section)

    def test_finished_only_when_asked(self):
        assert "Ended Schedules:" not in build_report(VESTING_V2, reports(), NOW)
        assert "Ended Schedules:" in build_report(VESTING_V2, reports(), NOW, print_finished=True)

    def test_verbose_sections(self):
        lines = build_report(VESTING_V2, reports(), NOW, verbose=True)

        assert "Active Schedules:" in lines
        assert "Not Started Schedules:" in lines
        assert "Status: Not claimed" in lines
        assert "(Can be stopped now)" in lines

    def test_summary_children_add_up(self):
        """Claimable schedules in their window are not counted under auto-start."""
        lines = build_report(VESTING_V2, reports(), NOW)

        start_section = lines[lines.index("Schedules in start window:"):lines.index("Schedules in stop window:")]
        assert any(DAVE in line for line in start_section)
        assert "    Auto-start: 1" in lines
        assert "      In start window: 1" in lines

    def test_wrap_schedules_are_not_pre_start(self):
        state = SchedulerState[WrapSchedule](
            lastBlock=1,
            activeSchedules=[WrapSchedule(
                id=WRAP_ID, user=ALICE, superToken=TOKEN, liquidityToken=LIQUIDITY_TOKEN,
                expiry=NOW + 1000, lowerLimit=1, upperLimit=2,
            )],
        )
        wrap_reports = WindowEvaluator(WrapWindowPolicy()).evaluate_state(state, NOW)

        lines = build_report(WRAP, wrap_reports, NOW)

        assert "  Pre-start: 0" in lines
        assert "      In start window: 0" in lines
        assert "  Flowing: 1" in lines
