"""Unit tests for fund balance projection"""

from datetime import date
from setaside.domain.models import CycleConfig, CycleType, Frequency, Obligation, ObligationKind
from setaside.domain.timeline import project_timeline

AS_OF = date(2025, 1, 1)
FORTNIGHTLY = CycleConfig(cycle_type=CycleType.FORTNIGHTLY, source="explicit")


def _obligation(obligation_id="ob-1", amount_cents=10000, due=date(2025, 1, 15), frequency=None) -> Obligation:
    return Obligation(
        id=obligation_id,
        user_id="user-1",
        name="Phone",
        kind=ObligationKind.RECURRING if frequency else ObligationKind.ONE_OFF,
        amount_cents=amount_cents,
        frequency=frequency,
        next_due_date=due,
    )


def test_contribution_lands_before_same_day_expense():
    """Test pay day and due date collide: balance goes up then down, ending at a crunch"""
    timeline = project_timeline([_obligation()], [], [], 0, 10000, FORTNIGHTLY, AS_OF, months_ahead=1)

    assert [(p.date, p.projected_balance_cents) for p in timeline.points] == [
        (date(2025, 1, 1), 0),
        (date(2025, 1, 15), 10000),
        (date(2025, 1, 15), 0),
        (date(2025, 1, 29), 10000),
        (date(2025, 2, 1), 10000),
    ]
    assert len(timeline.crunch_points) == 1
    assert timeline.crunch_points[0].date == date(2025, 1, 15)
    assert timeline.crunch_points[0].trigger_obligation_id == "ob-1"


def test_no_crunch_with_healthy_balance():
    timeline = project_timeline([_obligation()], [], [], 50000, 10000, FORTNIGHTLY, AS_OF, months_ahead=1)

    assert timeline.crunch_points == ()
    assert timeline.points[-1].projected_balance_cents == 60000


def test_expense_markers_follow_month_end_recurrence():
    monthly = _obligation(due=date(2025, 1, 31), frequency=Frequency.MONTHLY)

    timeline = project_timeline([monthly], [], [], 0, 0, FORTNIGHTLY, AS_OF, months_ahead=3)

    assert [m.date for m in timeline.expense_markers] == [date(2025, 1, 31), date(2025, 2, 28), date(2025, 3, 31)]
    assert timeline.contribution_markers == ()


def test_undetermined_cycle_contributes_monthly():
    timeline = project_timeline([], [], [], 0, 5000, CycleConfig.undetermined(), AS_OF, months_ahead=3)

    assert [m.date for m in timeline.contribution_markers] == [date(2025, 2, 1), date(2025, 3, 1), date(2025, 4, 1)]


def test_window_is_clamped():
    assert project_timeline([], [], [], 0, 0, FORTNIGHTLY, AS_OF, months_ahead=24).end_date == date(2026, 1, 1)
    assert project_timeline([], [], [], 0, 0, FORTNIGHTLY, AS_OF, months_ahead=0).end_date == date(2025, 2, 1)


def test_paused_obligations_are_not_projected():
    paused = Obligation(
        id="ob-1",
        user_id="user-1",
        name="Gym",
        kind=ObligationKind.RECURRING,
        amount_cents=5000,
        frequency=Frequency.MONTHLY,
        next_due_date=date(2025, 1, 10),
        is_paused=True,
    )

    timeline = project_timeline([paused], [], [], 0, 0, FORTNIGHTLY, AS_OF)

    assert timeline.expense_markers == ()
