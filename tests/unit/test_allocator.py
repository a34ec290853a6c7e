"""Unit tests for the funding allocator"""

from datetime import date
from decimal import Decimal
from setaside.domain.allocator import (
    forecast,
    prioritize_within_cap,
    recommend_contribution,
    split_contribution,
)
from setaside.domain.models import (
    ChangeType,
    ContributionRecord,
    CustomScheduleEntry,
    CycleConfig,
    CycleType,
    EscalationRule,
    Frequency,
    Obligation,
    ObligationKind,
    StaleReason,
)

AS_OF = date(2025, 1, 1)
FORTNIGHTLY = CycleConfig(cycle_type=CycleType.FORTNIGHTLY, source="explicit")


def _one_off(obligation_id, amount_cents=120000, due=date(2025, 3, 2), **kwargs) -> Obligation:
    return Obligation(
        id=obligation_id,
        user_id="user-1",
        name=obligation_id.upper(),
        kind=ObligationKind.ONE_OFF,
        amount_cents=amount_cents,
        frequency=None,
        next_due_date=due,
        **kwargs,
    )


def _run(obligations, escalations=(), entries=(), records=(), cycle=FORTNIGHTLY, cap=None, overrides=None):
    return forecast(obligations, escalations, entries, records, cycle, AS_OF, cap, overrides)


def test_split_contribution_front_loads_remainder():
    """Test $1000.01 over 3 cycles puts the extra 2 cents first"""
    plan = split_contribution(100001, 3)

    assert plan == [33335, 33333, 33333]
    assert sum(plan) == 100001


def test_split_contribution_zero_needed():
    assert split_contribution(0, 4) == []


def test_recommend_contribution_at_least_one_cycle():
    """Test due date inside the current cycle asks for everything now"""
    assert recommend_contribution(50000, 0) == 50000


def test_forecast_spreads_over_cycles():
    """Test $1200 due in 60 days on a fortnightly cycle: $300 over 4 cycles"""
    result = _run([_one_off("ob-a")])
    item = result.obligations[0]

    assert item.cycles_remaining == 4
    assert item.amount_needed_cents == 120000
    assert item.recommended_contribution_cents == 30000
    assert result.total_recommended_cents == 30000


def test_forecast_fully_funded():
    records = [ContributionRecord("ob-a", 120000, date(2024, 12, 1))]
    result = _run([_one_off("ob-a")], records=records)
    item = result.obligations[0]

    assert item.amount_needed_cents == 0
    assert item.recommended_contribution_cents == 0
    assert item.is_fully_funded
    assert result.is_fully_funded


def test_forecast_over_cap_reports_shortfall():
    """Test two $300 recommendations against a $500 cap"""
    result = _run([_one_off("ob-a"), _one_off("ob-b")], cap=50000)

    assert result.total_recommended_cents == 60000
    assert result.over_cap is True
    assert result.shortfall_cents == 10000
    # No redistribution
    assert [o.recommended_contribution_cents for o in result.obligations] == [30000, 30000]


def test_forecast_without_cap_never_over():
    result = _run([_one_off("ob-a"), _one_off("ob-b")])

    assert result.over_cap is False
    assert result.shortfall_cents == 0


def test_forecast_zero_cap_is_a_real_cap():
    result = _run([_one_off("ob-a")], cap=0)
    assert result.over_cap is True


def test_forecast_is_deterministic():
    obligations = [_one_off("ob-b", due=date(2025, 2, 1)), _one_off("ob-a")]
    assert _run(obligations) == _run(obligations)


def test_forecast_orders_by_due_date():
    obligations = [_one_off("ob-a"), _one_off("ob-b", due=date(2025, 2, 1))]
    assert [o.obligation_id for o in _run(obligations).obligations] == ["ob-b", "ob-a"]


def test_forecast_reports_stale_obligations():
    """Test one-off already past is surfaced, not forecast"""
    result = _run([_one_off("ob-a", due=date(2024, 12, 1))])

    assert result.obligations == ()
    assert result.stale[0].obligation_id == "ob-a"
    assert result.stale[0].reason == StaleReason.ONE_OFF_PAST_DUE


def test_forecast_skips_paused_and_inactive():
    result = _run([_one_off("ob-a", is_paused=True), _one_off("ob-b", is_active=False)])

    assert result.obligations == ()
    assert result.stale == ()


def test_forecast_applies_escalation_at_due_date():
    """Test amount in force on the due date, not today"""
    rule = EscalationRule("esc-1", "ob-a", ChangeType.PERCENTAGE, Decimal("10"), date(2025, 2, 1))
    result = _run([_one_off("ob-a")], escalations=[rule])

    assert result.obligations[0].effective_amount_cents == 132000


def test_forecast_ignores_applied_escalations():
    rule = EscalationRule("esc-1", "ob-a", ChangeType.PERCENTAGE, Decimal("10"), date(2024, 6, 1), is_applied=True)
    result = _run([_one_off("ob-a")], escalations=[rule])

    assert result.obligations[0].effective_amount_cents == 120000


def test_forecast_amount_override_bypasses_escalation():
    rule = EscalationRule("esc-1", "ob-a", ChangeType.PERCENTAGE, Decimal("10"), date(2025, 2, 1))
    result = _run([_one_off("ob-a")], escalations=[rule], overrides={"ob-a": 80000})

    assert result.obligations[0].effective_amount_cents == 80000
    assert result.obligations[0].recommended_contribution_cents == 20000


def test_forecast_uses_literal_entry_amount():
    obligation = Obligation(
        id="ob-a",
        user_id="user-1",
        name="Council rates",
        kind=ObligationKind.CUSTOM,
        amount_cents=10000,
        frequency=Frequency.IRREGULAR,
        next_due_date=date(2025, 3, 2),
    )
    entries = [CustomScheduleEntry("ob-a", date(2025, 3, 2), 56000)]

    result = _run([obligation], entries=entries)

    assert result.obligations[0].effective_amount_cents == 56000
    assert result.obligations[0].recommended_contribution_cents == 14000


def test_forecast_totals():
    records = [ContributionRecord("ob-a", 20000, date(2024, 12, 1))]
    result = _run([_one_off("ob-a"), _one_off("ob-b", amount_cents=60000)], records=records)

    assert result.total_required_cents == 180000
    assert result.total_funded_cents == 20000


def test_prioritize_within_cap_nearest_due_first():
    """Test $500 cap split across three $300 recommendations"""
    funding = _run(
        [
            _one_off("ob-a", due=date(2025, 3, 2)),
            _one_off("ob-b", due=date(2025, 3, 2)),
            _one_off("ob-c", due=date(2025, 3, 5)),
        ],
        cap=50000,
    )
    plan = prioritize_within_cap(funding)

    assert [(a.obligation_id, a.allocated_cents) for a in plan.allocations] == [
        ("ob-a", 30000),
        ("ob-b", 20000),
        ("ob-c", 0),
    ]
    assert [w.obligation_id for w in plan.warnings] == ["ob-b", "ob-c"]

    warning = plan.warnings[0]
    # $200 a cycle for 4 cycles covers $800 of $1200
    assert warning.amount_can_fund_cents == 80000
    assert warning.shortfall_cents == 40000
    assert warning.message == (
        "You need $1,200.00 for OB-B by 2025-03-02 but can only save $800.00 at current capacity"
    )


def test_prioritize_without_cap_allocates_everything():
    plan = prioritize_within_cap(_run([_one_off("ob-a"), _one_off("ob-b")]))

    assert [a.allocated_cents for a in plan.allocations] == [30000, 30000]
    assert plan.warnings == ()
