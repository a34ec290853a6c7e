"""Unit tests for engine snapshots and money formatting"""

from datetime import date, datetime, timezone
from setaside.domain.allocator import forecast
from setaside.domain.models import ContributionRecord, CycleConfig, CycleType, Obligation, ObligationKind
from setaside.domain.snapshot import EMPTY_STATE_MESSAGE, FULLY_FUNDED_MESSAGE, build_snapshot
from setaside.utils.money_utils import format_cents

AS_OF = date(2025, 1, 1)
CALCULATED_AT = datetime(2025, 1, 1, 9, 30, tzinfo=timezone.utc)
FORTNIGHTLY = CycleConfig(cycle_type=CycleType.FORTNIGHTLY, source="explicit")


def _car_insurance() -> Obligation:
    return Obligation(
        id="ob-car",
        user_id="user-1",
        name="Car insurance",
        kind=ObligationKind.ONE_OFF,
        amount_cents=120000,
        frequency=None,
        next_due_date=date(2025, 3, 2),
    )


def test_format_cents():
    assert format_cents(12345) == "$123.45"
    assert format_cents(-500) == "-$5.00"
    assert format_cents(120000, "£") == "£1,200.00"


def test_snapshot_empty_state():
    snapshot = build_snapshot(forecast([], [], [], [], FORTNIGHTLY, AS_OF), "user-1", CALCULATED_AT)

    assert snapshot.next_action_description == EMPTY_STATE_MESSAGE
    assert snapshot.next_action_amount_cents == 0
    assert snapshot.next_action_date == AS_OF
    assert snapshot.next_action_obligation_id is None


def test_snapshot_fully_funded():
    records = [ContributionRecord("ob-car", 120000, date(2024, 12, 1))]
    funding = forecast([_car_insurance()], [], [], records, FORTNIGHTLY, AS_OF)

    snapshot = build_snapshot(funding, "user-1", CALCULATED_AT)

    assert snapshot.next_action_description == FULLY_FUNDED_MESSAGE
    assert snapshot.next_action_date == date(2025, 3, 2)
    assert snapshot.total_funded_cents == 120000


def test_snapshot_next_action_uses_cycle_label():
    funding = forecast([_car_insurance()], [], [], [], FORTNIGHTLY, AS_OF, max_contribution_per_cycle_cents=20000)

    snapshot = build_snapshot(funding, "user-1", CALCULATED_AT)

    assert snapshot.next_action_description == "Set aside $300.00 this fortnight for Car insurance"
    assert snapshot.next_action_amount_cents == 30000
    assert snapshot.next_action_obligation_id == "ob-car"
    assert snapshot.over_cap is True
    assert snapshot.calculated_at == CALCULATED_AT


def test_snapshot_undetermined_cycle_names_due_date():
    funding = forecast([_car_insurance()], [], [], [], CycleConfig.undetermined(), AS_OF)

    snapshot = build_snapshot(funding, "user-1", CALCULATED_AT)

    assert snapshot.next_action_description == "Set aside $1,200.00 for Car insurance by 2025-03-02"
