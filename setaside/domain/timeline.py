"""Fund balance projection over a window of months"""

from collections import defaultdict
from datetime import date
from typing import Dict, List, Mapping, Optional, Sequence

from setaside.domain.allocator import occurrence_amount
from setaside.domain.cycle import pay_dates_between
from setaside.domain.models import (
    ContributionMarker,
    CrunchPoint,
    CustomScheduleEntry,
    CycleConfig,
    CycleType,
    EscalationRule,
    ExpenseMarker,
    Obligation,
    Timeline,
    TimelinePoint,
)
from setaside.domain.schedule import obligation_occurrences
from setaside.utils.date_utils import add_months

MIN_MONTHS = 1
MAX_MONTHS = 12


def project_timeline(
    obligations: Sequence[Obligation],
    escalations: Sequence[EscalationRule],
    custom_entries: Sequence[CustomScheduleEntry],
    starting_balance_cents: int,
    contribution_per_cycle_cents: int,
    cycle: CycleConfig,
    as_of: date,
    months_ahead: int = 6,
    amount_overrides: Optional[Mapping[str, int]] = None,
) -> Timeline:
    """
    Walk contributions and due payments forward from as_of.

    Contributions land on the cycle's pay dates (monthly when the cycle is
    undetermined) and are applied before expenses falling on the same day.
    A crunch point is recorded whenever an expense leaves the balance at or
    below zero.
    """
    amount_overrides = amount_overrides or {}
    months = max(MIN_MONTHS, min(MAX_MONTHS, months_ahead))
    start_date = as_of
    end_date = add_months(as_of, months)

    rules_by_obligation: Dict[str, List[EscalationRule]] = defaultdict(list)
    for rule in escalations:
        if not rule.is_applied:
            rules_by_obligation[rule.obligation_id].append(rule)

    entries_by_obligation: Dict[str, List[CustomScheduleEntry]] = defaultdict(list)
    for entry in custom_entries:
        entries_by_obligation[entry.obligation_id].append(entry)

    expense_markers: List[ExpenseMarker] = []
    for obligation in obligations:
        if not obligation.is_active or obligation.is_paused:
            continue
        for occurrence in obligation_occurrences(
            obligation, entries_by_obligation.get(obligation.id, []), start_date, end_date
        ):
            expense_markers.append(
                ExpenseMarker(
                    date=occurrence.due_date,
                    obligation_id=obligation.id,
                    obligation_name=obligation.name,
                    amount_cents=occurrence_amount(
                        obligation,
                        occurrence,
                        rules_by_obligation.get(obligation.id, []),
                        amount_overrides,
                    ),
                )
            )
    expense_markers.sort(key=lambda m: (m.date, m.obligation_id))

    contribution_markers: List[ContributionMarker] = []
    if contribution_per_cycle_cents > 0:
        pay_cycle = cycle if cycle.is_determined else CycleConfig(cycle_type=CycleType.MONTHLY)
        contribution_markers = [
            ContributionMarker(date=d, amount_cents=contribution_per_cycle_cents)
            for d in pay_dates_between(pay_cycle, start_date, end_date)
        ]

    # (date, order, marker): contributions (0) land before expenses (1) on the same day
    events = [(m.date, 0, m) for m in contribution_markers] + [(m.date, 1, m) for m in expense_markers]
    events.sort(key=lambda e: (e[0], e[1]))

    balance = starting_balance_cents
    points = [TimelinePoint(date=start_date, projected_balance_cents=balance)]
    crunch_points: List[CrunchPoint] = []

    for event_date, order, marker in events:
        if order == 0:
            balance += marker.amount_cents
        else:
            balance -= marker.amount_cents
        points.append(TimelinePoint(date=event_date, projected_balance_cents=balance))

        if order == 1 and balance <= 0:
            crunch_points.append(
                CrunchPoint(
                    date=event_date,
                    projected_balance_cents=balance,
                    trigger_obligation_id=marker.obligation_id,
                    trigger_obligation_name=marker.obligation_name,
                )
            )

    if points[-1].date != end_date:
        points.append(TimelinePoint(date=end_date, projected_balance_cents=balance))

    return Timeline(
        start_date=start_date,
        end_date=end_date,
        points=tuple(points),
        expense_markers=tuple(expense_markers),
        contribution_markers=tuple(contribution_markers),
        crunch_points=tuple(crunch_points),
    )
