"""Schedule resolution - next occurrence dates for obligations and income"""

import math
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Iterable, List, Optional, Sequence, Tuple

from setaside.domain.exceptions import InvalidRecurrenceError
from setaside.domain.models import (
    CustomScheduleEntry,
    Frequency,
    Obligation,
    ObligationKind,
    StaleReason,
)
from setaside.utils.date_utils import add_months, months_between

# Fixed-length periods in days
DAY_PERIODS = {
    Frequency.WEEKLY: 7,
    Frequency.FORTNIGHTLY: 14,
}

# Calendar periods in months (clamped to month end)
MONTH_PERIODS = {
    Frequency.MONTHLY: 1,
    Frequency.QUARTERLY: 3,
    Frequency.ANNUAL: 12,
}


@dataclass(frozen=True)
class Occurrence:
    """A resolved due date; entry_amount_cents is set when it came from a literal entry"""

    due_date: date
    entry_amount_cents: Optional[int] = None


def period_days(frequency: Frequency, frequency_days: Optional[int]) -> Optional[int]:
    """Length of a fixed-day period, or None for calendar-month and irregular cadences"""
    if frequency == Frequency.CUSTOM:
        if not frequency_days or frequency_days <= 0:
            raise InvalidRecurrenceError("custom frequency requires a positive frequency_days")
        return frequency_days
    return DAY_PERIODS.get(frequency)


def next_from_entries(entries: Iterable[CustomScheduleEntry], from_date: date) -> Optional[CustomScheduleEntry]:
    """First unpaid entry on or after from_date"""
    upcoming = sorted(
        (e for e in entries if not e.is_paid and e.due_date >= from_date),
        key=lambda e: e.due_date,
    )
    return upcoming[0] if upcoming else None


def next_occurrence(
    frequency: Optional[Frequency],
    frequency_days: Optional[int],
    reference_date: date,
    from_date: date,
    custom_entries: Sequence[CustomScheduleEntry] = (),
) -> Optional[date]:
    """
    Next date >= from_date that belongs to the recurrence anchored at reference_date.

    - frequency None behaves as a one-off: reference_date itself, or nothing once passed
    - weekly / fortnightly / custom step in whole days
    - monthly / quarterly / annual step in calendar months from the anchor,
      clamping to the last day of shorter months (Jan 31 -> Feb 28 -> Mar 31)
    - irregular defers to the literal schedule entries

    from_date is inclusive: an occurrence falling on from_date is returned.

    Raises:
        InvalidRecurrenceError: custom frequency without a positive frequency_days
    """
    if frequency is None:
        return reference_date if reference_date >= from_date else None

    if frequency == Frequency.IRREGULAR:
        entry = next_from_entries(custom_entries, from_date)
        return entry.due_date if entry else None

    days = period_days(frequency, frequency_days)

    if from_date <= reference_date:
        return reference_date

    if days is not None:
        steps = math.ceil((from_date - reference_date).days / days)
        return reference_date + timedelta(days=steps * days)

    step_months = MONTH_PERIODS[frequency]
    steps = months_between(reference_date, from_date) // step_months
    candidate = add_months(reference_date, steps * step_months)
    if candidate < from_date:
        candidate = add_months(reference_date, (steps + 1) * step_months)
    return candidate


def occurrences_between(
    frequency: Optional[Frequency],
    frequency_days: Optional[int],
    reference_date: date,
    start: date,
    end: date,
    custom_entries: Sequence[CustomScheduleEntry] = (),
) -> List[date]:
    """All occurrence dates in [start, end], ascending"""
    dates: List[date] = []
    cursor = start
    while cursor <= end:
        occurrence = next_occurrence(frequency, frequency_days, reference_date, cursor, custom_entries)
        if occurrence is None or occurrence > end:
            break
        dates.append(occurrence)
        cursor = occurrence + timedelta(days=1)
    return dates


def resolve_next_due(
    obligation: Obligation,
    entries: Sequence[CustomScheduleEntry],
    as_of: date,
) -> Tuple[Optional[Occurrence], Optional[StaleReason]]:
    """
    Resolve an obligation's next due occurrence on or after as_of.

    Literal schedule entries win over arithmetic recurrence whenever they exist.
    The recurrence is anchored on the stored next_due_date.

    Returns:
        (occurrence, None) when resolvable, otherwise (None, reason)
    """
    if entries:
        entry = next_from_entries(entries, as_of)
        if entry is None:
            return None, StaleReason.SCHEDULE_EXHAUSTED
        if obligation.end_date is not None and entry.due_date > obligation.end_date:
            return None, StaleReason.ENDED
        return Occurrence(entry.due_date, entry.amount_cents), None

    if obligation.kind == ObligationKind.ONE_OFF or obligation.frequency is None:
        if obligation.next_due_date >= as_of:
            return Occurrence(obligation.next_due_date), None
        return None, StaleReason.ONE_OFF_PAST_DUE

    if obligation.frequency == Frequency.IRREGULAR:
        return None, StaleReason.NO_SCHEDULE

    due = next_occurrence(
        obligation.frequency,
        obligation.frequency_days,
        obligation.next_due_date,
        as_of,
    )
    if obligation.end_date is not None and due > obligation.end_date:
        return None, StaleReason.ENDED
    return Occurrence(due), None


def obligation_occurrences(
    obligation: Obligation,
    entries: Sequence[CustomScheduleEntry],
    start: date,
    end: date,
) -> List[Occurrence]:
    """Every occurrence of an obligation inside [start, end]"""
    if entries:
        last = min(end, obligation.end_date) if obligation.end_date else end
        return [
            Occurrence(e.due_date, e.amount_cents)
            for e in sorted(entries, key=lambda e: e.due_date)
            if not e.is_paid and start <= e.due_date <= last
        ]

    if obligation.kind == ObligationKind.ONE_OFF or obligation.frequency is None:
        if start <= obligation.next_due_date <= end:
            return [Occurrence(obligation.next_due_date)]
        return []

    if obligation.frequency == Frequency.IRREGULAR:
        return []

    window_end = min(end, obligation.end_date) if obligation.end_date else end
    return [
        Occurrence(d)
        for d in occurrences_between(
            obligation.frequency,
            obligation.frequency_days,
            obligation.next_due_date,
            start,
            window_end,
        )
    ]
