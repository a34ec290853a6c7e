"""Contribution cycle resolution and pay-date arithmetic"""

from collections import Counter, defaultdict
from datetime import date, timedelta
from typing import Dict, Iterable, List, Optional, Tuple

from setaside.domain.models import CycleConfig, CycleType, Frequency, FundingSettings, IncomeSource
from setaside.utils.date_utils import add_months, clamp_day

CYCLE_PERIOD_DAYS = {
    CycleType.WEEKLY: 7,
    CycleType.FORTNIGHTLY: 14,
}

DEFAULT_TWICE_MONTHLY_DAYS = (1, 15)

# Shorter cycles win ties: more frequent, smaller set-asides
CYCLE_ORDER = [
    CycleType.WEEKLY,
    CycleType.FORTNIGHTLY,
    CycleType.TWICE_MONTHLY,
    CycleType.MONTHLY,
    CycleType.CUSTOM,
]


def _normalize_pay_days(pay_days: Iterable[int]) -> Tuple[int, ...]:
    return tuple(sorted({d for d in pay_days if 1 <= d <= 31}))


def explicit_cycle(settings: FundingSettings) -> Optional[CycleConfig]:
    """Cycle configured by the user, or None when the settings do not pin one down"""
    cycle_type = settings.contribution_cycle_type
    days = settings.contribution_cycle_days

    if cycle_type is not None:
        cycle_type = CycleType(cycle_type)
        if cycle_type == CycleType.CUSTOM:
            if not days or days <= 0:
                return None
            return CycleConfig(cycle_type=cycle_type, period_days=days, source="explicit")
        pay_days = _normalize_pay_days(settings.contribution_pay_days)
        if cycle_type == CycleType.TWICE_MONTHLY and len(pay_days) < 2:
            pay_days = DEFAULT_TWICE_MONTHLY_DAYS
        if cycle_type == CycleType.MONTHLY:
            pay_days = pay_days[:1]
        elif cycle_type == CycleType.TWICE_MONTHLY:
            pay_days = pay_days[:2]
        else:
            pay_days = ()
        return CycleConfig(cycle_type=cycle_type, pay_days=pay_days, source="explicit")

    if days and days > 0:
        for known, period in CYCLE_PERIOD_DAYS.items():
            if period == days:
                return CycleConfig(cycle_type=known, source="explicit")
        return CycleConfig(cycle_type=CycleType.CUSTOM, period_days=days, source="explicit")

    return None


def _source_cycle(source: IncomeSource) -> Optional[CycleType]:
    if source.frequency == Frequency.WEEKLY:
        return CycleType.WEEKLY
    if source.frequency == Frequency.FORTNIGHTLY:
        return CycleType.FORTNIGHTLY
    if source.frequency in (Frequency.MONTHLY, Frequency.QUARTERLY, Frequency.ANNUAL):
        return CycleType.MONTHLY
    if source.frequency == Frequency.CUSTOM and source.frequency_days and source.frequency_days > 0:
        if source.frequency_days <= 7:
            return CycleType.WEEKLY
        if source.frequency_days <= 14:
            return CycleType.FORTNIGHTLY
        return CycleType.MONTHLY
    return None


def _source_weight(source: IncomeSource) -> int:
    if source.is_irregular and source.minimum_expected_cents is not None:
        return source.minimum_expected_cents
    return source.expected_amount_cents


def detect_cycle(income_sources: Iterable[IncomeSource]) -> CycleConfig:
    """
    Auto-detect a contribution cycle from active, non-paused income.

    Regular sources outrank irregular ones. Among the candidates the most
    common cycle wins; ties go to the larger expected income, then to the
    shorter cycle. Monthly earners paid on two distinct days become
    twice-monthly. Returns an undetermined cycle when nothing qualifies.
    """
    eligible = [s for s in income_sources if s.is_active and not s.is_paused]
    regular = [s for s in eligible if not s.is_irregular and s.frequency != Frequency.IRREGULAR]
    pool = regular or eligible

    votes: Dict[CycleType, List[IncomeSource]] = defaultdict(list)
    for source in pool:
        cycle_type = _source_cycle(source)
        if cycle_type is not None:
            votes[cycle_type].append(source)

    if not votes:
        return CycleConfig.undetermined()

    winner = min(
        votes,
        key=lambda c: (
            -len(votes[c]),
            -sum(_source_weight(s) for s in votes[c]),
            CYCLE_ORDER.index(c),
        ),
    )

    if winner != CycleType.MONTHLY:
        return CycleConfig(cycle_type=winner, source="detected")

    day_counts = Counter(
        s.next_expected_date.day for s in votes[winner] if s.next_expected_date is not None
    )
    common_days = [day for day, _ in sorted(day_counts.items(), key=lambda kv: (-kv[1], kv[0]))]
    if len(common_days) >= 2:
        return CycleConfig(
            cycle_type=CycleType.TWICE_MONTHLY,
            pay_days=tuple(sorted(common_days[:2])),
            source="detected",
        )
    return CycleConfig(cycle_type=CycleType.MONTHLY, pay_days=tuple(common_days), source="detected")


def resolve_cycle_config(
    explicit_override: Optional[FundingSettings],
    income_sources: Iterable[IncomeSource],
) -> CycleConfig:
    """An explicit cycle setting wins outright; otherwise detect from income"""
    if explicit_override is not None:
        explicit = explicit_cycle(explicit_override)
        if explicit is not None:
            return explicit
    return detect_cycle(income_sources)


def pay_dates_between(cycle: CycleConfig, after: date, until: date) -> List[date]:
    """
    Pay dates p with after < p <= until.

    Fixed-period cycles count whole periods from `after`. Monthly cycles use
    their pay day (or the day of `after` when none is set), clamped to month end.
    """
    if not cycle.is_determined or until <= after:
        return []

    period = cycle.period_days if cycle.cycle_type == CycleType.CUSTOM else CYCLE_PERIOD_DAYS.get(cycle.cycle_type)
    if period:
        count = (until - after).days // period
        return [after + timedelta(days=k * period) for k in range(1, count + 1)]

    if cycle.cycle_type == CycleType.MONTHLY and not cycle.pay_days:
        dates = []
        k = 1
        while add_months(after, k) <= until:
            dates.append(add_months(after, k))
            k += 1
        return dates

    days = cycle.pay_days or DEFAULT_TWICE_MONTHLY_DAYS
    if cycle.cycle_type == CycleType.MONTHLY:
        days = days[:1]

    dates = []
    year, month = after.year, after.month
    while (year, month) <= (until.year, until.month):
        for day in days:
            candidate = clamp_day(year, month, day)
            if after < candidate <= until:
                dates.append(candidate)
        month += 1
        if month > 12:
            year, month = year + 1, 1
    return sorted(set(dates))


def cycles_until(cycle: CycleConfig, as_of: date, due_date: date) -> int:
    """
    Whole contribution cycles completed by the due date.

    An undetermined cycle treats all remaining time as a single cycle.
    """
    if not cycle.is_determined:
        return 1
    return len(pay_dates_between(cycle, as_of, due_date))


def cycle_period_label(cycle: CycleConfig) -> str:
    """Human label for the current contribution period"""
    labels = {
        CycleType.WEEKLY: "this week",
        CycleType.FORTNIGHTLY: "this fortnight",
        CycleType.TWICE_MONTHLY: "this pay period",
        CycleType.MONTHLY: "this month",
        CycleType.CUSTOM: "this cycle",
    }
    return labels.get(cycle.cycle_type, "this cycle")
