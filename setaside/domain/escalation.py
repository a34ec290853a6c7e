"""Escalation resolution - the amount in force for an obligation on a given date"""

from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import List, Optional, Sequence, Tuple

from setaside.domain.models import (
    ChangeType,
    EscalationFold,
    EscalationRule,
    Obligation,
    ProjectedAmount,
)
from setaside.utils.date_utils import add_months, months_between

ONE_CENT = Decimal("1")
HUNDRED = Decimal("100")


def apply_change(amount_cents: int, change_type: ChangeType, value: Decimal) -> int:
    """
    Apply one escalation step, rounding half-up to a whole cent.

    Percentage: amount * (1 + value/100). Fixed: amount + value (cents).
    Amounts never drop below zero.
    """
    value = Decimal(str(value))
    if change_type == ChangeType.PERCENTAGE:
        result = Decimal(amount_cents) * (1 + value / HUNDRED)
    else:
        result = Decimal(amount_cents) + value
    return max(0, int(result.quantize(ONE_CENT, rounding=ROUND_HALF_UP)))


def application_dates(rule: EscalationRule, as_of: date) -> List[date]:
    """
    Dates on which a rule has fired up to and including as_of.

    One-time rules fire once on effective_date. Repeating rules fire
    floor(months_between / interval_months) + 1 times, on effective_date and
    every interval after it.
    """
    if rule.effective_date > as_of:
        return []
    if not rule.interval_months:
        return [rule.effective_date]

    count = months_between(rule.effective_date, as_of) // rule.interval_months + 1
    return [add_months(rule.effective_date, k * rule.interval_months) for k in range(count)]


def _ordered_steps(escalations: Sequence[EscalationRule], as_of: date) -> List[Tuple[date, EscalationRule]]:
    ordered = sorted(enumerate(escalations), key=lambda pair: (pair[1].effective_date, pair[0]))
    steps = []
    for rank, (_, rule) in enumerate(ordered):
        for fired_on in application_dates(rule, as_of):
            steps.append((fired_on, rank, rule))
    # Chronological, ties broken by the rule's own effective_date order
    steps.sort(key=lambda step: (step[0], step[1]))
    return [(fired_on, rule) for fired_on, _, rule in steps]


def effective_amount(base_amount_cents: int, escalations: Sequence[EscalationRule], as_of: date) -> int:
    """
    Amount in force on as_of.

    Stateless: callers pass only rules not yet folded into base_amount_cents.
    With no applicable rules the base amount is returned unchanged.
    """
    amount = base_amount_cents
    for _, rule in _ordered_steps(escalations, as_of):
        amount = apply_change(amount, rule.change_type, rule.value)
    return amount


def project_amounts(
    base_amount_cents: int,
    escalations: Sequence[EscalationRule],
    start: date,
    end: date,
) -> List[ProjectedAmount]:
    """Change points inside [start, end]: each date an escalation fires and the amount after it"""
    change_dates = sorted(
        {fired_on for fired_on, _ in _ordered_steps(escalations, end) if fired_on >= start}
    )
    return [
        ProjectedAmount(date=d, amount_cents=effective_amount(base_amount_cents, escalations, d))
        for d in change_dates
    ]


def plan_escalation_folds(
    obligation: Obligation,
    escalations: Sequence[EscalationRule],
    as_of: date,
) -> Optional[EscalationFold]:
    """
    Work out which one-time rules are due to be baked into the stored base amount.

    Only unapplied one-time rules with effective_date <= as_of qualify. Repeating
    rules are never folded. Paused or inactive obligations are deferred until resumed.

    A one-time rule is also deferred while a live repeating rule on the same
    obligation starts on or before it: fixed and percentage steps do not commute,
    so folding it would reorder the steps and change the amount in force.
    Returns None when there is nothing to fold; persisting the result is the caller's job.
    """
    if obligation.is_paused or not obligation.is_active:
        return None

    own_rules = [r for r in escalations if r.obligation_id == obligation.id and not r.is_applied]
    repeating_starts = [r.effective_date for r in own_rules if r.interval_months]
    fold_before = min(repeating_starts) if repeating_starts else None

    due = sorted(
        (
            r
            for r in own_rules
            if not r.interval_months
            and r.effective_date <= as_of
            and (fold_before is None or r.effective_date < fold_before)
        ),
        key=lambda r: r.effective_date,
    )
    if not due:
        return None

    return EscalationFold(
        obligation_id=obligation.id,
        new_amount_cents=effective_amount(obligation.amount_cents, due, as_of),
        folded_rule_ids=tuple(r.id for r in due),
    )
