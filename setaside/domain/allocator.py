"""Funding allocator - per-cycle contribution recommendations for every obligation"""

from collections import defaultdict
from datetime import date
from typing import Dict, List, Mapping, Optional, Sequence

from setaside.domain.cycle import cycles_until
from setaside.domain.escalation import effective_amount
from setaside.domain.ledger import balances_by_obligation
from setaside.domain.models import (
    CappedAllocation,
    ContributionRecord,
    CustomScheduleEntry,
    CycleConfig,
    EscalationRule,
    FundingForecast,
    Obligation,
    ObligationForecast,
    RationedPlan,
    ShortfallWarning,
    StaleObligation,
)
from setaside.domain.schedule import Occurrence, resolve_next_due
from setaside.utils.money_utils import format_cents


def split_contribution(amount_needed_cents: int, cycles: int) -> List[int]:
    """
    Split an amount into equal per-cycle contributions.

    Requirements:
    - At least one cycle, even when the due date is inside the current cycle
    - First cycle absorbs the rounding remainder (front-loaded), so the target
      is never missed at the deadline

    Example:
        $1000.01 over 3 cycles -> [$333.35, $333.33, $333.33]
        100001 cents // 3 = 33333 base, remainder 2
        First contribution: 33333 + 2 = 33335
    """
    if amount_needed_cents <= 0:
        return []

    cycles = max(1, cycles)
    base_amount = amount_needed_cents // cycles
    remainder = amount_needed_cents % cycles

    return [base_amount + (remainder if i == 0 else 0) for i in range(cycles)]


def recommend_contribution(amount_needed_cents: int, cycles_remaining: int) -> int:
    """Contribution to set aside this cycle; 0 once fully funded"""
    plan = split_contribution(amount_needed_cents, cycles_remaining)
    return plan[0] if plan else 0


def occurrence_amount(
    obligation: Obligation,
    occurrence: Occurrence,
    live_rules: Sequence[EscalationRule],
    amount_overrides: Mapping[str, int],
) -> int:
    """Amount due for one occurrence: override, else literal entry amount, else escalated base"""
    if obligation.id in amount_overrides:
        return amount_overrides[obligation.id]
    if occurrence.entry_amount_cents is not None:
        return occurrence.entry_amount_cents
    return effective_amount(obligation.amount_cents, live_rules, occurrence.due_date)


def forecast(
    obligations: Sequence[Obligation],
    escalations: Sequence[EscalationRule],
    custom_entries: Sequence[CustomScheduleEntry],
    contribution_records: Sequence[ContributionRecord],
    cycle: CycleConfig,
    as_of: date,
    max_contribution_per_cycle_cents: Optional[int] = None,
    amount_overrides: Optional[Mapping[str, int]] = None,
) -> FundingForecast:
    """
    Main entry point: compute funding needs for every active, non-paused obligation.

    Per obligation:
    1. Resolve the next due occurrence on or after as_of
    2. Resolve the amount in force on that date (override > literal entry > escalated base)
    3. Subtract the ledger balance to get amount needed
    4. Spread it over the cycles remaining before the due date

    Obligations without a resolvable occurrence are reported in `stale`.
    A total above the cap is reported as a shortfall, never redistributed.
    Pure: identical inputs always produce an identical forecast.
    """
    amount_overrides = amount_overrides or {}

    rules_by_obligation: Dict[str, List[EscalationRule]] = defaultdict(list)
    for rule in escalations:
        # Folded rules are already part of the stored base amount
        if not rule.is_applied:
            rules_by_obligation[rule.obligation_id].append(rule)

    entries_by_obligation: Dict[str, List[CustomScheduleEntry]] = defaultdict(list)
    for entry in custom_entries:
        entries_by_obligation[entry.obligation_id].append(entry)

    balances = balances_by_obligation(contribution_records)

    results: List[ObligationForecast] = []
    stale: List[StaleObligation] = []

    for obligation in obligations:
        if not obligation.is_active or obligation.is_paused:
            continue

        occurrence, reason = resolve_next_due(
            obligation, entries_by_obligation.get(obligation.id, []), as_of
        )
        if occurrence is None:
            stale.append(
                StaleObligation(
                    obligation_id=obligation.id,
                    obligation_name=obligation.name,
                    reason=reason,
                    last_due_date=obligation.next_due_date,
                )
            )
            continue

        amount = occurrence_amount(
            obligation, occurrence, rules_by_obligation.get(obligation.id, []), amount_overrides
        )
        balance = balances.get(obligation.id, 0)
        amount_needed = max(0, amount - balance)
        cycles_remaining = cycles_until(cycle, as_of, occurrence.due_date)

        results.append(
            ObligationForecast(
                obligation_id=obligation.id,
                obligation_name=obligation.name,
                next_due_date=occurrence.due_date,
                effective_amount_cents=amount,
                current_balance_cents=balance,
                amount_needed_cents=amount_needed,
                cycles_remaining=cycles_remaining,
                recommended_contribution_cents=recommend_contribution(amount_needed, cycles_remaining),
                fund_group_id=obligation.fund_group_id,
                is_hypothetical=obligation.is_hypothetical,
            )
        )

    results.sort(key=lambda r: (r.next_due_date, r.obligation_id))
    stale.sort(key=lambda s: s.obligation_id)

    total_recommended = sum(r.recommended_contribution_cents for r in results)
    cap = max_contribution_per_cycle_cents
    over_cap = cap is not None and total_recommended > cap

    return FundingForecast(
        as_of=as_of,
        cycle=cycle,
        obligations=tuple(results),
        stale=tuple(stale),
        total_recommended_cents=total_recommended,
        total_required_cents=sum(r.effective_amount_cents for r in results),
        total_funded_cents=sum(r.current_balance_cents for r in results),
        max_contribution_per_cycle_cents=cap,
        over_cap=over_cap,
        shortfall_cents=total_recommended - cap if over_cap else 0,
    )


def prioritize_within_cap(funding: FundingForecast, currency_symbol: str = "$") -> RationedPlan:
    """
    Split the per-cycle cap nearest-due-first.

    Not used by forecast(): rationing is a caller decision. Obligations that
    only get part of their recommendation carry a shortfall warning sized over
    their remaining cycles.
    """
    cap = funding.max_contribution_per_cycle_cents
    allocations: List[CappedAllocation] = []
    warnings: List[ShortfallWarning] = []
    remaining_capacity = cap

    for item in funding.obligations:
        requested = item.recommended_contribution_cents

        if cap is None or requested <= remaining_capacity:
            allocated = requested
            if cap is not None:
                remaining_capacity -= requested
            allocations.append(CappedAllocation(item.obligation_id, requested, allocated))
            continue

        allocated = remaining_capacity
        remaining_capacity = 0
        allocations.append(CappedAllocation(item.obligation_id, requested, allocated))

        cycles = max(1, item.cycles_remaining)
        can_fund = min(item.current_balance_cents + allocated * cycles, item.effective_amount_cents)
        shortfall = min((requested - allocated) * cycles, item.amount_needed_cents)
        warnings.append(
            ShortfallWarning(
                obligation_id=item.obligation_id,
                obligation_name=item.obligation_name,
                amount_needed_cents=item.effective_amount_cents,
                amount_can_fund_cents=can_fund,
                shortfall_cents=shortfall,
                due_date=item.next_due_date,
                message=(
                    f"You need {format_cents(item.effective_amount_cents, currency_symbol)} "
                    f"for {item.obligation_name} by {item.next_due_date.isoformat()} "
                    f"but can only save {format_cents(can_fund, currency_symbol)} at current capacity"
                ),
            )
        )

    return RationedPlan(allocations=tuple(allocations), warnings=tuple(warnings))
