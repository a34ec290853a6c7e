"""
What-if overlay - hypothetical changes applied on top of loaded obligations.

Key principle: the overlay never touches persisted state. It takes a base
obligation list plus an immutable WhatIfOverrides value and returns a new
list for the allocator. Committing a scenario is done elsewhere by issuing
ordinary mutations and re-running the engine.
"""

from dataclasses import replace
from datetime import date
from typing import FrozenSet, List, Optional, Sequence, Tuple

from setaside.domain.allocator import forecast
from setaside.domain.exceptions import InvalidOverrideError
from setaside.domain.models import (
    ContributionRecord,
    CustomScheduleEntry,
    CycleConfig,
    EscalationRule,
    FundingForecast,
    Obligation,
    OverlayResult,
    WhatIfOverrides,
)

HYPOTHETICAL_ID_PREFIX = "hypothetical-"


def _count_phrase(count: int, noun: str, verb: str) -> str:
    return f"{count} {noun}{'' if count == 1 else 's'} {verb}"


def change_summary(overrides: WhatIfOverrides) -> str:
    """
    One-line description of a scenario, e.g.
    "2 expenses toggled off, 1 amount changed, 1 hypothetical added".

    Empty string when nothing is overridden.
    """
    parts = []
    if overrides.toggled_off_ids:
        parts.append(_count_phrase(len(overrides.toggled_off_ids), "expense", "toggled off"))
    if overrides.amount_overrides:
        parts.append(_count_phrase(len(overrides.amount_overrides), "amount", "changed"))
    if overrides.hypotheticals:
        parts.append(_count_phrase(len(overrides.hypotheticals), "hypothetical", "added"))
    return ", ".join(parts)


def _with_synthetic_ids(
    hypotheticals: Sequence[Obligation],
    taken_ids: set,
    toggled_off_ids: FrozenSet[str],
) -> List[Obligation]:
    prepared = []
    for index, hypothetical in enumerate(hypotheticals, start=1):
        obligation_id = hypothetical.id or f"{HYPOTHETICAL_ID_PREFIX}{index}"
        if obligation_id in taken_ids:
            raise InvalidOverrideError(f"Hypothetical id {obligation_id!r} collides with an existing obligation")
        taken_ids.add(obligation_id)
        prepared.append(
            replace(
                hypothetical,
                id=obligation_id,
                is_hypothetical=True,
                is_active=True,
                is_paused=obligation_id in toggled_off_ids,
            )
        )
    return prepared


def apply_overrides(base_obligations: Sequence[Obligation], overrides: WhatIfOverrides) -> OverlayResult:
    """
    Apply what-if overrides to a snapshot of obligations.

    - toggled_off_ids: matching obligations are paused in the returned copy
    - amount_overrides: passed through for the allocator, bypassing escalation
    - hypotheticals: appended with is_hypothetical set (synthetic id when blank)

    Toggles and amount overrides may target a hypothetical by its resolved id.

    The input sequence and its obligations are left untouched.

    Raises:
        InvalidOverrideError: negative override amount or colliding hypothetical id
    """
    for obligation_id, amount in overrides.amount_overrides.items():
        if amount < 0:
            raise InvalidOverrideError(f"Amount override for {obligation_id!r} must not be negative")

    obligations: List[Obligation] = [
        replace(o, is_paused=True) if o.id in overrides.toggled_off_ids else o
        for o in base_obligations
    ]
    obligations.extend(
        _with_synthetic_ids(overrides.hypotheticals, {o.id for o in base_obligations}, overrides.toggled_off_ids)
    )

    return OverlayResult(
        obligations=tuple(obligations),
        amount_overrides=overrides.amount_overrides,
        change_summary=change_summary(overrides),
    )


def simulate(
    base_obligations: Sequence[Obligation],
    overrides: WhatIfOverrides,
    escalations: Sequence[EscalationRule],
    custom_entries: Sequence[CustomScheduleEntry],
    contribution_records: Sequence[ContributionRecord],
    cycle: CycleConfig,
    as_of: date,
    max_contribution_per_cycle_cents: Optional[int] = None,
) -> Tuple[FundingForecast, OverlayResult]:
    """Run the allocator over an overlaid snapshot; returns the forecast and the overlay used"""
    overlay = apply_overrides(base_obligations, overrides)
    return (
        forecast(
            overlay.obligations,
            escalations,
            custom_entries,
            contribution_records,
            cycle,
            as_of,
            max_contribution_per_cycle_cents=max_contribution_per_cycle_cents,
            amount_overrides=overlay.amount_overrides,
        ),
        overlay,
    )


def hypotheticals_to_create(overlay: OverlayResult) -> List[Obligation]:
    """
    Hypotheticals as they should be stored when a scenario is committed.

    An amount override or toggle aimed at a hypothetical is baked into the new
    obligation instead of becoming a separate mutation.
    """
    return [
        replace(o, amount_cents=overlay.amount_overrides.get(o.id, o.amount_cents), is_hypothetical=False)
        for o in overlay.obligations
        if o.is_hypothetical
    ]
