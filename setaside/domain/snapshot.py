"""Engine snapshot generation - the persisted summary of one allocator run"""

from datetime import datetime

from setaside.domain.cycle import cycle_period_label
from setaside.domain.models import EngineSnapshot, FundingForecast
from setaside.utils.money_utils import format_cents

EMPTY_STATE_MESSAGE = "Add your first obligation to get started"
FULLY_FUNDED_MESSAGE = "You're fully covered!"


def build_snapshot(
    funding: FundingForecast,
    user_id: str,
    calculated_at: datetime,
    currency_symbol: str = "$",
) -> EngineSnapshot:
    """
    Summarise a forecast as an immutable snapshot with a single next action.

    - No obligations: prompt to add one
    - Everything funded: celebration, dated at the nearest due date
    - Otherwise: the most urgent under-funded obligation (nearest due date)
    """
    common = dict(
        user_id=user_id,
        calculated_at=calculated_at,
        total_required_cents=funding.total_required_cents,
        total_funded_cents=funding.total_funded_cents,
        total_recommended_cents=funding.total_recommended_cents,
        over_cap=funding.over_cap,
    )

    if not funding.obligations:
        return EngineSnapshot(
            **common,
            next_action_amount_cents=0,
            next_action_date=funding.as_of,
            next_action_description=EMPTY_STATE_MESSAGE,
        )

    if funding.is_fully_funded:
        return EngineSnapshot(
            **common,
            next_action_amount_cents=0,
            next_action_date=funding.obligations[0].next_due_date,
            next_action_description=FULLY_FUNDED_MESSAGE,
        )

    next_action = next(o for o in funding.obligations if not o.is_fully_funded)
    amount = format_cents(next_action.recommended_contribution_cents, currency_symbol)

    if funding.cycle.is_determined:
        description = f"Set aside {amount} {cycle_period_label(funding.cycle)} for {next_action.obligation_name}"
    else:
        description = (
            f"Set aside {amount} for {next_action.obligation_name} "
            f"by {next_action.next_due_date.isoformat()}"
        )

    return EngineSnapshot(
        **common,
        next_action_amount_cents=next_action.recommended_contribution_cents,
        next_action_date=next_action.next_due_date,
        next_action_description=description,
        next_action_obligation_id=next_action.obligation_id,
    )
