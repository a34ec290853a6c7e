"""Contribution ledger read model - balances derived from append-only records"""

from collections import defaultdict
from datetime import date
from typing import Dict, Iterable, Optional

from setaside.domain.models import ContributionRecord, ContributionType


def current_balance(obligation_id: str, records: Iterable[ContributionRecord]) -> int:
    """Sum of every record for the obligation; 0 when there is no history"""
    return sum(r.amount_cents for r in records if r.obligation_id == obligation_id)


def balances_by_obligation(records: Iterable[ContributionRecord]) -> Dict[str, int]:
    """Running balance for every obligation with at least one record"""
    balances: Dict[str, int] = defaultdict(int)
    for record in records:
        balances[record.obligation_id] += record.amount_cents
    return dict(balances)


def total_fund_balance(records: Iterable[ContributionRecord], fallback_cents: int) -> int:
    """
    User-level fund balance.

    Sums the whole ledger; the settings-level fallback is only used when no
    records exist at all. Never used per obligation.
    """
    records = list(records)
    if not records:
        return fallback_cents
    return sum(r.amount_cents for r in records)


def balance_adjustment(
    obligation_id: str,
    records: Iterable[ContributionRecord],
    target_cents: int,
    on: date,
    note: Optional[str] = None,
) -> ContributionRecord:
    """
    Build the manual_adjustment record that moves a balance to target_cents.

    The delta is recorded rather than overwriting state, so the ledger keeps
    a full audit trail and the balance stays a derived quantity.
    """
    delta = target_cents - current_balance(obligation_id, records)
    return ContributionRecord(
        obligation_id=obligation_id,
        amount_cents=delta,
        date=on,
        type=ContributionType.MANUAL_ADJUSTMENT,
        note=note,
    )
