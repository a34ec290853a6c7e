"""Data access layer for funding entities"""

from dataclasses import dataclass
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import List, Optional, Tuple

from sqlalchemy.orm import Session

from setaside.config import settings as app_settings
from setaside.domain.escalation import plan_escalation_folds
from setaside.domain.exceptions import ConcurrentUpdateError, ObligationNotFoundError
from setaside.domain.ledger import balance_adjustment
from setaside.domain.models import (
    ChangeType,
    ContributionRecord,
    ContributionType,
    CustomScheduleEntry,
    CycleType,
    EngineSnapshot,
    EscalationFold,
    EscalationRule,
    Frequency,
    FundingSettings,
    IncomeSource,
    Obligation,
    ObligationKind,
)
from setaside.infrastructure.database.models import (
    ContributionLedgerEntry,
    EngineSnapshotRecord,
    EscalationRecord,
    IncomeSourceRecord,
    ObligationRecord,
    ScheduleEntryRecord,
    UserFundingSettings,
)


@dataclass(frozen=True)
class FundingInputs:
    """Everything the engine reads for one user, already mapped to domain types"""

    obligations: Tuple[Obligation, ...]
    escalations: Tuple[EscalationRule, ...]
    custom_entries: Tuple[CustomScheduleEntry, ...]
    contribution_records: Tuple[ContributionRecord, ...]
    income_sources: Tuple[IncomeSource, ...]
    settings: FundingSettings


def to_obligation(row: ObligationRecord) -> Obligation:
    return Obligation(
        id=row.id,
        user_id=row.user_id,
        name=row.name,
        kind=ObligationKind(row.kind),
        amount_cents=row.amount_cents,
        frequency=Frequency(row.frequency) if row.frequency else None,
        next_due_date=row.next_due_date,
        start_date=row.start_date,
        frequency_days=row.frequency_days,
        end_date=row.end_date,
        is_paused=row.is_paused,
        is_active=row.is_active,
        fund_group_id=row.fund_group_id,
    )


def to_escalation(row: EscalationRecord) -> EscalationRule:
    return EscalationRule(
        id=row.id,
        obligation_id=row.obligation_id,
        change_type=ChangeType(row.change_type),
        value=Decimal(str(row.value)),
        effective_date=row.effective_date,
        interval_months=row.interval_months,
        is_applied=row.is_applied,
        applied_at=row.applied_at,
    )


def to_contribution(row: ContributionLedgerEntry) -> ContributionRecord:
    return ContributionRecord(
        id=row.id,
        obligation_id=row.obligation_id,
        amount_cents=row.amount_cents,
        date=row.date,
        type=ContributionType(row.type),
        note=row.note,
    )


def to_settings(row: Optional[UserFundingSettings]) -> FundingSettings:
    if row is None:
        return FundingSettings(currency_symbol=app_settings.default_currency_symbol)
    return FundingSettings(
        current_fund_balance_cents=row.current_fund_balance_cents or 0,
        max_contribution_per_cycle_cents=row.max_contribution_per_cycle_cents,
        contribution_cycle_days=row.contribution_cycle_days,
        contribution_cycle_type=CycleType(row.contribution_cycle_type) if row.contribution_cycle_type else None,
        contribution_pay_days=tuple(row.contribution_pay_days or ()),
        currency_symbol=row.currency_symbol or app_settings.default_currency_symbol,
    )


class ObligationRepository:
    """Repository for obligations"""

    def __init__(self, db: Session):
        self.db = db

    def get_obligation(self, user_id: str, obligation_id: str) -> ObligationRecord:
        """Fetch one of the user's obligations or raise ObligationNotFoundError"""
        row = (
            self.db.query(ObligationRecord)
            .filter(ObligationRecord.id == obligation_id, ObligationRecord.user_id == user_id)
            .first()
        )
        if row is None:
            raise ObligationNotFoundError(f"Obligation {obligation_id} not found")
        return row

    def create_obligation(self, obligation: Obligation) -> ObligationRecord:
        """Persist a new obligation; the id is generated by the database layer"""
        row = ObligationRecord(
            user_id=obligation.user_id,
            name=obligation.name,
            kind=obligation.kind.value,
            amount_cents=obligation.amount_cents,
            frequency=obligation.frequency.value if obligation.frequency else None,
            frequency_days=obligation.frequency_days,
            start_date=obligation.start_date,
            next_due_date=obligation.next_due_date,
            end_date=obligation.end_date,
            is_paused=obligation.is_paused,
            fund_group_id=obligation.fund_group_id,
        )
        self.db.add(row)
        self.db.flush()  # Get ID without committing
        return row

    def pause_obligation(self, user_id: str, obligation_id: str) -> ObligationRecord:
        row = self.get_obligation(user_id, obligation_id)
        row.is_paused = True
        self.db.flush()
        return row

    def update_amount(
        self,
        user_id: str,
        obligation_id: str,
        new_amount_cents: int,
        expected_amount_cents: Optional[int] = None,
    ) -> None:
        """
        Set a new base amount.

        With expected_amount_cents the update only applies if the stored amount
        still matches, so a stale what-if commit cannot overwrite a newer edit.
        """
        self.get_obligation(user_id, obligation_id)

        query = self.db.query(ObligationRecord).filter(
            ObligationRecord.id == obligation_id,
            ObligationRecord.user_id == user_id,
        )
        if expected_amount_cents is not None:
            query = query.filter(ObligationRecord.amount_cents == expected_amount_cents)

        updated = query.update({ObligationRecord.amount_cents: new_amount_cents}, synchronize_session="fetch")
        if updated == 0:
            raise ConcurrentUpdateError(
                f"Obligation {obligation_id} changed since the scenario was built"
            )


class EscalationRepository:
    """Repository for escalation rules"""

    def __init__(self, db: Session):
        self.db = db

    def apply_folds(self, user_id: str, as_of: date) -> List[EscalationFold]:
        """
        Fold due one-time escalations into stored base amounts.

        Runs inside the caller's transaction: each fold updates the obligation
        amount and marks its rules applied, so a replay finds nothing to do.
        """
        obligations = (
            self.db.query(ObligationRecord)
            .filter(ObligationRecord.user_id == user_id, ObligationRecord.is_active.is_(True))
            .all()
        )
        applied_at = datetime.now(timezone.utc)
        folds = []

        for row in obligations:
            rules = [to_escalation(r) for r in row.escalations]
            fold = plan_escalation_folds(to_obligation(row), rules, as_of)
            if fold is None:
                continue

            row.amount_cents = fold.new_amount_cents
            for rule_row in row.escalations:
                if rule_row.id in fold.folded_rule_ids:
                    rule_row.is_applied = True
                    rule_row.applied_at = applied_at
            folds.append(fold)

        self.db.flush()
        return folds


class ContributionRepository:
    """Repository for the append-only contribution ledger"""

    def __init__(self, db: Session):
        self.db = db

    def get_records(self, obligation_id: str) -> List[ContributionRecord]:
        rows = (
            self.db.query(ContributionLedgerEntry)
            .filter(ContributionLedgerEntry.obligation_id == obligation_id)
            .all()
        )
        return [to_contribution(r) for r in rows]

    def append(self, record: ContributionRecord) -> ContributionLedgerEntry:
        row = ContributionLedgerEntry(
            obligation_id=record.obligation_id,
            amount_cents=record.amount_cents,
            date=record.date,
            type=record.type.value,
            note=record.note,
        )
        self.db.add(row)
        self.db.flush()
        return row

    def set_balance(
        self,
        obligation_id: str,
        target_cents: int,
        on: date,
        note: Optional[str] = None,
    ) -> ContributionLedgerEntry:
        """Record the manual adjustment that brings the balance to target_cents"""
        adjustment = balance_adjustment(obligation_id, self.get_records(obligation_id), target_cents, on, note)
        return self.append(adjustment)


class SettingsRepository:
    """Repository for per-user funding settings"""

    def __init__(self, db: Session):
        self.db = db

    def get_settings(self, user_id: str) -> FundingSettings:
        row = self.db.query(UserFundingSettings).filter(UserFundingSettings.user_id == user_id).first()
        return to_settings(row)


class FundingInputRepository:
    """Loads a user's engine inputs in one place"""

    def __init__(self, db: Session):
        self.db = db

    def load(self, user_id: str) -> FundingInputs:
        obligation_rows = (
            self.db.query(ObligationRecord)
            .filter(ObligationRecord.user_id == user_id, ObligationRecord.is_active.is_(True))
            .order_by(ObligationRecord.created_at, ObligationRecord.id)
            .all()
        )
        obligation_ids = [row.id for row in obligation_rows]

        escalations: List[EscalationRecord] = []
        entries: List[ScheduleEntryRecord] = []
        if obligation_ids:
            escalations = (
                self.db.query(EscalationRecord)
                .filter(EscalationRecord.obligation_id.in_(obligation_ids))
                .all()
            )
            entries = (
                self.db.query(ScheduleEntryRecord)
                .filter(ScheduleEntryRecord.obligation_id.in_(obligation_ids))
                .all()
            )

        # Whole user ledger, soft-deleted obligations included
        contributions = (
            self.db.query(ContributionLedgerEntry)
            .join(ObligationRecord, ContributionLedgerEntry.obligation_id == ObligationRecord.id)
            .filter(ObligationRecord.user_id == user_id)
            .all()
        )

        income_rows = self.db.query(IncomeSourceRecord).filter(IncomeSourceRecord.user_id == user_id).all()

        return FundingInputs(
            obligations=tuple(to_obligation(r) for r in obligation_rows),
            escalations=tuple(to_escalation(r) for r in escalations),
            custom_entries=tuple(
                CustomScheduleEntry(
                    id=r.id,
                    obligation_id=r.obligation_id,
                    due_date=r.due_date,
                    amount_cents=r.amount_cents,
                    is_paid=r.is_paid,
                )
                for r in entries
            ),
            contribution_records=tuple(to_contribution(r) for r in contributions),
            income_sources=tuple(
                IncomeSource(
                    id=r.id,
                    user_id=r.user_id,
                    name=r.name,
                    expected_amount_cents=r.expected_amount_cents,
                    frequency=Frequency(r.frequency),
                    frequency_days=r.frequency_days,
                    is_irregular=r.is_irregular,
                    minimum_expected_cents=r.minimum_expected_cents,
                    next_expected_date=r.next_expected_date,
                    is_active=r.is_active,
                    is_paused=r.is_paused,
                )
                for r in income_rows
            ),
            settings=SettingsRepository(self.db).get_settings(user_id),
        )


class SnapshotRepository:
    """Repository for immutable engine snapshots"""

    def __init__(self, db: Session):
        self.db = db

    def create_snapshot(self, snapshot: EngineSnapshot) -> EngineSnapshotRecord:
        """Persist snapshot; rows are insert-only"""
        row = EngineSnapshotRecord(
            user_id=snapshot.user_id,
            calculated_at=snapshot.calculated_at,
            total_required_cents=snapshot.total_required_cents,
            total_funded_cents=snapshot.total_funded_cents,
            total_recommended_cents=snapshot.total_recommended_cents,
            over_cap=snapshot.over_cap,
            next_action_amount_cents=snapshot.next_action_amount_cents,
            next_action_date=snapshot.next_action_date,
            next_action_description=snapshot.next_action_description,
            next_action_obligation_id=snapshot.next_action_obligation_id,
        )
        self.db.add(row)
        self.db.flush()
        return row

    def get_snapshots_by_user(self, user_id: str, limit: int = 20) -> List[EngineSnapshotRecord]:
        """Fetch recent snapshots for a user, newest first"""
        return (
            self.db.query(EngineSnapshotRecord)
            .filter(EngineSnapshotRecord.user_id == user_id)
            .order_by(EngineSnapshotRecord.calculated_at.desc(), EngineSnapshotRecord.id.desc())
            .limit(limit)
            .all()
        )
