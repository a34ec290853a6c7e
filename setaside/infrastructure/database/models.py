"""SQLAlchemy ORM models for funding records and engine snapshots"""

import uuid

from sqlalchemy import JSON, BigInteger, Boolean, Column, Date, DateTime, ForeignKey, Integer, Numeric, Text
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func

Base = declarative_base()


def new_id() -> str:
    return str(uuid.uuid4())


class UserFundingSettings(Base):
    """Per-user funding preferences"""

    __tablename__ = "user_funding_settings"

    user_id = Column(Text, primary_key=True)
    current_fund_balance_cents = Column(BigInteger, nullable=False, default=0)
    max_contribution_per_cycle_cents = Column(BigInteger, nullable=True)
    contribution_cycle_days = Column(Integer, nullable=True)
    contribution_cycle_type = Column(Text, nullable=True)
    contribution_pay_days = Column(JSON, nullable=False, default=list)
    currency_symbol = Column(Text, nullable=True)


class ObligationRecord(Base):
    """Tracked expense; soft-deleted via is_active so funding history stays attributable"""

    __tablename__ = "obligation"

    id = Column(Text, primary_key=True, default=new_id)
    user_id = Column(Text, nullable=False, index=True)
    name = Column(Text, nullable=False)
    kind = Column(Text, nullable=False)
    amount_cents = Column(BigInteger, nullable=False)
    frequency = Column(Text, nullable=True)
    frequency_days = Column(Integer, nullable=True)
    start_date = Column(Date, nullable=True)
    next_due_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=True)
    is_paused = Column(Boolean, nullable=False, default=False)
    is_active = Column(Boolean, nullable=False, default=True)
    fund_group_id = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    escalations = relationship("EscalationRecord", back_populates="obligation", cascade="all, delete-orphan")
    schedule_entries = relationship("ScheduleEntryRecord", back_populates="obligation", cascade="all, delete-orphan")
    contributions = relationship("ContributionLedgerEntry", back_populates="obligation")


class EscalationRecord(Base):
    """Scheduled amount change for an obligation"""

    __tablename__ = "escalation"

    id = Column(Text, primary_key=True, default=new_id)
    obligation_id = Column(Text, ForeignKey("obligation.id", ondelete="CASCADE"), nullable=False, index=True)
    change_type = Column(Text, nullable=False)
    value = Column(Numeric(14, 4), nullable=False)
    effective_date = Column(Date, nullable=False)
    interval_months = Column(Integer, nullable=True)
    is_applied = Column(Boolean, nullable=False, default=False)
    applied_at = Column(DateTime(timezone=True), nullable=True)

    obligation = relationship("ObligationRecord", back_populates="escalations")


class ScheduleEntryRecord(Base):
    """Literal due date and amount for irregular / custom obligations"""

    __tablename__ = "custom_schedule_entry"

    id = Column(Text, primary_key=True, default=new_id)
    obligation_id = Column(Text, ForeignKey("obligation.id", ondelete="CASCADE"), nullable=False, index=True)
    due_date = Column(Date, nullable=False)
    amount_cents = Column(BigInteger, nullable=False)
    is_paid = Column(Boolean, nullable=False, default=False)

    obligation = relationship("ObligationRecord", back_populates="schedule_entries")


class ContributionLedgerEntry(Base):
    """Append-only contribution ledger line"""

    __tablename__ = "contribution_record"

    id = Column(Text, primary_key=True, default=new_id)
    obligation_id = Column(Text, ForeignKey("obligation.id"), nullable=False, index=True)
    amount_cents = Column(BigInteger, nullable=False)
    date = Column(Date, nullable=False)
    type = Column(Text, nullable=False, default="contribution")
    note = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    obligation = relationship("ObligationRecord", back_populates="contributions")


class IncomeSourceRecord(Base):
    """Expected income stream"""

    __tablename__ = "income_source"

    id = Column(Text, primary_key=True, default=new_id)
    user_id = Column(Text, nullable=False, index=True)
    name = Column(Text, nullable=False)
    expected_amount_cents = Column(BigInteger, nullable=False)
    frequency = Column(Text, nullable=False)
    frequency_days = Column(Integer, nullable=True)
    is_irregular = Column(Boolean, nullable=False, default=False)
    minimum_expected_cents = Column(BigInteger, nullable=True)
    next_expected_date = Column(Date, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    is_paused = Column(Boolean, nullable=False, default=False)


class EngineSnapshotRecord(Base):
    """Immutable output of one engine run; never updated after insert"""

    __tablename__ = "engine_snapshot"

    id = Column(Text, primary_key=True, default=new_id)
    user_id = Column(Text, nullable=False, index=True)
    calculated_at = Column(DateTime(timezone=True), nullable=False)
    total_required_cents = Column(BigInteger, nullable=False)
    total_funded_cents = Column(BigInteger, nullable=False)
    total_recommended_cents = Column(BigInteger, nullable=False)
    over_cap = Column(Boolean, nullable=False)
    next_action_amount_cents = Column(BigInteger, nullable=False)
    next_action_date = Column(Date, nullable=False)
    next_action_description = Column(Text, nullable=False)
    next_action_obligation_id = Column(Text, nullable=True)
