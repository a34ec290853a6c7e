"""Pytest fixtures for testing"""

import pytest
from datetime import date
from decimal import Decimal
from typing import Callable, Generator
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from setaside.api.main import create_app
from setaside.infrastructure.database.models import (
    Base,
    ContributionLedgerEntry,
    EscalationRecord,
    IncomeSourceRecord,
    ObligationRecord,
    ScheduleEntryRecord,
    UserFundingSettings,
)
from setaside.infrastructure.database.session import get_db


# Test database
TEST_DATABASE_URL = "sqlite:///./test.db"
engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

USER_ID = "user_test"
AS_OF = date(2025, 1, 1)


@pytest.fixture
def db() -> Generator[Session, None, None]:
    """Create test database and session"""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db: Session) -> TestClient:
    """Create FastAPI test client with test database"""
    app = create_app()

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    return TestClient(app, headers={"X-User-ID": USER_ID})


@pytest.fixture
def make_obligation(db: Session) -> Callable[..., ObligationRecord]:
    """Persist an obligation; defaults to a $1200 one-off due 60 days after AS_OF"""

    def _make(obligation_id: str = "ob-car", **fields) -> ObligationRecord:
        values = dict(
            id=obligation_id,
            user_id=USER_ID,
            name="Car insurance",
            kind="one_off",
            amount_cents=120000,
            frequency=None,
            next_due_date=date(2025, 3, 2),
        )
        values.update(fields)
        row = ObligationRecord(**values)
        db.add(row)
        db.commit()
        return row

    return _make


@pytest.fixture
def make_settings(db: Session) -> Callable[..., UserFundingSettings]:
    def _make(**fields) -> UserFundingSettings:
        values = dict(user_id=USER_ID, contribution_cycle_type="fortnightly", contribution_pay_days=[])
        values.update(fields)
        row = UserFundingSettings(**values)
        db.add(row)
        db.commit()
        return row

    return _make


@pytest.fixture
def make_contribution(db: Session) -> Callable[..., ContributionLedgerEntry]:
    def _make(obligation_id: str, amount_cents: int, on: date = date(2024, 12, 1), **fields) -> ContributionLedgerEntry:
        row = ContributionLedgerEntry(obligation_id=obligation_id, amount_cents=amount_cents, date=on, **fields)
        db.add(row)
        db.commit()
        return row

    return _make


@pytest.fixture
def make_escalation(db: Session) -> Callable[..., EscalationRecord]:
    def _make(obligation_id: str, value: str, effective_date: date, **fields) -> EscalationRecord:
        values = dict(
            obligation_id=obligation_id,
            change_type="percentage",
            value=Decimal(value),
            effective_date=effective_date,
        )
        values.update(fields)
        row = EscalationRecord(**values)
        db.add(row)
        db.commit()
        return row

    return _make


@pytest.fixture
def make_schedule_entry(db: Session) -> Callable[..., ScheduleEntryRecord]:
    def _make(obligation_id: str, due_date: date, amount_cents: int, **fields) -> ScheduleEntryRecord:
        row = ScheduleEntryRecord(obligation_id=obligation_id, due_date=due_date, amount_cents=amount_cents, **fields)
        db.add(row)
        db.commit()
        return row

    return _make


@pytest.fixture
def make_income(db: Session) -> Callable[..., IncomeSourceRecord]:
    def _make(frequency: str = "weekly", **fields) -> IncomeSourceRecord:
        values = dict(
            user_id=USER_ID,
            name="Salary",
            expected_amount_cents=200000,
            frequency=frequency,
        )
        values.update(fields)
        row = IncomeSourceRecord(**values)
        db.add(row)
        db.commit()
        return row

    return _make
