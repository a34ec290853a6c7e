"""Pydantic schemas for API request/response validation"""

from dataclasses import asdict
from datetime import date, datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from setaside.domain.models import (
    CycleConfig,
    CycleType,
    Frequency,
    FundingForecast,
    ObligationKind,
    RationedPlan,
    StaleReason,
    Timeline,
)


class CycleSchema(BaseModel):
    """Resolved contribution cycle"""

    cycle_type: Optional[CycleType] = None
    pay_days: List[int] = []
    period_days: Optional[int] = None
    source: str = "undetermined"


class ObligationForecastSchema(BaseModel):
    obligation_id: str
    obligation_name: str
    next_due_date: date
    effective_amount_cents: int
    current_balance_cents: int
    amount_needed_cents: int
    cycles_remaining: int
    recommended_contribution_cents: int
    is_fully_funded: bool
    fund_group_id: Optional[str] = None
    is_hypothetical: bool = False


class StaleObligationSchema(BaseModel):
    obligation_id: str
    obligation_name: str
    reason: StaleReason
    last_due_date: Optional[date] = None


class CappedAllocationSchema(BaseModel):
    obligation_id: str
    requested_cents: int
    allocated_cents: int


class ShortfallWarningSchema(BaseModel):
    obligation_id: str
    obligation_name: str
    amount_needed_cents: int
    amount_can_fund_cents: int
    shortfall_cents: int
    due_date: date
    message: str


class ForecastSchema(BaseModel):
    """Allocator output; rationing is only filled in when the cap is exceeded"""

    as_of: date
    cycle: CycleSchema
    obligations: List[ObligationForecastSchema]
    stale: List[StaleObligationSchema]
    total_recommended_cents: int
    total_required_cents: int
    total_funded_cents: int
    max_contribution_per_cycle_cents: Optional[int] = None
    over_cap: bool
    shortfall_cents: int
    is_fully_funded: bool
    capped_allocations: List[CappedAllocationSchema] = []
    shortfall_warnings: List[ShortfallWarningSchema] = []


class SnapshotSchema(BaseModel):
    snapshot_id: str
    calculated_at: datetime
    total_required_cents: int
    total_funded_cents: int
    total_recommended_cents: int
    over_cap: bool
    next_action_amount_cents: int
    next_action_date: date
    next_action_description: str
    next_action_obligation_id: Optional[str] = None


class RecalculateResponse(BaseModel):
    """Response for POST /v1/engine/recalculate"""

    forecast: ForecastSchema
    snapshot: SnapshotSchema
    folded_escalation_ids: List[str] = []


class SnapshotHistoryResponse(BaseModel):
    """Response for GET /v1/engine/snapshots"""

    user_id: str
    snapshots: List[SnapshotSchema]


class TimelinePointSchema(BaseModel):
    date: date
    projected_balance_cents: int


class ExpenseMarkerSchema(BaseModel):
    date: date
    obligation_id: str
    obligation_name: str
    amount_cents: int


class ContributionMarkerSchema(BaseModel):
    date: date
    amount_cents: int


class CrunchPointSchema(BaseModel):
    date: date
    projected_balance_cents: int
    trigger_obligation_id: str
    trigger_obligation_name: str


class TimelineSchema(BaseModel):
    """Response for GET /v1/engine/timeline"""

    start_date: date
    end_date: date
    points: List[TimelinePointSchema]
    expense_markers: List[ExpenseMarkerSchema]
    contribution_markers: List[ContributionMarkerSchema]
    crunch_points: List[CrunchPointSchema]


class HypotheticalObligation(BaseModel):
    """Obligation that only exists inside a what-if scenario"""

    id: Optional[str] = None
    name: str = Field(..., min_length=1)
    kind: ObligationKind = ObligationKind.ONE_OFF
    amount_cents: int = Field(..., ge=0, description="Amount due per occurrence in cents")
    frequency: Optional[Frequency] = None
    frequency_days: Optional[int] = Field(None, gt=0)
    next_due_date: date
    end_date: Optional[date] = None


class ScenarioRequest(BaseModel):
    """Request body for POST /v1/engine/scenario"""

    toggled_off_ids: List[str] = []
    amount_overrides: Dict[str, int] = {}
    hypotheticals: List[HypotheticalObligation] = []
    months: int = Field(6, ge=1, le=12, description="Timeline window in months")


class ScenarioResponse(BaseModel):
    forecast: ForecastSchema
    change_summary: str
    timeline: TimelineSchema


class ScenarioCommitRequest(ScenarioRequest):
    """Request body for POST /v1/engine/scenario/commit"""

    expected_amounts: Dict[str, int] = Field(
        {},
        description="Base amounts the scenario was built against; a mismatch rejects the commit",
    )


class ScenarioCommitResponse(BaseModel):
    change_summary: str
    paused_ids: List[str]
    updated_ids: List[str]
    created_ids: List[str]
    forecast: ForecastSchema
    snapshot: SnapshotSchema


class CycleSettingsResponse(BaseModel):
    """Response for GET /v1/settings/cycle"""

    configured: Optional[CycleSchema] = None
    auto_detected: CycleSchema
    effective: CycleSchema


class FundBalanceRequest(BaseModel):
    """Request body for PUT /v1/fund-balances/{obligation_id}"""

    balance_cents: int = Field(..., ge=0, description="Absolute balance to record in cents")
    note: Optional[str] = None


class FundBalanceResponse(BaseModel):
    obligation_id: str
    balance_cents: int
    adjustment_cents: int
    contribution_id: str


class ContributionRequest(BaseModel):
    """Request body for POST /v1/contributions"""

    obligation_id: str = Field(..., min_length=1)
    amount_cents: int = Field(..., description="Positive sets money aside, negative withdraws")
    contributed_on: Optional[date] = Field(None, description="Defaults to today")
    note: Optional[str] = None


class ContributionResponse(BaseModel):
    contribution_id: str
    obligation_id: str
    amount_cents: int
    contributed_on: date
    balance_cents: int


def cycle_schema(cycle: CycleConfig) -> CycleSchema:
    return CycleSchema(
        cycle_type=cycle.cycle_type,
        pay_days=list(cycle.pay_days),
        period_days=cycle.period_days,
        source=cycle.source,
    )


def forecast_schema(funding: FundingForecast, rationed: Optional[RationedPlan] = None) -> ForecastSchema:
    """Map an allocator result (plus optional cap rationing) onto the response shape"""
    return ForecastSchema(
        as_of=funding.as_of,
        cycle=cycle_schema(funding.cycle),
        obligations=[
            ObligationForecastSchema(**asdict(item), is_fully_funded=item.is_fully_funded)
            for item in funding.obligations
        ],
        stale=[StaleObligationSchema(**asdict(item)) for item in funding.stale],
        total_recommended_cents=funding.total_recommended_cents,
        total_required_cents=funding.total_required_cents,
        total_funded_cents=funding.total_funded_cents,
        max_contribution_per_cycle_cents=funding.max_contribution_per_cycle_cents,
        over_cap=funding.over_cap,
        shortfall_cents=funding.shortfall_cents,
        is_fully_funded=funding.is_fully_funded,
        capped_allocations=[CappedAllocationSchema(**asdict(a)) for a in rationed.allocations] if rationed else [],
        shortfall_warnings=[ShortfallWarningSchema(**asdict(w)) for w in rationed.warnings] if rationed else [],
    )


def snapshot_schema(row) -> SnapshotSchema:
    """Map a persisted EngineSnapshotRecord row"""
    return SnapshotSchema(
        snapshot_id=str(row.id),
        calculated_at=row.calculated_at,
        total_required_cents=row.total_required_cents,
        total_funded_cents=row.total_funded_cents,
        total_recommended_cents=row.total_recommended_cents,
        over_cap=row.over_cap,
        next_action_amount_cents=row.next_action_amount_cents,
        next_action_date=row.next_action_date,
        next_action_description=row.next_action_description,
        next_action_obligation_id=row.next_action_obligation_id,
    )


def timeline_schema(timeline: Timeline) -> TimelineSchema:
    return TimelineSchema(
        start_date=timeline.start_date,
        end_date=timeline.end_date,
        points=[TimelinePointSchema(**asdict(p)) for p in timeline.points],
        expense_markers=[ExpenseMarkerSchema(**asdict(m)) for m in timeline.expense_markers],
        contribution_markers=[ContributionMarkerSchema(**asdict(m)) for m in timeline.contribution_markers],
        crunch_points=[CrunchPointSchema(**asdict(c)) for c in timeline.crunch_points],
    )
