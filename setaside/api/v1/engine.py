"""Engine endpoints - recalculation, what-if scenarios, timeline and snapshot history"""

import logging
import time
from datetime import date, datetime, timezone
from typing import Optional, Tuple

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session

from setaside.api.dependencies import get_as_of, get_request_id, get_user_id
from setaside.api.v1.schemas import (
    RecalculateResponse,
    ScenarioCommitRequest,
    ScenarioCommitResponse,
    ScenarioRequest,
    ScenarioResponse,
    SnapshotHistoryResponse,
    TimelineSchema,
    forecast_schema,
    snapshot_schema,
    timeline_schema,
)
from setaside.config import settings
from setaside.domain.allocator import forecast, prioritize_within_cap
from setaside.domain.cycle import resolve_cycle_config
from setaside.domain.exceptions import ConcurrentUpdateError, DomainException
from setaside.domain.ledger import total_fund_balance
from setaside.domain.models import FundingForecast, Obligation, OverlayResult, WhatIfOverrides
from setaside.domain.overlay import apply_overrides, hypotheticals_to_create
from setaside.domain.snapshot import build_snapshot
from setaside.domain.timeline import project_timeline
from setaside.infrastructure.database.models import EngineSnapshotRecord
from setaside.infrastructure.database.session import get_db
from setaside.infrastructure.database.repositories import (
    EscalationRepository,
    FundingInputRepository,
    FundingInputs,
    ObligationRepository,
    SnapshotRepository,
)
from setaside.infrastructure.observability.logging import log_forecast, log_scenario_commit
from setaside.infrastructure.observability.metrics import (
    escalation_fold_counter,
    record_forecast,
    scenario_commit_conflict_counter,
)

router = APIRouter()


def _to_overrides(body: ScenarioRequest, user_id: str) -> WhatIfOverrides:
    return WhatIfOverrides(
        toggled_off_ids=frozenset(body.toggled_off_ids),
        amount_overrides=dict(body.amount_overrides),
        hypotheticals=tuple(
            Obligation(
                id=h.id or "",
                user_id=user_id,
                name=h.name,
                kind=h.kind,
                amount_cents=h.amount_cents,
                frequency=h.frequency,
                frequency_days=h.frequency_days,
                next_due_date=h.next_due_date,
                end_date=h.end_date,
            )
            for h in body.hypotheticals
        ),
    )


def _run_forecast(
    inputs: FundingInputs,
    as_of: date,
    overrides: Optional[WhatIfOverrides] = None,
) -> Tuple[FundingForecast, Optional[OverlayResult]]:
    cycle = resolve_cycle_config(inputs.settings, inputs.income_sources)
    overlay = apply_overrides(inputs.obligations, overrides) if overrides is not None else None

    funding = forecast(
        overlay.obligations if overlay else inputs.obligations,
        inputs.escalations,
        inputs.custom_entries,
        inputs.contribution_records,
        cycle,
        as_of,
        max_contribution_per_cycle_cents=inputs.settings.max_contribution_per_cycle_cents,
        amount_overrides=overlay.amount_overrides if overlay else None,
    )
    return funding, overlay


def _project(
    inputs: FundingInputs,
    funding: FundingForecast,
    as_of: date,
    months: int,
    overlay: Optional[OverlayResult] = None,
):
    """Balance curve assuming the recommendation (capped) is set aside every cycle"""
    per_cycle = funding.total_recommended_cents
    if funding.max_contribution_per_cycle_cents is not None:
        per_cycle = min(per_cycle, funding.max_contribution_per_cycle_cents)

    return project_timeline(
        overlay.obligations if overlay else inputs.obligations,
        inputs.escalations,
        inputs.custom_entries,
        total_fund_balance(inputs.contribution_records, inputs.settings.current_fund_balance_cents),
        per_cycle,
        funding.cycle,
        as_of,
        months_ahead=months,
        amount_overrides=overlay.amount_overrides if overlay else None,
    )


def _rationing(funding: FundingForecast, inputs: FundingInputs):
    return prioritize_within_cap(funding, inputs.settings.currency_symbol) if funding.over_cap else None


def _recalculate(db: Session, user_id: str, as_of: date) -> Tuple[FundingForecast, FundingInputs, EngineSnapshotRecord, list]:
    """Fold due escalations, forecast from fresh inputs and persist a snapshot (caller commits)"""
    folds = EscalationRepository(db).apply_folds(user_id, as_of)
    if folds:
        escalation_fold_counter.inc(sum(len(f.folded_rule_ids) for f in folds))

    inputs = FundingInputRepository(db).load(user_id)
    funding, _ = _run_forecast(inputs, as_of)

    snapshot = build_snapshot(
        funding,
        user_id=user_id,
        calculated_at=datetime.now(timezone.utc),
        currency_symbol=inputs.settings.currency_symbol,
    )
    row = SnapshotRepository(db).create_snapshot(snapshot)
    folded_ids = [rule_id for fold in folds for rule_id in fold.folded_rule_ids]
    return funding, inputs, row, folded_ids


@router.post("/engine/recalculate", response_model=RecalculateResponse)
def recalculate(
    request: Request,
    user_id: str = Depends(get_user_id),
    as_of: date = Depends(get_as_of),
    db: Session = Depends(get_db),
):
    """
    Run the engine for real and record the outcome.

    Flow:
    1. Fold one-time escalations that have come into effect
    2. Load obligations, escalations, schedule entries, ledger and income
    3. Resolve the contribution cycle and run the allocator
    4. Persist an immutable engine snapshot
    """
    start_time = time.time()
    request_id = get_request_id(request)

    try:
        funding, inputs, row, folded_ids = _recalculate(db, user_id, as_of)
        db.commit()

    except DomainException:
        db.rollback()
        raise

    except Exception as e:
        db.rollback()
        logging.error(f"Unexpected error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")

    # Committed: observability below must not turn the result into an error
    duration_ms = (time.time() - start_time) * 1000
    record_forecast("live", funding.over_cap, [s.reason.value for s in funding.stale])
    log_forecast(
        request_id,
        user_id,
        "live",
        len(funding.obligations),
        len(funding.stale),
        funding.total_recommended_cents,
        funding.over_cap,
        duration_ms,
    )

    return RecalculateResponse(
        forecast=forecast_schema(funding, _rationing(funding, inputs)),
        snapshot=snapshot_schema(row),
        folded_escalation_ids=folded_ids,
    )


@router.post("/engine/scenario", response_model=ScenarioResponse)
def preview_scenario(
    body: ScenarioRequest,
    request: Request,
    user_id: str = Depends(get_user_id),
    as_of: date = Depends(get_as_of),
    db: Session = Depends(get_db),
):
    """
    Forecast a what-if scenario without touching stored data.

    Toggled-off obligations are paused in a copy, amount overrides bypass
    escalation and hypotheticals are added for this run only.
    """
    start_time = time.time()
    request_id = get_request_id(request)

    inputs = FundingInputRepository(db).load(user_id)
    funding, overlay = _run_forecast(inputs, as_of, _to_overrides(body, user_id))
    timeline = _project(inputs, funding, as_of, body.months, overlay)

    duration_ms = (time.time() - start_time) * 1000
    record_forecast("scenario", funding.over_cap, [s.reason.value for s in funding.stale])
    log_forecast(
        request_id,
        user_id,
        "scenario",
        len(funding.obligations),
        len(funding.stale),
        funding.total_recommended_cents,
        funding.over_cap,
        duration_ms,
    )

    return ScenarioResponse(
        forecast=forecast_schema(funding, _rationing(funding, inputs)),
        change_summary=overlay.change_summary,
        timeline=timeline_schema(timeline),
    )


@router.post("/engine/scenario/commit", response_model=ScenarioCommitResponse)
def commit_scenario(
    body: ScenarioCommitRequest,
    request: Request,
    user_id: str = Depends(get_user_id),
    as_of: date = Depends(get_as_of),
    db: Session = Depends(get_db),
):
    """
    Apply a what-if scenario for real.

    Each override becomes an ordinary mutation inside one transaction:
    toggled-off obligations are paused, amount overrides update the base
    amount (guarded by expected_amounts when given) and hypotheticals are
    created. Toggles and overrides aimed at a hypothetical are baked into the
    created obligation. The engine then recalculates and persists a snapshot.
    """
    request_id = get_request_id(request)
    overrides = _to_overrides(body, user_id)

    try:
        # Same validation as the preview before anything is written
        inputs = FundingInputRepository(db).load(user_id)
        overlay = apply_overrides(inputs.obligations, overrides)
        new_obligations = hypotheticals_to_create(overlay)
        hypothetical_ids = {o.id for o in new_obligations}

        obligation_repo = ObligationRepository(db)
        paused_ids = []
        for obligation_id in sorted(overrides.toggled_off_ids - hypothetical_ids):
            obligation_repo.pause_obligation(user_id, obligation_id)
            paused_ids.append(obligation_id)

        updated_ids = []
        for obligation_id, amount_cents in sorted(overrides.amount_overrides.items()):
            if obligation_id in hypothetical_ids:
                continue
            obligation_repo.update_amount(
                user_id,
                obligation_id,
                amount_cents,
                expected_amount_cents=body.expected_amounts.get(obligation_id),
            )
            updated_ids.append(obligation_id)

        created_ids = []
        for obligation in new_obligations:
            row = obligation_repo.create_obligation(obligation)
            created_ids.append(row.id)

        funding, inputs, row, _ = _recalculate(db, user_id, as_of)
        db.commit()

    except ConcurrentUpdateError:
        scenario_commit_conflict_counter.inc()
        db.rollback()
        raise

    except DomainException:
        db.rollback()
        raise

    except Exception as e:
        db.rollback()
        logging.error(f"Unexpected error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")

    # Committed: observability below must not turn the result into an error
    record_forecast("live", funding.over_cap, [s.reason.value for s in funding.stale])
    log_scenario_commit(request_id, user_id, len(paused_ids), len(updated_ids), len(created_ids))

    return ScenarioCommitResponse(
        change_summary=overlay.change_summary,
        paused_ids=paused_ids,
        updated_ids=updated_ids,
        created_ids=created_ids,
        forecast=forecast_schema(funding, _rationing(funding, inputs)),
        snapshot=snapshot_schema(row),
    )


@router.get("/engine/timeline", response_model=TimelineSchema)
def get_timeline(
    months: Optional[int] = Query(None, ge=1, le=12, description="Projection window in months"),
    user_id: str = Depends(get_user_id),
    as_of: date = Depends(get_as_of),
    db: Session = Depends(get_db),
):
    """Projected fund balance with expense, contribution and crunch markers"""
    months = months or settings.timeline_default_months

    inputs = FundingInputRepository(db).load(user_id)
    funding, _ = _run_forecast(inputs, as_of)
    return timeline_schema(_project(inputs, funding, as_of, min(months, settings.timeline_max_months)))


@router.get("/engine/snapshots", response_model=SnapshotHistoryResponse)
def get_snapshot_history(
    user_id: str = Depends(get_user_id),
    db: Session = Depends(get_db),
):
    """
    Retrieve recent engine snapshots for a user.

    Returns:
        Snapshots newest first, capped at the configured history limit
    """
    snapshot_repo = SnapshotRepository(db)
    snapshots = snapshot_repo.get_snapshots_by_user(user_id, limit=settings.snapshot_history_limit)

    return SnapshotHistoryResponse(user_id=user_id, snapshots=[snapshot_schema(s) for s in snapshots])
