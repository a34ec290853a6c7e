"""GET /v1/settings/cycle - Configured, detected and effective contribution cycle"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from setaside.api.dependencies import get_user_id
from setaside.api.v1.schemas import CycleSettingsResponse, cycle_schema
from setaside.domain.cycle import detect_cycle, explicit_cycle, resolve_cycle_config
from setaside.infrastructure.database.repositories import FundingInputRepository
from setaside.infrastructure.database.session import get_db

router = APIRouter()


@router.get("/settings/cycle", response_model=CycleSettingsResponse)
def get_cycle_settings(
    user_id: str = Depends(get_user_id),
    db: Session = Depends(get_db),
):
    """
    Show where the contribution cycle comes from.

    The explicit setting always wins; auto-detection from income is still
    reported so the user can see what they would get without one.
    """
    inputs = FundingInputRepository(db).load(user_id)
    configured = explicit_cycle(inputs.settings)

    return CycleSettingsResponse(
        configured=cycle_schema(configured) if configured else None,
        auto_detected=cycle_schema(detect_cycle(inputs.income_sources)),
        effective=cycle_schema(resolve_cycle_config(inputs.settings, inputs.income_sources)),
    )
