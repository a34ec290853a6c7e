"""Ledger endpoints - absolute balance corrections and contributions"""

import logging
from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from setaside.api.dependencies import get_request_id, get_user_id
from setaside.api.v1.schemas import (
    ContributionRequest,
    ContributionResponse,
    FundBalanceRequest,
    FundBalanceResponse,
)
from setaside.domain.exceptions import DomainException
from setaside.domain.ledger import current_balance
from setaside.domain.models import ContributionRecord
from setaside.infrastructure.database.repositories import ContributionRepository, ObligationRepository
from setaside.infrastructure.database.session import get_db

router = APIRouter()


@router.put("/fund-balances/{obligation_id}", response_model=FundBalanceResponse)
def set_fund_balance(
    obligation_id: str,
    body: FundBalanceRequest,
    request: Request,
    user_id: str = Depends(get_user_id),
    db: Session = Depends(get_db),
):
    """
    Set an obligation's balance to an absolute amount.

    Nothing is overwritten: a manual_adjustment equal to the difference is
    appended to the ledger.
    """
    request_id = get_request_id(request)

    try:
        ObligationRepository(db).get_obligation(user_id, obligation_id)
        row = ContributionRepository(db).set_balance(
            obligation_id, body.balance_cents, date.today(), note=body.note
        )
        db.commit()

        return FundBalanceResponse(
            obligation_id=obligation_id,
            balance_cents=body.balance_cents,
            adjustment_cents=row.amount_cents,
            contribution_id=str(row.id),
        )

    except DomainException:
        db.rollback()
        raise

    except Exception as e:
        db.rollback()
        logging.error(f"Unexpected error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")


@router.post("/contributions", response_model=ContributionResponse, status_code=201)
def add_contribution(
    body: ContributionRequest,
    request: Request,
    user_id: str = Depends(get_user_id),
    db: Session = Depends(get_db),
):
    """Append a contribution (or withdrawal, when negative) to the ledger"""
    request_id = get_request_id(request)

    try:
        ObligationRepository(db).get_obligation(user_id, body.obligation_id)
        contribution_repo = ContributionRepository(db)
        row = contribution_repo.append(
            ContributionRecord(
                obligation_id=body.obligation_id,
                amount_cents=body.amount_cents,
                date=body.contributed_on or date.today(),
                note=body.note,
            )
        )
        balance = current_balance(body.obligation_id, contribution_repo.get_records(body.obligation_id))
        db.commit()

        return ContributionResponse(
            contribution_id=str(row.id),
            obligation_id=body.obligation_id,
            amount_cents=body.amount_cents,
            contributed_on=row.date,
            balance_cents=balance,
        )

    except DomainException:
        db.rollback()
        raise

    except Exception as e:
        db.rollback()
        logging.error(f"Unexpected error: {e}", extra={"request_id": request_id})
        raise HTTPException(status_code=500, detail="Internal server error")
