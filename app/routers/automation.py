"""
Automation routes — scoring, prioritisation, auto-approval.

  GET  /automation/prioritized                 → Submitted claims, best first
  GET  /automation/claims/{id}/score           → fresh score for one claim
  POST /automation/claims/{id}/auto-approve    → approve if the rules allow it
  POST /automation/batch-approve               → approve/flag many claims at once

Scores are recomputed on every request and never stored.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.database import get_db
from app.models.claim import Claim
from app.models.user import User, UserRole
from app.routers.auth import require_role
from app.routers.claims import to_claim_list_item
from app.schemas.automation import (
    AutoApprovalResponse,
    BatchApprovalRequest,
    BatchApprovalResponse,
    ClaimScoreResponse,
    PrioritizedClaimResponse,
)
from app.services.notifications.notifier import get_notifier
from app.services.workflow.engine import ClaimWorkflowEngine

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/automation", tags=["automation"])

_reviewers = require_role(UserRole.COORDINATOR, UserRole.MANAGER, UserRole.HR)

_PERSISTENCE_FAILURE = "Approval failed; no claims were updated."


@router.get("/prioritized", response_model=list[PrioritizedClaimResponse])
def prioritized_claims(
    db: Session = Depends(get_db),
    current_user: User = Depends(_reviewers),
) -> list[PrioritizedClaimResponse]:
    engine = ClaimWorkflowEngine(db)
    return [
        PrioritizedClaimResponse(
            claim=to_claim_list_item(item.claim),
            score=ClaimScoreResponse.model_validate(item.score),
            priority_score=item.priority_score,
        )
        for item in engine.prioritized_claims()
    ]


@router.get("/claims/{claim_id}/score", response_model=ClaimScoreResponse)
def claim_score(
    claim_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(_reviewers),
) -> ClaimScoreResponse:
    claim = db.get(Claim, claim_id)
    if claim is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Claim not found"
        )
    score = ClaimWorkflowEngine(db).score(claim)
    return ClaimScoreResponse.model_validate(score)


@router.post("/claims/{claim_id}/auto-approve", response_model=AutoApprovalResponse)
def auto_approve_claim(
    claim_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(_reviewers),
) -> AutoApprovalResponse:
    """
    Always 200 for a well-formed request: a missing or ineligible claim is
    reported with success=false rather than as an HTTP error.
    """
    engine = ClaimWorkflowEngine(db, notifier=get_notifier())
    try:
        outcome = engine.auto_approve_single(claim_id, current_user.id)
    except SQLAlchemyError:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=_PERSISTENCE_FAILURE,
        )
    return AutoApprovalResponse.model_validate(outcome)


@router.post("/batch-approve", response_model=BatchApprovalResponse)
def batch_approve(
    payload: BatchApprovalRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(_reviewers),
) -> BatchApprovalResponse:
    engine = ClaimWorkflowEngine(db, notifier=get_notifier())
    try:
        result = engine.process_batch(payload.claim_ids, current_user.id)
    except SQLAlchemyError:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=_PERSISTENCE_FAILURE,
        )
    return BatchApprovalResponse.model_validate(result)
