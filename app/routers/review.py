"""
Coordinator and manager review routes.

  GET  /review/queue                   → claims awaiting this reviewer's decision
  POST /review/claims/{id}/status      → approve / reject one claim

Coordinators act on Submitted claims; managers act on coordinator-approved
claims. The workflow engine enforces which transitions are legal and which
role may take them.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from app.database import get_db
from app.models.claim import Claim
from app.models.status import ClaimStatus
from app.models.user import User, UserRole
from app.routers.auth import require_role
from app.routers.claims import to_claim_list_item, to_claim_response
from app.schemas.claim import ClaimListItem, ClaimResponse, StatusUpdateRequest
from app.services.notifications.notifier import get_notifier
from app.services.workflow.engine import ClaimWorkflowEngine
from app.services.workflow.errors import (
    ClaimNotFoundError,
    InvalidTransitionError,
    TransitionNotPermittedError,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/review", tags=["review"])

# Status each reviewer role works from
_QUEUE_STATUS = {
    UserRole.COORDINATOR: ClaimStatus.SUBMITTED,
    UserRole.MANAGER: ClaimStatus.APPROVED_BY_COORDINATOR,
}


@router.get("/queue", response_model=list[ClaimListItem])
def review_queue(
    db: Session = Depends(get_db),
    current_user: User = Depends(
        require_role(UserRole.COORDINATOR, UserRole.MANAGER)
    ),
) -> list[ClaimListItem]:
    claims = (
        db.query(Claim)
        .options(selectinload(Claim.documents), selectinload(Claim.user))
        .filter(Claim.current_status_id == _QUEUE_STATUS[current_user.role])
        .order_by(Claim.submitted_at.asc(), Claim.id.asc())
        .all()
    )
    return [to_claim_list_item(c) for c in claims]


@router.post("/claims/{claim_id}/status", response_model=ClaimResponse)
def update_claim_status(
    claim_id: int,
    payload: StatusUpdateRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(
        require_role(UserRole.COORDINATOR, UserRole.MANAGER)
    ),
) -> ClaimResponse:
    """
    Raises:
        404 if the claim does not exist.
        403 if the transition belongs to another role.
        409 if the transition is not allowed from the claim's current status.
    """
    engine = ClaimWorkflowEngine(db, notifier=get_notifier())
    try:
        claim = engine.update_status(
            claim_id,
            payload.new_status_id,
            current_user.id,
            current_user.role,
            payload.notes,
        )
    except ClaimNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    except InvalidTransitionError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))
    except TransitionNotPermittedError as exc:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc))
    except SQLAlchemyError:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Status update failed; no claims were updated.",
        )

    db.refresh(claim)
    return to_claim_response(claim)
