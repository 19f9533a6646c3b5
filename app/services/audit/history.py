"""
Claim status history — the only way to write ClaimStatusHistory rows.

Design rules enforced here:
  - changed_at is always server-set (DB default), never passed by application
  - One row per status transition, including the initial submission
  - All writes go through record_status_change(); no direct
    ClaimStatusHistory instantiation elsewhere
  - Writes are not best-effort: failures propagate and the caller's
    transaction rolls back together with the status change it belongs to
"""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from app.models.claim import Claim, ClaimStatusHistory

logger = logging.getLogger(__name__)

MAX_NOTES_LENGTH = 500


def record_status_change(
    db: Session,
    claim: Claim,
    status_id: int,
    actor_id: int,
    notes: Optional[str] = None,
) -> ClaimStatusHistory:
    """
    Append a history row for a claim's transition to status_id.

    Args:
        db:        SQLAlchemy session (caller manages the transaction)
        claim:     The claim that changed (must already have an id)
        status_id: Status the claim transitioned to
        actor_id:  User.id of whoever caused the change
        notes:     Free text, truncated to the column width
    """
    entry = ClaimStatusHistory(
        claim_id=claim.id,
        status_id=status_id,
        changed_by_user_id=actor_id,
        notes=_clip(notes),
        # changed_at comes from the server_default
    )
    db.add(entry)
    logger.debug(
        "History: claim %s -> status %s by user %s", claim.id, status_id, actor_id
    )
    return entry


def _clip(notes: Optional[str]) -> Optional[str]:
    if notes is None:
        return None
    return notes[:MAX_NOTES_LENGTH]
