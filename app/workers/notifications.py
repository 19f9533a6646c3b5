"""
RQ job: deliver a claim notification.

Runs in the worker process with its own DB session. The claim's status change
has already been committed by the time this job is enqueued.
"""

import logging

from app.database import SessionLocal
from app.models.claim import Claim
from app.services.notifications.notifier import LoggingNotifier

logger = logging.getLogger(__name__)


def deliver_claim_notification(claim_id: int, action: str) -> dict:
    """
    Returns:
        Summary dict (stored as RQ job result).
    """
    db = SessionLocal()
    try:
        claim = db.get(Claim, claim_id)
        if claim is None:
            logger.error("Notification for missing claim %s dropped", claim_id)
            return {"error": "Claim not found", "claim_id": claim_id}

        LoggingNotifier().notify(claim, action)
        return {"claim_id": claim_id, "action": action, "delivered": True}
    finally:
        db.close()
