"""
Claim submission.

A new claim:
  1. is priced at the lecturer's CURRENT hourly rate x hours worked
     (the amount never changes afterwards, even if the rate does)
  2. starts in Submitted with a matching first history row
  3. carries any valid supporting documents; invalid files are skipped

Claim, documents and history row are committed together; if the commit
fails the stored files are removed again.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from sqlalchemy.orm import Session

from app.models.claim import Claim, SupportingDocument
from app.models.status import ClaimStatus
from app.models.user import User
from app.services.audit import history
from app.services.documents.uploads import (
    UploadedFile,
    discard_documents,
    store_documents,
)
from app.services.storage.base import StorageBackend

logger = logging.getLogger(__name__)

SUBMISSION_NOTE = "Claim submitted by lecturer"


class ClaimSubmissionError(Exception):
    pass


@dataclass
class SubmissionResult:
    claim: Claim
    rejected_files: list[str] = field(default_factory=list)


def calculate_total(hourly_rate: Decimal, hours_worked: int) -> Decimal:
    return (Decimal(hourly_rate) * hours_worked).quantize(Decimal("0.01"))


def submit_claim(
    db: Session,
    storage: StorageBackend,
    lecturer: User,
    hours_worked: int,
    notes: Optional[str] = None,
    uploads: Optional[list[UploadedFile]] = None,
    submitted_at: Optional[datetime] = None,
) -> SubmissionResult:
    if hours_worked is None or hours_worked <= 0:
        raise ClaimSubmissionError("Please enter valid hours worked.")

    claim = Claim(
        user_id=lecturer.id,
        hours_worked=hours_worked,
        total_amount=calculate_total(lecturer.hourly_rate, hours_worked),
        submitted_at=submitted_at or datetime.now(timezone.utc),
        current_status_id=ClaimStatus.SUBMITTED,
        notes=notes or None,
    )
    stored: list[SupportingDocument] = []
    try:
        db.add(claim)
        db.flush()  # assign claim.id for the document folder and history row

        stored, rejected = store_documents(db, storage, claim, uploads or [])
        history.record_status_change(
            db, claim, ClaimStatus.SUBMITTED, lecturer.id, SUBMISSION_NOTE
        )
        db.commit()
    except Exception:
        db.rollback()
        discard_documents(storage, stored)
        logger.exception("Claim submission failed for user %s", lecturer.id)
        raise

    logger.info(
        "Claim %s submitted by user %s: %d hours, total %s",
        claim.id,
        lecturer.id,
        hours_worked,
        claim.total_amount,
    )
    return SubmissionResult(claim=claim, rejected_files=rejected)
