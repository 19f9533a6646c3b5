"""
ClaimTransaction — explicit unit of work for claim status changes.

The workflow engine stages every transition here instead of mutating ORM
objects as it goes. Nothing touches a claim until commit(), which applies
all staged transitions (status + history row) and commits once:

    txn = ClaimTransaction(db)
    txn.stage(claim, ClaimStatus.APPROVED_BY_COORDINATOR, actor_id, "...")
    txn.commit()      # all-or-nothing; re-raises after rollback on failure
"""

import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.orm import Session

from app.models.claim import Claim
from app.services.audit import history

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StagedTransition:
    claim: Claim
    to_status: int
    actor_id: int
    notes: Optional[str] = None


class ClaimTransaction:
    def __init__(self, db: Session):
        self.db = db
        self._staged: list[StagedTransition] = []

    @property
    def staged(self) -> list[StagedTransition]:
        return list(self._staged)

    def stage(
        self,
        claim: Claim,
        to_status: int,
        actor_id: int,
        notes: Optional[str] = None,
    ) -> None:
        self._staged.append(StagedTransition(claim, to_status, actor_id, notes))

    def commit(self) -> int:
        """
        Apply and commit all staged transitions. Returns how many were applied.
        On any failure the session is rolled back and the error re-raised;
        no claim in the batch keeps a partial change.
        """
        staged, self._staged = self._staged, []
        try:
            for t in staged:
                t.claim.current_status_id = t.to_status
                history.record_status_change(
                    self.db, t.claim, t.to_status, t.actor_id, t.notes
                )
            self.db.commit()
        except Exception:
            self.db.rollback()
            logger.exception(
                "Claim transaction rolled back (%d staged transitions)", len(staged)
            )
            raise
        return len(staged)
