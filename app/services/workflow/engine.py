"""
Claim Workflow Engine.

Owns every claim status transition:
  - evaluate()            — fresh score + auto-approval rules for one claim
  - auto_approve_single() — approve one claim if the rules allow it
  - process_batch()       — approve/flag many claims, committed together
  - update_status()       — manual coordinator/manager decision
  - process_payments()    — HR marks manager-approved claims as paid

Every transition goes through a ClaimTransaction, so the status change and its
history row are committed as one unit. Notifications are sent only after a
successful commit and never affect the outcome.
"""

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Optional

from sqlalchemy.orm import Session, selectinload

from app.models.claim import Claim
from app.models.status import ClaimStatus
from app.models.user import UserRole
from app.services.notifications.notifier import (
    LoggingNotifier,
    Notifier,
    send_notification,
)
from app.services.scoring.scorer import ClaimScore, ClaimScorer, priority_score
from app.services.workflow.errors import (
    ClaimNotFoundError,
    InvalidTransitionError,
    TransitionNotPermittedError,
)
from app.services.workflow.rules import (
    NOT_AWAITING_APPROVAL_WARNING,
    AutoApprovalResult,
    evaluate_auto_approval,
)
from app.services.workflow.transaction import ClaimTransaction

logger = logging.getLogger(__name__)

BATCH_APPROVAL_NOTE = "Approved in batch processing"
PAYMENT_NOTE = "Processed for payment by HR"

# Claim lifecycle: from status -> statuses it may move to next
ALLOWED_TRANSITIONS: dict[int, set[int]] = {
    ClaimStatus.SUBMITTED: {ClaimStatus.APPROVED_BY_COORDINATOR, ClaimStatus.REJECTED},
    ClaimStatus.APPROVED_BY_COORDINATOR: {
        ClaimStatus.APPROVED_BY_MANAGER,
        ClaimStatus.REJECTED,
    },
    ClaimStatus.APPROVED_BY_MANAGER: {ClaimStatus.PAID},
}

# Reviewer decisions each role may take. Payment (ApprovedByManager -> Paid)
# belongs to HR and only happens through process_payments().
ROLE_TRANSITIONS: dict[str, dict[int, set[int]]] = {
    UserRole.COORDINATOR: {
        ClaimStatus.SUBMITTED: {ClaimStatus.APPROVED_BY_COORDINATOR, ClaimStatus.REJECTED},
    },
    UserRole.MANAGER: {
        ClaimStatus.APPROVED_BY_COORDINATOR: {
            ClaimStatus.APPROVED_BY_MANAGER,
            ClaimStatus.REJECTED,
        },
    },
}

_ACTION_NAMES: dict[int, str] = {
    ClaimStatus.APPROVED_BY_COORDINATOR: "approved by coordinator",
    ClaimStatus.APPROVED_BY_MANAGER: "approved by manager",
    ClaimStatus.REJECTED: "rejected",
    ClaimStatus.PAID: "paid",
}


# ── Result types ──────────────────────────────────────────────────────────────


@dataclass
class ClaimWithScore:
    claim: Claim
    score: ClaimScore
    priority_score: int


@dataclass
class BatchApprovalResult:
    total_processed: int = 0
    approved: int = 0
    rejected: int = 0  # batch approval never rejects; kept for the report shape
    requires_manual_review: int = 0
    total_amount: Decimal = Decimal("0.00")
    processing_log: list[str] = field(default_factory=list)


@dataclass
class SingleApprovalOutcome:
    success: bool
    claim_id: int
    message: str
    reason: str = ""
    warnings: list[str] = field(default_factory=list)


@dataclass
class PaymentResult:
    processed: int = 0
    total_amount: Decimal = Decimal("0.00")
    skipped: list[int] = field(default_factory=list)


# ── Engine ────────────────────────────────────────────────────────────────────


class ClaimWorkflowEngine:
    """
    Usage:
        engine = ClaimWorkflowEngine(db, notifier=get_notifier())
        result = engine.process_batch([1, 2, 3], acting_user_id=coordinator.id)
    """

    def __init__(self, db: Session, notifier: Optional[Notifier] = None):
        self.db = db
        self.notifier = notifier or LoggingNotifier()
        self.scorer = ClaimScorer(db)

    # ── Scoring ───────────────────────────────────────────────────────────────

    def score(self, claim: Claim) -> ClaimScore:
        return self.scorer.score(claim)

    def evaluate(self, claim: Claim) -> AutoApprovalResult:
        """Compute a fresh score for the claim and apply the auto-approval rules."""
        return evaluate_auto_approval(self.score(claim))

    def prioritized_claims(self) -> list[ClaimWithScore]:
        """
        Submitted claims with their scores, highest priority score first,
        then highest overall score.
        """
        pending = (
            self.db.query(Claim)
            .options(selectinload(Claim.documents), selectinload(Claim.user))
            .filter(Claim.current_status_id == ClaimStatus.SUBMITTED)
            .order_by(Claim.id.asc())
            .all()
        )

        scored = []
        for claim in pending:
            score = self.score(claim)
            scored.append(ClaimWithScore(claim, score, priority_score(score)))

        return sorted(
            scored,
            key=lambda c: (c.priority_score, c.score.overall_score),
            reverse=True,
        )

    # ── Automated approval ────────────────────────────────────────────────────

    def auto_approve_single(
        self, claim_id: int, acting_user_id: int
    ) -> SingleApprovalOutcome:
        """
        Approve a single claim if the auto-approval rules allow it.
        Ineligible or missing claims are reported, not raised, and left untouched.
        """
        claim = self.db.get(Claim, claim_id)
        if claim is None:
            logger.info("Auto-approval requested for missing claim %s", claim_id)
            return SingleApprovalOutcome(
                success=False, claim_id=claim_id, message="Claim not found"
            )

        if claim.current_status_id != ClaimStatus.SUBMITTED:
            logger.info(
                "Claim %s is in status %s; auto-approval skipped",
                claim_id,
                claim.current_status_id,
            )
            return SingleApprovalOutcome(
                success=False,
                claim_id=claim_id,
                message="Claim not eligible for auto-approval",
                warnings=[NOT_AWAITING_APPROVAL_WARNING],
            )

        result = self.evaluate(claim)
        if not result.auto_approved:
            logger.info(
                "Claim %s not eligible for auto-approval: %s", claim_id, result.warnings
            )
            return SingleApprovalOutcome(
                success=False,
                claim_id=claim_id,
                message="Claim not eligible for auto-approval",
                warnings=result.warnings,
            )

        txn = ClaimTransaction(self.db)
        txn.stage(
            claim,
            ClaimStatus.APPROVED_BY_COORDINATOR,
            acting_user_id,
            f"Auto-approved: {result.reason}",
        )
        txn.commit()
        logger.info("Claim %s auto-approved by user %s", claim_id, acting_user_id)

        send_notification(self.notifier, claim, "auto-approved")
        return SingleApprovalOutcome(
            success=True,
            claim_id=claim_id,
            message="Claim auto-approved",
            reason=result.reason,
            warnings=result.warnings,
        )

    def process_batch(
        self, claim_ids: list[int], acting_user_id: int
    ) -> BatchApprovalResult:
        """
        Batch approval. For each claim that exists:
          0. not Submitted             → left untouched, reported for review
          1. auto-approvable           → ApprovedByCoordinator
          2. has validation warnings   → left for manual review
          3. otherwise (clean claim)   → ApprovedByCoordinator (standard approval)
        All transitions are committed together; if the commit fails nothing is
        persisted and the error propagates. Unknown IDs are skipped.
        """
        result = BatchApprovalResult()
        if not claim_ids:
            return result

        claims = (
            self.db.query(Claim)
            .options(selectinload(Claim.documents), selectinload(Claim.user))
            .filter(Claim.id.in_(claim_ids))
            .order_by(Claim.id.asc())
            .all()
        )

        txn = ClaimTransaction(self.db)
        for claim in claims:
            result.total_amount += claim.total_amount

            if claim.current_status_id != ClaimStatus.SUBMITTED:
                result.requires_manual_review += 1
                result.processing_log.append(
                    f"Manual review needed for claim {claim.id}: "
                    f"{NOT_AWAITING_APPROVAL_WARNING}"
                )
                continue

            automation = self.evaluate(claim)

            if automation.auto_approved:
                txn.stage(
                    claim,
                    ClaimStatus.APPROVED_BY_COORDINATOR,
                    acting_user_id,
                    f"Auto-approved: {automation.reason}",
                )
                result.approved += 1
                result.processing_log.append(
                    f"Auto-approved claim {claim.id}: {automation.reason}"
                )
            elif automation.warnings:
                result.requires_manual_review += 1
                result.processing_log.append(
                    f"Manual review needed for claim {claim.id}: "
                    f"{', '.join(automation.warnings)}"
                )
            else:
                txn.stage(
                    claim,
                    ClaimStatus.APPROVED_BY_COORDINATOR,
                    acting_user_id,
                    BATCH_APPROVAL_NOTE,
                )
                result.approved += 1
                result.processing_log.append(
                    f"Approved claim {claim.id} in batch processing"
                )

        approved_claims = [t.claim for t in txn.staged]
        txn.commit()
        result.total_processed = len(claims)

        logger.info(
            "Batch approval by user %s: processed=%d approved=%d manual_review=%d "
            "skipped=%d total=%s",
            acting_user_id,
            result.total_processed,
            result.approved,
            result.requires_manual_review,
            len(set(claim_ids)) - len(claims),
            result.total_amount,
        )

        for claim in approved_claims:
            send_notification(self.notifier, claim, "approved in batch")

        return result

    # ── Manual transitions ────────────────────────────────────────────────────

    def update_status(
        self,
        claim_id: int,
        new_status: int,
        acting_user_id: int,
        acting_role: str,
        notes: Optional[str] = None,
    ) -> Claim:
        """
        Reviewer decision on a single claim.

        Raises:
            ClaimNotFoundError if the claim does not exist.
            InvalidTransitionError if the lifecycle has no such step.
            TransitionNotPermittedError if the step is not this role's to take.
        """
        claim = self.db.get(Claim, claim_id)
        if claim is None:
            raise ClaimNotFoundError(claim_id)

        current = claim.current_status_id
        if new_status not in ALLOWED_TRANSITIONS.get(current, set()):
            raise InvalidTransitionError(claim_id, current, new_status)

        permitted = ROLE_TRANSITIONS.get(acting_role, {}).get(current, set())
        if new_status not in permitted:
            raise TransitionNotPermittedError(claim_id, acting_role, current, new_status)

        txn = ClaimTransaction(self.db)
        txn.stage(claim, new_status, acting_user_id, notes)
        txn.commit()
        logger.info(
            "Claim %s moved to status %s by user %s", claim_id, new_status, acting_user_id
        )

        send_notification(self.notifier, claim, _ACTION_NAMES.get(new_status, "updated"))
        return claim

    def process_payments(
        self, claim_ids: list[int], acting_user_id: int
    ) -> PaymentResult:
        """
        Mark manager-approved claims as paid, all in one commit.
        Claims in any other status (or missing) are skipped and reported.
        """
        result = PaymentResult()
        if not claim_ids:
            return result

        claims = (
            self.db.query(Claim)
            .filter(Claim.id.in_(claim_ids))
            .order_by(Claim.id.asc())
            .all()
        )
        found = {c.id for c in claims}
        result.skipped = sorted(set(claim_ids) - found)

        txn = ClaimTransaction(self.db)
        for claim in claims:
            if claim.current_status_id != ClaimStatus.APPROVED_BY_MANAGER:
                result.skipped.append(claim.id)
                continue
            txn.stage(claim, ClaimStatus.PAID, acting_user_id, PAYMENT_NOTE)
            result.processed += 1
            result.total_amount += claim.total_amount

        paid_claims = [t.claim for t in txn.staged]
        txn.commit()
        result.skipped.sort()

        logger.info(
            "Payments processed by user %s: %d claims, total %s",
            acting_user_id,
            result.processed,
            result.total_amount,
        )
        for claim in paid_claims:
            send_notification(self.notifier, claim, "paid")

        return result
