"""
Workflow engine tests — batch approval, single auto-approval, manual
transitions, payments, rollback and notification behaviour.

Where a test needs an exact overall score, the engine's score() is replaced
with a lookup of prepared ClaimScore values keyed by claim id.
"""

from decimal import Decimal

import pytest
from sqlalchemy.exc import OperationalError

from app.models.claim import Claim, ClaimStatusHistory
from app.models.status import ClaimStatus
from app.models.user import UserRole
from app.services.notifications.notifier import Notifier
from app.services.scoring.scorer import (
    ClaimScore,
    determine_priority,
    determine_recommendation,
)
from app.services.workflow.engine import ClaimWorkflowEngine
from app.services.workflow.errors import (
    ClaimNotFoundError,
    InvalidTransitionError,
    TransitionNotPermittedError,
)
from app.services.workflow.transaction import ClaimTransaction

EXCELLENT_REASON = "High-confidence claim with excellent score and complete documentation"


class RecordingNotifier(Notifier):
    def __init__(self):
        self.sent = []

    def notify(self, claim, action):
        self.sent.append((claim.id, action, claim.current_status_id))


class BrokenNotifier(Notifier):
    def notify(self, claim, action):
        raise RuntimeError("mail server unavailable")


def _score(claim_id, overall, hours_valid=True, amount_reasonable=True, has_docs=True):
    overall = Decimal(overall)
    return ClaimScore(
        claim_id=claim_id,
        hours_worked=10,
        hours_valid=hours_valid,
        amount_reasonable=amount_reasonable,
        has_supporting_docs=has_docs,
        previous_claim_history=0,
        submission_pattern=5,
        document_quality=5 if has_docs else 1,
        overall_score=overall,
        priority=determine_priority(overall),
        recommendation=determine_recommendation(overall),
    )


def _use_scores(monkeypatch, workflow, scores):
    monkeypatch.setattr(workflow, "score", lambda claim: scores[claim.id])


def _history(db, claim):
    return (
        db.query(ClaimStatusHistory)
        .filter(ClaimStatusHistory.claim_id == claim.id)
        .order_by(ClaimStatusHistory.id)
        .all()
    )


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def workflow(db, notifier):
    return ClaimWorkflowEngine(db, notifier=notifier)


# ── Batch approval ────────────────────────────────────────────────────────────


class TestBatchApproval:
    def test_three_claim_scenario(self, db, workflow, notifier, monkeypatch, lecturer, coordinator, make_claim):
        excellent = make_claim(lecturer, amount="2500.00")
        weak = make_claim(lecturer, amount="1000.00")
        middling = make_claim(lecturer, amount="1750.00")
        _use_scores(
            monkeypatch,
            workflow,
            {
                excellent.id: _score(excellent.id, 95),
                weak.id: _score(weak.id, 35, has_docs=False),
                middling.id: _score(middling.id, 65),
            },
        )

        result = workflow.process_batch(
            [excellent.id, weak.id, middling.id], coordinator.id
        )

        assert result.total_processed == 3
        assert result.approved == 2
        assert result.requires_manual_review == 1
        assert result.rejected == 0
        assert result.total_amount == Decimal("5250.00")

        assert result.processing_log == [
            f"Auto-approved claim {excellent.id}: {EXCELLENT_REASON}",
            f"Manual review needed for claim {weak.id}: "
            "Low confidence score - requires manual review, "
            "No supporting documents provided",
            f"Approved claim {middling.id} in batch processing",
        ]

        db.expire_all()
        assert db.get(Claim, excellent.id).current_status_id == ClaimStatus.APPROVED_BY_COORDINATOR
        assert db.get(Claim, weak.id).current_status_id == ClaimStatus.SUBMITTED
        assert db.get(Claim, middling.id).current_status_id == ClaimStatus.APPROVED_BY_COORDINATOR

        [entry] = _history(db, excellent)
        assert entry.notes == f"Auto-approved: {EXCELLENT_REASON}"
        assert entry.changed_by_user_id == coordinator.id
        assert _history(db, middling)[0].notes == "Approved in batch processing"
        assert _history(db, weak) == []

        assert [(cid, action) for cid, action, _ in notifier.sent] == [
            (excellent.id, "approved in batch"),
            (middling.id, "approved in batch"),
        ]

    def test_claims_past_submission_are_left_alone(self, db, workflow, notifier, monkeypatch, lecturer, coordinator, make_claim):
        paid = make_claim(lecturer, status=ClaimStatus.PAID, files=["timesheet_march.pdf"])
        rejected = make_claim(lecturer, status=ClaimStatus.REJECTED, files=["hours.xlsx"])
        fresh = make_claim(lecturer)
        _use_scores(
            monkeypatch,
            workflow,
            {
                paid.id: _score(paid.id, 95),
                rejected.id: _score(rejected.id, 95),
                fresh.id: _score(fresh.id, 95),
            },
        )

        result = workflow.process_batch([paid.id, rejected.id, fresh.id], coordinator.id)

        assert result.total_processed == 3
        assert result.approved == 1
        assert result.requires_manual_review == 2
        assert result.processing_log[:2] == [
            f"Manual review needed for claim {paid.id}: Claim is no longer awaiting approval",
            f"Manual review needed for claim {rejected.id}: Claim is no longer awaiting approval",
        ]

        db.expire_all()
        assert db.get(Claim, paid.id).current_status_id == ClaimStatus.PAID
        assert db.get(Claim, rejected.id).current_status_id == ClaimStatus.REJECTED
        assert db.get(Claim, fresh.id).current_status_id == ClaimStatus.APPROVED_BY_COORDINATOR
        assert _history(db, paid) == []
        assert _history(db, rejected) == []
        assert [cid for cid, _, _ in notifier.sent] == [fresh.id]

    def test_unknown_ids_are_skipped(self, workflow, lecturer, coordinator, make_claim):
        claim = make_claim(lecturer, files=["timesheet_march.pdf"])

        result = workflow.process_batch([claim.id, 9999], coordinator.id)

        assert result.total_processed == 1
        assert result.total_amount == claim.total_amount

    def test_empty_batch(self, workflow, coordinator):
        result = workflow.process_batch([], coordinator.id)
        assert result.total_processed == 0
        assert result.processing_log == []

    def test_commit_failure_rolls_back_every_claim(self, db, workflow, notifier, monkeypatch, lecturer, coordinator, make_claim):
        claims = [make_claim(lecturer, files=["timesheet_march.pdf"]) for _ in range(3)]

        def failing_commit():
            raise OperationalError("COMMIT", {}, Exception("disk I/O error"))

        monkeypatch.setattr(db, "commit", failing_commit)
        with pytest.raises(OperationalError):
            workflow.process_batch([c.id for c in claims], coordinator.id)
        monkeypatch.undo()

        db.expire_all()
        for claim in claims:
            assert db.get(Claim, claim.id).current_status_id == ClaimStatus.SUBMITTED
        assert db.query(ClaimStatusHistory).count() == 0
        assert notifier.sent == []


# ── Single auto-approval ──────────────────────────────────────────────────────


class TestAutoApproveSingle:
    def test_missing_claim(self, workflow, coordinator):
        outcome = workflow.auto_approve_single(4242, coordinator.id)
        assert outcome.success is False
        assert outcome.message == "Claim not found"

    def test_ineligible_claim_is_untouched(self, db, workflow, notifier, monkeypatch, lecturer, coordinator, make_claim):
        claim = make_claim(lecturer)
        _use_scores(monkeypatch, workflow, {claim.id: _score(claim.id, 65)})

        outcome = workflow.auto_approve_single(claim.id, coordinator.id)

        assert outcome.success is False
        assert outcome.message == "Claim not eligible for auto-approval"
        db.expire_all()
        assert db.get(Claim, claim.id).current_status_id == ClaimStatus.SUBMITTED
        assert notifier.sent == []

    def test_eligible_claim_from_real_history(self, db, workflow, notifier, lecturer, coordinator, make_claim):
        # Five paid, evenly spaced, same-sized claims and a well-documented new one
        for month in range(1, 6):
            make_claim(lecturer, days_ago=30 * month + 1, status=ClaimStatus.PAID)
        claim = make_claim(
            lecturer,
            files=["timesheet_march.pdf", "hours.xlsx", "register.png", "slides.jpg"],
        )
        assert workflow.score(claim).overall_score == Decimal(100)

        outcome = workflow.auto_approve_single(claim.id, coordinator.id)

        assert outcome.success is True
        assert outcome.message == "Claim auto-approved"
        assert outcome.reason == EXCELLENT_REASON
        db.expire_all()
        assert db.get(Claim, claim.id).current_status_id == ClaimStatus.APPROVED_BY_COORDINATOR
        [entry] = _history(db, claim)
        assert entry.notes == f"Auto-approved: {EXCELLENT_REASON}"
        assert notifier.sent == [
            (claim.id, "auto-approved", ClaimStatus.APPROVED_BY_COORDINATOR)
        ]

    def test_paid_claim_is_not_reapproved(self, db, workflow, notifier, lecturer, coordinator, make_claim):
        # Would score 100 if it were still Submitted
        for month in range(1, 6):
            make_claim(lecturer, days_ago=30 * month + 1, status=ClaimStatus.PAID)
        claim = make_claim(
            lecturer,
            status=ClaimStatus.PAID,
            files=["timesheet_march.pdf", "hours.xlsx", "register.png", "slides.jpg"],
        )

        outcome = workflow.auto_approve_single(claim.id, coordinator.id)

        assert outcome.success is False
        assert outcome.message == "Claim not eligible for auto-approval"
        assert outcome.warnings == ["Claim is no longer awaiting approval"]
        db.expire_all()
        assert db.get(Claim, claim.id).current_status_id == ClaimStatus.PAID
        assert _history(db, claim) == []
        assert notifier.sent == []

    def test_notification_failure_does_not_undo_approval(self, db, monkeypatch, lecturer, coordinator, make_claim):
        workflow = ClaimWorkflowEngine(db, notifier=BrokenNotifier())
        claim = make_claim(lecturer)
        _use_scores(monkeypatch, workflow, {claim.id: _score(claim.id, 95)})

        outcome = workflow.auto_approve_single(claim.id, coordinator.id)

        assert outcome.success is True
        db.expire_all()
        assert db.get(Claim, claim.id).current_status_id == ClaimStatus.APPROVED_BY_COORDINATOR


# ── Manual transitions ────────────────────────────────────────────────────────


class TestUpdateStatus:
    def test_coordinator_approval(self, db, workflow, notifier, lecturer, coordinator, make_claim):
        claim = make_claim(lecturer)

        workflow.update_status(
            claim.id,
            ClaimStatus.APPROVED_BY_COORDINATOR,
            coordinator.id,
            UserRole.COORDINATOR,
            "Hours verified",
        )

        db.expire_all()
        assert db.get(Claim, claim.id).current_status_id == ClaimStatus.APPROVED_BY_COORDINATOR
        assert _history(db, claim)[0].notes == "Hours verified"
        assert notifier.sent[0][1] == "approved by coordinator"

    def test_full_lifecycle(self, workflow, lecturer, coordinator, manager, hr_user, make_claim):
        claim = make_claim(lecturer)
        workflow.update_status(
            claim.id, ClaimStatus.APPROVED_BY_COORDINATOR, coordinator.id, UserRole.COORDINATOR
        )
        workflow.update_status(
            claim.id, ClaimStatus.APPROVED_BY_MANAGER, manager.id, UserRole.MANAGER
        )
        result = workflow.process_payments([claim.id], hr_user.id)

        assert result.processed == 1
        assert [h.status_id for h in _history(workflow.db, claim)] == [2, 3, 5]

    @pytest.mark.parametrize(
        "start,target",
        [
            (ClaimStatus.SUBMITTED, ClaimStatus.APPROVED_BY_MANAGER),
            (ClaimStatus.SUBMITTED, ClaimStatus.PAID),
            (ClaimStatus.APPROVED_BY_COORDINATOR, ClaimStatus.SUBMITTED),
            (ClaimStatus.REJECTED, ClaimStatus.APPROVED_BY_COORDINATOR),
            (ClaimStatus.PAID, ClaimStatus.REJECTED),
        ],
    )
    def test_illegal_transitions(self, workflow, lecturer, coordinator, make_claim, start, target):
        claim = make_claim(lecturer, status=start)
        with pytest.raises(InvalidTransitionError):
            workflow.update_status(claim.id, target, coordinator.id, UserRole.COORDINATOR)

    @pytest.mark.parametrize(
        "role,start,target",
        [
            # Coordinators cannot take the manager's decision
            (
                UserRole.COORDINATOR,
                ClaimStatus.APPROVED_BY_COORDINATOR,
                ClaimStatus.APPROVED_BY_MANAGER,
            ),
            (UserRole.COORDINATOR, ClaimStatus.APPROVED_BY_COORDINATOR, ClaimStatus.REJECTED),
            # Managers cannot skip the coordinator
            (UserRole.MANAGER, ClaimStatus.SUBMITTED, ClaimStatus.APPROVED_BY_COORDINATOR),
            (UserRole.MANAGER, ClaimStatus.SUBMITTED, ClaimStatus.REJECTED),
            # Payment is HR's, through process_payments
            (UserRole.COORDINATOR, ClaimStatus.APPROVED_BY_MANAGER, ClaimStatus.PAID),
            (UserRole.MANAGER, ClaimStatus.APPROVED_BY_MANAGER, ClaimStatus.PAID),
            (UserRole.HR, ClaimStatus.APPROVED_BY_MANAGER, ClaimStatus.PAID),
            (UserRole.LECTURER, ClaimStatus.SUBMITTED, ClaimStatus.APPROVED_BY_COORDINATOR),
        ],
    )
    def test_transition_belongs_to_another_role(self, db, workflow, notifier, lecturer, coordinator, make_claim, role, start, target):
        claim = make_claim(lecturer, status=start)

        with pytest.raises(TransitionNotPermittedError):
            workflow.update_status(claim.id, target, coordinator.id, role)

        db.expire_all()
        assert db.get(Claim, claim.id).current_status_id == start
        assert _history(db, claim) == []
        assert notifier.sent == []

    def test_manager_approval(self, db, workflow, lecturer, manager, make_claim):
        claim = make_claim(lecturer, status=ClaimStatus.APPROVED_BY_COORDINATOR)

        workflow.update_status(
            claim.id, ClaimStatus.APPROVED_BY_MANAGER, manager.id, UserRole.MANAGER
        )

        db.expire_all()
        assert db.get(Claim, claim.id).current_status_id == ClaimStatus.APPROVED_BY_MANAGER

    def test_missing_claim(self, workflow, coordinator):
        with pytest.raises(ClaimNotFoundError):
            workflow.update_status(
                9999, ClaimStatus.REJECTED, coordinator.id, UserRole.COORDINATOR
            )


# ── Payments ──────────────────────────────────────────────────────────────────


class TestPayments:
    def test_only_manager_approved_claims_are_paid(self, db, workflow, lecturer, hr_user, make_claim):
        ready = make_claim(lecturer, status=ClaimStatus.APPROVED_BY_MANAGER)
        not_ready = make_claim(lecturer, status=ClaimStatus.APPROVED_BY_COORDINATOR)

        result = workflow.process_payments([ready.id, not_ready.id, 9999], hr_user.id)

        assert result.processed == 1
        assert result.total_amount == ready.total_amount
        assert result.skipped == [not_ready.id, 9999]
        db.expire_all()
        assert db.get(Claim, ready.id).current_status_id == ClaimStatus.PAID
        assert _history(db, ready)[0].notes == "Processed for payment by HR"


# ── Prioritisation ────────────────────────────────────────────────────────────


class TestPrioritizedClaims:
    def test_only_submitted_claims_best_first(self, workflow, lecturer, make_claim):
        bare = make_claim(lecturer, days_ago=2)
        documented = make_claim(lecturer, days_ago=60, files=["timesheet_march.pdf"])
        make_claim(lecturer, status=ClaimStatus.PAID, days_ago=90)

        ranked = workflow.prioritized_claims()

        assert [c.claim.id for c in ranked] == [documented.id, bare.id]
        assert ranked[0].priority_score >= ranked[1].priority_score


# ── ClaimTransaction ──────────────────────────────────────────────────────────


class TestClaimTransaction:
    def test_nothing_changes_until_commit(self, db, lecturer, coordinator, make_claim):
        claim = make_claim(lecturer)
        txn = ClaimTransaction(db)
        txn.stage(claim, ClaimStatus.REJECTED, coordinator.id, "Duplicate")

        assert claim.current_status_id == ClaimStatus.SUBMITTED
        assert txn.commit() == 1
        assert claim.current_status_id == ClaimStatus.REJECTED
        assert txn.staged == []

    def test_history_notes_are_clipped(self, db, lecturer, coordinator, make_claim):
        claim = make_claim(lecturer)
        txn = ClaimTransaction(db)
        txn.stage(claim, ClaimStatus.REJECTED, coordinator.id, "x" * 800)
        txn.commit()
        assert len(_history(db, claim)[0].notes) == 500
