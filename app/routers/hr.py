"""
HR routes — payments, invoices, reports, lecturer management.

  GET  /hr/summary                 → this month's figures, pending payment batch and its scores
  POST /hr/payments                → mark manager-approved claims as Paid
  POST /hr/invoices                → plain-text invoice batch download
  GET  /hr/payment-report          → paid claims between two dates (download)
  GET  /hr/comprehensive-report    → status and lecturer breakdown for a period (text or CSV)
  GET  /hr/lecturers               → per-lecturer claim statistics
  PUT  /hr/lecturers/{id}/rate     → change a lecturer's hourly rate
"""

import logging
from datetime import date, datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.database import get_db
from app.models.user import User, UserRole
from app.routers.auth import require_role
from app.routers.claims import to_claim_list_item
from app.schemas.automation import ClaimScoreResponse
from app.schemas.auth import UserMeResponse
from app.schemas.hr import (
    ClaimIdsRequest,
    HRDashboardResponse,
    LecturerStatsResponse,
    MonthlySummaryResponse,
    PaymentBatchResponse,
    PaymentResponse,
    RateUpdateRequest,
)
from app.services.notifications.notifier import get_notifier
from app.services.reporting import reports
from app.services.scoring.scorer import ClaimScorer
from app.services.workflow.engine import ClaimWorkflowEngine

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/hr", tags=["hr"])

_hr_only = require_role(UserRole.HR)


# ── Dashboard ─────────────────────────────────────────────────────────────────


@router.get("/summary", response_model=HRDashboardResponse)
def hr_summary(
    db: Session = Depends(get_db),
    current_user: User = Depends(_hr_only),
) -> HRDashboardResponse:
    summary = reports.monthly_summary(db, datetime.now(timezone.utc).date())
    batch = reports.payment_batch(db)
    scorer = ClaimScorer(db)
    return HRDashboardResponse(
        monthly_summary=MonthlySummaryResponse.model_validate(summary),
        payment_batch=PaymentBatchResponse(
            created_at=batch.created_at,
            claim_count=batch.claim_count,
            total_amount=batch.total_amount,
            claims=[to_claim_list_item(c) for c in batch.claims],
        ),
        claim_scores=[
            ClaimScoreResponse.model_validate(scorer.score(c)) for c in batch.claims
        ],
    )


# ── Payments & documents ──────────────────────────────────────────────────────


@router.post("/payments", response_model=PaymentResponse)
def process_payments(
    payload: ClaimIdsRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(_hr_only),
) -> PaymentResponse:
    engine = ClaimWorkflowEngine(db, notifier=get_notifier())
    try:
        result = engine.process_payments(payload.claim_ids, current_user.id)
    except SQLAlchemyError:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Payment processing failed; no claims were updated.",
        )
    return PaymentResponse(
        processed=result.processed,
        total_amount=result.total_amount,
        skipped=result.skipped,
        message=(
            f"Processed {result.processed} claims for payment totaling "
            f"{reports.money(result.total_amount)}"
        ),
    )


@router.post("/invoices")
def generate_invoices(
    payload: ClaimIdsRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(_hr_only),
) -> Response:
    claims = reports.claims_by_ids(db, payload.claim_ids)
    if not claims:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="No matching claims"
        )
    today = datetime.now(timezone.utc).date()
    logger.info("User %s generated invoices for %d claims", current_user.id, len(claims))
    return Response(
        content=reports.render_invoices(claims, today),
        media_type="text/plain",
        headers={
            "Content-Disposition": f'attachment; filename="invoices_{today:%Y%m%d}.txt"'
        },
    )


@router.get("/payment-report")
def payment_report(
    start: date = Query(...),
    end: date = Query(...),
    db: Session = Depends(get_db),
    current_user: User = Depends(_hr_only),
) -> Response:
    if end < start:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="end must not be before start",
        )
    claims = reports.paid_claims_between(db, start, end)
    return Response(
        content=reports.render_payment_report(claims, start, end),
        media_type="text/plain",
        headers={
            "Content-Disposition": (
                f'attachment; filename="payment_report_{start:%Y%m%d}_{end:%Y%m%d}.txt"'
            )
        },
    )


@router.get("/comprehensive-report")
def comprehensive_report(
    start: date = Query(...),
    end: date = Query(...),
    format: str = Query("text", pattern="^(text|csv)$"),
    db: Session = Depends(get_db),
    current_user: User = Depends(_hr_only),
) -> Response:
    if end < start:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="end must not be before start",
        )
    report = reports.comprehensive_report(db, start, end)
    now = datetime.now(timezone.utc)
    if format == "csv":
        content = reports.render_comprehensive_report_csv(report)
        media_type, extension = "text/csv", "csv"
    else:
        content = reports.render_comprehensive_report(report, now)
        media_type, extension = "text/plain", "txt"

    logger.info("User %s generated comprehensive report for %s", current_user.id, report.period)
    return Response(
        content=content,
        media_type=media_type,
        headers={
            "Content-Disposition": (
                f'attachment; filename="comprehensive_report_{now:%Y%m%d}.{extension}"'
            )
        },
    )


# ── Lecturers ─────────────────────────────────────────────────────────────────


@router.get("/lecturers", response_model=list[LecturerStatsResponse])
def list_lecturers(
    db: Session = Depends(get_db),
    current_user: User = Depends(_hr_only),
) -> list[LecturerStatsResponse]:
    return [
        LecturerStatsResponse(
            user_id=s.lecturer.id,
            full_name=s.lecturer.full_name,
            email=s.lecturer.email,
            hourly_rate=s.hourly_rate,
            total_claims=s.total_claims,
            successful_claims=s.successful_claims,
            rejected_claims=s.rejected_claims,
            average_claim_amount=s.average_claim_amount,
            total_paid=s.total_paid,
        )
        for s in reports.lecturer_stats(db)
    ]


@router.put("/lecturers/{user_id}/rate", response_model=UserMeResponse)
def update_hourly_rate(
    user_id: int,
    payload: RateUpdateRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(_hr_only),
) -> UserMeResponse:
    """Applies to claims submitted from now on; existing amounts are unchanged."""
    lecturer = db.get(User, user_id)
    if lecturer is None or lecturer.role != UserRole.LECTURER:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Lecturer not found"
        )

    old_rate = lecturer.hourly_rate
    lecturer.hourly_rate = payload.hourly_rate
    db.commit()
    db.refresh(lecturer)
    logger.info(
        "Hourly rate for user %s changed from %s to %s by user %s",
        user_id,
        old_rate,
        lecturer.hourly_rate,
        current_user.id,
    )
    return UserMeResponse.model_validate(lecturer)
