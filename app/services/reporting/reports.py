"""
HR reporting — summaries and plain-text documents.

render_* functions are pure (data in, UTF-8 bytes out); the query helpers take
a session. Scores on the HR dashboard come from the single claim scorer in
app.services.scoring; there is no separate reporting scorer.
"""

import calendar
import csv
import io
import logging
from dataclasses import dataclass, field
from datetime import date, datetime, time, timezone
from decimal import Decimal
from typing import Sequence

from sqlalchemy.orm import Session, selectinload

from app.models.claim import Claim
from app.models.status import ClaimStatus
from app.models.user import User, UserRole
from app.reference.constants import STATUS_NAMES

logger = logging.getLogger(__name__)

RULE = "=" * 42
DIVIDER = "-" * 42


@dataclass
class MonthlySummary:
    month: str
    total_claims: int = 0
    total_amount: Decimal = Decimal("0.00")
    approved_claims: int = 0
    approved_amount: Decimal = Decimal("0.00")
    paid_claims: int = 0
    paid_amount: Decimal = Decimal("0.00")
    pending_approval_claims: int = 0
    rejected_claims: int = 0


@dataclass
class PaymentBatch:
    created_at: datetime
    claim_count: int
    total_amount: Decimal
    claims: list[Claim] = field(default_factory=list)


@dataclass
class LecturerStats:
    lecturer: User
    hourly_rate: Decimal
    total_claims: int
    successful_claims: int
    rejected_claims: int
    average_claim_amount: Decimal
    total_paid: Decimal


@dataclass
class StatusBreakdown:
    status: str
    claims: int
    amount: Decimal


@dataclass
class LecturerPerformance:
    lecturer: str
    claims: int
    amount: Decimal


@dataclass
class ComprehensiveReport:
    start: date
    end: date
    total_claims: int
    total_amount: Decimal
    average_processing_hours: Decimal
    status_breakdown: list[StatusBreakdown] = field(default_factory=list)
    lecturer_performance: list[LecturerPerformance] = field(default_factory=list)

    @property
    def period(self) -> str:
        return f"{self.start:%Y-%m-%d} to {self.end:%Y-%m-%d}"


def money(amount: Decimal) -> str:
    return f"R{Decimal(amount):.2f}"


def month_bounds(today: date) -> tuple[datetime, datetime]:
    """First and last instant (UTC) of the calendar month containing `today`."""
    start = datetime.combine(today.replace(day=1), time.min, tzinfo=timezone.utc)
    last_day = calendar.monthrange(today.year, today.month)[1]
    end = datetime.combine(
        today.replace(day=last_day), time.max, tzinfo=timezone.utc
    )
    return start, end


def _sum(claims: Sequence[Claim]) -> Decimal:
    return sum((Decimal(c.total_amount) for c in claims), Decimal("0.00"))


def rate_at_submission(claim: Claim) -> Decimal:
    """Hourly rate the claim was priced at; the lecturer's rate may have changed since."""
    if not claim.hours_worked:
        return Decimal("0.00")
    return (Decimal(claim.total_amount) / claim.hours_worked).quantize(Decimal("0.01"))


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _day_range(start: date, end: date) -> tuple[datetime, datetime]:
    return (
        datetime.combine(start, time.min, tzinfo=timezone.utc),
        datetime.combine(end, time.max, tzinfo=timezone.utc),
    )


# ── Queries ───────────────────────────────────────────────────────────────────


def monthly_summary(db: Session, today: date) -> MonthlySummary:
    start, end = month_bounds(today)
    claims = (
        db.query(Claim)
        .filter(Claim.submitted_at >= start, Claim.submitted_at <= end)
        .all()
    )

    def with_status(*statuses: int) -> list[Claim]:
        return [c for c in claims if c.current_status_id in statuses]

    approved = with_status(ClaimStatus.APPROVED_BY_MANAGER)
    paid = with_status(ClaimStatus.PAID)
    return MonthlySummary(
        month=today.strftime("%Y-%m"),
        total_claims=len(claims),
        total_amount=_sum(claims),
        approved_claims=len(approved),
        approved_amount=_sum(approved),
        paid_claims=len(paid),
        paid_amount=_sum(paid),
        pending_approval_claims=len(
            with_status(ClaimStatus.SUBMITTED, ClaimStatus.APPROVED_BY_COORDINATOR)
        ),
        rejected_claims=len(with_status(ClaimStatus.REJECTED)),
    )


def payment_batch(db: Session) -> PaymentBatch:
    """Manager-approved claims waiting for HR payment."""
    claims = (
        db.query(Claim)
        .options(selectinload(Claim.user))
        .filter(Claim.current_status_id == ClaimStatus.APPROVED_BY_MANAGER)
        .order_by(Claim.submitted_at.asc())
        .all()
    )
    return PaymentBatch(
        created_at=datetime.now(timezone.utc),
        claim_count=len(claims),
        total_amount=_sum(claims),
        claims=claims,
    )


def claims_by_ids(db: Session, claim_ids: list[int]) -> list[Claim]:
    return (
        db.query(Claim)
        .options(selectinload(Claim.user))
        .filter(Claim.id.in_(claim_ids))
        .order_by(Claim.id.asc())
        .all()
    )


def paid_claims_between(db: Session, start: date, end: date) -> list[Claim]:
    since, until = _day_range(start, end)
    return (
        db.query(Claim)
        .options(selectinload(Claim.user))
        .filter(
            Claim.current_status_id == ClaimStatus.PAID,
            Claim.submitted_at >= since,
            Claim.submitted_at <= until,
        )
        .order_by(Claim.submitted_at.asc())
        .all()
    )


def lecturer_stats(db: Session) -> list[LecturerStats]:
    lecturers = (
        db.query(User)
        .options(selectinload(User.claims))
        .filter(User.role == UserRole.LECTURER)
        .order_by(User.last_name, User.first_name)
        .all()
    )
    stats = []
    for lecturer in lecturers:
        claims = lecturer.claims
        successful = [
            c
            for c in claims
            if c.current_status_id
            in (ClaimStatus.APPROVED_BY_MANAGER, ClaimStatus.PAID)
        ]
        paid = [c for c in claims if c.current_status_id == ClaimStatus.PAID]
        average = Decimal("0.00")
        if claims:
            average = (_sum(claims) / len(claims)).quantize(Decimal("0.01"))
        stats.append(
            LecturerStats(
                lecturer=lecturer,
                hourly_rate=lecturer.hourly_rate,
                total_claims=len(claims),
                successful_claims=len(successful),
                rejected_claims=sum(
                    1 for c in claims if c.current_status_id == ClaimStatus.REJECTED
                ),
                average_claim_amount=average,
                total_paid=_sum(paid),
            )
        )
    return stats


# Claims that have had their final review decision
_DECIDED = (ClaimStatus.APPROVED_BY_MANAGER, ClaimStatus.REJECTED)


def average_processing_hours(claims: Sequence[Claim]) -> Decimal:
    """
    Mean hours from submission to the latest approve/reject decision, over the
    claims currently ApprovedByManager or Rejected. A decided claim without a
    matching history row counts as zero hours. Returns 0 when none are decided.
    """
    decided = [c for c in claims if c.current_status_id in _DECIDED]
    if not decided:
        return Decimal("0.0")

    total_hours = Decimal("0")
    for claim in decided:
        submitted = _as_utc(claim.submitted_at)
        decisions = [h.changed_at for h in claim.history if h.status_id in _DECIDED]
        completed = max((_as_utc(d) for d in decisions), default=submitted)
        seconds = Decimal(str((completed - submitted).total_seconds()))
        total_hours += seconds / Decimal(3600)

    return (total_hours / len(decided)).quantize(Decimal("0.1"))


def comprehensive_report(db: Session, start: date, end: date) -> ComprehensiveReport:
    """All claims submitted between two dates, broken down by status and lecturer."""
    since, until = _day_range(start, end)
    claims = (
        db.query(Claim)
        .options(selectinload(Claim.user), selectinload(Claim.history))
        .filter(Claim.submitted_at >= since, Claim.submitted_at <= until)
        .order_by(Claim.id.asc())
        .all()
    )

    by_status: dict[int, list[Claim]] = {}
    by_lecturer: dict[int, list[Claim]] = {}
    for claim in claims:
        by_status.setdefault(claim.current_status_id, []).append(claim)
        by_lecturer.setdefault(claim.user_id, []).append(claim)

    performance = [
        LecturerPerformance(group[0].user.full_name, len(group), _sum(group))
        for group in by_lecturer.values()
    ]
    performance.sort(key=lambda p: (-p.amount, p.lecturer))

    report = ComprehensiveReport(
        start=start,
        end=end,
        total_claims=len(claims),
        total_amount=_sum(claims),
        average_processing_hours=average_processing_hours(claims),
        status_breakdown=[
            StatusBreakdown(
                STATUS_NAMES.get(status_id, "Unknown"),
                len(by_status[status_id]),
                _sum(by_status[status_id]),
            )
            for status_id in sorted(by_status)
        ],
        lecturer_performance=performance,
    )
    logger.info(
        "Comprehensive report %s: %d claims, total %s",
        report.period,
        report.total_claims,
        report.total_amount,
    )
    return report


# ── Renderers ─────────────────────────────────────────────────────────────────


def render_invoices(claims: Sequence[Claim], today: date) -> bytes:
    lines = [f"INVOICE BATCH - {today:%Y-%m-%d}", "", RULE, ""]
    for claim in claims:
        lines += [
            f"Claim ID: {claim.id}",
            f"Lecturer: {claim.user.full_name}",
            f"Hours: {claim.hours_worked} @ {money(rate_at_submission(claim))}/hr",
            f"Total: {money(claim.total_amount)}",
            f"Submission Date: {claim.submitted_at:%Y-%m-%d}",
            DIVIDER,
            "",
        ]
    lines += [
        f"TOTAL BATCH AMOUNT: {money(_sum(claims))}",
        f"TOTAL CLAIMS: {len(claims)}",
    ]
    return ("\n".join(lines) + "\n").encode("utf-8")


def render_payment_report(claims: Sequence[Claim], start: date, end: date) -> bytes:
    lines = [f"PAYMENT REPORT: {start:%Y-%m-%d} to {end:%Y-%m-%d}", "", RULE, ""]
    for claim in claims:
        lines.append(
            f"{claim.user.full_name}: {money(claim.total_amount)} "
            f"({claim.hours_worked} hours)"
        )
    lines += [
        "",
        f"TOTAL PAID: {money(_sum(claims))}",
        f"TOTAL CLAIMS: {len(claims)}",
    ]
    return ("\n".join(lines) + "\n").encode("utf-8")


def render_comprehensive_report(report: ComprehensiveReport, generated_at: datetime) -> bytes:
    lines = [
        "COMPREHENSIVE CLAIMS REPORT",
        f"Period: {report.period}",
        f"Generated: {generated_at:%Y-%m-%d %H:%M}",
        "=" * 50,
        "",
        f"TOTAL CLAIMS: {report.total_claims}",
        f"TOTAL AMOUNT: {money(report.total_amount)}",
        f"AVG PROCESSING TIME: {report.average_processing_hours:.1f} hours",
        "",
        "STATUS BREAKDOWN:",
    ]
    for row in report.status_breakdown:
        lines.append(f"- {row.status}: {row.claims} claims ({money(row.amount)})")
    lines += ["", "LECTURER PERFORMANCE:"]
    for row in report.lecturer_performance:
        lines.append(f"- {row.lecturer}: {row.claims} claims ({money(row.amount)})")
    return ("\n".join(lines) + "\n").encode("utf-8")


def render_comprehensive_report_csv(report: ComprehensiveReport) -> bytes:
    output = io.StringIO()
    writer = csv.DictWriter(
        output,
        fieldnames=["section", "name", "claims", "amount", "avg_processing_hours"],
    )
    writer.writeheader()
    writer.writerow(
        {
            "section": "total",
            "name": report.period,
            "claims": report.total_claims,
            "amount": f"{report.total_amount:.2f}",
            "avg_processing_hours": f"{report.average_processing_hours:.1f}",
        }
    )
    for row in report.status_breakdown:
        writer.writerow(
            {
                "section": "status",
                "name": row.status,
                "claims": row.claims,
                "amount": f"{row.amount:.2f}",
            }
        )
    for row in report.lecturer_performance:
        writer.writerow(
            {
                "section": "lecturer",
                "name": row.lecturer,
                "claims": row.claims,
                "amount": f"{row.amount:.2f}",
            }
        )
    return output.getvalue().encode("utf-8")
