"""
HR reporting tests — summaries, lecturer statistics, the period report and
rendered documents.
"""

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

from app.models.claim import Claim, ClaimStatusHistory
from app.models.status import ClaimStatus
from app.services.reporting import reports


class TestMonthBounds:
    def test_february_leap_year(self):
        start, end = reports.month_bounds(date(2028, 2, 10))
        assert start == datetime(2028, 2, 1, tzinfo=timezone.utc)
        assert end.date() == date(2028, 2, 29)

    def test_money_format(self):
        assert reports.money(Decimal("1500")) == "R1500.00"


class TestMonthlySummary:
    def test_counts_by_status(self, db, lecturer, make_claim):
        # conftest NOW is 2026-06-15; 30 days earlier falls in May
        make_claim(lecturer, hours=10, status=ClaimStatus.SUBMITTED)
        make_claim(lecturer, hours=4, status=ClaimStatus.APPROVED_BY_COORDINATOR)
        make_claim(lecturer, hours=8, status=ClaimStatus.APPROVED_BY_MANAGER)
        make_claim(lecturer, hours=6, status=ClaimStatus.PAID)
        make_claim(lecturer, hours=2, status=ClaimStatus.REJECTED)
        make_claim(lecturer, hours=20, status=ClaimStatus.PAID, days_ago=30)

        summary = reports.monthly_summary(db, date(2026, 6, 20))

        assert summary.month == "2026-06"
        assert summary.total_claims == 5
        assert summary.total_amount == Decimal("7500.00")
        assert summary.approved_claims == 1
        assert summary.approved_amount == Decimal("2000.00")
        assert summary.paid_claims == 1
        assert summary.paid_amount == Decimal("1500.00")
        assert summary.pending_approval_claims == 2
        assert summary.rejected_claims == 1


class TestPaymentBatch:
    def test_only_manager_approved(self, db, lecturer, make_claim):
        ready = make_claim(lecturer, status=ClaimStatus.APPROVED_BY_MANAGER)
        make_claim(lecturer, status=ClaimStatus.APPROVED_BY_COORDINATOR)

        batch = reports.payment_batch(db)

        assert batch.claim_count == 1
        assert batch.total_amount == ready.total_amount
        assert [c.id for c in batch.claims] == [ready.id]


class TestLecturerStats:
    def test_per_lecturer_figures(self, db, lecturer, other_lecturer, make_claim):
        make_claim(lecturer, hours=10, status=ClaimStatus.PAID)
        make_claim(lecturer, hours=20, status=ClaimStatus.APPROVED_BY_MANAGER)
        make_claim(lecturer, hours=3, status=ClaimStatus.REJECTED)

        stats = {s.lecturer.id: s for s in reports.lecturer_stats(db)}

        mine = stats[lecturer.id]
        assert mine.total_claims == 3
        assert mine.successful_claims == 2
        assert mine.rejected_claims == 1
        assert mine.total_paid == Decimal("2500.00")
        assert mine.average_claim_amount == Decimal("2750.00")

        theirs = stats[other_lecturer.id]
        assert theirs.total_claims == 0
        assert theirs.average_claim_amount == Decimal("0.00")


class TestRenderers:
    def test_invoice_batch(self, db, lecturer, make_claim):
        claim = make_claim(lecturer, hours=12, status=ClaimStatus.APPROVED_BY_MANAGER)
        text = reports.render_invoices([claim], date(2026, 6, 30)).decode("utf-8")

        assert text.startswith("INVOICE BATCH - 2026-06-30")
        assert f"Claim ID: {claim.id}" in text
        assert "Lecturer: Thandi Mokoena" in text
        assert "Hours: 12 @ R250.00/hr" in text
        assert "Total: R3000.00" in text
        assert "TOTAL BATCH AMOUNT: R3000.00" in text
        assert "TOTAL CLAIMS: 1" in text

    def test_invoice_uses_rate_at_submission(self, db, lecturer, make_claim):
        claim = make_claim(lecturer, hours=10, status=ClaimStatus.APPROVED_BY_MANAGER)
        lecturer.hourly_rate = Decimal("400.00")
        db.commit()

        text = reports.render_invoices([claim], date(2026, 6, 30)).decode("utf-8")

        assert "Hours: 10 @ R250.00/hr" in text
        assert "Total: R2500.00" in text

    def test_payment_report_filters_by_date_and_status(self, db, lecturer, make_claim):
        paid = make_claim(lecturer, hours=10, status=ClaimStatus.PAID)
        make_claim(lecturer, hours=5, status=ClaimStatus.PAID, days_ago=60)
        make_claim(lecturer, hours=7, status=ClaimStatus.APPROVED_BY_MANAGER)

        claims = reports.paid_claims_between(db, date(2026, 6, 1), date(2026, 6, 30))
        assert [c.id for c in claims] == [paid.id]

        text = reports.render_payment_report(
            claims, date(2026, 6, 1), date(2026, 6, 30)
        ).decode("utf-8")
        assert "PAYMENT REPORT: 2026-06-01 to 2026-06-30" in text
        assert "Thandi Mokoena: R2500.00 (10 hours)" in text
        assert "TOTAL PAID: R2500.00" in text

    def test_claims_by_ids_ignores_unknown(self, db, lecturer, make_claim):
        claim = make_claim(lecturer)
        assert [c.id for c in reports.claims_by_ids(db, [claim.id, 777])] == [claim.id]
        assert isinstance(reports.claims_by_ids(db, [claim.id])[0], Claim)


def _decided(db, claim, status_id, actor, hours_after_submission):
    db.add(
        ClaimStatusHistory(
            claim_id=claim.id,
            status_id=status_id,
            changed_by_user_id=actor.id,
            changed_at=claim.submitted_at + timedelta(hours=hours_after_submission),
        )
    )
    db.commit()


class TestComprehensiveReport:
    def test_breakdowns_and_processing_time(self, db, lecturer, other_lecturer, manager, make_claim):
        approved = make_claim(lecturer, hours=10, status=ClaimStatus.APPROVED_BY_MANAGER)
        _decided(db, approved, ClaimStatus.APPROVED_BY_COORDINATOR, manager, 2)
        _decided(db, approved, ClaimStatus.APPROVED_BY_MANAGER, manager, 24)
        rejected = make_claim(lecturer, hours=4, status=ClaimStatus.REJECTED)
        _decided(db, rejected, ClaimStatus.REJECTED, manager, 12)
        make_claim(other_lecturer, hours=20)
        make_claim(lecturer, hours=8, status=ClaimStatus.PAID, days_ago=60)

        report = reports.comprehensive_report(db, date(2026, 6, 1), date(2026, 6, 30))

        assert report.period == "2026-06-01 to 2026-06-30"
        assert report.total_claims == 3
        assert report.total_amount == Decimal("9500.00")
        assert report.average_processing_hours == Decimal("18.0")
        assert [(s.status, s.claims, s.amount) for s in report.status_breakdown] == [
            ("Submitted", 1, Decimal("6000.00")),
            ("ApprovedByManager", 1, Decimal("2500.00")),
            ("Rejected", 1, Decimal("1000.00")),
        ]
        assert [(p.lecturer, p.claims, p.amount) for p in report.lecturer_performance] == [
            ("Pieter Smit", 1, Decimal("6000.00")),
            ("Thandi Mokoena", 2, Decimal("3500.00")),
        ]

    def test_no_decided_claims(self, db, lecturer, make_claim):
        make_claim(lecturer)
        report = reports.comprehensive_report(db, date(2026, 6, 1), date(2026, 6, 30))
        assert report.average_processing_hours == Decimal("0.0")

    def test_decided_claim_without_history_counts_as_zero(self, db, lecturer, manager, make_claim):
        make_claim(lecturer, status=ClaimStatus.REJECTED)
        slow = make_claim(lecturer, status=ClaimStatus.REJECTED)
        _decided(db, slow, ClaimStatus.REJECTED, manager, 10)

        report = reports.comprehensive_report(db, date(2026, 6, 15), date(2026, 6, 15))

        assert report.average_processing_hours == Decimal("5.0")

    def test_text_rendering(self):
        report = reports.ComprehensiveReport(
            start=date(2026, 6, 1),
            end=date(2026, 6, 30),
            total_claims=2,
            total_amount=Decimal("3500.00"),
            average_processing_hours=Decimal("18.0"),
            status_breakdown=[reports.StatusBreakdown("Paid", 2, Decimal("3500.00"))],
            lecturer_performance=[
                reports.LecturerPerformance("Thandi Mokoena", 2, Decimal("3500.00"))
            ],
        )

        text = reports.render_comprehensive_report(
            report, datetime(2026, 7, 1, 8, 30, tzinfo=timezone.utc)
        ).decode("utf-8")

        assert text.startswith("COMPREHENSIVE CLAIMS REPORT\nPeriod: 2026-06-01 to 2026-06-30\n")
        assert "Generated: 2026-07-01 08:30" in text
        assert "TOTAL AMOUNT: R3500.00" in text
        assert "AVG PROCESSING TIME: 18.0 hours" in text
        assert "- Paid: 2 claims (R3500.00)" in text
        assert "- Thandi Mokoena: 2 claims (R3500.00)" in text

    def test_csv_rendering(self):
        report = reports.ComprehensiveReport(
            start=date(2026, 6, 1),
            end=date(2026, 6, 30),
            total_claims=1,
            total_amount=Decimal("2500.00"),
            average_processing_hours=Decimal("0.0"),
            status_breakdown=[reports.StatusBreakdown("Submitted", 1, Decimal("2500.00"))],
            lecturer_performance=[
                reports.LecturerPerformance("Thandi Mokoena", 1, Decimal("2500.00"))
            ],
        )

        rows = reports.render_comprehensive_report_csv(report).decode("utf-8").splitlines()

        assert rows == [
            "section,name,claims,amount,avg_processing_hours",
            "total,2026-06-01 to 2026-06-30,1,2500.00,0.0",
            "status,Submitted,1,2500.00,",
            "lecturer,Thandi Mokoena,1,2500.00,",
        ]
