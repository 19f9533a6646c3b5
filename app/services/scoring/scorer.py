"""
Claim Scoring Engine — deterministic, fully testable.

Computes a ClaimScore for one claim from five independent signals:
  1. Hours validity        — hours worked within [1, 200]
  2. Amount reasonableness — within 50% of the lecturer's mean claim amount
  3. Documentation         — presence and quality tier (1-10) of attachments
  4. Submission pattern    — gap since the lecturer's preceding submission
  5. Claim history         — number of the lecturer's non-rejected claims

The signals are reduced to a 0-100 overall score, a Priority tier and a
Recommendation label. Weights and thresholds are fixed constants.

Design principle: compute_score() is a pure function over the claim, its
sibling claims and its documents, with no DB access. ClaimScorer is the thin
DB-backed wrapper used by the workflow engine and the routers.
"""

import logging
import os
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Iterable, Sequence

from sqlalchemy.orm import Session

from app.models.claim import Claim, SupportingDocument
from app.models.status import ClaimStatus

logger = logging.getLogger(__name__)


# ── Signal constants ──────────────────────────────────────────────────────────

MIN_VALID_HOURS = 1
MAX_VALID_HOURS = 200

# Maximum relative deviation from the lecturer's mean claim amount (inclusive)
MAX_AMOUNT_DEVIATION = Decimal("0.5")

# Submission pattern tiers
PATTERN_TOO_FREQUENT = 1
PATTERN_REGULAR = 3
PATTERN_WELL_SPACED = 5
TOO_FREQUENT_DAYS = 15
REGULAR_DAYS = 30

# Document quality tiers
MIN_DOCUMENT_QUALITY = 1
MAX_DOCUMENT_QUALITY = 10
BASE_DOCUMENT_QUALITY = 3
DESCRIPTIVE_NAME_MIN_LENGTH = 10
UNDESCRIPTIVE_NAME_PREFIXES = ("Screenshot", "image")

PDF_EXTENSIONS = {".pdf"}
SPREADSHEET_EXTENSIONS = {".xlsx", ".xls"}
IMAGE_EXTENSIONS = {".jpg", ".jpeg", ".png"}

# ── Overall score weights (sum of caps = 100) ─────────────────────────────────

HOURS_VALID_POINTS = 20
AMOUNT_REASONABLE_POINTS = 20
SUPPORTING_DOCS_POINTS = 20
HISTORY_POINTS_PER_CLAIM, HISTORY_POINTS_CAP = 3, 15
PATTERN_POINTS_PER_TIER, PATTERN_POINTS_CAP = 2, 10
QUALITY_POINTS_PER_TIER, QUALITY_POINTS_CAP = 2, 15


# ── Labels ────────────────────────────────────────────────────────────────────


class Priority(str, Enum):
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"


class Recommendation(str, Enum):
    AUTO_APPROVE = "Auto-Approve"
    APPROVE = "Approve"
    REVIEW = "Review"
    DETAILED_REVIEW = "Detailed Review"
    INVESTIGATE = "Investigate"

    @property
    def rank(self) -> int:
        """0 for Investigate up to 4 for Auto-Approve."""
        return _RECOMMENDATION_ORDER.index(self)


_RECOMMENDATION_ORDER = [
    Recommendation.INVESTIGATE,
    Recommendation.DETAILED_REVIEW,
    Recommendation.REVIEW,
    Recommendation.APPROVE,
    Recommendation.AUTO_APPROVE,
]

# Ordered (minimum score, label) tables, evaluated top-down.
# The last entry has no threshold and catches everything below.
PRIORITY_THRESHOLDS: list[tuple[Decimal | None, Priority]] = [
    (Decimal("80"), Priority.HIGH),
    (Decimal("60"), Priority.MEDIUM),
    (None, Priority.LOW),
]

RECOMMENDATION_THRESHOLDS: list[tuple[Decimal | None, Recommendation]] = [
    (Decimal("85"), Recommendation.AUTO_APPROVE),
    (Decimal("70"), Recommendation.APPROVE),
    (Decimal("50"), Recommendation.REVIEW),
    (Decimal("30"), Recommendation.DETAILED_REVIEW),
    (None, Recommendation.INVESTIGATE),
]


# ── Result type ───────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class ClaimScore:
    """Per-claim scoring snapshot. Recomputed on demand, never persisted."""

    claim_id: int | None
    hours_worked: int
    hours_valid: bool
    amount_reasonable: bool
    has_supporting_docs: bool
    previous_claim_history: int
    submission_pattern: int
    document_quality: int
    overall_score: Decimal
    priority: Priority
    recommendation: Recommendation


# ── Pure scoring functions ────────────────────────────────────────────────────


def compute_score(
    claim: Claim,
    sibling_claims: Iterable[Claim],
    documents: Iterable[SupportingDocument],
) -> ClaimScore:
    """
    Score a claim.

    Args:
        claim:          The claim being scored.
        sibling_claims: The same lecturer's OTHER claims (the claim itself is
                        filtered out if present).
        documents:      The claim's supporting documents.
    """
    siblings = [c for c in sibling_claims if c is not claim and _not_same_id(c, claim)]
    docs = list(documents)

    hours_valid = is_hours_valid(claim.hours_worked)
    amount_reasonable = is_amount_reasonable(claim.total_amount, siblings)
    has_supporting_docs = len(docs) > 0
    history = previous_claim_history(siblings)
    pattern = submission_pattern(claim, siblings)
    quality = document_quality([d.file_name for d in docs])

    overall = overall_score(
        hours_valid=hours_valid,
        amount_reasonable=amount_reasonable,
        has_supporting_docs=has_supporting_docs,
        previous_claim_history=history,
        submission_pattern=pattern,
        document_quality=quality,
    )

    return ClaimScore(
        claim_id=claim.id,
        hours_worked=claim.hours_worked,
        hours_valid=hours_valid,
        amount_reasonable=amount_reasonable,
        has_supporting_docs=has_supporting_docs,
        previous_claim_history=history,
        submission_pattern=pattern,
        document_quality=quality,
        overall_score=overall,
        priority=determine_priority(overall),
        recommendation=determine_recommendation(overall),
    )


def is_hours_valid(hours_worked: int) -> bool:
    return MIN_VALID_HOURS <= hours_worked <= MAX_VALID_HOURS


def is_amount_reasonable(amount: Decimal, sibling_claims: Sequence[Claim]) -> bool:
    """
    True when the amount is within 50% (inclusive) of the mean of the
    lecturer's other claims. No history, or a zero mean, counts as reasonable.
    """
    if not sibling_claims:
        return True

    total = sum((Decimal(c.total_amount) for c in sibling_claims), Decimal("0"))
    mean = total / len(sibling_claims)
    if mean == 0:
        return True

    deviation = abs(Decimal(amount) - mean) / mean
    return deviation <= MAX_AMOUNT_DEVIATION


def previous_claim_history(sibling_claims: Sequence[Claim]) -> int:
    """Count of the lecturer's other claims that were not rejected."""
    return sum(1 for c in sibling_claims if c.current_status_id != ClaimStatus.REJECTED)


def submission_pattern(claim: Claim, sibling_claims: Sequence[Claim]) -> int:
    """
    Tier the gap between this submission and the lecturer's preceding one:
    1 (< 15 days, too frequent), 3 (< 30 days), 5 (well spaced).
    First-ever submissions are neutral (5).
    """
    ordered = sorted(
        [*sibling_claims, claim],
        key=lambda c: (_as_utc(c.submitted_at), c.id or 0),
    )
    if len(ordered) < 2:
        return PATTERN_WELL_SPACED

    position = next(i for i, c in enumerate(ordered) if c is claim)
    if position == 0:
        return PATTERN_WELL_SPACED

    preceding = ordered[position - 1]
    days = (_as_utc(claim.submitted_at) - _as_utc(preceding.submitted_at)).days

    if days < TOO_FREQUENT_DAYS:
        return PATTERN_TOO_FREQUENT
    if days < REGULAR_DAYS:
        return PATTERN_REGULAR
    return PATTERN_WELL_SPACED


def file_extension(file_name: str) -> str:
    """Lower-cased extension including the dot ('' when there is none)."""
    return os.path.splitext(file_name)[1].lower()


def document_quality(file_names: Sequence[str]) -> int:
    """Quality tier 1-10 from document count, file types and naming."""
    if not file_names:
        return MIN_DOCUMENT_QUALITY

    quality = BASE_DOCUMENT_QUALITY

    count = len(file_names)
    if count >= 3:
        quality += 2
    elif count == 2:
        quality += 1
    elif count == 1:
        quality -= 1

    extensions = {file_extension(name) for name in file_names}
    if len(extensions) >= 2:
        quality += 1

    if extensions & PDF_EXTENSIONS:
        quality += 1
    if extensions & SPREADSHEET_EXTENSIONS:
        quality += 1
    if extensions & IMAGE_EXTENSIONS:
        quality += 1

    if any(
        len(name) > DESCRIPTIVE_NAME_MIN_LENGTH
        and not name.startswith(UNDESCRIPTIVE_NAME_PREFIXES)
        for name in file_names
    ):
        quality += 1

    return max(MIN_DOCUMENT_QUALITY, min(quality, MAX_DOCUMENT_QUALITY))


def overall_score(
    hours_valid: bool,
    amount_reasonable: bool,
    has_supporting_docs: bool,
    previous_claim_history: int,
    submission_pattern: int,
    document_quality: int,
) -> Decimal:
    total = 0
    if hours_valid:
        total += HOURS_VALID_POINTS
    if amount_reasonable:
        total += AMOUNT_REASONABLE_POINTS
    if has_supporting_docs:
        total += SUPPORTING_DOCS_POINTS
    total += min(previous_claim_history * HISTORY_POINTS_PER_CLAIM, HISTORY_POINTS_CAP)
    total += min(submission_pattern * PATTERN_POINTS_PER_TIER, PATTERN_POINTS_CAP)
    total += min(document_quality * QUALITY_POINTS_PER_TIER, QUALITY_POINTS_CAP)
    return Decimal(total)


def determine_priority(score: Decimal) -> Priority:
    return _lookup(score, PRIORITY_THRESHOLDS)


def determine_recommendation(score: Decimal) -> Recommendation:
    return _lookup(score, RECOMMENDATION_THRESHOLDS)


def priority_score(score: ClaimScore) -> int:
    """
    Queue ordering key for the review dashboard. High-priority claims are
    boosted; missing documents and unusual amounts push a claim down.
    """
    value = score.overall_score
    if score.priority is Priority.HIGH:
        value += 20
    if not score.has_supporting_docs:
        value -= 15
    if not score.amount_reasonable:
        value -= 10
    return int(max(Decimal("0"), value))


# ── DB-backed wrapper ─────────────────────────────────────────────────────────


class ClaimScorer:
    """
    Loads a claim's sibling claims and documents and scores it.

    Usage:
        scorer = ClaimScorer(db)
        score = scorer.score(claim)
    """

    def __init__(self, db: Session):
        self.db = db

    def score(self, claim: Claim) -> ClaimScore:
        siblings = self.sibling_claims(claim)
        return compute_score(claim, siblings, claim.documents)

    def sibling_claims(self, claim: Claim) -> list[Claim]:
        return (
            self.db.query(Claim)
            .filter(Claim.user_id == claim.user_id, Claim.id != claim.id)
            .order_by(Claim.submitted_at.asc(), Claim.id.asc())
            .all()
        )


# ── Helpers ───────────────────────────────────────────────────────────────────


def _lookup(score, table):
    for threshold, label in table:
        if threshold is None or score >= threshold:
            return label
    raise ValueError(f"Threshold table has no fallback entry for score {score}")


def _not_same_id(a: Claim, b: Claim) -> bool:
    return a.id is None or b.id is None or a.id != b.id


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; treat them as UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value
