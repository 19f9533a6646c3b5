"""
Auto-approval rules.

Evaluation order is significant and fixed:
  1. Excellent score (>= 90) with valid hours, reasonable amount and documents
  2. Strong score (>= 80) with valid hours and reasonable amount
  3. Low confidence (<= 40) — flagged for manual review
The first matching rule decides approval. Validation warnings for failed
checks are added independently of which rule (if any) matched.
"""

from collections.abc import Callable
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Optional

from app.services.scoring.scorer import ClaimScore

LOW_CONFIDENCE_THRESHOLD = Decimal("40")

LOW_CONFIDENCE_WARNING = "Low confidence score - requires manual review"
HOURS_INVALID_WARNING = "Hours worked outside valid range"
AMOUNT_UNREASONABLE_WARNING = "Claim amount appears unreasonable"
NO_DOCUMENTS_WARNING = "No supporting documents provided"
NOT_AWAITING_APPROVAL_WARNING = "Claim is no longer awaiting approval"


@dataclass
class AutoApprovalResult:
    auto_approved: bool = False
    reason: str = ""
    warnings: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class ApprovalRule:
    """
    approves=True rules set the reason; approves=False rules add `warning`.
    Either way, a match stops rule evaluation.
    """

    name: str
    applies: Callable[[ClaimScore], bool]
    approves: bool
    reason: str = ""
    warning: Optional[str] = None


APPROVAL_RULES: list[ApprovalRule] = [
    ApprovalRule(
        name="excellent_with_documents",
        applies=lambda s: (
            s.overall_score >= 90
            and s.hours_valid
            and s.amount_reasonable
            and s.has_supporting_docs
        ),
        approves=True,
        reason="High-confidence claim with excellent score and complete documentation",
    ),
    ApprovalRule(
        name="strong_history",
        applies=lambda s: s.overall_score >= 80 and s.hours_valid and s.amount_reasonable,
        approves=True,
        reason="Confident approval based on strong claim history and validation",
    ),
    ApprovalRule(
        name="low_confidence",
        applies=lambda s: s.overall_score <= LOW_CONFIDENCE_THRESHOLD,
        approves=False,
        warning=LOW_CONFIDENCE_WARNING,
    ),
]

# (check passes?, warning when it fails)
VALIDATION_CHECKS: list[tuple[Callable[[ClaimScore], bool], str]] = [
    (lambda s: s.hours_valid, HOURS_INVALID_WARNING),
    (lambda s: s.amount_reasonable, AMOUNT_UNREASONABLE_WARNING),
    (lambda s: s.has_supporting_docs, NO_DOCUMENTS_WARNING),
]


def evaluate_auto_approval(score: ClaimScore) -> AutoApprovalResult:
    """Apply APPROVAL_RULES then VALIDATION_CHECKS to a score."""
    result = AutoApprovalResult()

    for rule in APPROVAL_RULES:
        if not rule.applies(score):
            continue
        if rule.approves:
            result.auto_approved = True
            result.reason = rule.reason
        elif rule.warning:
            result.warnings.append(rule.warning)
        break

    for passes, warning in VALIDATION_CHECKS:
        if not passes(score):
            result.warnings.append(warning)

    return result
