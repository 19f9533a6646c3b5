"""
Automation schemas — scores, auto-approval outcomes, batch approval.
"""

from decimal import Decimal

from pydantic import Field

from app.schemas.claim import ClaimListItem
from app.schemas.common import BaseSchema
from app.services.scoring.scorer import Priority, Recommendation


class ClaimScoreResponse(BaseSchema):
    claim_id: int
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


class PrioritizedClaimResponse(BaseSchema):
    claim: ClaimListItem
    score: ClaimScoreResponse
    priority_score: int


class AutoApprovalResponse(BaseSchema):
    success: bool
    claim_id: int
    message: str
    reason: str = ""
    warnings: list[str] = []


class BatchApprovalRequest(BaseSchema):
    claim_ids: list[int] = Field(..., min_length=1)


class BatchApprovalResponse(BaseSchema):
    total_processed: int
    approved: int
    rejected: int
    requires_manual_review: int
    total_amount: Decimal
    processing_log: list[str]
