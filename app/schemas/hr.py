"""HR schemas — payment processing, summaries, lecturer management."""

from datetime import datetime
from decimal import Decimal

from pydantic import Field

from app.schemas.automation import ClaimScoreResponse
from app.schemas.claim import ClaimListItem
from app.schemas.common import BaseSchema


class ClaimIdsRequest(BaseSchema):
    claim_ids: list[int] = Field(..., min_length=1)


class PaymentResponse(BaseSchema):
    processed: int
    total_amount: Decimal
    skipped: list[int]
    message: str


class MonthlySummaryResponse(BaseSchema):
    month: str
    total_claims: int
    total_amount: Decimal
    approved_claims: int
    approved_amount: Decimal
    paid_claims: int
    paid_amount: Decimal
    pending_approval_claims: int
    rejected_claims: int


class PaymentBatchResponse(BaseSchema):
    created_at: datetime
    claim_count: int
    total_amount: Decimal
    claims: list[ClaimListItem]


class HRDashboardResponse(BaseSchema):
    monthly_summary: MonthlySummaryResponse
    payment_batch: PaymentBatchResponse
    # One per claim in the payment batch, same order
    claim_scores: list[ClaimScoreResponse] = []


class LecturerStatsResponse(BaseSchema):
    user_id: int
    full_name: str
    email: str
    hourly_rate: Decimal
    total_claims: int
    successful_claims: int
    rejected_claims: int
    average_claim_amount: Decimal
    total_paid: Decimal


class RateUpdateRequest(BaseSchema):
    hourly_rate: Decimal = Field(..., ge=0, max_digits=10, decimal_places=2)
