"""
Claim schemas — request and response shapes for lecturer and review routes.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import Field, field_validator

from app.models.status import ClaimStatus
from app.schemas.common import BaseSchema, IDSchema


class DocumentResponse(IDSchema):
    file_name: str
    uploaded_at: datetime


class HistoryEntryResponse(IDSchema):
    status_id: int
    status_name: str
    changed_by_user_id: int
    changed_at: datetime
    notes: Optional[str] = None


class ClaimListItem(IDSchema):
    """Row in a dashboard table."""

    user_id: int
    lecturer_name: str
    hours_worked: int
    total_amount: Decimal
    submitted_at: datetime
    status_id: int
    status_name: str
    document_count: int


class ClaimResponse(ClaimListItem):
    """Full claim detail with documents and audit trail."""

    notes: Optional[str] = None
    documents: list[DocumentResponse] = []
    history: list[HistoryEntryResponse] = []


class ClaimSubmissionResponse(BaseSchema):
    claim: ClaimResponse
    rejected_files: list[str] = []
    message: str


class StatusUpdateRequest(BaseSchema):
    """Coordinator/manager decision on a single claim."""

    new_status_id: int
    notes: Optional[str] = Field(default=None, max_length=500)

    @field_validator("new_status_id")
    @classmethod
    def validate_status(cls, v: int) -> int:
        if v not in ClaimStatus.REVIEW_DECISIONS:
            raise ValueError(
                f"new_status_id must be one of: {ClaimStatus.REVIEW_DECISIONS}"
            )
        return v
