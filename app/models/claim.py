"""
Claim-side entities: Claim, SupportingDocument, ClaimStatusHistory.
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import TYPE_CHECKING, Optional

from sqlalchemy import DateTime, ForeignKey, Integer, Numeric, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base, IntegerPrimaryKeyMixin, TimestampMixin
from app.models.status import ClaimStatus

if TYPE_CHECKING:
    from app.models.status import Status
    from app.models.user import User


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Claim(Base, IntegerPrimaryKeyMixin, TimestampMixin):
    """
    A lecturer's monthly hours-worked claim.

    total_amount is fixed at submission (hourly rate x hours) and never
    recomputed. current_status_id only changes through the workflow engine,
    which appends a ClaimStatusHistory row in the same transaction.
    """

    __tablename__ = "claims"

    user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    hours_worked: Mapped[int] = mapped_column(Integer, nullable=False)
    total_amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    submitted_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow, index=True
    )
    current_status_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("statuses.id", ondelete="RESTRICT"),
        nullable=False,
        default=ClaimStatus.SUBMITTED,
        index=True,
    )
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Relationships
    user: Mapped["User"] = relationship("User", back_populates="claims")
    current_status: Mapped["Status"] = relationship("Status")
    documents: Mapped[list["SupportingDocument"]] = relationship(
        "SupportingDocument",
        back_populates="claim",
        cascade="all, delete-orphan",
        order_by="SupportingDocument.id",
    )
    # Append-only: no delete-orphan cascade on the audit trail
    history: Mapped[list["ClaimStatusHistory"]] = relationship(
        "ClaimStatusHistory",
        back_populates="claim",
        order_by="ClaimStatusHistory.id",
    )

    def __repr__(self) -> str:
        return (
            f"<Claim id={self.id} hours={self.hours_worked} "
            f"total={self.total_amount} status={self.current_status_id}>"
        )


class SupportingDocument(Base, IntegerPrimaryKeyMixin):
    """A file attached to a claim. Immutable once stored."""

    __tablename__ = "supporting_documents"

    claim_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("claims.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    file_name: Mapped[str] = mapped_column(String(255), nullable=False)
    file_path: Mapped[str] = mapped_column(String(500), nullable=False)
    uploaded_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )

    claim: Mapped["Claim"] = relationship("Claim", back_populates="documents")

    def __repr__(self) -> str:
        return f"<SupportingDocument claim={self.claim_id} file={self.file_name!r}>"


class ClaimStatusHistory(Base, IntegerPrimaryKeyMixin):
    """
    One row per status transition, including the initial submission.

    CRITICAL DESIGN RULE:
      This table is append-only. Rows are written only through
      app.services.audit.history and are never updated or deleted.
      changed_at is server-set; insertion order (id) breaks timestamp ties.
    """

    __tablename__ = "claim_status_history"

    claim_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("claims.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    status_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("statuses.id", ondelete="RESTRICT"),
        nullable=False,
    )
    changed_by_user_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False,
    )
    changed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
        index=True,
    )
    notes: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)

    claim: Mapped["Claim"] = relationship("Claim", back_populates="history")
    status: Mapped["Status"] = relationship("Status")

    def __repr__(self) -> str:
        return (
            f"<ClaimStatusHistory claim={self.claim_id} "
            f"status={self.status_id} by={self.changed_by_user_id}>"
        )
