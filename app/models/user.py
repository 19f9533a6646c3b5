"""
User — lecturers and the staff who review and pay their claims.
"""

from decimal import Decimal
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models.base import Base, IntegerPrimaryKeyMixin, TimestampMixin

if TYPE_CHECKING:
    from app.models.claim import Claim


# ── Enums (stored as strings for readability + migration safety) ────────────


class UserRole:
    LECTURER = "LECTURER"
    COORDINATOR = "COORDINATOR"
    MANAGER = "MANAGER"
    HR = "HR"

    STAFF = {COORDINATOR, MANAGER, HR}


# ── Models ──────────────────────────────────────────────────────────────────


class User(Base, IntegerPrimaryKeyMixin, TimestampMixin):
    __tablename__ = "users"

    email: Mapped[str] = mapped_column(
        String(256), nullable=False, unique=True, index=True
    )
    hashed_password: Mapped[str] = mapped_column(String(256), nullable=False)
    role: Mapped[str] = mapped_column(String(32), nullable=False)

    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)

    # Rate applied to NEW claims only; past claims keep the amount computed
    # at submission time.
    hourly_rate: Mapped[Decimal] = mapped_column(
        Numeric(10, 2), nullable=False, default=Decimal("0.00")
    )

    is_active: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default="1"
    )

    # Relationships
    claims: Mapped[list["Claim"]] = relationship(
        "Claim", back_populates="user", order_by="Claim.submitted_at"
    )

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    def __repr__(self) -> str:
        return f"<User email={self.email!r} role={self.role!r}>"
