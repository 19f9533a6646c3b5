"""
Status — the fixed claim lifecycle reference table.

Five rows, seeded once by app.reference.seed and never modified at runtime.
Code refers to statuses through the ClaimStatus constants, not by name lookups.
"""

from typing import Optional

from sqlalchemy import Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from app.models.base import Base


class ClaimStatus:
    SUBMITTED = 1
    APPROVED_BY_COORDINATOR = 2
    APPROVED_BY_MANAGER = 3
    REJECTED = 4
    PAID = 5

    ALL = [
        SUBMITTED,
        APPROVED_BY_COORDINATOR,
        APPROVED_BY_MANAGER,
        REJECTED,
        PAID,
    ]

    # Statuses a coordinator or manager can set by hand; Paid is HR-only
    REVIEW_DECISIONS = [APPROVED_BY_COORDINATOR, APPROVED_BY_MANAGER, REJECTED]


class Status(Base):
    __tablename__ = "statuses"

    # Not autoincrement: IDs are the ClaimStatus constants above
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    name: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    description: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    def __repr__(self) -> str:
        return f"<Status id={self.id} name={self.name!r}>"
