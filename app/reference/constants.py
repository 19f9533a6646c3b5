"""
Claim status reference rows.

These are the only rows the statuses table ever holds. IDs match the
ClaimStatus constants and are referenced directly by application code.
"""

from app.models.status import ClaimStatus

STATUSES: list[dict] = [
    {
        "id": ClaimStatus.SUBMITTED,
        "name": "Submitted",
        "description": "Claim submitted by lecturer",
    },
    {
        "id": ClaimStatus.APPROVED_BY_COORDINATOR,
        "name": "ApprovedByCoordinator",
        "description": "Approved by programme coordinator",
    },
    {
        "id": ClaimStatus.APPROVED_BY_MANAGER,
        "name": "ApprovedByManager",
        "description": "Approved by academic manager",
    },
    {
        "id": ClaimStatus.REJECTED,
        "name": "Rejected",
        "description": "Claim rejected",
    },
    {
        "id": ClaimStatus.PAID,
        "name": "Paid",
        "description": "Claim has been paid",
    },
]

STATUS_NAMES: dict[int, str] = {row["id"]: row["name"] for row in STATUSES}
