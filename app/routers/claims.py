"""
Lecturer-facing claim routes.

Workflow:
  POST /claims                  → submit a claim (multipart: hours, notes, files)
  GET  /claims/mine             → the lecturer's own claims, newest first
  GET  /claims/{id}             → claim detail + documents + status history
  POST /claims/{id}/documents   → attach more supporting documents
  GET  /claims/{id}/documents/{doc_id} → download one supporting document
"""

import logging
from typing import Optional

from fastapi import (
    APIRouter,
    Depends,
    File,
    Form,
    HTTPException,
    Response,
    UploadFile,
    status,
)
from sqlalchemy.orm import Session, selectinload

from app.database import get_db
from app.models.claim import Claim
from app.models.user import User, UserRole
from app.reference.constants import STATUS_NAMES
from app.routers.auth import get_current_user, require_role
from app.schemas.claim import (
    ClaimListItem,
    ClaimResponse,
    ClaimSubmissionResponse,
    DocumentResponse,
    HistoryEntryResponse,
)
from app.services.claims.submission import ClaimSubmissionError, submit_claim
from app.services.documents.uploads import (
    UploadedFile,
    discard_documents,
    store_documents,
)
from app.services.storage.base import get_storage

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/claims", tags=["claims"])


# ── Submit ────────────────────────────────────────────────────────────────────


@router.post(
    "", response_model=ClaimSubmissionResponse, status_code=status.HTTP_201_CREATED
)
def create_claim(
    hours_worked: int = Form(...),
    notes: Optional[str] = Form(None),
    files: Optional[list[UploadFile]] = File(None),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_role(UserRole.LECTURER)),
) -> ClaimSubmissionResponse:
    """
    Submit a new claim. The amount is priced at the lecturer's current rate.
    Files that fail validation are skipped and listed in rejected_files.
    """
    try:
        result = submit_claim(
            db,
            get_storage(),
            current_user,
            hours_worked=hours_worked,
            notes=notes,
            uploads=_read_uploads(files),
        )
    except ClaimSubmissionError as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)
        )

    message = "Claim submitted successfully."
    if result.rejected_files:
        message += f" {len(result.rejected_files)} file(s) were not accepted."

    return ClaimSubmissionResponse(
        claim=to_claim_response(result.claim),
        rejected_files=result.rejected_files,
        message=message,
    )


# ── Read ──────────────────────────────────────────────────────────────────────


@router.get("/mine", response_model=list[ClaimListItem])
def list_my_claims(
    db: Session = Depends(get_db),
    current_user: User = Depends(require_role(UserRole.LECTURER)),
) -> list[ClaimListItem]:
    claims = (
        db.query(Claim)
        .options(selectinload(Claim.documents), selectinload(Claim.user))
        .filter(Claim.user_id == current_user.id)
        .order_by(Claim.submitted_at.desc(), Claim.id.desc())
        .all()
    )
    return [to_claim_list_item(c) for c in claims]


@router.get("/{claim_id}", response_model=ClaimResponse)
def get_claim(
    claim_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> ClaimResponse:
    """Lecturers see their own claims only; staff see any claim."""
    claim = _get_visible_claim(claim_id, current_user, db)
    return to_claim_response(claim)


# ── Documents ─────────────────────────────────────────────────────────────────


@router.post("/{claim_id}/documents", response_model=ClaimSubmissionResponse)
def upload_documents(
    claim_id: int,
    files: list[UploadFile] = File(...),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_role(UserRole.LECTURER)),
) -> ClaimSubmissionResponse:
    claim = _get_visible_claim(claim_id, current_user, db)
    storage = get_storage()

    stored = []
    try:
        stored, rejected = store_documents(db, storage, claim, _read_uploads(files))
        db.commit()
    except Exception:
        db.rollback()
        discard_documents(storage, stored)
        logger.exception("Document upload failed for claim %s", claim_id)
        raise

    logger.info(
        "Claim %s: %d document(s) attached, %d rejected",
        claim_id,
        len(stored),
        len(rejected),
    )
    db.refresh(claim)
    return ClaimSubmissionResponse(
        claim=to_claim_response(claim),
        rejected_files=rejected,
        message=f"{len(stored)} document(s) uploaded.",
    )


@router.get("/{claim_id}/documents/{document_id}")
def download_document(
    claim_id: int,
    document_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> Response:
    """
    Lecturers download documents on their own claims; staff on any claim.

    Raises:
        404 if the claim, the document or its stored file is missing.
    """
    claim = _get_visible_claim(claim_id, current_user, db)
    document = next((d for d in claim.documents if d.id == document_id), None)
    storage = get_storage()
    if document is None or not storage.exists(document.file_path):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Document not found"
        )

    return Response(
        content=storage.load(document.file_path),
        media_type="application/octet-stream",
        headers={
            "Content-Disposition": f'attachment; filename="{document.file_name}"'
        },
    )


# ── Response builders (shared with review / automation / hr) ─────────────────


def to_claim_list_item(claim: Claim) -> ClaimListItem:
    return ClaimListItem(
        id=claim.id,
        user_id=claim.user_id,
        lecturer_name=claim.user.full_name,
        hours_worked=claim.hours_worked,
        total_amount=claim.total_amount,
        submitted_at=claim.submitted_at,
        status_id=claim.current_status_id,
        status_name=STATUS_NAMES.get(claim.current_status_id, "Unknown"),
        document_count=len(claim.documents),
    )


def to_claim_response(claim: Claim) -> ClaimResponse:
    item = to_claim_list_item(claim)
    return ClaimResponse(
        **item.model_dump(),
        notes=claim.notes,
        documents=[DocumentResponse.model_validate(d) for d in claim.documents],
        history=[
            HistoryEntryResponse(
                id=h.id,
                status_id=h.status_id,
                status_name=STATUS_NAMES.get(h.status_id, "Unknown"),
                changed_by_user_id=h.changed_by_user_id,
                changed_at=h.changed_at,
                notes=h.notes,
            )
            for h in claim.history
        ],
    )


# ── Private helpers ───────────────────────────────────────────────────────────


def _read_uploads(files: Optional[list[UploadFile]]) -> list[UploadedFile]:
    return [
        UploadedFile(filename=f.filename or "", data=f.file.read())
        for f in files or []
    ]


def _get_visible_claim(claim_id: int, user: User, db: Session) -> Claim:
    """
    Raises:
        404 if the claim does not exist, or belongs to another lecturer.
    """
    claim = db.get(Claim, claim_id)
    if claim is None or (
        user.role == UserRole.LECTURER and claim.user_id != user.id
    ):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Claim not found"
        )
    return claim
