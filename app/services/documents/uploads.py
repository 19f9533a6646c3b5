"""
Supporting-document uploads.

validate_upload() is the gatekeeper: allowed extensions and a 5 MB size cap.
store_document() writes an accepted file under claim_<id>/ with a UUID prefix
(so two uploads named "timesheet.xlsx" never collide) and creates the
SupportingDocument row. The caller commits. If the commit fails the caller removes the
written files again with discard_documents().
"""

import logging
import uuid
from dataclasses import dataclass
from pathlib import PurePath
from typing import Optional

from sqlalchemy.orm import Session

from app.models.claim import Claim, SupportingDocument
from app.services.scoring.scorer import file_extension
from app.services.storage.base import StorageBackend

logger = logging.getLogger(__name__)

MAX_FILE_SIZE = 5 * 1024 * 1024  # 5 MB
ALLOWED_EXTENSIONS = {".pdf", ".docx", ".xlsx", ".jpg", ".png"}


@dataclass
class UploadedFile:
    """A file as received from the client, already read into memory."""

    filename: str
    data: bytes


class UploadRejected(Exception):
    pass


def validate_upload(upload: UploadedFile) -> Optional[str]:
    """Return None if the file is acceptable, else the reason it was rejected."""
    if not upload.filename:
        return "File has no name"
    if not upload.data:
        return f"{upload.filename!r} is empty"
    if len(upload.data) > MAX_FILE_SIZE:
        return f"{upload.filename!r} exceeds the 5 MB limit"
    ext = file_extension(upload.filename)
    if ext not in ALLOWED_EXTENSIONS:
        return (
            f"{upload.filename!r} has unsupported type {ext or '(none)'}; "
            f"allowed: {', '.join(sorted(ALLOWED_EXTENSIONS))}"
        )
    return None


def store_document(
    db: Session,
    storage: StorageBackend,
    claim: Claim,
    upload: UploadedFile,
) -> SupportingDocument:
    """
    Validate, persist and attach one document to a claim.
    Raises UploadRejected if the file fails validation.
    """
    problem = validate_upload(upload)
    if problem is not None:
        raise UploadRejected(problem)

    # Client may send a path; keep only the final component
    file_name = PurePath(upload.filename.replace("\\", "/")).name
    stored_name = f"{uuid.uuid4()}_{file_name}"
    path = storage.save(upload.data, stored_name, subfolder=f"claim_{claim.id}")

    document = SupportingDocument(
        claim_id=claim.id,
        file_name=file_name,
        file_path=path,
    )
    db.add(document)
    claim.documents.append(document)
    return document


def store_documents(
    db: Session,
    storage: StorageBackend,
    claim: Claim,
    uploads: list[UploadedFile],
) -> tuple[list[SupportingDocument], list[str]]:
    """
    Store every acceptable file; skip the rest.
    Returns (stored documents, rejection messages).
    """
    stored: list[SupportingDocument] = []
    rejected: list[str] = []
    try:
        for upload in uploads:
            try:
                stored.append(store_document(db, storage, claim, upload))
            except UploadRejected as exc:
                logger.warning("Skipping upload for claim %s: %s", claim.id, exc)
                rejected.append(str(exc))
    except Exception:
        discard_documents(storage, stored)
        raise
    return stored, rejected


def discard_documents(
    storage: StorageBackend, documents: list[SupportingDocument]
) -> None:
    """Remove the stored files of documents whose rows were never committed."""
    for document in documents:
        try:
            storage.delete(document.file_path)
        except OSError:
            logger.warning(
                "Could not remove orphaned file %s", document.file_path, exc_info=True
            )
