"""Sheet attachment upload, listing, download and removal."""
from __future__ import annotations

import logging

from sqlalchemy.orm import Session

from ..domain_errors import DomainError
from ..models import Attachment, Sheet, User
from ..security import require_scoped_entity
from ..services.remote_storage import RemoteStorage, sheet_attachment_key
from ..services.upload_rules import IncomingFile, check_file, stored_filename

logger = logging.getLogger(__name__)


def _get_sheet(db: Session, *, sheet_id: int, current_user: User) -> Sheet:
    return require_scoped_entity(
        db,
        Sheet,
        entity_id=sheet_id,
        current_user=current_user,
        code="SHEET_NOT_FOUND",
        message="Sheet not found",
    )


def get_attachment_use_case(*, db: Session, attachment_id: int, current_user: User) -> Attachment:
    return require_scoped_entity(
        db,
        Attachment,
        entity_id=attachment_id,
        current_user=current_user,
        code="ATTACHMENT_NOT_FOUND",
        message="Attachment not found",
    )


def upload_attachments_use_case(
    *,
    db: Session,
    storage: RemoteStorage,
    sheet_id: int,
    files: list[IncomingFile],
    current_user: User,
    allowed_types: set[str],
    max_size: int,
    max_files: int,
) -> tuple[list[Attachment], list[dict[str, str]]]:
    """Upload a batch; each file succeeds or fails on its own.

    Returns ``(uploaded, failed)`` where ``failed`` holds ``{"file", "error"}`` entries.
    """
    if not files:
        raise DomainError(code="VALIDATION_ERROR", http_status=400, message="No files uploaded")
    sheet = _get_sheet(db, sheet_id=sheet_id, current_user=current_user)

    existing = db.query(Attachment).filter(Attachment.sheet_id == sheet.id).count()
    if existing + len(files) > max_files:
        raise DomainError(
            code="ATTACHMENT_LIMIT_EXCEEDED",
            http_status=400,
            message=f"Maximum {max_files} files per sheet ({existing} already attached)",
            details={"existing": existing, "max_files": max_files},
        )

    uploaded: list[Attachment] = []
    failed: list[dict[str, str]] = []
    for file in files:
        try:
            check_file(file, allowed_types=allowed_types, max_size=max_size)
            file_name = stored_filename(file.original_name)
            remote_path = sheet_attachment_key(sheet.business_id, sheet.id, file_name)
            storage.put(remote_path, file.data)
        except DomainError as exc:
            logger.warning("Upload of %s to sheet %s failed: %s", file.original_name, sheet.id, exc.message)
            failed.append({"file": file.original_name, "error": exc.message})
            continue

        attachment = Attachment(
            sheet_id=sheet.id,
            business_id=sheet.business_id,
            file_name=file_name,
            original_name=file.original_name,
            file_size=file.size,
            mime_type=file.content_type,
            remote_path=remote_path,
            uploaded_by=current_user.id,
        )
        db.add(attachment)
        db.commit()
        db.refresh(attachment)
        uploaded.append(attachment)
    return uploaded, failed


def list_attachments_use_case(*, db: Session, sheet_id: int, current_user: User) -> list[Attachment]:
    sheet = _get_sheet(db, sheet_id=sheet_id, current_user=current_user)
    return db.query(Attachment).filter(Attachment.sheet_id == sheet.id).order_by(
        Attachment.created_at.desc(),
        Attachment.id.desc(),
    ).all()


def read_attachment_use_case(
    *,
    db: Session,
    storage: RemoteStorage,
    attachment_id: int,
    current_user: User,
) -> tuple[Attachment, bytes]:
    attachment = get_attachment_use_case(db=db, attachment_id=attachment_id, current_user=current_user)
    return attachment, storage.get(attachment.remote_path)


def delete_attachment_use_case(
    *,
    db: Session,
    storage: RemoteStorage,
    attachment_id: int,
    current_user: User,
) -> None:
    """Remove the remote file, then the row. A file already gone is not an error."""
    attachment = get_attachment_use_case(db=db, attachment_id=attachment_id, current_user=current_user)
    storage.delete(attachment.remote_path)
    db.delete(attachment)
    db.commit()
    logger.info("Attachment %s deleted by user %s", attachment_id, current_user.id)
