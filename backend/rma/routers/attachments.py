"""Sheet attachment endpoints (authenticated + tenant-scoped via the owning sheet)."""
from __future__ import annotations

from fastapi import APIRouter, Depends, File, UploadFile, status
from fastapi.responses import Response
from sqlalchemy.orm import Session

from ..auth import get_current_user
from ..config import settings
from ..database import get_db
from ..models import Attachment, User
from ..schemas import AttachmentResponse, AttachmentUploadResponse, UploadFailure
from ..services.remote_storage import RemoteStorage, get_storage
from ..services.upload_rules import content_disposition, read_upload
from ..use_cases.sheet_attachments import (
    delete_attachment_use_case,
    list_attachments_use_case,
    read_attachment_use_case,
    upload_attachments_use_case,
)

router = APIRouter(prefix="/attachments", tags=["attachments"])


def _to_response(attachment: Attachment, storage: RemoteStorage) -> AttachmentResponse:
    item = AttachmentResponse.model_validate(attachment)
    item.url = storage.public_url(attachment.remote_path)
    return item


def _file_response(attachment: Attachment, data: bytes, *, disposition: str) -> Response:
    return Response(
        content=data,
        media_type=attachment.mime_type or "application/octet-stream",
        headers={
            "Content-Disposition": content_disposition(disposition, attachment.original_name),
            "Cache-Control": "private, max-age=3600",
        },
    )


@router.post("/upload/{sheet_id}", response_model=AttachmentUploadResponse, status_code=status.HTTP_201_CREATED)
async def upload_attachments(
    sheet_id: int,
    files: list[UploadFile] = File(...),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    storage: RemoteStorage = Depends(get_storage),
):
    """Upload files to a sheet; failures are reported per file."""
    incoming = [
        await read_upload(file, max_size=settings.SHEET_ATTACHMENT_MAX_SIZE)
        for file in files
    ]
    uploaded, failed = upload_attachments_use_case(
        db=db,
        storage=storage,
        sheet_id=sheet_id,
        files=incoming,
        current_user=current_user,
        allowed_types=settings.sheet_attachment_mime_types,
        max_size=settings.SHEET_ATTACHMENT_MAX_SIZE,
        max_files=settings.SHEET_ATTACHMENT_MAX_FILES,
    )
    return AttachmentUploadResponse(
        message=f"Successfully uploaded {len(uploaded)} of {len(incoming)} files",
        uploaded=[_to_response(a, storage) for a in uploaded],
        failed=[UploadFailure(**f) for f in failed],
    )


@router.get("/sheet/{sheet_id}", response_model=list[AttachmentResponse])
def list_sheet_attachments(
    sheet_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    storage: RemoteStorage = Depends(get_storage),
):
    attachments = list_attachments_use_case(db=db, sheet_id=sheet_id, current_user=current_user)
    return [_to_response(a, storage) for a in attachments]


@router.get("/download/{attachment_id}")
def download_attachment(
    attachment_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    storage: RemoteStorage = Depends(get_storage),
):
    attachment, data = read_attachment_use_case(
        db=db, storage=storage, attachment_id=attachment_id, current_user=current_user,
    )
    return _file_response(attachment, data, disposition="attachment")


@router.get("/view/{attachment_id}")
def view_attachment(
    attachment_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    storage: RemoteStorage = Depends(get_storage),
):
    attachment, data = read_attachment_use_case(
        db=db, storage=storage, attachment_id=attachment_id, current_user=current_user,
    )
    return _file_response(attachment, data, disposition="inline")


@router.delete("/{attachment_id}")
def delete_attachment(
    attachment_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    storage: RemoteStorage = Depends(get_storage),
):
    delete_attachment_use_case(db=db, storage=storage, attachment_id=attachment_id, current_user=current_user)
    return {"message": "Attachment deleted"}
