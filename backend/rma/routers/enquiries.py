"""Enquiry endpoints."""
from __future__ import annotations

import mimetypes
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile, status
from fastapi.responses import Response
from sqlalchemy.orm import Session

from ..auth import get_current_user
from ..config import settings
from ..database import get_db
from ..models import User
from ..schemas import (
    EnquiryAttachmentsResponse,
    EnquiryCreate,
    EnquiryDetailResponse,
    EnquiryListResponse,
    EnquiryMessageCreate,
    EnquiryMessageResponse,
    EnquiryResponse,
    EnquiryStatusUpdate,
)
from ..services.enquiry_response_builder import enquiry_to_detail, enquiry_to_response, message_to_response
from ..services.remote_storage import RemoteStorage, enquiry_attachment_key, get_storage
from ..services.upload_rules import content_disposition, is_stored_filename, read_upload
from ..use_cases.enquiry_workflow import (
    add_message_use_case,
    create_enquiry_use_case,
    find_enquiry_attachment,
    get_enquiry_use_case,
    list_enquiries_use_case,
    update_status_use_case,
)

router = APIRouter(prefix="/enquiries", tags=["enquiries"])


@router.get("", response_model=EnquiryListResponse)
def list_enquiries(
    search: Optional[str] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    platform: Optional[str] = None,
    status: Optional[str] = None,
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    result = list_enquiries_use_case(
        db=db,
        current_user=current_user,
        search=search,
        date_from=date_from,
        date_to=date_to,
        platform=platform,
        status=status,
        page=page,
        page_size=page_size,
    )
    result["items"] = [enquiry_to_response(e) for e in result["items"]]
    return result


@router.post("", response_model=EnquiryResponse, status_code=status.HTTP_201_CREATED)
def create_enquiry(
    payload: EnquiryCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    enquiry = create_enquiry_use_case(
        db=db,
        current_user=current_user,
        order_number=payload.order_number,
        platform=payload.platform,
        description=payload.description,
        status=payload.status,
        business_id=payload.business_id,
    )
    return enquiry_to_response(enquiry)


@router.get("/{enquiry_id}", response_model=EnquiryDetailResponse)
def get_enquiry(
    enquiry_id: int,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    enquiry, messages = get_enquiry_use_case(db=db, enquiry_id=enquiry_id, current_user=current_user)
    return enquiry_to_detail(enquiry, messages)


@router.post("/{enquiry_id}/messages", response_model=EnquiryMessageResponse, status_code=status.HTTP_201_CREATED)
def add_message(
    enquiry_id: int,
    payload: EnquiryMessageCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Reply; moves the enquiry to the other side's court."""
    entry = add_message_use_case(
        db=db,
        enquiry_id=enquiry_id,
        current_user=current_user,
        message=payload.message,
    )
    return message_to_response(entry)


@router.put("/{enquiry_id}/status", response_model=EnquiryResponse)
def update_status(
    enquiry_id: int,
    payload: EnquiryStatusUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    enquiry = update_status_use_case(
        db=db,
        enquiry_id=enquiry_id,
        status=payload.status,
        current_user=current_user,
    )
    return enquiry_to_response(enquiry)


@router.post("/{enquiry_id}/attachments", response_model=EnquiryAttachmentsResponse, status_code=status.HTTP_201_CREATED)
async def upload_enquiry_attachments(
    enquiry_id: int,
    files: list[UploadFile] = File(...),
    message: Optional[str] = Form(None),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    storage: RemoteStorage = Depends(get_storage),
):
    """Reply carrying files; text defaults to "Uploaded N file(s)"."""
    incoming = [
        await read_upload(file, max_size=settings.ENQUIRY_ATTACHMENT_MAX_SIZE)
        for file in files
    ]
    entry = add_message_use_case(
        db=db,
        enquiry_id=enquiry_id,
        current_user=current_user,
        message=message,
        files=incoming,
        storage=storage,
        allowed_types=settings.enquiry_attachment_mime_types,
        max_size=settings.ENQUIRY_ATTACHMENT_MAX_SIZE,
        max_files=settings.ENQUIRY_ATTACHMENT_MAX_FILES,
    )
    return EnquiryAttachmentsResponse(
        message=entry.message,
        message_id=entry.id,
        attachments=entry.attachments or [],
        status=entry.enquiry.status,
    )


@router.get("/{enquiry_id}/attachments/{filename}")
def get_enquiry_attachment(
    enquiry_id: int,
    filename: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    storage: RemoteStorage = Depends(get_storage),
):
    """Stream a stored reply attachment back to a caller who can see the enquiry."""
    if not is_stored_filename(filename):
        raise HTTPException(status_code=400, detail="Invalid filename")
    enquiry, messages = get_enquiry_use_case(db=db, enquiry_id=enquiry_id, current_user=current_user)
    attachment = find_enquiry_attachment(messages, filename)
    if attachment is None:
        raise HTTPException(status_code=404, detail="File not found")

    data = storage.get(enquiry_attachment_key(enquiry.business_id, enquiry.id, filename))
    media_type = attachment.get("mimetype") or mimetypes.guess_type(filename)[0] or "application/octet-stream"
    return Response(
        content=data,
        media_type=media_type,
        headers={
            "Content-Disposition": content_disposition("inline", attachment.get("originalName") or filename),
            "Cache-Control": "private, max-age=3600",
        },
    )
