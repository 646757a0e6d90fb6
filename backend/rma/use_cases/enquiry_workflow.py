"""Enquiry workflow use-cases (creation, replies, status state machine, listing)."""
from __future__ import annotations

import logging
from datetime import date, datetime, time, timedelta, timezone
from typing import Any

from sqlalchemy import case, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from ..auth import SUPER_ADMIN
from ..domain_errors import DomainError, validation_error
from ..models import Business, Enquiry, EnquiryMessage, User
from ..security import apply_business_scope, is_super_admin, require_scoped_entity
from ..services import notification_fanout
from ..services.remote_storage import RemoteStorage, enquiry_attachment_key
from ..services.upload_rules import IncomingFile, check_file, stored_filename

logger = logging.getLogger(__name__)

AWAITING_BUSINESS = "Awaiting Business"
AWAITING_TECHEZM = "Awaiting Techezm"
RESOLVED = "Resolved"
STATUSES = (AWAITING_BUSINESS, AWAITING_TECHEZM, RESOLVED)

PLATFORMS = ("amazon", "backmarket")
DESCRIPTION_MAX_LENGTH = 2000


def reply_status_for(user: User) -> str:
    """Status after a reply: operations hands back to the business, anyone else to operations."""
    return AWAITING_BUSINESS if user.role_id == SUPER_ADMIN else AWAITING_TECHEZM


def priority_status_for(user: User) -> str:
    return AWAITING_TECHEZM if user.role_id == SUPER_ADMIN else AWAITING_BUSINESS


def _validate_status(status: str | None) -> str:
    if status not in STATUSES:
        raise DomainError(
            code="ENQUIRY_INVALID_STATUS",
            http_status=400,
            message=f"Invalid status. Allowed: {', '.join(STATUSES)}",
        )
    return status


def _get_enquiry_or_404(*, db: Session, enquiry_id: int, current_user: User) -> Enquiry:
    return require_scoped_entity(
        db,
        Enquiry,
        entity_id=enquiry_id,
        current_user=current_user,
        code="ENQUIRY_NOT_FOUND",
        message="Enquiry not found",
    )


def _conflict(existing: Enquiry) -> DomainError:
    return DomainError(
        code="ENQUIRY_EXISTS",
        http_status=409,
        message=f"An enquiry already exists for order {existing.order_number}",
        details={"enquiry_id": existing.id},
    )


def _find_existing(db: Session, *, business_id: int, order_number: str) -> Enquiry | None:
    return db.query(Enquiry).filter(
        Enquiry.business_id == business_id,
        Enquiry.order_number == order_number,
    ).first()


def _resolve_target_business(db: Session, *, current_user: User, business_id: int | None) -> int:
    if is_super_admin(current_user):
        target = business_id or current_user.business_id
        if not target:
            raise validation_error("business_id is required", fields=["business_id"])
        if not db.query(Business.id).filter(Business.id == target).first():
            raise DomainError(code="BUSINESS_NOT_FOUND", http_status=404, message="Business not found")
        return target
    if not current_user.business_id:
        raise validation_error("User is not assigned to a business", fields=["business_id"])
    return current_user.business_id


def create_enquiry_use_case(
    *,
    db: Session,
    current_user: User,
    order_number: str | None,
    platform: str | None,
    description: str | None,
    status: str | None = None,
    business_id: int | None = None,
) -> Enquiry:
    """Open an enquiry; the description becomes the first message."""
    order_number = (order_number or "").strip()
    platform = (platform or "").strip().lower()
    description = (description or "").strip()

    missing = [
        name for name, value in (
            ("order_number", order_number),
            ("platform", platform),
            ("description", description),
        ) if not value
    ]
    if missing:
        raise validation_error(f"Missing required fields: {', '.join(missing)}", fields=missing)
    if len(description) > DESCRIPTION_MAX_LENGTH:
        raise validation_error(
            f"Description too long (max {DESCRIPTION_MAX_LENGTH} characters)",
            fields=["description"],
        )
    if platform not in PLATFORMS:
        raise DomainError(
            code="ENQUIRY_INVALID_PLATFORM",
            http_status=400,
            message=f"Invalid platform. Allowed: {', '.join(PLATFORMS)}",
        )
    status = _validate_status(status) if status else AWAITING_BUSINESS

    target_business_id = _resolve_target_business(db, current_user=current_user, business_id=business_id)

    existing = _find_existing(db, business_id=target_business_id, order_number=order_number)
    if existing:
        raise _conflict(existing)

    enquiry = Enquiry(
        business_id=target_business_id,
        order_number=order_number,
        platform=platform,
        description=description,
        status=status,
        created_by=current_user.id,
    )
    db.add(enquiry)
    try:
        db.flush()
    except IntegrityError:
        # Lost the race against a concurrent creator; the unique constraint decides.
        db.rollback()
        existing = _find_existing(db, business_id=target_business_id, order_number=order_number)
        if existing:
            raise _conflict(existing)
        raise

    db.add(EnquiryMessage(enquiry_id=enquiry.id, user_id=current_user.id, message=description))
    notification_fanout.notify_counterpart(
        db,
        actor=current_user,
        enquiry=enquiry,
        type=notification_fanout.ENQUIRY_CREATED,
        title="New enquiry",
        message=f"New enquiry for order {order_number}",
    )
    db.commit()
    db.refresh(enquiry)
    logger.info("Enquiry %s created for business %s by user %s", enquiry.id, target_business_id, current_user.id)
    return enquiry


def store_enquiry_files(
    *,
    storage: RemoteStorage,
    enquiry: Enquiry,
    files: list[IncomingFile],
    allowed_types: set[str],
    max_size: int,
    max_files: int,
) -> list[dict[str, Any]]:
    """Validate every file first, then upload; returns attachment metadata for the message."""
    if len(files) > max_files:
        raise DomainError(
            code="ATTACHMENT_LIMIT_EXCEEDED",
            http_status=400,
            message=f"Too many files (max {max_files} per message)",
        )
    for file in files:
        check_file(file, allowed_types=allowed_types, max_size=max_size)

    metadata: list[dict[str, Any]] = []
    for file in files:
        file_name = stored_filename(file.original_name)
        storage.put(enquiry_attachment_key(enquiry.business_id, enquiry.id, file_name), file.data)
        metadata.append({
            "fileName": file_name,
            "originalName": file.original_name,
            "mimetype": file.content_type,
            "size": file.size,
            "uploadedAt": datetime.now(timezone.utc).isoformat(),
        })
    return metadata


def add_message_use_case(
    *,
    db: Session,
    enquiry_id: int,
    current_user: User,
    message: str | None,
    files: list[IncomingFile] | None = None,
    storage: RemoteStorage | None = None,
    allowed_types: set[str] | None = None,
    max_size: int = 0,
    max_files: int = 0,
) -> EnquiryMessage:
    """Append a reply and move the enquiry to the other side's court.

    The transition is unconditional: a reply on a Resolved enquiry reopens it.
    """
    text = (message or "").strip()
    files = files or []
    if not text and not files:
        raise DomainError(
            code="ENQUIRY_EMPTY_MESSAGE",
            http_status=400,
            message="Message text or at least one file is required",
        )

    enquiry = _get_enquiry_or_404(db=db, enquiry_id=enquiry_id, current_user=current_user)

    attachments = None
    if files:
        if storage is None:
            raise RuntimeError("storage is required when files are attached")
        attachments = store_enquiry_files(
            storage=storage,
            enquiry=enquiry,
            files=files,
            allowed_types=allowed_types or set(),
            max_size=max_size,
            max_files=max_files,
        )
        if not text:
            text = f"Uploaded {len(files)} file(s)"

    entry = EnquiryMessage(
        enquiry_id=enquiry.id,
        user_id=current_user.id,
        message=text,
        attachments=attachments,
    )
    db.add(entry)

    enquiry.status = reply_status_for(current_user)
    enquiry.updated_at = func.now()

    notification_fanout.notify_counterpart(
        db,
        actor=current_user,
        enquiry=enquiry,
        type=notification_fanout.ENQUIRY_REPLY,
        title="New reply",
        message=f"New reply on enquiry for order {enquiry.order_number}",
    )
    db.commit()
    db.refresh(entry)
    return entry


def update_status_use_case(*, db: Session, enquiry_id: int, status: str | None, current_user: User) -> Enquiry:
    """Set any of the three states directly; the only way to reach Resolved."""
    status = _validate_status(status)
    enquiry = _get_enquiry_or_404(db=db, enquiry_id=enquiry_id, current_user=current_user)

    old_status = enquiry.status
    enquiry.status = status
    enquiry.updated_at = func.now()
    if old_status != status:
        notification_fanout.notify_counterpart(
            db,
            actor=current_user,
            enquiry=enquiry,
            type=notification_fanout.ENQUIRY_STATUS,
            title="Enquiry status changed",
            message=f"Enquiry for order {enquiry.order_number} is now {status}",
        )
    db.commit()
    db.refresh(enquiry)
    return enquiry


def get_enquiry_use_case(*, db: Session, enquiry_id: int, current_user: User) -> tuple[Enquiry, list[EnquiryMessage]]:
    enquiry = _get_enquiry_or_404(db=db, enquiry_id=enquiry_id, current_user=current_user)
    messages = db.query(EnquiryMessage).options(joinedload(EnquiryMessage.author)).filter(
        EnquiryMessage.enquiry_id == enquiry.id,
    ).order_by(EnquiryMessage.created_at.asc(), EnquiryMessage.id.asc()).all()
    return enquiry, messages


def find_enquiry_attachment(messages: list[EnquiryMessage], file_name: str) -> dict[str, Any] | None:
    for entry in messages:
        for attachment in entry.attachments or []:
            if attachment.get("fileName") == file_name:
                return attachment
    return None


def _status_bucket_filter(query, bucket: str | None):
    if not bucket or bucket == "all":
        return query
    if bucket == "active":
        return query.filter(Enquiry.status != RESOLVED)
    if bucket == "resolved":
        return query.filter(Enquiry.status == RESOLVED)
    return query.filter(Enquiry.status == _validate_status(bucket))


def list_enquiries_use_case(
    *,
    db: Session,
    current_user: User,
    search: str | None = None,
    date_from: date | None = None,
    date_to: date | None = None,
    platform: str | None = None,
    status: str | None = None,
    page: int = 1,
    page_size: int = 20,
) -> dict[str, Any]:
    """Filtered, role-prioritised page plus counts over the whole filtered set."""
    query = apply_business_scope(db.query(Enquiry), Enquiry, current_user)

    if search and search.strip():
        query = query.filter(Enquiry.order_number.ilike(f"%{search.strip()}%"))
    if date_from:
        query = query.filter(Enquiry.created_at >= datetime.combine(date_from, time.min))
    if date_to:
        query = query.filter(Enquiry.created_at < datetime.combine(date_to + timedelta(days=1), time.min))
    if platform and platform != "all":
        query = query.filter(Enquiry.platform == platform.strip().lower())
    query = _status_bucket_filter(query, status)

    status_counts = {name: 0 for name in STATUSES}
    for name, count in query.with_entities(Enquiry.status, func.count(Enquiry.id)).group_by(Enquiry.status).all():
        status_counts[name] = int(count)
    platform_counts = {name: 0 for name in PLATFORMS}
    for name, count in query.with_entities(Enquiry.platform, func.count(Enquiry.id)).group_by(Enquiry.platform).all():
        platform_counts[name] = int(count)
    total = sum(status_counts.values())

    priority = case(
        (Enquiry.status == priority_status_for(current_user), 0),
        (Enquiry.status == RESOLVED, 2),
        else_=1,
    )
    items = query.options(
        joinedload(Enquiry.business),
        joinedload(Enquiry.creator),
    ).order_by(
        priority,
        Enquiry.created_at.desc(),
        Enquiry.id.desc(),
    ).offset((page - 1) * page_size).limit(page_size).all()

    return {
        "items": items,
        "total": total,
        "page": page,
        "page_size": page_size,
        "status_counts": status_counts,
        "platform_counts": platform_counts,
    }
