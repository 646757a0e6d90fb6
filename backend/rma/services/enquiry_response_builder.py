"""Enquiry response builders (avoid per-field lookups in routers)."""
from __future__ import annotations

from ..models import Enquiry, EnquiryMessage
from ..schemas import EnquiryDetailResponse, EnquiryMessageResponse, EnquiryResponse


def enquiry_to_response(enquiry: Enquiry) -> EnquiryResponse:
    return EnquiryResponse(
        id=enquiry.id,
        business_id=enquiry.business_id,
        business_name=enquiry.business.name if enquiry.business else None,
        order_number=enquiry.order_number,
        platform=enquiry.platform,
        description=enquiry.description,
        status=enquiry.status,
        created_by=enquiry.created_by,
        created_by_username=enquiry.creator.username if enquiry.creator else None,
        created_at=enquiry.created_at,
        updated_at=enquiry.updated_at,
    )


def message_to_response(message: EnquiryMessage) -> EnquiryMessageResponse:
    return EnquiryMessageResponse(
        id=message.id,
        enquiry_id=message.enquiry_id,
        user_id=message.user_id,
        username=message.author.username if message.author else None,
        message=message.message,
        attachments=message.attachments,
        created_at=message.created_at,
    )


def enquiry_to_detail(enquiry: Enquiry, messages: list[EnquiryMessage]) -> EnquiryDetailResponse:
    base = enquiry_to_response(enquiry)
    return EnquiryDetailResponse(
        **base.model_dump(),
        messages=[message_to_response(m) for m in messages],
    )
