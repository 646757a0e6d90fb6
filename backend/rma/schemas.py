"""Pydantic schemas for API."""
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


# Auth schemas
class LoginRequest(BaseModel):
    username: str
    password: str


class RoleInfo(BaseModel):
    id: int
    name: str


class LoginUser(BaseModel):
    id: int
    username: str
    # Serialized as a string for dashboard clients.
    business_id: Optional[str] = None
    role: RoleInfo


class LoginResponse(BaseModel):
    token: str
    user: LoginUser


class MeResponse(LoginUser):
    permissions: list[str]


# User schemas
class UserResponse(BaseModel):
    id: int
    username: str
    role_id: int
    business_id: Optional[int] = None
    created_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


class UserCreate(BaseModel):
    username: str = Field(min_length=3, max_length=100)
    password: str
    role_id: int = 9
    business_id: Optional[int] = None


class PasswordResetRequest(BaseModel):
    new_password: str
    confirm_password: str


class PasswordChangeRequest(BaseModel):
    current_password: str
    new_password: str
    confirm_password: str


# Business schemas
class BusinessResponse(BaseModel):
    id: int
    name: str
    currency_code: str
    currency_symbol: str
    street1: Optional[str] = None
    street2: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    postal_code: Optional[str] = None
    country: Optional[str] = None
    phone: Optional[str] = None
    owner_id: Optional[int] = None
    created_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


class InitialAdmin(BaseModel):
    username: str = Field(min_length=3, max_length=100)
    password: str


class BusinessCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    currency_code: str = Field(default="GBP", min_length=3, max_length=3)
    currency_symbol: str = Field(default="£", max_length=8)
    initial_admin: Optional[InitialAdmin] = None


class BusinessCreateResponse(BaseModel):
    business: BusinessResponse
    admin: Optional[UserResponse] = None


class BusinessAdminAssign(BaseModel):
    user_id: int


class BusinessSettingsUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    currency_code: Optional[str] = Field(default=None, min_length=3, max_length=3)
    currency_symbol: Optional[str] = Field(default=None, max_length=8)
    street1: Optional[str] = None
    street2: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    postal_code: Optional[str] = None
    country: Optional[str] = Field(default=None, max_length=2)
    phone: Optional[str] = None


# Sheet schemas
def _blank_to_none(value: Any) -> Any:
    if isinstance(value, str) and not value.strip():
        return None
    return value


class SheetFields(BaseModel):
    """Client-writable sheet fields. ``platform`` and ``return_within_30_days`` are not accepted."""

    date_received: Optional[date] = None
    order_date: Optional[date] = None
    order_no: Optional[str] = None
    customer_name: Optional[str] = None
    imei: Optional[str] = None
    sku: Optional[str] = None
    customer_comment: Optional[str] = None
    multiple_return: Optional[str] = None
    apple_google_id: Optional[str] = None
    return_type: Optional[str] = None
    locked: Optional[str] = None
    oow_case: Optional[str] = None
    replacement_available: Optional[str] = None
    done_by: Optional[str] = None
    blocked_by: Optional[str] = None
    cs_comment: Optional[str] = None
    resolution: Optional[str] = None
    refund_amount: Optional[Decimal] = None
    refund_date: Optional[date] = None
    return_tracking_no: Optional[str] = None
    issue: Optional[str] = None
    out_of_warranty: Optional[Union[bool, str]] = None
    additional_notes: Optional[str] = None
    status: Optional[str] = None
    manager_notes: Optional[str] = None

    @field_validator("date_received", "order_date", "refund_date", "refund_amount", mode="before")
    @classmethod
    def _blank_values(cls, value: Any) -> Any:
        return _blank_to_none(value)


class SheetCreate(SheetFields):
    pass


class SheetUpdate(SheetFields):
    id: int


class SheetDelete(BaseModel):
    id: int


class SheetResponse(BaseModel):
    id: int
    business_id: int
    date_received: Optional[date] = None
    order_date: Optional[date] = None
    order_no: str
    customer_name: Optional[str] = None
    imei: Optional[str] = None
    sku: Optional[str] = None
    customer_comment: Optional[str] = None
    multiple_return: Optional[str] = None
    apple_google_id: Optional[str] = None
    return_type: Optional[str] = None
    locked: Optional[str] = None
    oow_case: Optional[str] = None
    replacement_available: Optional[str] = None
    done_by: Optional[str] = None
    blocked_by: Optional[str] = None
    cs_comment: Optional[str] = None
    resolution: Optional[str] = None
    refund_amount: Optional[Decimal] = None
    refund_date: Optional[date] = None
    return_tracking_no: Optional[str] = None
    platform: str
    return_within_30_days: str
    issue: Optional[str] = None
    out_of_warranty: Optional[str] = None
    additional_notes: Optional[str] = None
    status: Optional[str] = None
    manager_notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


class SheetHistoryResponse(BaseModel):
    id: int
    sheet_id: int
    action: str
    changes: Optional[dict[str, Any]] = None
    user_id: Optional[int] = None
    username: Optional[str] = None
    created_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


# Attachment schemas
class AttachmentResponse(BaseModel):
    id: int
    sheet_id: int
    business_id: int
    file_name: str
    original_name: str
    file_size: int
    mime_type: str
    uploaded_by: Optional[int] = None
    created_at: Optional[datetime] = None
    url: Optional[str] = None
    model_config = ConfigDict(from_attributes=True)


class UploadFailure(BaseModel):
    file: str
    error: str


class AttachmentUploadResponse(BaseModel):
    message: str
    uploaded: list[AttachmentResponse]
    failed: list[UploadFailure]


# Enquiry schemas
class EnquiryCreate(BaseModel):
    order_number: str
    platform: str
    description: str
    status: Optional[str] = None
    business_id: Optional[int] = None


class EnquiryMessageCreate(BaseModel):
    message: str


class EnquiryStatusUpdate(BaseModel):
    status: str


class EnquiryResponse(BaseModel):
    id: int
    business_id: int
    business_name: Optional[str] = None
    order_number: str
    platform: str
    description: str
    status: str
    created_by: Optional[int] = None
    created_by_username: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class EnquiryMessageResponse(BaseModel):
    id: int
    enquiry_id: int
    user_id: Optional[int] = None
    username: Optional[str] = None
    message: str
    attachments: Optional[list[dict[str, Any]]] = None
    created_at: Optional[datetime] = None


class EnquiryDetailResponse(EnquiryResponse):
    messages: list[EnquiryMessageResponse]


class EnquiryListResponse(BaseModel):
    items: list[EnquiryResponse]
    total: int
    page: int
    page_size: int
    status_counts: dict[str, int]
    platform_counts: dict[str, int]


class EnquiryAttachmentsResponse(BaseModel):
    message: str
    message_id: int
    attachments: list[dict[str, Any]]
    status: str


# Notification schemas
class NotificationResponse(BaseModel):
    id: int
    type: str
    title: str
    message: str
    link: Optional[str] = None
    enquiry_id: Optional[int] = None
    order_number: Optional[str] = None
    business_id: Optional[int] = None
    user_id: Optional[int] = None
    read: bool
    created_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)


class NotificationMarkRead(BaseModel):
    ids: list[int] = Field(min_length=1)


class MarkReadResult(BaseModel):
    updated: int


# Stats schemas
class StatsRequest(BaseModel):
    range: str = "1m"


# Back Market schemas
class BackMarketCredentialsUpsert(BaseModel):
    api_key: Optional[str] = None
    api_secret: Optional[str] = None


class BackMarketCredentialsView(BaseModel):
    exists: bool
    api_key_masked: Optional[str] = None
    api_secret_masked: Optional[str] = None
    updated_by: Optional[int] = None
    updated_at: Optional[datetime] = None


# ShipStation schemas
class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ShipFromOverrides(_CamelModel):
    name: Optional[str] = None
    street1: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    postal_code: Optional[str] = None
    country: Optional[str] = None


class LabelOverrides(_CamelModel):
    name: Optional[str] = None
    street1: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    postal_code: Optional[str] = None
    country: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    order_number: Optional[str] = None
    sku: Optional[str] = None
    item_name: Optional[str] = None
    ship_date: Optional[date] = None
    weight: Optional[float] = Field(default=None, gt=0)
    ship_from: Optional[ShipFromOverrides] = None


class CreateLabelRequest(_CamelModel):
    sheet_id: int
    overrides: Optional[LabelOverrides] = None


class ShipStationLabelResponse(BaseModel):
    id: int
    sheet_id: int
    business_id: int
    status: str
    shipstation_order_id: Optional[str] = None
    shipment_id: Optional[str] = None
    tracking_number: Optional[str] = None
    carrier_code: Optional[str] = None
    service_code: Optional[str] = None
    label_url: Optional[str] = None
    label_data: Optional[str] = None
    error: Optional[str] = None
    created_at: Optional[datetime] = None
    model_config = ConfigDict(from_attributes=True)
