"""SQLAlchemy models."""
from sqlalchemy import (
    JSON, Boolean, Column, Date, DateTime, ForeignKey, Index, Integer, Numeric, String, Text,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base

JSONType = JSON().with_variant(JSONB(), "postgresql")


class Role(Base):
    """Fixed role catalogue. Ids are stable constants (see ``rma.auth``)."""
    __tablename__ = "roles"

    id = Column(Integer, primary_key=True, autoincrement=False)
    name = Column(String(50), unique=True, nullable=False)
    permissions = Column(JSONType, nullable=False, default=list)

    users = relationship("User", back_populates="role")


class Business(Base):
    """Tenant boundary."""
    __tablename__ = "businesses"

    id = Column(Integer, primary_key=True)
    name = Column(String(255), nullable=False)
    currency_code = Column(String(3), nullable=False, default="GBP")
    currency_symbol = Column(String(8), nullable=False, default="£")
    # Ship-from address for labels.
    street1 = Column(String(255), nullable=True)
    street2 = Column(String(255), nullable=True)
    city = Column(String(100), nullable=True)
    state = Column(String(100), nullable=True)
    postal_code = Column(String(20), nullable=True)
    country = Column(String(2), nullable=True)
    phone = Column(String(50), nullable=True)
    # Plain id (no FK): users reference businesses, owner closes the loop.
    owner_id = Column(Integer, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    users = relationship("User", back_populates="business")


class User(Base):
    """User model."""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True)
    username = Column(String(100), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    role_id = Column(Integer, ForeignKey("roles.id"), nullable=False, index=True)
    # NULL only for platform-level (SuperAdmin) accounts.
    business_id = Column(Integer, ForeignKey("businesses.id", ondelete="CASCADE"), nullable=True, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    role = relationship("Role", back_populates="users")
    business = relationship("Business", back_populates="users")


class Sheet(Base):
    """One return/refund case."""
    __tablename__ = "sheets"

    id = Column(Integer, primary_key=True)
    business_id = Column(Integer, ForeignKey("businesses.id", ondelete="CASCADE"), nullable=False, index=True)
    date_received = Column(Date, nullable=True)
    order_date = Column(Date, nullable=True)
    order_no = Column(String(100), nullable=False, index=True)
    customer_name = Column(String(255), nullable=True)
    imei = Column(String(100), nullable=True)
    sku = Column(String(100), nullable=True)
    customer_comment = Column(Text, nullable=True)
    multiple_return = Column(String(50), nullable=True)
    apple_google_id = Column(String(50), nullable=True)
    return_type = Column(String(100), nullable=True)
    locked = Column(String(10), nullable=False, default="No")
    oow_case = Column(String(10), nullable=False, default="No")
    replacement_available = Column(String(50), nullable=True)
    done_by = Column(String(100), nullable=True)
    blocked_by = Column(String(100), nullable=True)
    cs_comment = Column(Text, nullable=True)
    resolution = Column(String(100), nullable=True)
    refund_amount = Column(Numeric(10, 2), nullable=True)
    refund_date = Column(Date, nullable=True)
    return_tracking_no = Column(String(100), nullable=True)
    # Derived on every write, never client-supplied.
    platform = Column(String(50), nullable=False, default="")
    return_within_30_days = Column(String(3), nullable=False, default="")
    issue = Column(String(255), nullable=True)
    out_of_warranty = Column(String(10), nullable=True)
    additional_notes = Column(Text, nullable=True)
    status = Column(String(100), nullable=True)
    manager_notes = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        Index("idx_sheets_business_date_received", "business_id", "date_received"),
    )

    attachments = relationship("Attachment", back_populates="sheet", cascade="all, delete-orphan")


class SheetHistory(Base):
    """Change log for sheets. Rows survive sheet deletion."""
    __tablename__ = "sheet_history"

    id = Column(Integer, primary_key=True)
    sheet_id = Column(Integer, nullable=False, index=True)
    business_id = Column(Integer, nullable=False, index=True)
    action = Column(String(20), nullable=False)  # created | updated | deleted
    changes = Column(JSONType, nullable=True)
    user_id = Column(Integer, nullable=True)
    username = Column(String(100), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class Attachment(Base):
    """File stored on remote storage and linked to a sheet."""
    __tablename__ = "attachments"

    id = Column(Integer, primary_key=True)
    sheet_id = Column(Integer, ForeignKey("sheets.id", ondelete="CASCADE"), nullable=False, index=True)
    business_id = Column(Integer, ForeignKey("businesses.id", ondelete="CASCADE"), nullable=False, index=True)
    file_name = Column(String(255), nullable=False)
    original_name = Column(String(255), nullable=False)
    file_size = Column(Integer, nullable=False)
    mime_type = Column(String(100), nullable=False)
    remote_path = Column(String(500), nullable=False)
    uploaded_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    sheet = relationship("Sheet", back_populates="attachments")


class Enquiry(Base):
    """Conversation between a business and operations about one order."""
    __tablename__ = "enquiries"

    id = Column(Integer, primary_key=True)
    business_id = Column(Integer, ForeignKey("businesses.id", ondelete="CASCADE"), nullable=False, index=True)
    order_number = Column(String(100), nullable=False)
    platform = Column(String(20), nullable=False)  # amazon | backmarket
    description = Column(Text, nullable=False)
    status = Column(String(30), nullable=False, default="Awaiting Business", index=True)
    created_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        UniqueConstraint("business_id", "order_number", name="uq_enquiry_business_order"),
    )

    business = relationship("Business")
    creator = relationship("User")
    messages = relationship(
        "EnquiryMessage",
        back_populates="enquiry",
        cascade="all, delete-orphan",
        order_by="EnquiryMessage.id",
    )


class EnquiryMessage(Base):
    """Append-only conversation entry."""
    __tablename__ = "enquiry_messages"

    id = Column(Integer, primary_key=True)
    enquiry_id = Column(Integer, ForeignKey("enquiries.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    message = Column(Text, nullable=False)
    attachments = Column(JSONType, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    enquiry = relationship("Enquiry", back_populates="messages")
    author = relationship("User")


class Notification(Base):
    """Pull-model notification row, targeted at a business and/or a user."""
    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True)
    type = Column(String(50), nullable=False)
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    link = Column(String(255), nullable=True)
    enquiry_id = Column(Integer, ForeignKey("enquiries.id", ondelete="CASCADE"), nullable=True)
    order_number = Column(String(100), nullable=True)
    business_id = Column(Integer, ForeignKey("businesses.id", ondelete="CASCADE"), nullable=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=True, index=True)
    read = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)


class BackMarketCredentials(Base):
    """Sealed Back Market API credentials, one row per business."""
    __tablename__ = "backmarket_credentials"

    id = Column(Integer, primary_key=True)
    business_id = Column(Integer, ForeignKey("businesses.id", ondelete="CASCADE"), nullable=False, unique=True)
    api_key_encrypted = Column(Text, nullable=False)
    api_secret_encrypted = Column(Text, nullable=True)
    updated_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())


class ShipStationLabel(Base):
    """Audit of label purchases. Written as pending before any external call."""
    __tablename__ = "shipstation_labels"

    id = Column(Integer, primary_key=True)
    sheet_id = Column(Integer, ForeignKey("sheets.id", ondelete="CASCADE"), nullable=False, index=True)
    business_id = Column(Integer, ForeignKey("businesses.id", ondelete="CASCADE"), nullable=False, index=True)
    status = Column(String(20), nullable=False, default="pending")  # pending | created | failed
    shipstation_order_id = Column(String(50), nullable=True)
    shipment_id = Column(String(50), nullable=True)
    tracking_number = Column(String(100), nullable=True)
    carrier_code = Column(String(50), nullable=True)
    service_code = Column(String(100), nullable=True)
    label_url = Column(Text, nullable=True)
    label_data = Column(Text, nullable=True)  # base64 PDF
    error = Column(Text, nullable=True)
    created_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
