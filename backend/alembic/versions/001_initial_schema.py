"""initial schema

Revision ID: 001
Revises:
Create Date: 2026-10-18

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "001"
down_revision = None
branch_labels = None
depends_on = None

JSONType = sa.JSON().with_variant(postgresql.JSONB(), "postgresql")


def _timestamps(updated: bool = True) -> list[sa.Column]:
    columns = [sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now())]
    if updated:
        columns.append(sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now()))
    return columns


def upgrade() -> None:
    op.create_table(
        "roles",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=False),
        sa.Column("name", sa.String(length=50), nullable=False, unique=True),
        sa.Column("permissions", JSONType, nullable=False),
    )

    op.create_table(
        "businesses",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("currency_code", sa.String(length=3), nullable=False, server_default="GBP"),
        sa.Column("currency_symbol", sa.String(length=8), nullable=False, server_default="£"),
        sa.Column("street1", sa.String(length=255), nullable=True),
        sa.Column("street2", sa.String(length=255), nullable=True),
        sa.Column("city", sa.String(length=100), nullable=True),
        sa.Column("state", sa.String(length=100), nullable=True),
        sa.Column("postal_code", sa.String(length=20), nullable=True),
        sa.Column("country", sa.String(length=2), nullable=True),
        sa.Column("phone", sa.String(length=50), nullable=True),
        sa.Column("owner_id", sa.Integer(), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("username", sa.String(length=100), nullable=False),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column("role_id", sa.Integer(), sa.ForeignKey("roles.id"), nullable=False),
        sa.Column("business_id", sa.Integer(), sa.ForeignKey("businesses.id", ondelete="CASCADE"), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_users_username", "users", ["username"], unique=True)
    op.create_index("ix_users_role_id", "users", ["role_id"])
    op.create_index("ix_users_business_id", "users", ["business_id"])

    op.create_table(
        "sheets",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("business_id", sa.Integer(), sa.ForeignKey("businesses.id", ondelete="CASCADE"), nullable=False),
        sa.Column("date_received", sa.Date(), nullable=True),
        sa.Column("order_date", sa.Date(), nullable=True),
        sa.Column("order_no", sa.String(length=100), nullable=False),
        sa.Column("customer_name", sa.String(length=255), nullable=True),
        sa.Column("imei", sa.String(length=100), nullable=True),
        sa.Column("sku", sa.String(length=100), nullable=True),
        sa.Column("customer_comment", sa.Text(), nullable=True),
        sa.Column("multiple_return", sa.String(length=50), nullable=True),
        sa.Column("apple_google_id", sa.String(length=50), nullable=True),
        sa.Column("return_type", sa.String(length=100), nullable=True),
        sa.Column("locked", sa.String(length=10), nullable=False, server_default="No"),
        sa.Column("oow_case", sa.String(length=10), nullable=False, server_default="No"),
        sa.Column("replacement_available", sa.String(length=50), nullable=True),
        sa.Column("done_by", sa.String(length=100), nullable=True),
        sa.Column("blocked_by", sa.String(length=100), nullable=True),
        sa.Column("cs_comment", sa.Text(), nullable=True),
        sa.Column("resolution", sa.String(length=100), nullable=True),
        sa.Column("refund_amount", sa.Numeric(10, 2), nullable=True),
        sa.Column("refund_date", sa.Date(), nullable=True),
        sa.Column("return_tracking_no", sa.String(length=100), nullable=True),
        sa.Column("platform", sa.String(length=50), nullable=False, server_default=""),
        sa.Column("return_within_30_days", sa.String(length=3), nullable=False, server_default=""),
        sa.Column("issue", sa.String(length=255), nullable=True),
        sa.Column("out_of_warranty", sa.String(length=10), nullable=True),
        sa.Column("additional_notes", sa.Text(), nullable=True),
        sa.Column("status", sa.String(length=100), nullable=True),
        sa.Column("manager_notes", sa.Text(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_sheets_business_id", "sheets", ["business_id"])
    op.create_index("ix_sheets_order_no", "sheets", ["order_no"])
    op.create_index("idx_sheets_business_date_received", "sheets", ["business_id", "date_received"])

    op.create_table(
        "sheet_history",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("sheet_id", sa.Integer(), nullable=False),
        sa.Column("business_id", sa.Integer(), nullable=False),
        sa.Column("action", sa.String(length=20), nullable=False),
        sa.Column("changes", JSONType, nullable=True),
        sa.Column("user_id", sa.Integer(), nullable=True),
        sa.Column("username", sa.String(length=100), nullable=True),
        *_timestamps(updated=False),
    )
    op.create_index("ix_sheet_history_sheet_id", "sheet_history", ["sheet_id"])
    op.create_index("ix_sheet_history_business_id", "sheet_history", ["business_id"])

    op.create_table(
        "attachments",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("sheet_id", sa.Integer(), sa.ForeignKey("sheets.id", ondelete="CASCADE"), nullable=False),
        sa.Column("business_id", sa.Integer(), sa.ForeignKey("businesses.id", ondelete="CASCADE"), nullable=False),
        sa.Column("file_name", sa.String(length=255), nullable=False),
        sa.Column("original_name", sa.String(length=255), nullable=False),
        sa.Column("file_size", sa.Integer(), nullable=False),
        sa.Column("mime_type", sa.String(length=100), nullable=False),
        sa.Column("remote_path", sa.String(length=500), nullable=False),
        sa.Column("uploaded_by", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        *_timestamps(updated=False),
    )
    op.create_index("ix_attachments_sheet_id", "attachments", ["sheet_id"])
    op.create_index("ix_attachments_business_id", "attachments", ["business_id"])

    op.create_table(
        "enquiries",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("business_id", sa.Integer(), sa.ForeignKey("businesses.id", ondelete="CASCADE"), nullable=False),
        sa.Column("order_number", sa.String(length=100), nullable=False),
        sa.Column("platform", sa.String(length=20), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("status", sa.String(length=30), nullable=False, server_default="Awaiting Business"),
        sa.Column("created_by", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("business_id", "order_number", name="uq_enquiry_business_order"),
    )
    op.create_index("ix_enquiries_business_id", "enquiries", ["business_id"])
    op.create_index("ix_enquiries_status", "enquiries", ["status"])

    op.create_table(
        "enquiry_messages",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("enquiry_id", sa.Integer(), sa.ForeignKey("enquiries.id", ondelete="CASCADE"), nullable=False),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("attachments", JSONType, nullable=True),
        *_timestamps(updated=False),
    )
    op.create_index("ix_enquiry_messages_enquiry_id", "enquiry_messages", ["enquiry_id"])

    op.create_table(
        "notifications",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("type", sa.String(length=50), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("link", sa.String(length=255), nullable=True),
        sa.Column("enquiry_id", sa.Integer(), sa.ForeignKey("enquiries.id", ondelete="CASCADE"), nullable=True),
        sa.Column("order_number", sa.String(length=100), nullable=True),
        sa.Column("business_id", sa.Integer(), sa.ForeignKey("businesses.id", ondelete="CASCADE"), nullable=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=True),
        sa.Column("read", sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamps(updated=False),
    )
    op.create_index("ix_notifications_business_id", "notifications", ["business_id"])
    op.create_index("ix_notifications_user_id", "notifications", ["user_id"])
    op.create_index("ix_notifications_created_at", "notifications", ["created_at"])

    op.create_table(
        "backmarket_credentials",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("business_id", sa.Integer(), sa.ForeignKey("businesses.id", ondelete="CASCADE"), nullable=False, unique=True),
        sa.Column("api_key_encrypted", sa.Text(), nullable=False),
        sa.Column("api_secret_encrypted", sa.Text(), nullable=True),
        sa.Column("updated_by", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        "shipstation_labels",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("sheet_id", sa.Integer(), sa.ForeignKey("sheets.id", ondelete="CASCADE"), nullable=False),
        sa.Column("business_id", sa.Integer(), sa.ForeignKey("businesses.id", ondelete="CASCADE"), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="pending"),
        sa.Column("shipstation_order_id", sa.String(length=50), nullable=True),
        sa.Column("shipment_id", sa.String(length=50), nullable=True),
        sa.Column("tracking_number", sa.String(length=100), nullable=True),
        sa.Column("carrier_code", sa.String(length=50), nullable=True),
        sa.Column("service_code", sa.String(length=100), nullable=True),
        sa.Column("label_url", sa.Text(), nullable=True),
        sa.Column("label_data", sa.Text(), nullable=True),
        sa.Column("error", sa.Text(), nullable=True),
        sa.Column("created_by", sa.Integer(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_shipstation_labels_sheet_id", "shipstation_labels", ["sheet_id"])
    op.create_index("ix_shipstation_labels_business_id", "shipstation_labels", ["business_id"])


def downgrade() -> None:
    op.drop_table("shipstation_labels")
    op.drop_table("backmarket_credentials")
    op.drop_table("notifications")
    op.drop_table("enquiry_messages")
    op.drop_table("enquiries")
    op.drop_table("attachments")
    op.drop_table("sheet_history")
    op.drop_table("sheets")
    op.drop_table("users")
    op.drop_table("businesses")
    op.drop_table("roles")
