"""Create tenant, customer, inquiry, activity and read status tables.

Revision ID: 1f3a9c2e7b10
Revises:
Create Date: 2026-10-19
"""

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "1f3a9c2e7b10"
down_revision = None
branch_labels = None
depends_on = None

ENUM_NAMES = (
    "activitydirection",
    "activitytype",
    "origintype",
    "mediatype",
    "inquirypriority",
    "dealstatus",
    "inquirystatus",
    "customerstatus",
    "userrole",
)


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    ]


def upgrade() -> None:
    userrole = sa.Enum("member", "admin", "super_admin", name="userrole")
    customerstatus = sa.Enum("active", "archived", name="customerstatus")
    inquirystatus = sa.Enum("active", "on_hold", "closed", name="inquirystatus")
    dealstatus = sa.Enum(
        "new_inquiry",
        "contacting",
        "viewing_scheduled",
        "viewing_done",
        "application",
        "contracted",
        "lost",
        name="dealstatus",
    )
    inquirypriority = sa.Enum("low", "normal", "high", "urgent", name="inquirypriority")
    mediatype = sa.Enum(
        "suumo",
        "athome",
        "homes",
        "own_website",
        "email",
        "line",
        "phone",
        "walk_in",
        "referral",
        "other_media",
        name="mediatype",
    )
    origintype = sa.Enum(
        "document_request",
        "viewing_request",
        "general_inquiry",
        "staff_proposal",
        "other_origin",
        name="origintype",
    )
    activitytype = sa.Enum(
        "note",
        "phone_call",
        "email",
        "visit",
        "viewing",
        "inquiry",
        "access_issued",
        "status_change",
        "line_message",
        "assigned_user_change",
        "portal_viewed",
        "ai_simulation",
        "ai_grounding",
        "customer_route_created",
        "access_revoked",
        "access_extended",
        "inquiry_replied",
        "customer_merged",
        name="activitytype",
    )
    activitydirection = sa.Enum("internal", "outbound", "inbound", name="activitydirection")

    op.create_table(
        "tenants",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("subdomain", sa.String(length=80), nullable=False, unique=True),
        sa.Column("is_active", sa.Boolean(), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        "users",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("tenant_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("tenants.id"), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("name", sa.String(length=160), nullable=False),
        sa.Column("role", userrole, nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("tenant_id", "email", name="uq_users_tenant_email"),
    )

    op.create_table(
        "customers",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("tenant_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("tenants.id"), nullable=False),
        sa.Column("name", sa.String(length=160), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("phone", sa.String(length=40), nullable=True),
        sa.Column("line_user_id", sa.String(length=64), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("status", customerstatus, nullable=True),
        sa.Column("last_contacted_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("tenant_id", "email", name="uq_customers_tenant_email"),
        sa.UniqueConstraint("tenant_id", "phone", name="uq_customers_tenant_phone"),
        sa.UniqueConstraint("tenant_id", "line_user_id", name="uq_customers_tenant_line_user"),
    )
    op.create_index("ix_customers_tenant_status", "customers", ["tenant_id", "status"])

    op.create_table(
        "inquiries",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("tenant_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("tenants.id"), nullable=False),
        sa.Column("customer_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("customers.id"), nullable=False),
        sa.Column("status", inquirystatus, nullable=True),
        sa.Column("assigned_user_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_inquiries_tenant_status", "inquiries", ["tenant_id", "status"])
    op.create_index("ix_inquiries_assigned_user", "inquiries", ["assigned_user_id"])

    op.create_table(
        "property_inquiries",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("inquiry_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("inquiries.id"), nullable=False),
        sa.Column("customer_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("customers.id"), nullable=False),
        sa.Column("room_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("property_title", sa.String(length=255), nullable=True),
        sa.Column("deal_status", dealstatus, nullable=True),
        sa.Column("priority", inquirypriority, nullable=True),
        sa.Column("assigned_user_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("lost_reason", sa.Text(), nullable=True),
        sa.Column("media_type", mediatype, nullable=True),
        sa.Column("origin_type", origintype, nullable=True),
        sa.Column("message", sa.Text(), nullable=True),
        sa.Column("deal_status_changed_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index(
        "ix_property_inquiries_inquiry_deal_status",
        "property_inquiries",
        ["inquiry_id", "deal_status"],
    )
    op.create_index("ix_property_inquiries_assigned_user", "property_inquiries", ["assigned_user_id"])

    op.create_table(
        "customer_activities",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("customer_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("customers.id"), nullable=False),
        sa.Column("inquiry_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("inquiries.id"), nullable=False),
        sa.Column(
            "property_inquiry_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("property_inquiries.id"),
            nullable=True,
        ),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id"), nullable=True),
        sa.Column("activity_type", activitytype, nullable=False),
        sa.Column("direction", activitydirection, nullable=False),
        sa.Column("subject", sa.String(length=255), nullable=True),
        sa.Column("content", sa.Text(), nullable=True),
        sa.Column("metadata", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index(
        "ix_customer_activities_inquiry_direction_created",
        "customer_activities",
        ["inquiry_id", "direction", "created_at"],
    )
    op.create_index(
        "ix_customer_activities_customer_created",
        "customer_activities",
        ["customer_id", "created_at"],
    )

    op.create_table(
        "inquiry_read_statuses",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("inquiry_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("inquiries.id"), nullable=False),
        sa.Column("last_read_at", sa.DateTime(timezone=True), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("user_id", "inquiry_id", name="uq_inquiry_read_statuses_user_inquiry"),
    )


def downgrade() -> None:
    op.drop_table("inquiry_read_statuses")
    op.drop_index("ix_customer_activities_customer_created", table_name="customer_activities")
    op.drop_index("ix_customer_activities_inquiry_direction_created", table_name="customer_activities")
    op.drop_table("customer_activities")
    op.drop_index("ix_property_inquiries_assigned_user", table_name="property_inquiries")
    op.drop_index("ix_property_inquiries_inquiry_deal_status", table_name="property_inquiries")
    op.drop_table("property_inquiries")
    op.drop_index("ix_inquiries_assigned_user", table_name="inquiries")
    op.drop_index("ix_inquiries_tenant_status", table_name="inquiries")
    op.drop_table("inquiries")
    op.drop_index("ix_customers_tenant_status", table_name="customers")
    op.drop_table("customers")
    op.drop_table("users")
    op.drop_table("tenants")

    for name in ENUM_NAMES:
        op.execute(f"DROP TYPE IF EXISTS {name};")
