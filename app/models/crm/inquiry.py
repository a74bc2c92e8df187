import uuid
from datetime import UTC, datetime

from sqlalchemy import DateTime, Enum, ForeignKey, Index, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db import Base
from app.models.crm.enums import DealStatus, InquiryPriority, InquiryStatus, MediaType, OriginType


class Inquiry(Base):
    """Conversation container grouping one customer's property inquiries.

    Only the coarse lifecycle (active / on_hold / closed) lives here. Deal
    stage, priority and per-property ownership belong to PropertyInquiry.
    """

    __tablename__ = "inquiries"
    __table_args__ = (
        Index("ix_inquiries_tenant_status", "tenant_id", "status"),
        Index("ix_inquiries_assigned_user", "assigned_user_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    tenant_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("tenants.id"), nullable=False)
    customer_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("customers.id"), nullable=False)
    status: Mapped[InquiryStatus] = mapped_column(Enum(InquiryStatus), default=InquiryStatus.active)
    assigned_user_id: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True), ForeignKey("users.id"))
    notes: Mapped[str | None] = mapped_column(Text)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(UTC))
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
    )

    customer = relationship("Customer", back_populates="inquiries")
    assigned_user = relationship("User", foreign_keys=[assigned_user_id])
    property_inquiries = relationship(
        "PropertyInquiry",
        back_populates="inquiry",
        cascade="all, delete-orphan",
    )
    activities = relationship("CustomerActivity", back_populates="inquiry", cascade="all, delete-orphan")
    read_statuses = relationship("InquiryReadStatus", back_populates="inquiry", cascade="all, delete-orphan")


class PropertyInquiry(Base):
    __tablename__ = "property_inquiries"
    __table_args__ = (
        Index("ix_property_inquiries_inquiry_deal_status", "inquiry_id", "deal_status"),
        Index("ix_property_inquiries_assigned_user", "assigned_user_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    inquiry_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("inquiries.id"), nullable=False)
    customer_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("customers.id"), nullable=False)
    # Rooms belong to the listing service; only the reference and a title snapshot are kept.
    room_id: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True))
    property_title: Mapped[str | None] = mapped_column(String(255))
    deal_status: Mapped[DealStatus] = mapped_column(Enum(DealStatus), default=DealStatus.new_inquiry)
    priority: Mapped[InquiryPriority] = mapped_column(Enum(InquiryPriority), default=InquiryPriority.normal)
    assigned_user_id: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True), ForeignKey("users.id"))
    lost_reason: Mapped[str | None] = mapped_column(Text)
    media_type: Mapped[MediaType | None] = mapped_column(Enum(MediaType))
    origin_type: Mapped[OriginType | None] = mapped_column(Enum(OriginType))
    message: Mapped[str | None] = mapped_column(Text)
    deal_status_changed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(UTC))
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        onupdate=lambda: datetime.now(UTC),
    )

    inquiry = relationship("Inquiry", back_populates="property_inquiries")
    customer = relationship("Customer", back_populates="property_inquiries")
    assigned_user = relationship("User", foreign_keys=[assigned_user_id])
    activities = relationship("CustomerActivity", back_populates="property_inquiry")
