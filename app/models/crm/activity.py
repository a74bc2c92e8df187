import uuid
from datetime import UTC, datetime

from sqlalchemy import JSON, DateTime, Enum, ForeignKey, Index, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db import Base
from app.models.crm.enums import ActivityDirection, ActivityType


class CustomerActivity(Base):
    """Append-only communication or system event on an inquiry."""

    __tablename__ = "customer_activities"
    __table_args__ = (
        Index("ix_customer_activities_inquiry_direction_created", "inquiry_id", "direction", "created_at"),
        Index("ix_customer_activities_customer_created", "customer_id", "created_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    customer_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("customers.id"), nullable=False)
    inquiry_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("inquiries.id"), nullable=False)
    property_inquiry_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("property_inquiries.id")
    )
    user_id: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True), ForeignKey("users.id"))
    activity_type: Mapped[ActivityType] = mapped_column(Enum(ActivityType), nullable=False)
    direction: Mapped[ActivityDirection] = mapped_column(
        Enum(ActivityDirection), default=ActivityDirection.internal, nullable=False
    )
    subject: Mapped[str | None] = mapped_column(String(255))
    content: Mapped[str | None] = mapped_column(Text)
    # Delivery tracking callbacks write here; unread computation never reads it.
    metadata_: Mapped[dict | None] = mapped_column("metadata", JSON)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(UTC))

    customer = relationship("Customer", back_populates="activities")
    inquiry = relationship("Inquiry", back_populates="activities")
    property_inquiry = relationship("PropertyInquiry", back_populates="activities")
    user = relationship("User")
