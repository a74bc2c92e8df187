from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from app.models.crm.enums import DealStatus, InquiryPriority, InquiryStatus, MediaType, OriginType


class InquiryCreate(BaseModel):
    customer_id: UUID
    assigned_user_id: UUID | None = None
    notes: str | None = None


class InquiryUpdate(BaseModel):
    assigned_user_id: UUID | None = None
    notes: str | None = None


class InquiryStatusChange(BaseModel):
    status: str


class InquiryRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    tenant_id: UUID
    customer_id: UUID
    status: InquiryStatus
    assigned_user_id: UUID | None = None
    notes: str | None = None
    created_at: datetime
    updated_at: datetime


class PropertyInquiryCreate(BaseModel):
    inquiry_id: UUID
    customer_id: UUID | None = None
    room_id: UUID | None = None
    property_title: str | None = Field(default=None, max_length=255)
    deal_status: DealStatus = DealStatus.new_inquiry
    priority: InquiryPriority = InquiryPriority.normal
    assigned_user_id: UUID | None = None
    media_type: MediaType | None = None
    origin_type: OriginType | None = None
    message: str | None = None


class PropertyInquiryUpdate(BaseModel):
    """Deal status changes only through change_deal_status."""

    priority: InquiryPriority | None = None
    assigned_user_id: UUID | None = None
    property_title: str | None = Field(default=None, max_length=255)
    message: str | None = None


class DealStatusChange(BaseModel):
    deal_status: str
    reason: str | None = None


class PropertyInquiryRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    inquiry_id: UUID
    customer_id: UUID
    room_id: UUID | None = None
    property_title: str | None = None
    deal_status: DealStatus
    priority: InquiryPriority
    assigned_user_id: UUID | None = None
    lost_reason: str | None = None
    media_type: MediaType | None = None
    origin_type: OriginType | None = None
    message: str | None = None
    deal_status_changed_at: datetime | None = None
    created_at: datetime
    updated_at: datetime


class InquiryDetail(InquiryRead):
    property_inquiries: list[PropertyInquiryRead] = []
