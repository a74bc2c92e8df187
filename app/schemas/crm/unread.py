from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from app.models.crm.enums import ActivityType, InquiryStatus


class UnreadCount(BaseModel):
    # None means the count could not be computed; clients show no badge.
    count: int | None
    poll_interval_seconds: int


class UnreadCustomer(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str


class UnreadUser(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str


class UnreadActivityPreview(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    activity_type: ActivityType
    subject: str | None = None
    content: str | None = None
    created_at: datetime


class UnreadInquiryRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    inquiry_id: UUID
    status: InquiryStatus
    customer: UnreadCustomer
    assigned_user: UnreadUser | None = None
    last_activity: UnreadActivityPreview | None = None
    last_inbound_at: datetime
    elapsed_seconds: int


class MarkReadRequest(BaseModel):
    inquiry_id: UUID


class MarkReadResponse(BaseModel):
    inquiry_id: UUID
    last_read_at: datetime


class MarkAllReadRequest(BaseModel):
    inquiry_ids: list[UUID] | None = None


class MarkAllReadResponse(BaseModel):
    marked: int
