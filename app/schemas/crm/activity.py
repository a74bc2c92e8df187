from __future__ import annotations

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator

from app.models.crm.enums import ActivityDirection, ActivityType, MediaType, OriginType


class CustomerActivityCreate(BaseModel):
    inquiry_id: UUID
    property_inquiry_id: UUID | None = None
    activity_type: ActivityType
    direction: ActivityDirection = ActivityDirection.internal
    subject: str | None = Field(default=None, max_length=255)
    content: str | None = None
    metadata_: dict | None = Field(default=None, alias="metadata")

    model_config = ConfigDict(populate_by_name=True)


class CustomerActivityRead(BaseModel):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: UUID
    customer_id: UUID
    inquiry_id: UUID
    property_inquiry_id: UUID | None = None
    user_id: UUID | None = None
    activity_type: ActivityType
    direction: ActivityDirection
    subject: str | None = None
    content: str | None = None
    metadata_: dict | None = Field(default=None, serialization_alias="metadata")
    created_at: datetime


class InboundContact(BaseModel):
    """Payload delivered by channel transports (mailboxes, LINE webhook, web forms)."""

    channel: Literal["email", "line_message", "inquiry"]
    name: str | None = Field(default=None, max_length=160)
    email: str | None = Field(default=None, max_length=255)
    phone: str | None = Field(default=None, max_length=40)
    line_user_id: str | None = Field(default=None, max_length=64)
    subject: str | None = Field(default=None, max_length=255)
    content: str | None = None
    room_id: UUID | None = None
    property_title: str | None = Field(default=None, max_length=255)
    media_type: MediaType | None = None
    origin_type: OriginType | None = None
    received_at: datetime | None = None

    @model_validator(mode="after")
    def _require_identity(self):
        if not (self.email or self.phone or self.line_user_id):
            raise ValueError("email, phone or line_user_id is required")
        return self


class OutboundReply(BaseModel):
    channel: Literal["email", "line_message"]
    subject: str | None = Field(default=None, max_length=255)
    content: str = Field(min_length=1)
    property_inquiry_id: UUID | None = None
