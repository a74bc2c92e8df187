"""Recording customer messages delivered by channel transports.

Mailbox pollers, the LINE webhook and the public inquiry form hand their
parsed payloads to :func:`record_inbound_contact`. Staff replies sent through
a transport are logged with :func:`record_outbound_message`.
"""

from __future__ import annotations

from sqlalchemy.orm import Session

from app.logging import get_logger
from app.models.crm.activity import CustomerActivity
from app.models.crm.enums import ActivityDirection, ActivityType, InquiryStatus
from app.models.crm.inquiry import Inquiry, PropertyInquiry
from app.models.tenant import User
from app.services.common import as_utc, coerce_uuid, now
from app.services.crm.activities import append_activity
from app.services.crm.customers import find_or_create_by_contact
from app.services.crm.errors import NotFoundError
from app.services.crm.inquiries import load_inquiry
from app.services.crm.observability import INBOUND_CONTACTS
from app.services.crm.permissions import ensure_can_act_on_inquiry
from app.services.crm.reconciliation import after_property_inquiry_save
from app.services.crm.unread import upsert_read_marks

logger = get_logger(__name__)

CHANNEL_ACTIVITY_TYPES = {
    "email": ActivityType.email,
    "line_message": ActivityType.line_message,
    "inquiry": ActivityType.inquiry,
}


def _open_inquiry_for(db: Session, tenant_id, customer_id) -> Inquiry | None:
    return (
        db.query(Inquiry)
        .filter(Inquiry.tenant_id == tenant_id)
        .filter(Inquiry.customer_id == customer_id)
        .filter(Inquiry.status != InquiryStatus.closed)
        .order_by(Inquiry.created_at.desc())
        .first()
    )


def _property_inquiry_for_room(db: Session, inquiry: Inquiry, payload) -> PropertyInquiry:
    existing = (
        db.query(PropertyInquiry)
        .filter(PropertyInquiry.inquiry_id == inquiry.id)
        .filter(PropertyInquiry.room_id == payload.room_id)
        .first()
    )
    if existing:
        return existing
    property_inquiry = PropertyInquiry(
        inquiry_id=inquiry.id,
        customer_id=inquiry.customer_id,
        room_id=payload.room_id,
        property_title=payload.property_title,
        media_type=payload.media_type,
        origin_type=payload.origin_type,
        message=payload.content,
        deal_status_changed_at=now(),
    )
    db.add(property_inquiry)
    db.flush()
    after_property_inquiry_save(db, property_inquiry)
    return property_inquiry


def record_inbound_contact(db: Session, tenant_id, payload) -> CustomerActivity:
    """Attach an inbound message to the right customer, inquiry and property inquiry.

    The customer is matched by contact identity (created on first contact).
    The customer's most recent non-closed inquiry is reused; a closed history
    starts a new inquiry. When the message names a room, the inquiry's
    property inquiry for that room is reused or created.
    """
    tenant_uuid = coerce_uuid(tenant_id, "tenant_id")
    channel = payload.channel
    status = "error"
    try:
        customer, created = find_or_create_by_contact(
            db,
            tenant_uuid,
            name=payload.name,
            email=payload.email,
            phone=payload.phone,
            line_user_id=payload.line_user_id,
        )
        inquiry = None if created else _open_inquiry_for(db, tenant_uuid, customer.id)
        if inquiry is None:
            inquiry = Inquiry(tenant_id=tenant_uuid, customer_id=customer.id, status=InquiryStatus.active)
            db.add(inquiry)
            db.flush()
        property_inquiry = _property_inquiry_for_room(db, inquiry, payload) if payload.room_id else None
        activity = append_activity(
            db,
            customer_id=customer.id,
            inquiry_id=inquiry.id,
            property_inquiry_id=property_inquiry.id if property_inquiry else None,
            activity_type=CHANNEL_ACTIVITY_TYPES[channel],
            direction=ActivityDirection.inbound,
            subject=payload.subject,
            content=payload.content,
            metadata={"channel": channel},
            created_at=as_utc(payload.received_at),
        )
        db.commit()
        status = "new_customer" if created else "existing_customer"
    except Exception:
        db.rollback()
        raise
    finally:
        INBOUND_CONTACTS.labels(channel=channel, status=status).inc()
    db.refresh(activity)
    logger.info(
        "inbound_contact_recorded channel=%s customer_id=%s inquiry_id=%s new_customer=%s",
        channel,
        activity.customer_id,
        activity.inquiry_id,
        created,
    )
    return activity


def record_outbound_message(db: Session, actor: User, inquiry_id, payload) -> CustomerActivity:
    """Log a staff reply and advance the sender's read watermark past it."""
    inquiry = load_inquiry(db, actor.tenant_id, inquiry_id)
    property_inquiry = None
    if payload.property_inquiry_id is not None:
        property_inquiry = db.get(PropertyInquiry, payload.property_inquiry_id)
        if property_inquiry is None or property_inquiry.inquiry_id != inquiry.id:
            raise NotFoundError("property_inquiry_not_found", "Property inquiry not found for this inquiry")
    ensure_can_act_on_inquiry(actor, inquiry, property_inquiry)
    try:
        activity = append_activity(
            db,
            customer_id=inquiry.customer_id,
            inquiry_id=inquiry.id,
            property_inquiry_id=property_inquiry.id if property_inquiry else None,
            activity_type=CHANNEL_ACTIVITY_TYPES[payload.channel],
            direction=ActivityDirection.outbound,
            user=actor,
            subject=payload.subject,
            content=payload.content,
            metadata={"channel": payload.channel},
        )
        upsert_read_marks(db, actor.id, [inquiry.id], activity.created_at)
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(activity)
    logger.info(
        "outbound_message_recorded channel=%s inquiry_id=%s actor_id=%s",
        payload.channel,
        inquiry.id,
        actor.id,
    )
    return activity
