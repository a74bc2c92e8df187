"""Customer activity log.

Activities are append-only. Channel transports create inbound/outbound
entries; the deal-status engine and assignment edits create internal
entries as an audit trail.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy.orm import Session

from app.config import settings
from app.models.crm.activity import CustomerActivity
from app.models.crm.customer import Customer
from app.models.crm.enums import ActivityDirection, ActivityType
from app.models.crm.inquiry import Inquiry, PropertyInquiry
from app.models.tenant import User
from app.services.common import as_utc, coerce_uuid, now
from app.services.crm.errors import NotFoundError, ValidationError
from app.services.crm.permissions import ensure_can_act_on_inquiry

# Activity types that represent a real touchpoint with the customer.
CONTACT_ACTIVITY_TYPES = frozenset(
    {
        ActivityType.phone_call,
        ActivityType.email,
        ActivityType.visit,
        ActivityType.viewing,
        ActivityType.line_message,
    }
)

# Events recorded by the system rather than entered by staff.
SYSTEM_ACTIVITY_TYPES = frozenset(
    {
        ActivityType.inquiry,
        ActivityType.access_issued,
        ActivityType.status_change,
        ActivityType.assigned_user_change,
        ActivityType.portal_viewed,
        ActivityType.ai_simulation,
        ActivityType.ai_grounding,
        ActivityType.customer_route_created,
        ActivityType.access_revoked,
        ActivityType.access_extended,
        ActivityType.inquiry_replied,
        ActivityType.customer_merged,
    }
)

# Audit entries written only by deal status changes and assignee edits.
AUDIT_ACTIVITY_TYPES = frozenset({ActivityType.status_change, ActivityType.assigned_user_change})

ACTIVITY_TYPE_LABELS = {
    ActivityType.note: "Note",
    ActivityType.phone_call: "Phone call",
    ActivityType.email: "Email",
    ActivityType.visit: "Store visit",
    ActivityType.viewing: "Viewing",
    ActivityType.inquiry: "Inquiry",
    ActivityType.access_issued: "Access issued",
    ActivityType.status_change: "Status change",
    ActivityType.line_message: "LINE",
    ActivityType.assigned_user_change: "Assignee change",
    ActivityType.portal_viewed: "Portal viewed",
    ActivityType.ai_simulation: "AI simulation",
    ActivityType.ai_grounding: "AI Q&A",
    ActivityType.customer_route_created: "Route created",
    ActivityType.access_revoked: "Access revoked",
    ActivityType.access_extended: "Access extended",
    ActivityType.inquiry_replied: "Inquiry replied",
    ActivityType.customer_merged: "Customer merged",
}


def activity_type_label(activity_type: ActivityType) -> str:
    return ACTIVITY_TYPE_LABELS.get(activity_type, activity_type.value)


def append_activity(
    db: Session,
    *,
    customer_id,
    inquiry_id,
    activity_type: ActivityType,
    direction: ActivityDirection = ActivityDirection.internal,
    user: User | None = None,
    property_inquiry_id=None,
    subject: str | None = None,
    content: str | None = None,
    metadata: dict | None = None,
    created_at: datetime | None = None,
) -> CustomerActivity:
    """Add an activity to the current transaction (flush, no commit)."""
    activity = CustomerActivity(
        customer_id=customer_id,
        inquiry_id=inquiry_id,
        property_inquiry_id=property_inquiry_id,
        user_id=user.id if user is not None else None,
        activity_type=activity_type,
        direction=direction,
        subject=subject[:255] if subject else subject,
        content=content,
        metadata_=metadata,
        created_at=created_at or now(),
    )
    db.add(activity)
    if activity_type in CONTACT_ACTIVITY_TYPES:
        customer = db.get(Customer, customer_id)
        if customer is not None:
            previous = as_utc(customer.last_contacted_at)
            if previous is None or previous < as_utc(activity.created_at):
                customer.last_contacted_at = activity.created_at
    db.flush()
    return activity


class CustomerActivities:
    @staticmethod
    def create(db: Session, actor: User, customer_id, payload) -> CustomerActivity:
        customer = db.get(Customer, coerce_uuid(customer_id, "customer_id"))
        if not customer or customer.tenant_id != actor.tenant_id:
            raise NotFoundError("customer_not_found", "Customer not found")
        inquiry = db.get(Inquiry, payload.inquiry_id)
        if not inquiry or inquiry.customer_id != customer.id:
            raise NotFoundError("inquiry_not_found", "Inquiry not found for this customer")
        property_inquiry = None
        if payload.property_inquiry_id is not None:
            property_inquiry = db.get(PropertyInquiry, payload.property_inquiry_id)
            if not property_inquiry or property_inquiry.inquiry_id != inquiry.id:
                raise NotFoundError("property_inquiry_not_found", "Property inquiry not found for this inquiry")
        if payload.activity_type in AUDIT_ACTIVITY_TYPES:
            raise ValidationError(
                "invalid_activity_type",
                f"{payload.activity_type.value} activities are recorded by the service that makes the change",
            )
        ensure_can_act_on_inquiry(actor, inquiry, property_inquiry)
        try:
            activity = append_activity(
                db,
                customer_id=customer.id,
                inquiry_id=inquiry.id,
                property_inquiry_id=payload.property_inquiry_id,
                activity_type=payload.activity_type,
                direction=payload.direction,
                user=actor,
                subject=payload.subject,
                content=payload.content,
                metadata=payload.metadata_,
            )
            db.commit()
        except Exception:
            db.rollback()
            raise
        db.refresh(activity)
        return activity

    @staticmethod
    def list_for_customer(db: Session, actor: User, customer_id, limit: int | None = None):
        customer = db.get(Customer, coerce_uuid(customer_id, "customer_id"))
        if not customer or customer.tenant_id != actor.tenant_id:
            raise NotFoundError("customer_not_found", "Customer not found")
        return (
            db.query(CustomerActivity)
            .filter(CustomerActivity.customer_id == customer.id)
            .order_by(CustomerActivity.created_at.desc())
            .limit(limit or settings.activity_feed_limit)
            .all()
        )

    @staticmethod
    def list_for_inquiry(db: Session, actor: User, inquiry_id, limit: int | None = None):
        inquiry = db.get(Inquiry, coerce_uuid(inquiry_id, "inquiry_id"))
        if not inquiry or inquiry.tenant_id != actor.tenant_id:
            raise NotFoundError("inquiry_not_found", "Inquiry not found")
        return (
            db.query(CustomerActivity)
            .filter(CustomerActivity.inquiry_id == inquiry.id)
            .order_by(CustomerActivity.created_at.desc())
            .limit(limit or settings.activity_feed_limit)
            .all()
        )


customer_activities = CustomerActivities()
