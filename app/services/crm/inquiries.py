from __future__ import annotations

import uuid

from sqlalchemy.orm import Session, selectinload

from app.logging import get_logger
from app.models.crm.customer import Customer
from app.models.crm.enums import (
    ActivityType,
    DealStatus,
    InquiryPriority,
    InquiryStatus,
)
from app.models.crm.inquiry import Inquiry, PropertyInquiry
from app.models.tenant import User
from app.services.common import apply_ordering, apply_pagination, coerce_uuid, now, validate_enum
from app.services.crm.activities import append_activity
from app.services.crm.errors import InvalidStatusError, NotFoundError, ValidationError
from app.services.crm.permissions import ensure_can_act_on_inquiry, ensure_can_view_inquiry
from app.services.crm.reconciliation import after_property_inquiry_save, is_terminal, sibling_deal_statuses
from app.services.response import ListResponseMixin

logger = get_logger(__name__)

INQUIRY_STATUS_LABELS = {
    InquiryStatus.active: "Active",
    InquiryStatus.on_hold: "On hold",
    InquiryStatus.closed: "Closed",
}

PRIORITY_LABELS = {
    InquiryPriority.low: "Low",
    InquiryPriority.normal: "Normal",
    InquiryPriority.high: "High",
    InquiryPriority.urgent: "Urgent",
}


def inquiry_status_label(status: InquiryStatus) -> str:
    return INQUIRY_STATUS_LABELS.get(status, status.value)


def resolve_assignee(db: Session, tenant_id: uuid.UUID, user_id) -> User | None:
    if user_id is None:
        return None
    user = db.get(User, coerce_uuid(user_id, "assigned_user_id"))
    if not user or user.tenant_id != tenant_id or not user.is_active:
        raise ValidationError("invalid_assigned_user", "Assigned user is not an active user of this tenant")
    return user


def _user_name(db: Session, user_id) -> str:
    if user_id is None:
        return "Unassigned"
    user = db.get(User, user_id)
    return user.name if user else str(user_id)


def load_inquiry(db: Session, tenant_id, inquiry_id) -> Inquiry:
    inquiry = db.get(Inquiry, coerce_uuid(inquiry_id, "inquiry_id"))
    if not inquiry or inquiry.tenant_id != coerce_uuid(tenant_id, "tenant_id"):
        raise NotFoundError("inquiry_not_found", "Inquiry not found")
    return inquiry


def load_property_inquiry(db: Session, tenant_id, property_inquiry_id) -> tuple[PropertyInquiry, Inquiry]:
    property_inquiry = db.get(PropertyInquiry, coerce_uuid(property_inquiry_id, "property_inquiry_id"))
    if property_inquiry is None:
        raise NotFoundError("property_inquiry_not_found", "Property inquiry not found")
    inquiry = db.get(Inquiry, property_inquiry.inquiry_id)
    if inquiry is None or inquiry.tenant_id != coerce_uuid(tenant_id, "tenant_id"):
        raise NotFoundError("property_inquiry_not_found", "Property inquiry not found")
    return property_inquiry, inquiry


def _record_assignee_change(
    db: Session,
    *,
    actor: User | None,
    inquiry: Inquiry,
    property_inquiry: PropertyInquiry | None,
    previous_user_id,
    new_user_id,
) -> None:
    scope = "Primary owner" if property_inquiry is None else "Assignee"
    subject = f"{scope}: {_user_name(db, previous_user_id)} → {_user_name(db, new_user_id)}"
    append_activity(
        db,
        customer_id=inquiry.customer_id,
        inquiry_id=inquiry.id,
        property_inquiry_id=property_inquiry.id if property_inquiry is not None else None,
        activity_type=ActivityType.assigned_user_change,
        user=actor,
        subject=subject,
        content=property_inquiry.property_title if property_inquiry is not None else None,
    )


class Inquiries(ListResponseMixin):
    @staticmethod
    def create(db: Session, actor: User, payload) -> Inquiry:
        customer = db.get(Customer, payload.customer_id)
        if not customer or customer.tenant_id != actor.tenant_id:
            raise NotFoundError("customer_not_found", "Customer not found")
        assignee = resolve_assignee(db, actor.tenant_id, payload.assigned_user_id)
        inquiry = Inquiry(
            tenant_id=actor.tenant_id,
            customer_id=customer.id,
            assigned_user_id=assignee.id if assignee else None,
            notes=payload.notes,
            status=InquiryStatus.active,
        )
        db.add(inquiry)
        db.commit()
        db.refresh(inquiry)
        logger.info("inquiry_created inquiry_id=%s customer_id=%s actor_id=%s", inquiry.id, customer.id, actor.id)
        return inquiry

    @staticmethod
    def get(db: Session, actor: User, inquiry_id) -> Inquiry:
        inquiry = db.get(
            Inquiry,
            coerce_uuid(inquiry_id, "inquiry_id"),
            options=[selectinload(Inquiry.property_inquiries)],
        )
        if not inquiry or inquiry.tenant_id != actor.tenant_id:
            raise NotFoundError("inquiry_not_found", "Inquiry not found")
        ensure_can_view_inquiry(actor, inquiry)
        return inquiry

    @staticmethod
    def list(
        db: Session,
        actor: User,
        customer_id: str | None = None,
        status: str | None = None,
        assigned_user_id: str | None = None,
        order_by: str = "created_at",
        order_dir: str = "desc",
        limit: int = 50,
        offset: int = 0,
    ):
        query = db.query(Inquiry).filter(Inquiry.tenant_id == actor.tenant_id)
        if customer_id:
            query = query.filter(Inquiry.customer_id == coerce_uuid(customer_id, "customer_id"))
        if status:
            query = query.filter(Inquiry.status == validate_enum(status, InquiryStatus, "status"))
        if assigned_user_id:
            query = query.filter(Inquiry.assigned_user_id == coerce_uuid(assigned_user_id, "assigned_user_id"))
        query = apply_ordering(
            query,
            order_by,
            order_dir,
            {"created_at": Inquiry.created_at, "updated_at": Inquiry.updated_at},
        )
        return apply_pagination(query, limit, offset).all()

    @staticmethod
    def update(db: Session, actor: User, inquiry_id, payload) -> Inquiry:
        inquiry = load_inquiry(db, actor.tenant_id, inquiry_id)
        ensure_can_act_on_inquiry(actor, inquiry)
        data = payload.model_dump(exclude_unset=True)
        try:
            if "assigned_user_id" in data:
                assignee = resolve_assignee(db, actor.tenant_id, data["assigned_user_id"])
                new_user_id = assignee.id if assignee else None
                if new_user_id != inquiry.assigned_user_id:
                    _record_assignee_change(
                        db,
                        actor=actor,
                        inquiry=inquiry,
                        property_inquiry=None,
                        previous_user_id=inquiry.assigned_user_id,
                        new_user_id=new_user_id,
                    )
                    inquiry.assigned_user_id = new_user_id
            if "notes" in data:
                inquiry.notes = data["notes"]
            db.commit()
        except Exception:
            db.rollback()
            raise
        db.refresh(inquiry)
        return inquiry


def change_inquiry_status(db: Session, inquiry_id, status, actor: User) -> Inquiry:
    """Manual lifecycle override: active, on_hold or closed.

    ``on_hold`` always sticks and suspends reconciliation. ``active`` and
    ``closed`` are rejected when they contradict the property inquiries
    (closing with open deals or with none at all, or reopening when every
    deal is finished).
    """
    try:
        target = InquiryStatus(status.value if isinstance(status, InquiryStatus) else str(status))
    except ValueError:
        raise InvalidStatusError("invalid_status", f"Invalid inquiry status: {status}") from None
    inquiry = load_inquiry(db, actor.tenant_id, inquiry_id)
    ensure_can_act_on_inquiry(actor, inquiry)
    previous = inquiry.status
    if target == previous:
        return inquiry
    try:
        if target != InquiryStatus.on_hold:
            deal_statuses = sibling_deal_statuses(db, inquiry.id)
            if not deal_statuses and target == InquiryStatus.closed:
                raise ValidationError(
                    "inquiry_has_no_deals",
                    "Cannot close an inquiry without property inquiries; put it on hold instead",
                )
            if deal_statuses:
                all_terminal = all(is_terminal(value) for value in deal_statuses)
                if target == InquiryStatus.closed and not all_terminal:
                    raise ValidationError(
                        "inquiry_has_open_deals",
                        "Cannot close an inquiry while a property inquiry is still in progress; "
                        "mark each one contracted or lost first",
                    )
                if target == InquiryStatus.active and all_terminal:
                    raise ValidationError(
                        "inquiry_deals_finished",
                        "Every property inquiry is contracted or lost; "
                        "reopen a property inquiry or add a new one to reactivate",
                    )
        inquiry.status = target
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(inquiry)
    logger.info(
        "inquiry_status_changed inquiry_id=%s from=%s to=%s actor_id=%s",
        inquiry.id,
        previous.value,
        target.value,
        actor.id,
    )
    return inquiry


class PropertyInquiries(ListResponseMixin):
    @staticmethod
    def create(db: Session, actor: User | None, payload, tenant_id=None) -> PropertyInquiry:
        tenant_uuid = actor.tenant_id if actor is not None else coerce_uuid(tenant_id, "tenant_id")
        inquiry = load_inquiry(db, tenant_uuid, payload.inquiry_id)
        if payload.customer_id is not None and payload.customer_id != inquiry.customer_id:
            raise ValidationError("customer_mismatch", "Property inquiry customer must match the inquiry customer")
        try:
            property_inquiry = _build_property_inquiry(db, tenant_uuid, inquiry, payload)
            after_property_inquiry_save(db, property_inquiry)
            db.commit()
        except Exception:
            db.rollback()
            raise
        db.refresh(property_inquiry)
        logger.info(
            "property_inquiry_created property_inquiry_id=%s inquiry_id=%s deal_status=%s",
            property_inquiry.id,
            inquiry.id,
            property_inquiry.deal_status.value,
        )
        return property_inquiry

    @staticmethod
    def get(db: Session, actor: User, property_inquiry_id) -> PropertyInquiry:
        property_inquiry, _ = load_property_inquiry(db, actor.tenant_id, property_inquiry_id)
        return property_inquiry

    @staticmethod
    def list(
        db: Session,
        actor: User,
        inquiry_id: str | None = None,
        deal_status: str | None = None,
        priority: str | None = None,
        assigned_user_id: str | None = None,
        order_by: str = "created_at",
        order_dir: str = "desc",
        limit: int = 50,
        offset: int = 0,
    ):
        query = (
            db.query(PropertyInquiry)
            .join(Inquiry, Inquiry.id == PropertyInquiry.inquiry_id)
            .filter(Inquiry.tenant_id == actor.tenant_id)
        )
        if inquiry_id:
            query = query.filter(PropertyInquiry.inquiry_id == coerce_uuid(inquiry_id, "inquiry_id"))
        if deal_status:
            query = query.filter(PropertyInquiry.deal_status == validate_enum(deal_status, DealStatus, "deal_status"))
        if priority:
            query = query.filter(PropertyInquiry.priority == validate_enum(priority, InquiryPriority, "priority"))
        if assigned_user_id:
            query = query.filter(
                PropertyInquiry.assigned_user_id == coerce_uuid(assigned_user_id, "assigned_user_id")
            )
        query = apply_ordering(
            query,
            order_by,
            order_dir,
            {
                "created_at": PropertyInquiry.created_at,
                "updated_at": PropertyInquiry.updated_at,
                "deal_status_changed_at": PropertyInquiry.deal_status_changed_at,
            },
        )
        return apply_pagination(query, limit, offset).all()

    @staticmethod
    def update(db: Session, actor: User, property_inquiry_id, payload) -> PropertyInquiry:
        property_inquiry, inquiry = load_property_inquiry(db, actor.tenant_id, property_inquiry_id)
        ensure_can_act_on_inquiry(actor, inquiry, property_inquiry)
        data = payload.model_dump(exclude_unset=True)
        try:
            if "assigned_user_id" in data:
                assignee = resolve_assignee(db, actor.tenant_id, data.pop("assigned_user_id"))
                new_user_id = assignee.id if assignee else None
                if new_user_id != property_inquiry.assigned_user_id:
                    _record_assignee_change(
                        db,
                        actor=actor,
                        inquiry=inquiry,
                        property_inquiry=property_inquiry,
                        previous_user_id=property_inquiry.assigned_user_id,
                        new_user_id=new_user_id,
                    )
                    property_inquiry.assigned_user_id = new_user_id
            if data.get("priority") is not None:
                data["priority"] = validate_enum(data["priority"], InquiryPriority, "priority")
            elif "priority" in data:
                data.pop("priority")
            for key, value in data.items():
                setattr(property_inquiry, key, value)
            after_property_inquiry_save(db, property_inquiry)
            db.commit()
        except Exception:
            db.rollback()
            raise
        db.refresh(property_inquiry)
        return property_inquiry


def _build_property_inquiry(db: Session, tenant_id: uuid.UUID, inquiry: Inquiry, payload) -> PropertyInquiry:
    assignee = resolve_assignee(db, tenant_id, payload.assigned_user_id)
    deal_status = validate_enum(payload.deal_status, DealStatus, "deal_status")
    property_inquiry = PropertyInquiry(
        inquiry_id=inquiry.id,
        customer_id=inquiry.customer_id,
        room_id=payload.room_id,
        property_title=payload.property_title,
        deal_status=deal_status,
        priority=validate_enum(payload.priority, InquiryPriority, "priority"),
        assigned_user_id=assignee.id if assignee else None,
        media_type=payload.media_type,
        origin_type=payload.origin_type,
        message=payload.message,
        deal_status_changed_at=now(),
    )
    db.add(property_inquiry)
    db.flush()
    return property_inquiry


inquiries = Inquiries()
property_inquiries = PropertyInquiries()
