"""Deal-status engine for property inquiries.

Every transition goes through :func:`change_deal_status`, which writes the
new status, logs a ``status_change`` activity and reconciles the parent
inquiry in a single transaction.
"""

from __future__ import annotations

from sqlalchemy.orm import Session

from app.logging import get_logger
from app.models.crm.enums import ActivityType, DealStatus
from app.models.crm.inquiry import PropertyInquiry
from app.models.tenant import User
from app.services.common import coerce_uuid, now
from app.services.crm.activities import append_activity
from app.services.crm.errors import InvalidStatusError, ValidationError
from app.services.crm.inquiries import load_property_inquiry
from app.services.crm.observability import DEAL_STATUS_CHANGES
from app.services.crm.permissions import ensure_can_act_on_inquiry
from app.services.crm.reconciliation import after_property_inquiry_save

logger = get_logger(__name__)

DEAL_STATUS_LABELS = {
    DealStatus.new_inquiry: "New inquiry",
    DealStatus.contacting: "Contacting",
    DealStatus.viewing_scheduled: "Viewing scheduled",
    DealStatus.viewing_done: "Viewing done",
    DealStatus.application: "Application",
    DealStatus.contracted: "Contracted",
    DealStatus.lost: "Lost",
}


def deal_status_label(status: DealStatus | None) -> str:
    if status is None:
        return "-"
    return DEAL_STATUS_LABELS.get(status, status.value)


def parse_deal_status(value) -> DealStatus:
    if isinstance(value, DealStatus):
        return value
    try:
        return DealStatus(str(value))
    except ValueError:
        allowed = ", ".join(item.value for item in DealStatus)
        raise InvalidStatusError(
            "invalid_deal_status",
            f"Invalid deal status: {value}. Allowed values: {allowed}",
        ) from None


def _status_change_content(property_inquiry: PropertyInquiry, new_status: DealStatus, reason: str | None) -> str:
    title = property_inquiry.property_title or (
        f"Room {property_inquiry.room_id}" if property_inquiry.room_id else "Property inquiry"
    )
    lines = [f"Property: {title}"]
    if new_status == DealStatus.lost and reason:
        lines.append(f"Reason: {reason}")
    return "\n".join(lines)


def change_deal_status(
    db: Session,
    property_inquiry_id,
    new_status,
    actor: User | None,
    reason: str | None = None,
    tenant_id=None,
) -> PropertyInquiry:
    """Move a property inquiry to ``new_status``.

    ``actor`` is the acting user, or ``None`` for system-triggered changes
    (which must pass ``tenant_id``). ``reason`` is kept only for ``lost``.
    Re-applying the current status is allowed and still logged.
    """
    target = parse_deal_status(new_status)
    if actor is None and tenant_id is None:
        raise ValidationError("tenant_required", "tenant_id is required for system deal status changes")
    tenant_uuid = actor.tenant_id if actor is not None else coerce_uuid(tenant_id, "tenant_id")

    property_inquiry, inquiry = load_property_inquiry(db, tenant_uuid, property_inquiry_id)
    ensure_can_act_on_inquiry(actor, inquiry, property_inquiry)

    previous = property_inquiry.deal_status
    reason = (reason or "").strip() or None
    try:
        property_inquiry.deal_status = target
        property_inquiry.deal_status_changed_at = now()
        property_inquiry.lost_reason = reason if target == DealStatus.lost else None
        append_activity(
            db,
            customer_id=property_inquiry.customer_id,
            inquiry_id=property_inquiry.inquiry_id,
            property_inquiry_id=property_inquiry.id,
            activity_type=ActivityType.status_change,
            user=actor,
            subject=f"Deal status: {deal_status_label(previous)} → {deal_status_label(target)}",
            content=_status_change_content(property_inquiry, target, reason),
            metadata={
                "from_status": previous.value if previous else None,
                "to_status": target.value,
            },
        )
        after_property_inquiry_save(db, property_inquiry)
        db.commit()
    except Exception:
        db.rollback()
        raise
    db.refresh(property_inquiry)

    DEAL_STATUS_CHANGES.labels(
        from_status=previous.value if previous else "none",
        to_status=target.value,
    ).inc()
    logger.info(
        "deal_status_changed property_inquiry_id=%s inquiry_id=%s from=%s to=%s actor_id=%s",
        property_inquiry.id,
        property_inquiry.inquiry_id,
        previous.value if previous else None,
        target.value,
        actor.id if actor is not None else None,
    )
    return property_inquiry
