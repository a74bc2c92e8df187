"""Inquiry status reconciliation and assignee propagation.

Both rules run synchronously inside the transaction that saved a
PropertyInquiry, via :func:`after_property_inquiry_save`. Neither commits;
a failure here aborts the triggering save.
"""

from __future__ import annotations

from sqlalchemy.orm import Session

from app.logging import get_logger
from app.models.crm.enums import DealStatus, InquiryStatus
from app.models.crm.inquiry import Inquiry, PropertyInquiry
from app.services.crm.errors import NotFoundError
from app.services.crm.observability import ASSIGNEE_PROPAGATIONS, INQUIRY_RECONCILIATIONS

logger = get_logger(__name__)

TERMINAL_DEAL_STATUSES = frozenset({DealStatus.contracted, DealStatus.lost})


def is_terminal(deal_status: DealStatus) -> bool:
    return deal_status in TERMINAL_DEAL_STATUSES


def sibling_deal_statuses(db: Session, inquiry_id) -> list[DealStatus]:
    """Current deal statuses of every property inquiry under ``inquiry_id``.

    Reads from the database (after flushing this session) rather than the
    in-memory collection, which may be stale.
    """
    db.flush()
    rows = db.query(PropertyInquiry.deal_status).filter(PropertyInquiry.inquiry_id == inquiry_id).all()
    return [row[0] for row in rows]


def derive_inquiry_status(current: InquiryStatus, deal_statuses: list[DealStatus]) -> InquiryStatus:
    if current == InquiryStatus.on_hold or not deal_statuses:
        return current
    if all(is_terminal(status) for status in deal_statuses):
        return InquiryStatus.closed
    if current == InquiryStatus.closed:
        return InquiryStatus.active
    return current


def reconcile_inquiry_status(db: Session, inquiry: Inquiry) -> InquiryStatus | None:
    """Close or reopen ``inquiry`` to match its property inquiries.

    Returns the new status when it changed, otherwise ``None``. Writes the
    status column directly and records no activity.
    """
    if inquiry.status == InquiryStatus.on_hold:
        return None
    target = derive_inquiry_status(inquiry.status, sibling_deal_statuses(db, inquiry.id))
    if target == inquiry.status:
        return None
    previous = inquiry.status
    inquiry.status = target
    db.flush()
    INQUIRY_RECONCILIATIONS.labels(to_status=target.value).inc()
    logger.info(
        "inquiry_status_reconciled inquiry_id=%s from=%s to=%s",
        inquiry.id,
        previous.value if previous else None,
        target.value,
    )
    return target


def propagate_assigned_user(db: Session, property_inquiry: PropertyInquiry, inquiry: Inquiry) -> bool:
    """Default the inquiry's primary owner from the first assigned property inquiry."""
    if property_inquiry.assigned_user_id is None or inquiry.assigned_user_id is not None:
        return False
    inquiry.assigned_user_id = property_inquiry.assigned_user_id
    db.flush()
    ASSIGNEE_PROPAGATIONS.inc()
    logger.info(
        "inquiry_assignee_propagated inquiry_id=%s user_id=%s property_inquiry_id=%s",
        inquiry.id,
        property_inquiry.assigned_user_id,
        property_inquiry.id,
    )
    return True


def after_property_inquiry_save(db: Session, property_inquiry: PropertyInquiry) -> Inquiry:
    inquiry = db.get(Inquiry, property_inquiry.inquiry_id)
    if inquiry is None:
        raise NotFoundError("inquiry_not_found", "Inquiry not found")
    propagate_assigned_user(db, property_inquiry, inquiry)
    reconcile_inquiry_status(db, inquiry)
    return inquiry
