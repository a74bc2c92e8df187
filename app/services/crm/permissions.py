"""Targeting and authorization rules for inquiries."""

from __future__ import annotations

from sqlalchemy import or_

from app.models.crm.inquiry import Inquiry, PropertyInquiry
from app.models.tenant import User
from app.services.crm.errors import AuthorizationError


def is_admin(user: User | None) -> bool:
    return bool(user is not None and user.is_admin)


def inquiry_visibility_filter(user: User):
    """SQL criterion selecting inquiries that count as ``user``'s.

    Unassigned inquiries are visible to every active tenant user so new
    contacts are never invisible to everyone; assigned ones belong to the
    assignee. Admins see everything.
    """
    if is_admin(user):
        return None
    return or_(Inquiry.assigned_user_id.is_(None), Inquiry.assigned_user_id == user.id)


def can_view_inquiry(user: User, inquiry: Inquiry) -> bool:
    if not user.is_active or user.tenant_id != inquiry.tenant_id:
        return False
    if is_admin(user):
        return True
    return inquiry.assigned_user_id is None or inquiry.assigned_user_id == user.id


def can_act_on_inquiry(
    user: User,
    inquiry: Inquiry,
    property_inquiry: PropertyInquiry | None = None,
) -> bool:
    if can_view_inquiry(user, inquiry):
        return True
    return property_inquiry is not None and property_inquiry.assigned_user_id == user.id


def ensure_can_act_on_inquiry(
    actor: User | None,
    inquiry: Inquiry,
    property_inquiry: PropertyInquiry | None = None,
) -> None:
    # System-triggered changes carry no actor.
    if actor is None:
        return
    if not can_act_on_inquiry(actor, inquiry, property_inquiry):
        raise AuthorizationError(
            "inquiry_not_assigned",
            "This inquiry is assigned to another user",
        )


def ensure_can_view_inquiry(actor: User, inquiry: Inquiry) -> None:
    """Detail access: the inquiry's own audience, plus anyone holding one of its properties."""
    if can_view_inquiry(actor, inquiry):
        return
    if any(item.assigned_user_id == actor.id for item in inquiry.property_inquiries):
        return
    raise AuthorizationError(
        "inquiry_not_assigned",
        "This inquiry is assigned to another user",
    )
