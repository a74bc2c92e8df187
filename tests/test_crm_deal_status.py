"""Tests for the property inquiry deal-status engine."""

import uuid
from unittest.mock import patch

import pytest
from prometheus_client import REGISTRY

from app.models.crm.activity import CustomerActivity
from app.models.crm.enums import ActivityDirection, ActivityType, DealStatus, InquiryStatus
from app.services.crm import deal_status as deal_status_service
from app.services.crm.errors import (
    AuthorizationError,
    InvalidStatusError,
    NotFoundError,
    ValidationError,
)


def _status_change_activities(db_session, property_inquiry):
    return (
        db_session.query(CustomerActivity)
        .filter(CustomerActivity.property_inquiry_id == property_inquiry.id)
        .filter(CustomerActivity.activity_type == ActivityType.status_change)
        .order_by(CustomerActivity.created_at.asc())
        .all()
    )


def _metric(from_status: str, to_status: str) -> float:
    value = REGISTRY.get_sample_value(
        "crm_deal_status_changes_total",
        {"from_status": from_status, "to_status": to_status},
    )
    return value or 0.0


# =============================================================================
# Transitions and activity logging
# =============================================================================


def test_change_deal_status_updates_status_and_logs_activity(
    db_session, agent, inquiry, make_property_inquiry
):
    pi = make_property_inquiry(inquiry, property_title="Sunny Court 301")

    updated = deal_status_service.change_deal_status(db_session, pi.id, "contacting", agent)

    assert updated.deal_status == DealStatus.contacting
    assert updated.deal_status_changed_at is not None
    activities = _status_change_activities(db_session, pi)
    assert len(activities) == 1
    activity = activities[0]
    assert activity.direction == ActivityDirection.internal
    assert activity.user_id == agent.id
    assert activity.inquiry_id == inquiry.id
    assert "New inquiry → Contacting" in activity.subject
    assert "Sunny Court 301" in activity.content
    assert activity.metadata_ == {"from_status": "new_inquiry", "to_status": "contacting"}


def test_change_deal_status_accepts_enum_member(db_session, agent, inquiry, make_property_inquiry):
    pi = make_property_inquiry(inquiry)
    updated = deal_status_service.change_deal_status(db_session, pi.id, DealStatus.viewing_scheduled, agent)
    assert updated.deal_status == DealStatus.viewing_scheduled


def test_lost_reason_kept_for_lost_and_cleared_afterwards(
    db_session, agent, inquiry, make_property_inquiry
):
    pi = make_property_inquiry(inquiry)

    lost = deal_status_service.change_deal_status(
        db_session, pi.id, "lost", agent, reason="Chose another property"
    )
    assert lost.lost_reason == "Chose another property"
    assert "Reason: Chose another property" in _status_change_activities(db_session, pi)[-1].content

    reopened = deal_status_service.change_deal_status(db_session, pi.id, "contacting", agent)
    assert reopened.lost_reason is None


def test_reason_ignored_for_non_lost_status(db_session, agent, inquiry, make_property_inquiry):
    pi = make_property_inquiry(inquiry)
    updated = deal_status_service.change_deal_status(
        db_session, pi.id, "application", agent, reason="irrelevant"
    )
    assert updated.lost_reason is None


def test_reapplying_current_status_is_still_logged(db_session, agent, inquiry, make_property_inquiry):
    pi = make_property_inquiry(inquiry)
    deal_status_service.change_deal_status(db_session, pi.id, "contacting", agent)
    deal_status_service.change_deal_status(db_session, pi.id, "contacting", agent)

    activities = _status_change_activities(db_session, pi)
    assert len(activities) == 2
    assert "Contacting → Contacting" in activities[-1].subject


def test_change_deal_status_increments_metric(db_session, agent, inquiry, make_property_inquiry):
    pi = make_property_inquiry(inquiry)
    before = _metric("new_inquiry", "viewing_done")
    deal_status_service.change_deal_status(db_session, pi.id, "viewing_done", agent)
    assert _metric("new_inquiry", "viewing_done") == before + 1


# =============================================================================
# Validation and scoping
# =============================================================================


def test_invalid_status_rejected_without_side_effects(db_session, agent, inquiry, make_property_inquiry):
    pi = make_property_inquiry(inquiry)

    with pytest.raises(InvalidStatusError) as exc_info:
        deal_status_service.change_deal_status(db_session, pi.id, "signed", agent)

    assert isinstance(exc_info.value, ValidationError)
    assert exc_info.value.code == "invalid_deal_status"
    db_session.refresh(pi)
    assert pi.deal_status == DealStatus.new_inquiry
    assert _status_change_activities(db_session, pi) == []


def test_unknown_property_inquiry_not_found(db_session, agent):
    with pytest.raises(NotFoundError):
        deal_status_service.change_deal_status(db_session, uuid.uuid4(), "contacting", agent)


def test_property_inquiry_in_other_tenant_not_found(
    db_session, make_user, other_tenant, inquiry, make_property_inquiry
):
    outsider = make_user(other_tenant, name="Outsider")
    pi = make_property_inquiry(inquiry)

    with pytest.raises(NotFoundError):
        deal_status_service.change_deal_status(db_session, pi.id, "contacting", outsider)


def test_member_cannot_change_inquiry_assigned_to_someone_else(
    db_session, agent, other_agent, admin, customer, make_inquiry, make_property_inquiry
):
    owned = make_inquiry(customer, assigned_user=other_agent)
    pi = make_property_inquiry(owned)

    with pytest.raises(AuthorizationError):
        deal_status_service.change_deal_status(db_session, pi.id, "contacting", agent)

    updated = deal_status_service.change_deal_status(db_session, pi.id, "contacting", admin)
    assert updated.deal_status == DealStatus.contacting


def test_member_assigned_to_property_inquiry_can_change_it(
    db_session, agent, other_agent, customer, make_inquiry, make_property_inquiry
):
    owned = make_inquiry(customer, assigned_user=other_agent)
    pi = make_property_inquiry(owned, assigned_user=agent)

    updated = deal_status_service.change_deal_status(db_session, pi.id, "contacting", agent)
    assert updated.deal_status == DealStatus.contacting


def test_system_change_requires_tenant(db_session, tenant, inquiry, make_property_inquiry):
    pi = make_property_inquiry(inquiry)

    with pytest.raises(ValidationError):
        deal_status_service.change_deal_status(db_session, pi.id, "contacting", None)

    updated = deal_status_service.change_deal_status(
        db_session, pi.id, "contacting", None, tenant_id=tenant.id
    )
    assert updated.deal_status == DealStatus.contacting
    assert _status_change_activities(db_session, pi)[0].user_id is None


# =============================================================================
# Atomicity
# =============================================================================


def test_failure_during_reconciliation_rolls_back_everything(
    db_session, agent, inquiry, make_property_inquiry
):
    pi = make_property_inquiry(inquiry)

    with patch(
        "app.services.crm.deal_status.after_property_inquiry_save",
        side_effect=RuntimeError("reconcile failed"),
    ):
        with pytest.raises(RuntimeError):
            deal_status_service.change_deal_status(db_session, pi.id, "contracted", agent)

    db_session.refresh(pi)
    db_session.refresh(inquiry)
    assert pi.deal_status == DealStatus.new_inquiry
    assert inquiry.status == InquiryStatus.active
    assert _status_change_activities(db_session, pi) == []


def test_deal_status_label():
    assert deal_status_service.deal_status_label(DealStatus.viewing_scheduled) == "Viewing scheduled"
    assert deal_status_service.deal_status_label(None) == "-"
