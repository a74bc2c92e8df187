"""Tests for CRM targeting rules, error taxonomy and shared helpers."""

import uuid

import pytest
from fastapi import HTTPException

from app.models.crm.enums import InquiryStatus
from app.models.tenant import UserRole
from app.services.common import coerce_uuid, validate_enum
from app.services.crm.errors import (
    AuthorizationError,
    ConflictError,
    CrmError,
    InvalidStatusError,
    NotFoundError,
    ValidationError,
    as_http_exception,
)
from app.services.crm.permissions import (
    can_act_on_inquiry,
    can_view_inquiry,
    ensure_can_act_on_inquiry,
    inquiry_visibility_filter,
)


def test_admin_has_no_visibility_filter(admin, agent):
    assert inquiry_visibility_filter(admin) is None
    assert inquiry_visibility_filter(agent) is not None


def test_member_views_unassigned_and_own(agent, other_agent, customer, make_inquiry):
    assert can_view_inquiry(agent, make_inquiry(customer)) is True
    assert can_view_inquiry(agent, make_inquiry(customer, assigned_user=agent)) is True
    assert can_view_inquiry(agent, make_inquiry(customer, assigned_user=other_agent)) is False


def test_admin_views_everything_in_tenant(admin, other_agent, customer, make_inquiry):
    assert can_view_inquiry(admin, make_inquiry(customer, assigned_user=other_agent)) is True


def test_nobody_views_other_tenant(make_user, other_tenant, customer, make_inquiry):
    foreign_admin = make_user(other_tenant, name="Foreign", role=UserRole.admin)
    assert can_view_inquiry(foreign_admin, make_inquiry(customer)) is False


def test_inactive_user_views_nothing(make_user, tenant, customer, make_inquiry):
    inactive = make_user(tenant, is_active=False)
    assert can_view_inquiry(inactive, make_inquiry(customer)) is False


def test_property_assignee_can_act(agent, other_agent, customer, make_inquiry, make_property_inquiry):
    owned = make_inquiry(customer, assigned_user=other_agent)
    pi = make_property_inquiry(owned, assigned_user=agent)

    assert can_act_on_inquiry(agent, owned) is False
    assert can_act_on_inquiry(agent, owned, pi) is True


def test_ensure_can_act_allows_system_actor(other_agent, customer, make_inquiry):
    ensure_can_act_on_inquiry(None, make_inquiry(customer, assigned_user=other_agent))


def test_ensure_can_act_raises_for_other_owner(agent, other_agent, customer, make_inquiry):
    with pytest.raises(AuthorizationError) as exc_info:
        ensure_can_act_on_inquiry(agent, make_inquiry(customer, assigned_user=other_agent))
    assert exc_info.value.code == "inquiry_not_assigned"


# =============================================================================
# Error taxonomy
# =============================================================================


@pytest.mark.parametrize(
    ("error_cls", "status_code"),
    [
        (ValidationError, 400),
        (InvalidStatusError, 400),
        (NotFoundError, 404),
        (AuthorizationError, 403),
        (ConflictError, 409),
    ],
)
def test_error_status_codes(error_cls, status_code):
    error = error_cls("some_code", "Something happened")
    assert isinstance(error, CrmError)
    assert error.status_code == status_code
    assert str(error) == "Something happened"
    http_exc = error.to_http_exception()
    assert http_exc.status_code == status_code
    assert http_exc.detail == "Something happened"


def test_as_http_exception_passthrough_and_fallback():
    original = HTTPException(status_code=418, detail="teapot")
    assert as_http_exception(original) is original
    assert as_http_exception(NotFoundError("x", "missing")).status_code == 404
    assert as_http_exception(RuntimeError("boom")).status_code == 500


def test_coerce_uuid():
    value = uuid.uuid4()
    assert coerce_uuid(value) is value
    assert coerce_uuid(str(value)) == value
    with pytest.raises(NotFoundError):
        coerce_uuid("not-a-uuid", "inquiry_id")


def test_validate_enum():
    assert validate_enum("on_hold", InquiryStatus, "status") == InquiryStatus.on_hold
    with pytest.raises(ValidationError) as exc_info:
        validate_enum("paused", InquiryStatus, "status")
    assert exc_info.value.code == "invalid_status"
