"""Tests for per-user unread inquiry tracking."""

import uuid
from datetime import timedelta

import pytest

from app.config import settings
from app.models.crm.enums import ActivityDirection, ActivityType, InquiryStatus
from app.models.crm.read_status import InquiryReadStatus
from app.models.tenant import UserRole
from app.services.common import as_utc
from app.services.crm import unread as unread_service
from app.services.crm.errors import NotFoundError

# =============================================================================
# Unread predicate
# =============================================================================


def test_no_activity_means_nothing_unread(db_session, agent, inquiry):
    assert unread_service.unread_count(db_session, agent) == 0
    assert unread_service.list_unread(db_session, agent) == []
    assert unread_service.unread_inquiry_ids(db_session, agent) == []


def test_inbound_email_without_watermark_is_unread(db_session, agent, inquiry, add_activity):
    add_activity(inquiry, ActivityType.email)

    assert unread_service.unread_count(db_session, agent) == 1
    assert unread_service.unread_inquiry_ids(db_session, agent) == [inquiry.id]


def test_mark_read_clears_and_new_inbound_reopens(db_session, agent, inquiry, add_activity, base_time):
    add_activity(inquiry, ActivityType.email, created_at=base_time)
    unread_service.mark_read(db_session, agent, inquiry.id, read_at=base_time + timedelta(minutes=1))
    assert unread_service.unread_count(db_session, agent) == 0

    add_activity(inquiry, ActivityType.line_message, created_at=base_time + timedelta(minutes=2))
    assert unread_service.unread_count(db_session, agent) == 1


def test_activity_at_watermark_counts_as_read(db_session, agent, inquiry, add_activity, base_time):
    add_activity(inquiry, ActivityType.inquiry, created_at=base_time)
    unread_service.mark_read(db_session, agent, inquiry.id, read_at=base_time)

    assert unread_service.unread_count(db_session, agent) == 0


@pytest.mark.parametrize(
    ("activity_type", "direction"),
    [
        (ActivityType.email, ActivityDirection.outbound),
        (ActivityType.line_message, ActivityDirection.outbound),
        (ActivityType.note, ActivityDirection.internal),
        (ActivityType.status_change, ActivityDirection.internal),
        (ActivityType.phone_call, ActivityDirection.inbound),
        (ActivityType.note, ActivityDirection.inbound),
    ],
)
def test_non_customer_messages_never_make_inquiry_unread(
    db_session, agent, inquiry, add_activity, activity_type, direction
):
    add_activity(inquiry, activity_type, direction)

    assert unread_service.unread_count(db_session, agent) == 0


def test_delivery_metadata_is_ignored(db_session, agent, inquiry, add_activity, base_time):
    add_activity(inquiry, ActivityType.email, created_at=base_time, metadata={"opened_at": "2099-01-01T00:00:00Z"})
    unread_service.mark_read(db_session, agent, inquiry.id, read_at=base_time + timedelta(seconds=1))

    assert unread_service.unread_count(db_session, agent) == 0


def test_closed_inquiries_are_excluded(db_session, agent, customer, make_inquiry, add_activity):
    closed = make_inquiry(customer, status=InquiryStatus.closed)
    add_activity(closed, ActivityType.email)

    assert unread_service.unread_count(db_session, agent) == 0


# =============================================================================
# Targeting
# =============================================================================


def test_members_see_unassigned_and_their_own(
    db_session, agent, other_agent, admin, make_customer, tenant, make_inquiry, add_activity
):
    mine = make_inquiry(make_customer(tenant, name="Mine"), assigned_user=agent)
    theirs = make_inquiry(make_customer(tenant, name="Theirs"), assigned_user=other_agent)
    shared = make_inquiry(make_customer(tenant, name="Shared"))
    for item in (mine, theirs, shared):
        add_activity(item, ActivityType.email)

    assert set(unread_service.unread_inquiry_ids(db_session, agent)) == {mine.id, shared.id}
    assert set(unread_service.unread_inquiry_ids(db_session, other_agent)) == {theirs.id, shared.id}
    assert set(unread_service.unread_inquiry_ids(db_session, admin)) == {mine.id, theirs.id, shared.id}


def test_super_admin_sees_every_tenant_inquiry(
    db_session, make_user, tenant, other_agent, customer, make_inquiry, add_activity
):
    owner = make_user(tenant, name="Owner", role=UserRole.super_admin)
    assigned = make_inquiry(customer, assigned_user=other_agent)
    add_activity(assigned, ActivityType.email)

    assert unread_service.unread_count(db_session, owner) == 1


def test_inactive_user_sees_nothing(db_session, make_user, tenant, inquiry, add_activity):
    inactive = make_user(tenant, name="Former", is_active=False)
    add_activity(inquiry, ActivityType.email)

    assert unread_service.unread_count(db_session, inactive) == 0
    assert unread_service.list_unread(db_session, inactive) == []
    assert unread_service.mark_all_read(db_session, inactive) == 0


def test_other_tenant_inquiries_are_invisible(
    db_session, agent, other_tenant, make_customer, make_inquiry, add_activity
):
    foreign = make_inquiry(make_customer(other_tenant))
    add_activity(foreign, ActivityType.email)

    assert unread_service.unread_count(db_session, agent) == 0


def test_watermarks_are_per_user(db_session, agent, admin, inquiry, add_activity):
    add_activity(inquiry, ActivityType.email)

    unread_service.mark_read(db_session, agent, inquiry.id)

    assert unread_service.unread_count(db_session, agent) == 0
    assert unread_service.unread_count(db_session, admin) == 1


# =============================================================================
# Listing
# =============================================================================


def test_list_unread_orders_newest_first_with_preview(
    db_session, agent, make_customer, tenant, make_inquiry, add_activity, base_time
):
    older = make_inquiry(make_customer(tenant, name="Older"), assigned_user=agent)
    newer = make_inquiry(make_customer(tenant, name="Newer"))
    add_activity(older, ActivityType.email, created_at=base_time, subject="Viewing request")
    add_activity(newer, ActivityType.email, created_at=base_time + timedelta(minutes=5), subject="First")
    add_activity(
        newer,
        ActivityType.line_message,
        created_at=base_time + timedelta(minutes=10),
        content="x" * (settings.unread_preview_length + 50),
    )
    add_activity(
        newer,
        ActivityType.note,
        direction=ActivityDirection.internal,
        created_at=base_time + timedelta(minutes=20),
        subject="Internal memo",
    )

    items = unread_service.list_unread(db_session, agent)

    assert [item.inquiry_id for item in items] == [newer.id, older.id]
    first = items[0]
    assert first.customer.name == "Newer"
    assert first.assigned_user is None
    assert first.last_activity.activity_type == ActivityType.line_message
    assert len(first.last_activity.content) == settings.unread_preview_length
    assert first.last_inbound_at == base_time + timedelta(minutes=10)
    assert first.elapsed_seconds >= 0
    second = items[1]
    assert second.assigned_user.name == "Tanaka"
    assert second.last_activity.subject == "Viewing request"
    assert second.elapsed_seconds >= 3600


def test_list_unread_respects_limit(db_session, agent, make_customer, tenant, make_inquiry, add_activity, base_time):
    for index in range(3):
        item = make_inquiry(make_customer(tenant, name=f"Customer {index}"))
        add_activity(item, ActivityType.email, created_at=base_time + timedelta(minutes=index))

    assert len(unread_service.list_unread(db_session, agent, limit=2)) == 2


# =============================================================================
# Watermark writes
# =============================================================================


def test_mark_read_is_idempotent_upsert(db_session, agent, inquiry, base_time):
    unread_service.mark_read(db_session, agent, inquiry.id, read_at=base_time)
    second = unread_service.mark_read(db_session, agent, inquiry.id, read_at=base_time + timedelta(minutes=3))

    rows = (
        db_session.query(InquiryReadStatus)
        .filter(InquiryReadStatus.user_id == agent.id)
        .filter(InquiryReadStatus.inquiry_id == inquiry.id)
        .all()
    )
    assert len(rows) == 1
    assert as_utc(rows[0].last_read_at) == second


def test_mark_read_unknown_inquiry_not_found(db_session, agent):
    with pytest.raises(NotFoundError):
        unread_service.mark_read(db_session, agent, uuid.uuid4())


def test_mark_read_other_tenant_inquiry_not_found(db_session, agent, other_tenant, make_customer, make_inquiry):
    foreign = make_inquiry(make_customer(other_tenant))

    with pytest.raises(NotFoundError):
        unread_service.mark_read(db_session, agent, foreign.id)


def test_mark_all_read_with_ids_skips_foreign_inquiries(
    db_session, agent, other_tenant, make_customer, tenant, make_inquiry, add_activity
):
    first = make_inquiry(make_customer(tenant, name="First"))
    second = make_inquiry(make_customer(tenant, name="Second"))
    foreign = make_inquiry(make_customer(other_tenant))
    for item in (first, second, foreign):
        add_activity(item, ActivityType.email)

    marked = unread_service.mark_all_read(db_session, agent, [first.id, second.id, foreign.id])

    assert marked == 2
    assert unread_service.unread_count(db_session, agent) == 0
    assert db_session.query(InquiryReadStatus).filter(InquiryReadStatus.inquiry_id == foreign.id).count() == 0


def test_mark_all_read_without_ids_marks_everything_unread(
    db_session, agent, make_customer, tenant, make_inquiry, add_activity
):
    for index in range(3):
        add_activity(make_inquiry(make_customer(tenant, name=f"Bulk {index}")), ActivityType.email)
    assert unread_service.unread_count(db_session, agent) == 3

    assert unread_service.mark_all_read(db_session, agent) == 3
    assert unread_service.unread_count(db_session, agent) == 0
    assert unread_service.mark_all_read(db_session, agent) == 0


def test_mark_all_read_updates_existing_watermarks(db_session, agent, inquiry, add_activity, base_time):
    unread_service.mark_read(db_session, agent, inquiry.id, read_at=base_time)
    add_activity(inquiry, ActivityType.email, created_at=base_time + timedelta(minutes=1))

    assert unread_service.mark_all_read(db_session, agent, [inquiry.id]) == 1
    assert unread_service.unread_count(db_session, agent) == 0
    assert db_session.query(InquiryReadStatus).filter(InquiryReadStatus.inquiry_id == inquiry.id).count() == 1
