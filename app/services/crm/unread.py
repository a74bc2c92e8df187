"""Per-user unread inquiry tracking.

An inquiry is unread for a user when its latest inbound customer message
(email, LINE or web inquiry) is newer than the user's read watermark in
``inquiry_read_statuses``, or when no watermark exists yet. Watermarks are
written with an idempotent upsert keyed on ``(user_id, inquiry_id)``.
"""

from __future__ import annotations

import time
import uuid
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import and_, func, or_, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.orm import Session

from app.config import settings
from app.logging import get_logger
from app.models.crm.activity import CustomerActivity
from app.models.crm.customer import Customer
from app.models.crm.enums import ActivityDirection, ActivityType, InquiryStatus
from app.models.crm.inquiry import Inquiry
from app.models.crm.read_status import InquiryReadStatus
from app.models.tenant import User
from app.services.common import as_utc, coerce_uuid, now
from app.services.crm.errors import NotFoundError
from app.services.crm.observability import READ_MARKS, UNREAD_QUERY_TIME
from app.services.crm.permissions import inquiry_visibility_filter
from app.telemetry import get_tracer

logger = get_logger(__name__)
tracer = get_tracer(__name__)

# Customer-originated message types. Outbound replies, notes and system
# events never make an inquiry unread.
UNREAD_INBOUND_ACTIVITY_TYPES = (
    ActivityType.email,
    ActivityType.line_message,
    ActivityType.inquiry,
)


@dataclass(frozen=True)
class UnreadCustomer:
    id: uuid.UUID
    name: str


@dataclass(frozen=True)
class UnreadUser:
    id: uuid.UUID
    name: str


@dataclass(frozen=True)
class UnreadActivityPreview:
    activity_type: ActivityType
    subject: str | None
    content: str | None
    created_at: datetime


@dataclass(frozen=True)
class UnreadInquiry:
    inquiry_id: uuid.UUID
    status: InquiryStatus
    customer: UnreadCustomer
    assigned_user: UnreadUser | None
    last_activity: UnreadActivityPreview | None
    last_inbound_at: datetime
    elapsed_seconds: int


def _inbound_activity_criteria():
    return and_(
        CustomerActivity.direction == ActivityDirection.inbound,
        CustomerActivity.activity_type.in_(UNREAD_INBOUND_ACTIVITY_TYPES),
    )


def _last_inbound_subquery():
    return (
        select(
            CustomerActivity.inquiry_id.label("inquiry_id"),
            func.max(CustomerActivity.created_at).label("last_inbound_at"),
        )
        .where(_inbound_activity_criteria())
        .group_by(CustomerActivity.inquiry_id)
        .subquery("last_inbound")
    )


def _unread_query(db: Session, user: User):
    last_inbound = _last_inbound_subquery()
    query = (
        db.query(Inquiry, last_inbound.c.last_inbound_at)
        .join(last_inbound, last_inbound.c.inquiry_id == Inquiry.id)
        .outerjoin(
            InquiryReadStatus,
            and_(
                InquiryReadStatus.inquiry_id == Inquiry.id,
                InquiryReadStatus.user_id == user.id,
            ),
        )
        .filter(Inquiry.tenant_id == user.tenant_id)
        .filter(Inquiry.status != InquiryStatus.closed)
        .filter(
            or_(
                InquiryReadStatus.last_read_at.is_(None),
                last_inbound.c.last_inbound_at > InquiryReadStatus.last_read_at,
            )
        )
    )
    visibility = inquiry_visibility_filter(user)
    if visibility is not None:
        query = query.filter(visibility)
    return query, last_inbound


def _eligible(user: User | None) -> bool:
    return user is not None and bool(user.is_active)


def unread_count(db: Session, user: User) -> int:
    if not _eligible(user):
        return 0
    started = time.monotonic()
    with tracer.start_as_current_span("crm.unread.count") as span:
        span.set_attribute("user.id", str(user.id))
        query, _ = _unread_query(db, user)
        count = query.with_entities(Inquiry.id).count()
        span.set_attribute("unread.count", count)
    UNREAD_QUERY_TIME.labels(operation="count").observe(time.monotonic() - started)
    return count


def unread_inquiry_ids(db: Session, user: User) -> list[uuid.UUID]:
    if not _eligible(user):
        return []
    query, _ = _unread_query(db, user)
    return [row[0] for row in query.with_entities(Inquiry.id).all()]


def _truncate(value: str | None, length: int) -> str | None:
    if value is None or len(value) <= length:
        return value
    return value[:length]


def _latest_inbound_previews(db: Session, inquiry_ids: list[uuid.UUID]) -> dict[uuid.UUID, UnreadActivityPreview]:
    if not inquiry_ids:
        return {}
    ranked = (
        select(
            CustomerActivity.inquiry_id,
            CustomerActivity.activity_type,
            CustomerActivity.subject,
            CustomerActivity.content,
            CustomerActivity.created_at,
            func.row_number()
            .over(
                partition_by=CustomerActivity.inquiry_id,
                order_by=(CustomerActivity.created_at.desc(), CustomerActivity.id.desc()),
            )
            .label("rank"),
        )
        .where(_inbound_activity_criteria())
        .where(CustomerActivity.inquiry_id.in_(inquiry_ids))
        .subquery("ranked_inbound")
    )
    rows = db.execute(select(ranked).where(ranked.c.rank == 1)).all()
    length = settings.unread_preview_length
    return {
        row.inquiry_id: UnreadActivityPreview(
            activity_type=row.activity_type,
            subject=row.subject,
            content=_truncate(row.content, length),
            created_at=as_utc(row.created_at),
        )
        for row in rows
    }


def list_unread(db: Session, user: User, limit: int | None = None) -> list[UnreadInquiry]:
    """Unread inquiries for ``user``, newest inbound message first."""
    if not _eligible(user):
        return []
    started = time.monotonic()
    with tracer.start_as_current_span("crm.unread.list") as span:
        span.set_attribute("user.id", str(user.id))
        query, last_inbound = _unread_query(db, user)
        rows = (
            query.order_by(last_inbound.c.last_inbound_at.desc(), Inquiry.id)
            .limit(limit or settings.unread_list_limit)
            .all()
        )
        inquiry_ids = [inquiry.id for inquiry, _ in rows]
        previews = _latest_inbound_previews(db, inquiry_ids)
        customer_ids = {inquiry.customer_id for inquiry, _ in rows}
        user_ids = {inquiry.assigned_user_id for inquiry, _ in rows if inquiry.assigned_user_id}
        customers = (
            {c.id: c for c in db.query(Customer).filter(Customer.id.in_(customer_ids)).all()}
            if customer_ids
            else {}
        )
        assignees = {u.id: u for u in db.query(User).filter(User.id.in_(user_ids)).all()} if user_ids else {}
        span.set_attribute("unread.returned", len(rows))

    current = now()
    items: list[UnreadInquiry] = []
    for inquiry, last_inbound_at in rows:
        last_inbound_at = as_utc(last_inbound_at)
        customer = customers.get(inquiry.customer_id)
        assignee = assignees.get(inquiry.assigned_user_id) if inquiry.assigned_user_id else None
        items.append(
            UnreadInquiry(
                inquiry_id=inquiry.id,
                status=inquiry.status,
                customer=UnreadCustomer(id=inquiry.customer_id, name=customer.name if customer else ""),
                assigned_user=UnreadUser(id=assignee.id, name=assignee.name) if assignee else None,
                last_activity=previews.get(inquiry.id),
                last_inbound_at=last_inbound_at,
                elapsed_seconds=max(0, int((current - last_inbound_at).total_seconds())),
            )
        )
    UNREAD_QUERY_TIME.labels(operation="list").observe(time.monotonic() - started)
    return items


def _insert_for(db: Session):
    dialect = db.get_bind().dialect.name
    if dialect == "postgresql":
        return pg_insert
    if dialect == "sqlite":
        return sqlite_insert
    return None


def upsert_read_marks(
    db: Session,
    user_id: uuid.UUID,
    inquiry_ids: list[uuid.UUID],
    read_at: datetime,
) -> None:
    """Write ``last_read_at`` for each inquiry (flush only; caller commits)."""
    if not inquiry_ids:
        return
    db.flush()
    stamp = now()
    insert = _insert_for(db)
    if insert is None:
        existing = {
            row.inquiry_id: row
            for row in db.query(InquiryReadStatus)
            .filter(InquiryReadStatus.user_id == user_id)
            .filter(InquiryReadStatus.inquiry_id.in_(inquiry_ids))
            .all()
        }
        for inquiry_id in inquiry_ids:
            row = existing.get(inquiry_id)
            if row is None:
                db.add(InquiryReadStatus(user_id=user_id, inquiry_id=inquiry_id, last_read_at=read_at))
            else:
                row.last_read_at = read_at
        db.flush()
        return
    rows = [
        {
            "id": uuid.uuid4(),
            "user_id": user_id,
            "inquiry_id": inquiry_id,
            "last_read_at": read_at,
            "created_at": stamp,
            "updated_at": stamp,
        }
        for inquiry_id in inquiry_ids
    ]
    stmt = insert(InquiryReadStatus).values(rows)
    stmt = stmt.on_conflict_do_update(
        index_elements=["user_id", "inquiry_id"],
        set_={
            "last_read_at": stmt.excluded.last_read_at,
            "updated_at": stmt.excluded.updated_at,
        },
    )
    db.execute(stmt)


def mark_read(db: Session, user: User, inquiry_id, read_at: datetime | None = None) -> datetime:
    """Set the user's watermark on one inquiry to ``read_at`` (default now)."""
    inquiry = db.get(Inquiry, coerce_uuid(inquiry_id, "inquiry_id"))
    if inquiry is None or inquiry.tenant_id != user.tenant_id:
        raise NotFoundError("inquiry_not_found", "Inquiry not found")
    read_at = as_utc(read_at) or now()
    try:
        upsert_read_marks(db, user.id, [inquiry.id], read_at)
        db.commit()
    except Exception:
        db.rollback()
        raise
    READ_MARKS.labels(mode="single").inc()
    logger.debug("inquiry_marked_read inquiry_id=%s user_id=%s", inquiry.id, user.id)
    return read_at


def mark_all_read(db: Session, user: User, inquiry_ids=None, read_at: datetime | None = None) -> int:
    """Bulk variant of :func:`mark_read`.

    With no ``inquiry_ids`` every inquiry currently unread for the user is
    marked. Ids outside the user's tenant are skipped. Returns the number of
    watermarks written.
    """
    if not _eligible(user):
        return 0
    if inquiry_ids is None:
        targets = unread_inquiry_ids(db, user)
    else:
        requested = {coerce_uuid(value, "inquiry_id") for value in inquiry_ids}
        if not requested:
            return 0
        targets = [
            row[0]
            for row in db.query(Inquiry.id)
            .filter(Inquiry.tenant_id == user.tenant_id)
            .filter(Inquiry.id.in_(requested))
            .all()
        ]
    if not targets:
        return 0
    read_at = as_utc(read_at) or now()
    try:
        upsert_read_marks(db, user.id, targets, read_at)
        db.commit()
    except Exception:
        db.rollback()
        raise
    READ_MARKS.labels(mode="bulk").inc()
    logger.info("inquiries_marked_read user_id=%s count=%s", user.id, len(targets))
    return len(targets)
