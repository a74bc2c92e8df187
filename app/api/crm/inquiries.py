from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.api.deps import get_current_user, get_db
from app.models.tenant import User
from app.schemas.common import ListResponse
from app.schemas.crm.activity import CustomerActivityRead, OutboundReply
from app.schemas.crm.inquiry import (
    InquiryCreate,
    InquiryDetail,
    InquiryRead,
    InquiryStatusChange,
    InquiryUpdate,
)
from app.services.crm import activities as activity_service
from app.services.crm import inbound as inbound_service
from app.services.crm import inquiries as inquiry_service
from app.services.crm import unread as unread_service

router = APIRouter(prefix="/crm/inquiries", tags=["crm-inquiries"])


@router.post("", response_model=InquiryRead, status_code=status.HTTP_201_CREATED)
def create_inquiry(payload: InquiryCreate, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    return inquiry_service.inquiries.create(db, user, payload)


@router.get("", response_model=ListResponse[InquiryRead])
def list_inquiries(
    customer_id: str | None = None,
    status: str | None = None,
    assigned_user_id: str | None = None,
    order_by: str = Query(default="created_at"),
    order_dir: str = Query(default="desc", pattern="^(asc|desc)$"),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    return inquiry_service.inquiries.list_response(
        db,
        actor=user,
        customer_id=customer_id,
        status=status,
        assigned_user_id=assigned_user_id,
        order_by=order_by,
        order_dir=order_dir,
        limit=limit,
        offset=offset,
    )


@router.get("/{inquiry_id}", response_model=InquiryDetail)
def get_inquiry(inquiry_id: str, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    inquiry = inquiry_service.inquiries.get(db, user, inquiry_id)
    # Opening the detail view counts as reading it.
    unread_service.mark_read(db, user, inquiry.id)
    return inquiry


@router.patch("/{inquiry_id}", response_model=InquiryRead)
def update_inquiry(
    inquiry_id: str,
    payload: InquiryUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    return inquiry_service.inquiries.update(db, user, inquiry_id, payload)


@router.post("/{inquiry_id}/change_status", response_model=InquiryRead)
def change_inquiry_status(
    inquiry_id: str,
    payload: InquiryStatusChange,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    return inquiry_service.change_inquiry_status(db, inquiry_id, payload.status, user)


@router.get("/{inquiry_id}/activities", response_model=list[CustomerActivityRead])
def list_inquiry_activities(
    inquiry_id: str,
    limit: int | None = Query(default=None, ge=1, le=500),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    unread_service.mark_read(db, user, inquiry_id)
    return activity_service.customer_activities.list_for_inquiry(db, user, inquiry_id, limit)


@router.post(
    "/{inquiry_id}/replies",
    response_model=CustomerActivityRead,
    status_code=status.HTTP_201_CREATED,
)
def reply_to_inquiry(
    inquiry_id: str,
    payload: OutboundReply,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    return inbound_service.record_outbound_message(db, user, inquiry_id, payload)
