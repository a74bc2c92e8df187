from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.api.deps import get_current_user, get_db
from app.models.tenant import User
from app.schemas.common import ListResponse
from app.schemas.crm.inquiry import (
    DealStatusChange,
    PropertyInquiryCreate,
    PropertyInquiryRead,
    PropertyInquiryUpdate,
)
from app.services.crm import deal_status as deal_status_service
from app.services.crm import inquiries as inquiry_service

router = APIRouter(prefix="/crm/property_inquiries", tags=["crm-property-inquiries"])


@router.post("", response_model=PropertyInquiryRead, status_code=status.HTTP_201_CREATED)
def create_property_inquiry(
    payload: PropertyInquiryCreate,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    return inquiry_service.property_inquiries.create(db, user, payload)


@router.get("", response_model=ListResponse[PropertyInquiryRead])
def list_property_inquiries(
    inquiry_id: str | None = None,
    deal_status: str | None = None,
    priority: str | None = None,
    assigned_user_id: str | None = None,
    order_by: str = Query(default="created_at"),
    order_dir: str = Query(default="desc", pattern="^(asc|desc)$"),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    return inquiry_service.property_inquiries.list_response(
        db,
        actor=user,
        inquiry_id=inquiry_id,
        deal_status=deal_status,
        priority=priority,
        assigned_user_id=assigned_user_id,
        order_by=order_by,
        order_dir=order_dir,
        limit=limit,
        offset=offset,
    )


@router.get("/{property_inquiry_id}", response_model=PropertyInquiryRead)
def get_property_inquiry(
    property_inquiry_id: str,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    return inquiry_service.property_inquiries.get(db, user, property_inquiry_id)


@router.patch("/{property_inquiry_id}", response_model=PropertyInquiryRead)
def update_property_inquiry(
    property_inquiry_id: str,
    payload: PropertyInquiryUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    return inquiry_service.property_inquiries.update(db, user, property_inquiry_id, payload)


@router.post("/{property_inquiry_id}/change_deal_status", response_model=PropertyInquiryRead)
def change_deal_status(
    property_inquiry_id: str,
    payload: DealStatusChange,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    return deal_status_service.change_deal_status(
        db,
        property_inquiry_id,
        payload.deal_status,
        user,
        reason=payload.reason,
    )
