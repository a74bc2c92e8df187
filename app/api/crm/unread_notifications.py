from fastapi import APIRouter, Depends, Query
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.api.deps import get_current_user, get_db
from app.config import settings
from app.logging import get_logger
from app.models.tenant import User
from app.schemas.crm.unread import (
    MarkAllReadRequest,
    MarkAllReadResponse,
    MarkReadRequest,
    MarkReadResponse,
    UnreadCount,
    UnreadInquiryRead,
)
from app.services.crm import unread as unread_service

logger = get_logger(__name__)

router = APIRouter(prefix="/crm/unread_notifications", tags=["crm-unread"])


@router.get("/count", response_model=UnreadCount)
def unread_count(db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    try:
        count = unread_service.unread_count(db, user)
    except SQLAlchemyError:
        # Polled badge endpoint: report "unknown" instead of failing.
        logger.exception("unread_count_failed user_id=%s", user.id)
        db.rollback()
        count = None
    return UnreadCount(count=count, poll_interval_seconds=settings.unread_poll_interval_seconds)


@router.get("", response_model=list[UnreadInquiryRead])
def list_unread(
    limit: int | None = Query(default=None, ge=1, le=100),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    return unread_service.list_unread(db, user, limit=limit)


@router.post("/mark_read", response_model=MarkReadResponse)
def mark_read(payload: MarkReadRequest, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    read_at = unread_service.mark_read(db, user, payload.inquiry_id)
    return MarkReadResponse(inquiry_id=payload.inquiry_id, last_read_at=read_at)


@router.post("/mark_all_read", response_model=MarkAllReadResponse)
def mark_all_read(
    payload: MarkAllReadRequest | None = None,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    inquiry_ids = payload.inquiry_ids if payload is not None else None
    return MarkAllReadResponse(marked=unread_service.mark_all_read(db, user, inquiry_ids))
