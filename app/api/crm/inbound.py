from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.api.deps import get_current_user, get_db
from app.models.tenant import User
from app.schemas.crm.activity import CustomerActivityRead, InboundContact
from app.services.crm import inbound as inbound_service

router = APIRouter(prefix="/crm/inbound", tags=["crm-inbound"])


@router.post("", response_model=CustomerActivityRead, status_code=status.HTTP_201_CREATED)
def record_inbound_contact(
    payload: InboundContact,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """Called by channel transports running as a service user of the tenant."""
    return inbound_service.record_inbound_contact(db, user.tenant_id, payload)
