from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from app.api.deps import get_current_user, get_db
from app.models.tenant import User
from app.schemas.common import ListResponse
from app.schemas.crm.activity import CustomerActivityCreate, CustomerActivityRead
from app.schemas.crm.customer import CustomerCreate, CustomerRead, CustomerUpdate
from app.services.crm import activities as activity_service
from app.services.crm import customers as customer_service

router = APIRouter(prefix="/crm/customers", tags=["crm-customers"])


@router.post("", response_model=CustomerRead, status_code=status.HTTP_201_CREATED)
def create_customer(
    payload: CustomerCreate,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    return customer_service.customers.create(db, user.tenant_id, payload)


@router.get("", response_model=ListResponse[CustomerRead])
def list_customers(
    search: str | None = None,
    status: str | None = None,
    order_by: str = Query(default="created_at"),
    order_dir: str = Query(default="desc", pattern="^(asc|desc)$"),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    return customer_service.customers.list_response(
        db,
        tenant_id=user.tenant_id,
        search=search,
        status=status,
        order_by=order_by,
        order_dir=order_dir,
        limit=limit,
        offset=offset,
    )


@router.get("/{customer_id}", response_model=CustomerRead)
def get_customer(customer_id: str, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    return customer_service.customers.get(db, user.tenant_id, customer_id)


@router.patch("/{customer_id}", response_model=CustomerRead)
def update_customer(
    customer_id: str,
    payload: CustomerUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    return customer_service.customers.update(db, user.tenant_id, customer_id, payload)


@router.post("/{customer_id}/archive", response_model=CustomerRead)
def archive_customer(customer_id: str, db: Session = Depends(get_db), user: User = Depends(get_current_user)):
    return customer_service.customers.archive(db, user.tenant_id, customer_id)


@router.get("/{customer_id}/activities", response_model=list[CustomerActivityRead])
def list_customer_activities(
    customer_id: str,
    limit: int | None = Query(default=None, ge=1, le=500),
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    return activity_service.customer_activities.list_for_customer(db, user, customer_id, limit)


@router.post(
    "/{customer_id}/activities",
    response_model=CustomerActivityRead,
    status_code=status.HTTP_201_CREATED,
)
def create_customer_activity(
    customer_id: str,
    payload: CustomerActivityCreate,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
):
    return activity_service.customer_activities.create(db, user, customer_id, payload)
