from __future__ import annotations

import uuid

from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.logging import get_logger
from app.models.crm.customer import Customer
from app.models.crm.enums import CustomerStatus
from app.services.common import apply_ordering, apply_pagination, coerce_uuid, validate_enum
from app.services.crm.errors import ConflictError, NotFoundError, ValidationError
from app.services.response import ListResponseMixin

logger = get_logger(__name__)


def _normalize_email(value: str | None) -> str | None:
    if not value:
        return None
    value = value.strip().lower()
    return value or None


def _normalize_phone(value: str | None) -> str | None:
    if not value:
        return None
    value = "".join(ch for ch in value.strip() if ch.isdigit() or ch == "+")
    return value or None


def _normalize_line_user_id(value: str | None) -> str | None:
    if not value:
        return None
    return value.strip() or None


def _conflict_from_integrity(exc: IntegrityError) -> ConflictError:
    message = str(exc.orig) if exc.orig else str(exc)
    for field in ("email", "phone", "line_user"):
        if field in message:
            return ConflictError(
                "customer_contact_taken",
                f"Another customer in this tenant already uses this {field.replace('_', ' ')}",
            )
    return ConflictError("customer_contact_taken", "Another customer already uses this contact")


def _find_by_contact(
    db: Session,
    tenant_id: uuid.UUID,
    email: str | None,
    phone: str | None,
    line_user_id: str | None,
) -> Customer | None:
    base = db.query(Customer).filter(Customer.tenant_id == tenant_id)
    if email:
        customer = base.filter(func.lower(Customer.email) == email).first()
        if customer:
            return customer
    if phone:
        customer = base.filter(Customer.phone == phone).first()
        if customer:
            return customer
    if line_user_id:
        return base.filter(Customer.line_user_id == line_user_id).first()
    return None


def _contact_taken(db: Session, tenant_id: uuid.UUID, field: str, value: str, customer_id: uuid.UUID) -> bool:
    column = getattr(Customer, field)
    condition = func.lower(column) == value if field == "email" else column == value
    return (
        db.query(Customer.id)
        .filter(Customer.tenant_id == tenant_id)
        .filter(condition)
        .filter(Customer.id != customer_id)
        .first()
        is not None
    )


class Customers(ListResponseMixin):
    @staticmethod
    def create(db: Session, tenant_id, payload):
        data = payload.model_dump()
        data["email"] = _normalize_email(data.get("email"))
        data["phone"] = _normalize_phone(data.get("phone"))
        data["line_user_id"] = _normalize_line_user_id(data.get("line_user_id"))
        if not (data["email"] or data["phone"] or data["line_user_id"]):
            raise ValidationError("customer_contact_required", "email, phone or line_user_id is required")
        customer = Customer(tenant_id=coerce_uuid(tenant_id, "tenant_id"), **data)
        db.add(customer)
        try:
            db.commit()
        except IntegrityError as exc:
            db.rollback()
            raise _conflict_from_integrity(exc) from exc
        db.refresh(customer)
        return customer

    @staticmethod
    def get(db: Session, tenant_id, customer_id) -> Customer:
        customer = db.get(Customer, coerce_uuid(customer_id, "customer_id"))
        if not customer or customer.tenant_id != coerce_uuid(tenant_id, "tenant_id"):
            raise NotFoundError("customer_not_found", "Customer not found")
        return customer

    @staticmethod
    def list(
        db: Session,
        tenant_id,
        search: str | None = None,
        status: str | None = None,
        order_by: str = "created_at",
        order_dir: str = "desc",
        limit: int = 50,
        offset: int = 0,
    ):
        query = db.query(Customer).filter(Customer.tenant_id == coerce_uuid(tenant_id, "tenant_id"))
        if status:
            query = query.filter(Customer.status == validate_enum(status, CustomerStatus, "status"))
        else:
            query = query.filter(Customer.status == CustomerStatus.active)
        if search:
            like = f"%{search.strip()}%"
            query = query.filter(
                or_(
                    Customer.name.ilike(like),
                    Customer.email.ilike(like),
                    Customer.phone.ilike(like),
                )
            )
        query = apply_ordering(
            query,
            order_by,
            order_dir,
            {
                "created_at": Customer.created_at,
                "updated_at": Customer.updated_at,
                "name": Customer.name,
                "last_contacted_at": Customer.last_contacted_at,
            },
        )
        return apply_pagination(query, limit, offset).all()

    @staticmethod
    def update(db: Session, tenant_id, customer_id, payload):
        customer = Customers.get(db, tenant_id, customer_id)
        data = payload.model_dump(exclude_unset=True)
        if "email" in data:
            data["email"] = _normalize_email(data["email"])
        if "phone" in data:
            data["phone"] = _normalize_phone(data["phone"])
        if "line_user_id" in data:
            data["line_user_id"] = _normalize_line_user_id(data["line_user_id"])
        for key, value in data.items():
            setattr(customer, key, value)
        if not (customer.email or customer.phone or customer.line_user_id):
            db.rollback()
            raise ValidationError("customer_contact_required", "email, phone or line_user_id is required")
        try:
            db.commit()
        except IntegrityError as exc:
            db.rollback()
            raise _conflict_from_integrity(exc) from exc
        db.refresh(customer)
        return customer

    @staticmethod
    def archive(db: Session, tenant_id, customer_id):
        customer = Customers.get(db, tenant_id, customer_id)
        customer.status = CustomerStatus.archived
        db.commit()
        db.refresh(customer)
        return customer


def find_or_create_by_contact(
    db: Session,
    tenant_id,
    *,
    name: str | None,
    email: str | None = None,
    phone: str | None = None,
    line_user_id: str | None = None,
) -> tuple[Customer, bool]:
    """Resolve a customer by contact identity, creating one on first contact.

    Matches on email, then phone, then LINE user id. Missing contact fields
    on a matched customer are filled in. Flushes only; the caller owns the
    transaction. Returns ``(customer, created)``.
    """
    tenant_uuid = coerce_uuid(tenant_id, "tenant_id")
    email = _normalize_email(email)
    phone = _normalize_phone(phone)
    line_user_id = _normalize_line_user_id(line_user_id)
    if not (email or phone or line_user_id):
        raise ValidationError("customer_contact_required", "email, phone or line_user_id is required")

    customer = _find_by_contact(db, tenant_uuid, email, phone, line_user_id)
    if customer:
        for field, value in (("email", email), ("phone", phone), ("line_user_id", line_user_id)):
            if not value or getattr(customer, field):
                continue
            if _contact_taken(db, tenant_uuid, field, value, customer.id):
                # Owned by another customer; leave the match as is.
                logger.info(
                    "customer_contact_fill_skipped tenant_id=%s customer_id=%s field=%s",
                    tenant_uuid,
                    customer.id,
                    field,
                )
                continue
            setattr(customer, field, value)
        if customer.status == CustomerStatus.archived:
            # Repeat contact revives an archived customer.
            customer.status = CustomerStatus.active
        db.flush()
        return customer, False

    display_name = (name or "").strip() or (email.split("@")[0] if email else None) or phone or "Unknown"
    customer = Customer(
        tenant_id=tenant_uuid,
        name=display_name,
        email=email,
        phone=phone,
        line_user_id=line_user_id,
    )
    db.add(customer)
    db.flush()
    logger.info("customer_created tenant_id=%s customer_id=%s", tenant_uuid, customer.id)
    return customer, True


customers = Customers()
