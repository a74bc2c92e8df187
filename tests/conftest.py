import os
import uuid
from datetime import UTC, datetime, timedelta

import pytest
from dotenv import load_dotenv

load_dotenv(os.path.join(os.getcwd(), ".env"))
# Keep the application engine off the production database during tests.
os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite://")

from sqlalchemy import create_engine, event  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from app.db import Base  # noqa: E402
from app.models.crm.customer import Customer  # noqa: E402
from app.models.crm.enums import ActivityDirection, ActivityType, DealStatus  # noqa: E402
from app.models.crm.inquiry import Inquiry  # noqa: E402
from app.models.tenant import Tenant, User, UserRole  # noqa: E402
from app.schemas.crm.inquiry import PropertyInquiryCreate  # noqa: E402
from app.services.crm import inquiries as inquiry_service  # noqa: E402
from app.services.crm.activities import append_activity  # noqa: E402


@pytest.fixture(scope="session")
def engine():
    database_url = os.getenv("TEST_DATABASE_URL")
    if database_url:
        engine = create_engine(database_url)
    else:
        engine = create_engine(
            "sqlite+pysqlite://",
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )

        @event.listens_for(engine, "connect")
        def _sqlite_connect(dbapi_connection, _connection_record):
            # SQLAlchemy emits BEGIN itself so SAVEPOINTs work under pysqlite.
            dbapi_connection.isolation_level = None
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        @event.listens_for(engine, "begin")
        def _sqlite_begin(conn):
            conn.exec_driver_sql("BEGIN")

    Base.metadata.create_all(engine)
    return engine


@pytest.fixture()
def db_session(engine):
    connection = engine.connect()
    transaction = connection.begin()
    # Service commits/rollbacks operate on a savepoint inside the test transaction.
    SessionLocal = sessionmaker(
        bind=connection,
        autoflush=False,
        autocommit=False,
        join_transaction_mode="create_savepoint",
    )
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        transaction.rollback()
        connection.close()


def _unique_email() -> str:
    return f"test-{uuid.uuid4().hex}@example.com"


def _make_tenant(db_session, name: str) -> Tenant:
    tenant = Tenant(name=name, subdomain=f"tenant-{uuid.uuid4().hex[:12]}")
    db_session.add(tenant)
    db_session.commit()
    db_session.refresh(tenant)
    return tenant


@pytest.fixture()
def make_user(db_session):
    def _make(tenant, name="Agent", role=UserRole.member, is_active=True):
        user = User(
            tenant_id=tenant.id,
            email=_unique_email(),
            name=name,
            role=role,
            is_active=is_active,
        )
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user

    return _make


@pytest.fixture()
def tenant(db_session):
    return _make_tenant(db_session, "Sakura Realty")


@pytest.fixture()
def other_tenant(db_session):
    return _make_tenant(db_session, "Other Realty")


@pytest.fixture()
def agent(make_user, tenant):
    return make_user(tenant, name="Tanaka")


@pytest.fixture()
def other_agent(make_user, tenant):
    return make_user(tenant, name="Suzuki")


@pytest.fixture()
def admin(make_user, tenant):
    return make_user(tenant, name="Manager", role=UserRole.admin)


@pytest.fixture()
def make_customer(db_session):
    def _make(tenant, name="Yamada Taro", **kwargs):
        kwargs.setdefault("email", _unique_email())
        customer = Customer(tenant_id=tenant.id, name=name, **kwargs)
        db_session.add(customer)
        db_session.commit()
        db_session.refresh(customer)
        return customer

    return _make


@pytest.fixture()
def customer(make_customer, tenant):
    return make_customer(tenant)


@pytest.fixture()
def make_inquiry(db_session):
    def _make(customer, assigned_user=None, **kwargs):
        inquiry = Inquiry(
            tenant_id=customer.tenant_id,
            customer_id=customer.id,
            assigned_user_id=assigned_user.id if assigned_user else None,
            **kwargs,
        )
        db_session.add(inquiry)
        db_session.commit()
        db_session.refresh(inquiry)
        return inquiry

    return _make


@pytest.fixture()
def inquiry(make_inquiry, customer):
    return make_inquiry(customer)


@pytest.fixture()
def make_property_inquiry(db_session):
    def _make(inquiry, deal_status=DealStatus.new_inquiry, assigned_user=None, **kwargs):
        return inquiry_service.property_inquiries.create(
            db_session,
            None,
            PropertyInquiryCreate(
                inquiry_id=inquiry.id,
                deal_status=deal_status,
                assigned_user_id=assigned_user.id if assigned_user else None,
                **kwargs,
            ),
            tenant_id=inquiry.tenant_id,
        )

    return _make


@pytest.fixture()
def add_activity(db_session):
    """Append an activity at an explicit time and commit it."""

    def _add(
        inquiry,
        activity_type=ActivityType.email,
        direction=ActivityDirection.inbound,
        created_at=None,
        **kwargs,
    ):
        activity = append_activity(
            db_session,
            customer_id=inquiry.customer_id,
            inquiry_id=inquiry.id,
            activity_type=activity_type,
            direction=direction,
            created_at=created_at or datetime.now(UTC),
            **kwargs,
        )
        db_session.commit()
        db_session.refresh(activity)
        return activity

    return _add


@pytest.fixture()
def base_time():
    return datetime.now(UTC).replace(microsecond=0) - timedelta(hours=1)
