import os
from datetime import time
from decimal import Decimal

# Keep app startup away from any on-disk database
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402
from sqlmodel import Session, SQLModel, create_engine  # noqa: E402

from courtbook.database import get_session  # noqa: E402
from courtbook.main import app  # noqa: E402

TEST_DATABASE_URL = "sqlite:///:memory:"

# ============================================================================
# Test Database Setup with StaticPool
# ============================================================================
# 1. sqlite:///:memory: with StaticPool so ALL sessions share the same DB
# 2. check_same_thread=False required for TestClient/threaded access
# 3. All models imported before create_all() (see session_fixture)
# 4. Tables dropped after every test so booking state never leaks between tests
test_engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)


def override_get_session():
    """Override session to use test engine"""
    with Session(test_engine) as session:
        yield session


@pytest.fixture(name="session", scope="function")
def session_fixture():
    """Provide a test database session on a fresh schema"""
    from courtbook.models.client import Client  # noqa: F401
    from courtbook.models.court import Court  # noqa: F401
    from courtbook.models.court_day_lock import CourtDayLock  # noqa: F401
    from courtbook.models.pricing_rule import PricingRule  # noqa: F401
    from courtbook.models.reservation import Reservation  # noqa: F401
    from courtbook.models.tenant import Tenant  # noqa: F401

    SQLModel.metadata.create_all(test_engine)

    with Session(test_engine) as session:
        yield session

    SQLModel.metadata.drop_all(test_engine)


@pytest.fixture(name="client")
def client_fixture(session: Session):
    """Test client whose requests use the test engine"""
    app.dependency_overrides[get_session] = override_get_session

    with TestClient(app) as client:
        yield client

    app.dependency_overrides.clear()


# ============================================================================
# Domain fixtures
# ============================================================================


@pytest.fixture
def tenant(session: Session):
    from courtbook.models.tenant import Tenant

    tenant = Tenant(name="Premium Beach", subdomain="premium-beach")
    session.add(tenant)
    session.commit()
    session.refresh(tenant)
    return tenant


@pytest.fixture
def other_tenant(session: Session):
    from courtbook.models.tenant import Tenant

    tenant = Tenant(name="Arena Sul", subdomain="arena-sul")
    session.add(tenant)
    session.commit()
    session.refresh(tenant)
    return tenant


@pytest.fixture
def court(session: Session, tenant):
    """Court 1 at 50/h, open 06:00-22:00"""
    from courtbook.models.court import Court

    court = Court(
        tenant_id=tenant.id,
        name="Quadra 1",
        sport="beach_tennis",
        price_per_hour=Decimal("50.00"),
        opening_time=time(6, 0),
        closing_time=time(22, 0),
    )
    session.add(court)
    session.commit()
    session.refresh(court)
    return court


@pytest.fixture
def staff_actor(tenant):
    from courtbook.services.authorization import Actor

    return Actor(tenant_id=tenant.id, user_id=1, role="staff")


@pytest.fixture
def staff_headers(tenant):
    return {"X-Tenant-Id": str(tenant.id), "X-User-Id": "1", "X-Role": "staff"}


@pytest.fixture
def admin_headers(tenant):
    return {"X-Tenant-Id": str(tenant.id), "X-User-Id": "2", "X-Role": "admin"}
