import os

# Point the application engine at SQLite before anything imports app.database
os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from unittest.mock import patch
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.main import app
from app.database import Base, get_db
from app.models.product import Product, ProductStatus
from app.models.user import User, UserRole
from app.utils.money import to_money


# Create test database (SQLite in-memory for testing)
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def override_get_db():
    """Override database dependency for testing."""
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


# Override the dependency
app.dependency_overrides[get_db] = override_get_db


@pytest.fixture(scope="function")
def client():
    """Create test client with fresh database for each test."""
    Base.metadata.create_all(bind=engine)

    with TestClient(app) as test_client:
        yield test_client

    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def db_session():
    """Create database session for direct database access in tests."""
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()

    yield session

    session.close()
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def receipt_task():
    """Keep Celery out of tests; yields the mocked ``delay``."""
    with patch("app.api.purchases.send_purchase_receipt.delay") as delay:
        yield delay


@pytest.fixture
def make_user(db_session):
    def factory(name="Ana Cliente", email=None, role=UserRole.CLIENT, active=True):
        user = User(
            name=name,
            email=email or f"{name.lower().replace(' ', '.')}@example.com",
            role=role,
            active=active,
        )
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user
    return factory


@pytest.fixture
def make_product(db_session):
    counter = {"n": 0}

    def factory(price="100.00", quantity=5, name=None, lot_code=None, status=ProductStatus.ACTIVE):
        counter["n"] += 1
        product = Product(
            lot_code=lot_code or f"LOT-{counter['n']:04d}",
            name=name or f"Product {counter['n']}",
            price=to_money(price),
            available_quantity=quantity,
            status=status,
        )
        db_session.add(product)
        db_session.commit()
        db_session.refresh(product)
        return product
    return factory


@pytest.fixture
def admin_user(make_user):
    return make_user(name="Admin User", role=UserRole.ADMIN)


@pytest.fixture
def client_user(make_user):
    return make_user(name="Client User", role=UserRole.CLIENT)


@pytest.fixture
def admin_headers(admin_user):
    return {"X-User-Id": str(admin_user.id)}


@pytest.fixture
def client_headers(client_user):
    return {"X-User-Id": str(client_user.id)}


@pytest.fixture
def session_factory(db_session):
    """Independent sessions on the test database, e.g. to simulate another request."""
    return TestingSessionLocal
