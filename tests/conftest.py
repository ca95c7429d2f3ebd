import os

# Settings are read once, on first import of the application
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["CACHE_ENABLED"] = "false"

from datetime import timedelta
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from retailer.main import app
from retailer.database import Base, get_db
from retailer.models.customer import Customer
from retailer.models.product import Product
from retailer.services.cooldown_service import CooldownTracker
from retailer.services.customer_service import CustomerService
from retailer.services.order_service import OrderService
from retailer.services.product_service import ProductService
from retailer.services.transaction_service import TransactionService
from retailer.utils.clock import utcnow


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


@pytest.fixture(autouse=True)
def no_background_tasks():
    """Keep Celery from trying to reach a broker during tests."""
    with patch("retailer.api.orders.refresh_business_stats.delay") as delay:
        yield delay


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


@pytest.fixture
def file_sessionmaker(tmp_path):
    """
    Session factory over a file-backed SQLite database.

    Unlike the in-memory database, every thread gets its own connection, so
    concurrent requests really compete for the database locks.
    """
    file_engine = create_engine(
        f"sqlite:///{tmp_path / 'concurrency.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
        pool_size=20,
        max_overflow=0,
    )
    Base.metadata.create_all(bind=file_engine)

    yield sessionmaker(autocommit=False, autoflush=False, bind=file_engine)

    file_engine.dispose()


def add_product(db, product_id="PROD00001", name="Widget", price=10.0, quantity=5):
    product = Product(id=product_id, name=name, price=price, quantity=quantity)
    db.add(product)
    db.commit()
    return product


def add_customer(db, customer_id="CUST00001", name="Ada Lovelace", email=None, phone="555-0100"):
    customer = Customer(
        id=customer_id,
        name=name,
        email=email or f"{customer_id.lower()}@example.com",
        phone=phone,
    )
    db.add(customer)
    db.commit()
    return customer


@pytest.fixture
def make_product():
    return add_product


@pytest.fixture
def make_customer():
    return add_customer


@pytest.fixture
def build_order_service():
    """Build an OrderService the way the API wires it, with overridable clock/period."""
    def build(db, cooldown_period=timedelta(minutes=5), clock=utcnow):
        return OrderService(
            db,
            products=ProductService(db),
            customers=CustomerService(db),
            cooldowns=CooldownTracker(db),
            transactions=TransactionService(db),
            cooldown_period=cooldown_period,
            clock=clock,
        )
    return build
