"""
Shared fixtures for the module test suites.

Each test gets a fresh in-memory SQLite schema. Requests made through the
``client`` fixture share the test's session and authenticate as an admin
unless a test overrides the auth context.
"""
import os

os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("DATABASE_URL", "sqlite://")

from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.main import app
from app.database.database import Base, get_db
from app.modules.auth.dependencies import AuthDependencies
from app.modules.auth.models import User, UserRole
from app.modules.auth.schemas import AuthContext
from app.modules.categories.models import Category
from app.modules.products.models import Product


engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db_session():
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def admin_user(db_session):
    # Password hashing is exercised in the auth tests only
    user = User(email="admin@shop.test", password="not-a-real-hash", full_name="Admin", role=UserRole.ADMIN)
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return user


@pytest.fixture
def staff_user(db_session):
    user = User(email="staff@shop.test", password="not-a-real-hash", full_name="Staff", role=UserRole.STAFF)
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return user


def _context(user: User) -> AuthContext:
    return AuthContext(user_id=user.id, email=user.email, user_role=user.role)


@pytest.fixture
def client(db_session, admin_user):
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[AuthDependencies.get_auth_context] = lambda: _context(admin_user)
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def staff_client(db_session, staff_user):
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[AuthDependencies.get_auth_context] = lambda: _context(staff_user)
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def anonymous_client(db_session):
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def category(db_session):
    category = Category(name="Beverages", description="Drinks")
    db_session.add(category)
    db_session.commit()
    db_session.refresh(category)
    return category


@pytest.fixture
def make_product(db_session, category):
    """Factory for products; defaults to no profit rates and plenty of stock."""
    counter = {"n": 0}

    def _make(**overrides):
        counter["n"] += 1
        values = {
            "name": f"Product {counter['n']}",
            "category_id": category.id,
            "price": Decimal("100.00"),
            "quantity": 50,
            "min_stock": 10,
            "units_per_box": 10,
            "profit_per_unit": Decimal("0"),
            "profit_per_box": Decimal("0"),
        }
        values.update(overrides)
        product = Product(**values)
        db_session.add(product)
        db_session.commit()
        db_session.refresh(product)
        return product

    return _make
