"""
Test configuration and fixtures
"""
import os
import tempfile

# Point the app at throwaway storage before it is imported
os.environ["DATABASE_URL"] = "sqlite://"
os.environ.setdefault("UPLOAD_PATH", tempfile.mkdtemp(prefix="decol-uploads-"))

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from app.main import app  # noqa: E402
from app.core import runtime_config  # noqa: E402
from app.core.database import Base, get_db  # noqa: E402
from app.core.security import get_password_hash  # noqa: E402
from app.models.models import AdminUser, Booking, Product, ProductRating  # noqa: E402
from datetime import datetime  # noqa: E402


# Create an in-memory SQLite database for testing
SQLALCHEMY_TEST_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

FUTURE_DATE = "2099-01-01"


@pytest.fixture(scope="function")
def db():
    """Create a fresh database, with default configurations loaded, for each test"""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    runtime_config.apply_defaults(db)
    runtime_config.load(db)
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def client(db):
    """Create a test client with overridden database dependency"""
    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app=app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
    # Startup reloads the snapshot from its own database; restore the test one
    runtime_config.load(db)


def make_admin(db, username, password, role, is_active=True):
    now = datetime.utcnow()
    user = AdminUser(
        username=username,
        hashed_password=get_password_hash(password),
        role=role,
        is_active=is_active,
        created_at=now,
        updated_at=now
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def test_superadmin(db):
    return make_admin(db, "superadmin", "superpassword123", "superadmin")


@pytest.fixture
def test_admin(db):
    return make_admin(db, "admin", "adminpassword123", "admin")


@pytest.fixture
def test_moderator(db):
    return make_admin(db, "moderator", "modpassword123", "moderator")


def login(client, username, password):
    response = client.post(
        "/api/admin/auth/login",
        json={"username": username, "password": password}
    )
    assert response.status_code == 200, response.text
    return response.json()["token"]


@pytest.fixture
def superadmin_headers(client, test_superadmin):
    return {"Authorization": f"Bearer {login(client, 'superadmin', 'superpassword123')}"}


@pytest.fixture
def admin_headers(client, test_admin):
    return {"Authorization": f"Bearer {login(client, 'admin', 'adminpassword123')}"}


@pytest.fixture
def moderator_headers(client, test_moderator):
    return {"Authorization": f"Bearer {login(client, 'moderator', 'modpassword123')}"}


def make_product(db, **overrides):
    now = datetime.utcnow()
    fields = dict(
        title="Oak Dining Table",
        sku="OAK-TABLE-01",
        price=450000,
        currency="RWF",
        short_description="Solid oak table for six",
        description="A solid oak dining table with a natural oil finish that seats six.",
        dimensions={"width": "180cm", "depth": "90cm", "height": "75cm"},
        materials=["Wood"],
        main_image="https://images.example.com/oak-table.jpg",
        images=[],
        tags=["oak", "table"],
        category="dining",
        featured=False,
        in_stock=True,
        stock_quantity=5,
        rating=0,
        review_count=0,
        status="active",
        created_at=now,
        updated_at=now,
    )
    fields.update(overrides)
    product = Product(**fields)
    db.add(product)
    db.commit()
    db.refresh(product)
    return product


@pytest.fixture
def test_product(db):
    return make_product(db)


def make_booking(db, date=FUTURE_DATE, time="09:00", status="pending", **overrides):
    now = datetime.utcnow()
    fields = dict(
        name="Jane Doe",
        email="jane@example.com",
        phone="0788123456",
        date=date,
        time=time,
        service_type="consultation",
        notes="",
        status=status,
        created_at=now,
        updated_at=now,
    )
    fields.update(overrides)
    booking = Booking(**fields)
    db.add(booking)
    db.commit()
    db.refresh(booking)
    return booking


@pytest.fixture
def test_booking(db):
    return make_booking(db)


def make_rating(db, product, rating=5, client_identifier="10.0.0.1"):
    db_rating = ProductRating(
        product_id=product.id,
        rating=rating,
        client_identifier=client_identifier,
        created_at=datetime.utcnow()
    )
    db.add(db_rating)
    db.commit()
    db.refresh(db_rating)
    return db_rating


@pytest.fixture
def test_rating(db, test_product):
    return make_rating(db, test_product)
