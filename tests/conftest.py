"""Pytest configuration and fixtures."""

import os
from collections.abc import Generator
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

# Set test environment variables before importing application modules
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("DATABASE_CREATE_TABLES", "true")
os.environ.setdefault("APP_BASE_URL", "https://shop.test")
os.environ.setdefault("SUPABASE_URL", "")
os.environ.setdefault("SUPABASE_SECRET_KEY", "")
os.environ.setdefault("ENABLED_PAYMENT_PROVIDERS", "paystack,flutterwave,stripe,paypal")
os.environ.setdefault("PRIMARY_PAYMENT_PROVIDER", "paystack")
os.environ.setdefault("PAYSTACK_SECRET_KEY", "")
os.environ.setdefault("PAYSTACK_WEBHOOK_SECRET", "test-paystack-webhook-secret")
os.environ.setdefault("FLUTTERWAVE_SECRET_KEY", "")
os.environ.setdefault("FLUTTERWAVE_WEBHOOK_SECRET", "test-flutterwave-hash")
os.environ.setdefault("STRIPE_SECRET_KEY", "")
os.environ.setdefault("STRIPE_WEBHOOK_SECRET", "")
os.environ.setdefault("PAYPAL_CLIENT_ID", "")
os.environ.setdefault("PAYPAL_CLIENT_SECRET", "")
os.environ.setdefault("RESEND_API_KEY", "")
os.environ.setdefault("SUPERADMIN_EMAIL", "")
os.environ.setdefault("ADMIN_EMAILS", "")

from src.core.database import get_db  # noqa: E402
from src.models import (  # noqa: E402
    Base,
    Category,
    DeliveryZone,
    Order,
    OrderItem,
    OrderStatus,
    Product,
    UserProfile,
)


@pytest.fixture(scope="session")
def test_settings() -> Generator[Any, None, None]:
    """Provide test settings with cleared cache.

    Yields:
        Settings: Test configuration settings.
    """
    from src.core.config import get_settings

    # Clear the cache to ensure fresh settings
    get_settings.cache_clear()

    settings = get_settings()
    yield settings

    # Clean up cache after tests
    get_settings.cache_clear()


@pytest.fixture
def db_session() -> Generator[Session, None, None]:
    """Provide a session bound to a fresh in-memory SQLite database.

    Yields:
        Session: Session with every table created.
    """
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    factory = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
    session = factory()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(engine)
        engine.dispose()


@pytest.fixture
def catalog(db_session: Session) -> dict[str, Any]:
    """Seed a category, four products and two delivery zones.

    Returns:
        dict: Seeded rows keyed by a short name.
    """
    category = Category(name="Smoothies & Juices", slug="smoothies-juices")
    db_session.add(category)
    db_session.flush()

    zobo = Product(name="Fruity Zobo", slug="fruity-zobo", base_price=250000, category_id=category.id)
    shawarma = Product(name="Classic Beef Shawarma", slug="classic-beef-shawarma", base_price=480000)
    sold_out = Product(name="Berry Beet Smoothie", slug="berry-beet-smoothie", base_price=300000, in_stock=False)
    retired = Product(name="Palm Wine Punch", slug="palm-wine-punch", base_price=200000, active=False)
    ikeja = DeliveryZone(state="Lagos", city="Lagos", zone="Ikeja", fee=180000, eta_text="45-60 mins")
    closed = DeliveryZone(state="Lagos", city="Lagos", zone="Ikorodu", fee=300000, active=False)
    db_session.add_all([zobo, shawarma, sold_out, retired, ikeja, closed])
    db_session.commit()

    return {
        "zobo": zobo,
        "shawarma": shawarma,
        "sold_out": sold_out,
        "retired": retired,
        "ikeja": ikeja,
        "closed_zone": closed,
    }


@pytest.fixture
def placed_order(db_session: Session, catalog: dict[str, Any]) -> Order:
    """Create a guest order for two zobos to Ikeja awaiting payment."""
    order = Order(
        order_code="AT-1A2B3C4D",
        guest_email="ada@example.com",
        guest_phone="+2348012345678",
        status=OrderStatus.PENDING_PAYMENT.value,
        subtotal=500000,
        delivery_fee=180000,
        total=680000,
        currency="NGN",
        delivery_zone_id=catalog["ikeja"].id,
        delivery_address_json={"street": "12 Allen Avenue", "area": "Ikeja"},
    )
    db_session.add(order)
    db_session.flush()
    db_session.add(
        OrderItem(
            order_id=order.id,
            product_id=catalog["zobo"].id,
            name_snapshot="Fruity Zobo",
            unit_price_snapshot=250000,
            qty=2,
            line_total=500000,
        )
    )
    db_session.commit()
    return order


@pytest.fixture
def profile(db_session: Session) -> UserProfile:
    """Create a plain user profile."""
    user = UserProfile(email="ada@example.com", name="Ada Obi", phone="+2348012345678")
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture
def mock_email_service() -> MagicMock:
    """Provide an EmailService double whose sends succeed."""
    service = MagicMock()
    service.configured = True
    service.send_order_paid_email = AsyncMock(return_value={"success": True, "message_id": "msg_1"})
    service.send_backoffice_invite_email = AsyncMock(return_value={"success": True, "message_id": "msg_2"})
    return service


@pytest.fixture
def client(db_session: Session) -> Generator[TestClient, None, None]:
    """Provide a test client whose requests use the test database session.

    Args:
        db_session: Session fixture shared with the test body.

    Yields:
        TestClient: FastAPI test client.
    """
    from src.main import app

    def override_get_db() -> Generator[Session, None, None]:
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    test_client = TestClient(app)
    try:
        yield test_client
    finally:
        app.dependency_overrides.clear()
