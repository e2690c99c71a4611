"""Integration tests for order lookup and claim endpoints."""

from collections.abc import Generator
from datetime import datetime
from unittest.mock import patch
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from src.api.deps import get_current_user
from src.main import app
from src.models import Order
from src.schemas.auth import UserContext


@pytest.fixture
def fixed_clock() -> Generator[None, None, None]:
    """Pin the rate limiter's clock inside a single window."""
    with patch("src.core.rate_limiter.utcnow", return_value=datetime(2026, 3, 1, 12, 0, 5)):
        yield


def authenticate(email: str | None = "ada@example.com", email_verified: bool = True) -> UserContext:
    user = UserContext(user_id=uuid4(), email=email, email_verified=email_verified, name="Ada Obi")
    app.dependency_overrides[get_current_user] = lambda: user
    return user


class TestOrderLookup:
    """Tests for POST /api/v1/orders/lookup endpoint."""

    def test_lookup_by_email(self, client: TestClient, placed_order: Order, fixed_clock: None) -> None:
        response = client.post(
            "/api/v1/orders/lookup",
            json={"orderCode": "AT-1A2B3C4D", "emailOrPhone": "ADA@example.com"},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["order"]["orderCode"] == "AT-1A2B3C4D"
        assert data["order"]["status"] == "pending_payment"
        assert data["order"]["total"] == 680000
        assert data["items"][0]["nameSnapshot"] == "Fruity Zobo"
        assert data["items"][0]["qty"] == 2

    def test_lookup_by_phone(self, client: TestClient, placed_order: Order, fixed_clock: None) -> None:
        response = client.post(
            "/api/v1/orders/lookup",
            json={"orderCode": "AT-1A2B3C4D", "emailOrPhone": "+234 801 234 5678"},
        )

        assert response.status_code == 200

    def test_wrong_contact_detail(self, client: TestClient, placed_order: Order, fixed_clock: None) -> None:
        response = client.post(
            "/api/v1/orders/lookup",
            json={"orderCode": "AT-1A2B3C4D", "emailOrPhone": "someone@example.com"},
        )

        assert response.status_code == 400
        assert response.json()["error"] == "order_identity_mismatch"

    def test_malformed_code_is_rejected(self, client: TestClient, fixed_clock: None) -> None:
        response = client.post(
            "/api/v1/orders/lookup",
            json={"orderCode": "ORDER-1", "emailOrPhone": "ada@example.com"},
        )

        assert response.status_code == 422

    def test_lookups_are_rate_limited_per_ip(
        self, client: TestClient, placed_order: Order, fixed_clock: None
    ) -> None:
        body = {"orderCode": "AT-1A2B3C4D", "emailOrPhone": "ada@example.com"}
        headers = {"X-Forwarded-For": "198.51.100.4"}

        statuses = [client.post("/api/v1/orders/lookup", json=body, headers=headers).status_code for _ in range(8)]
        limited = client.post("/api/v1/orders/lookup", json=body, headers=headers)
        other_ip = client.post("/api/v1/orders/lookup", json=body, headers={"X-Forwarded-For": "198.51.100.5"})

        assert statuses == [200] * 8
        assert limited.status_code == 429
        assert limited.json()["error"] == "rate_limit_exceeded"
        assert limited.headers["Retry-After"] == "55"
        assert limited.headers["X-RateLimit-Limit"] == "8"
        assert other_ip.status_code == 200


class TestClaimOrders:
    """Tests for POST /api/v1/orders/claim endpoint."""

    def test_requires_authentication(self, client: TestClient) -> None:
        response = client.post("/api/v1/orders/claim")

        assert response.status_code == 401

    def test_links_guest_orders(self, client: TestClient, db_session: Session, placed_order: Order) -> None:
        authenticate()

        response = client.post("/api/v1/orders/claim")

        assert response.status_code == 200
        assert response.json() == {"linkedCount": 1}
        db_session.expire_all()
        assert db_session.get(Order, placed_order.id).user_profile_id is not None

        again = client.post("/api/v1/orders/claim", json={"phoneHint": "+2348012345678"})
        assert again.json() == {"linkedCount": 0}

    def test_unverified_email_is_rejected(self, client: TestClient, placed_order: Order) -> None:
        authenticate(email_verified=False)

        response = client.post("/api/v1/orders/claim")

        assert response.status_code == 400
        assert response.json()["error"] == "email_not_verified"
