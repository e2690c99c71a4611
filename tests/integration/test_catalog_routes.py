"""Integration tests for storefront catalog and admin catalog endpoints."""

from typing import Any
from uuid import uuid4

from fastapi.testclient import TestClient
from sqlalchemy import select
from sqlalchemy.orm import Session

from src.api.deps import get_current_user
from src.main import app
from src.models import AdminAuditLog, BackofficeUser, Category, Order, Product
from src.schemas.auth import UserContext
from src.services.identity_service import SUPABASE_PROVIDER, IdentityService


def sign_in_as(db: Session, email: str, role: str) -> None:
    """Authenticate requests as a backoffice user holding ``role``."""
    user = UserContext(user_id=uuid4(), email=email, email_verified=True, name="Catalog Admin")
    profile = IdentityService(db).resolve_profile(
        provider=SUPABASE_PROVIDER,
        provider_user_id=str(user.user_id),
        email=email,
        name=user.name,
    )
    db.add(BackofficeUser(user_profile_id=profile.id, role=role))
    db.commit()
    app.dependency_overrides[get_current_user] = lambda: user


class TestStorefrontCatalog:
    """Tests for the public catalog endpoints."""

    def test_list_products(self, client: TestClient, catalog: dict[str, Any]) -> None:
        response = client.get("/api/v1/products")

        assert response.status_code == 200
        products = {product["slug"]: product for product in response.json()["products"]}
        assert set(products) == {"fruity-zobo", "classic-beef-shawarma", "berry-beet-smoothie"}
        assert products["berry-beet-smoothie"]["inStock"] is False
        assert products["fruity-zobo"]["basePrice"] == 250000
        assert products["fruity-zobo"]["categoryName"] == "Smoothies & Juices"
        assert products["fruity-zobo"]["imageUrl"]

    def test_list_products_by_category(self, client: TestClient, catalog: dict[str, Any]) -> None:
        response = client.get("/api/v1/products", params={"category": "smoothies-juices"})

        assert [product["slug"] for product in response.json()["products"]] == ["fruity-zobo"]

    def test_get_product(self, client: TestClient, catalog: dict[str, Any]) -> None:
        response = client.get("/api/v1/products/fruity-zobo")

        assert response.status_code == 200
        assert response.json()["product"]["id"] == str(catalog["zobo"].id)

    def test_inactive_product_is_not_found(self, client: TestClient, catalog: dict[str, Any]) -> None:
        response = client.get("/api/v1/products/palm-wine-punch")

        assert response.status_code == 404
        assert response.json()["error"] == "not_found"

    def test_delivery_zones_and_categories(self, client: TestClient, catalog: dict[str, Any]) -> None:
        zones = client.get("/api/v1/delivery-zones").json()["zones"]
        categories = client.get("/api/v1/categories").json()["categories"]

        assert [(zone["zone"], zone["fee"], zone["etaText"]) for zone in zones] == [("Ikeja", 180000, "45-60 mins")]
        assert [category["slug"] for category in categories] == ["smoothies-juices"]


class TestAdminCatalog:
    """Tests for /api/v1/admin catalog endpoints."""

    def test_requires_authentication(self, client: TestClient) -> None:
        response = client.get("/api/v1/admin/products")

        assert response.status_code == 401

    def test_staff_cannot_manage_catalog(self, client: TestClient, db_session: Session) -> None:
        sign_in_as(db_session, "staff@example.com", "staff")

        response = client.get("/api/v1/admin/categories")

        assert response.status_code == 403
        assert response.json()["message"] == "Insufficient backoffice role"

    def test_product_lifecycle(self, client: TestClient, db_session: Session, catalog: dict[str, Any]) -> None:
        sign_in_as(db_session, "admin@example.com", "admin")
        category_id = str(db_session.execute(select(Category.id)).scalar_one())
        payload = {
            "name": "Tiger Nut Drink",
            "slug": "tiger-nut-drink",
            "description": "Chilled kunu aya",
            "basePrice": 220000,
            "categoryId": category_id,
        }

        created = client.post("/api/v1/admin/products", json=payload)

        assert created.status_code == 201
        product = created.json()["product"]
        assert product["slug"] == "tiger-nut-drink"
        assert product["active"] is True

        updated = client.put(f"/api/v1/admin/products/{product['id']}", json={**payload, "inStock": False})
        assert updated.status_code == 200
        assert updated.json()["product"]["inStock"] is False

        listed = client.get("/api/v1/admin/products", params={"inStock": "false", "pageSize": 10})
        assert {item["slug"] for item in listed.json()["items"]} == {"tiger-nut-drink", "berry-beet-smoothie"}
        assert listed.json()["pagination"]["total"] == 2

        deleted = client.delete(f"/api/v1/admin/products/{product['id']}")
        assert deleted.status_code == 200
        assert deleted.json() == {"ok": True}
        assert db_session.execute(select(Product.id).where(Product.slug == "tiger-nut-drink")).first() is None

        actions = db_session.execute(
            select(AdminAuditLog.action).where(AdminAuditLog.entity == "product").order_by(AdminAuditLog.created_at)
        ).scalars().all()
        assert actions == ["create", "update", "delete"]

    def test_duplicate_slug(self, client: TestClient, db_session: Session, catalog: dict[str, Any]) -> None:
        sign_in_as(db_session, "admin@example.com", "admin")

        response = client.post("/api/v1/admin/categories", json={"name": "Juices", "slug": "smoothies-juices"})

        assert response.status_code == 400
        assert response.json()["error"] == "duplicate_slug"

    def test_invalid_slug_is_rejected(self, client: TestClient, db_session: Session) -> None:
        sign_in_as(db_session, "admin@example.com", "admin")

        response = client.post("/api/v1/admin/categories", json={"name": "Grills", "slug": "Grills & Suya"})

        assert response.status_code == 422

    def test_zone_in_use(
        self, client: TestClient, db_session: Session, catalog: dict[str, Any], placed_order: Order
    ) -> None:
        sign_in_as(db_session, "admin@example.com", "admin")

        response = client.delete(f"/api/v1/admin/delivery-zones/{catalog['ikeja'].id}")

        assert response.status_code == 400
        assert response.json()["error"] == "catalog_entry_in_use"

    def test_create_zone(self, client: TestClient, db_session: Session) -> None:
        sign_in_as(db_session, "admin@example.com", "admin")

        response = client.post(
            "/api/v1/admin/delivery-zones",
            json={"state": "Lagos", "city": "Lagos", "zone": "Yaba", "fee": 150000, "etaText": "30-45 mins"},
        )

        assert response.status_code == 201
        assert response.json()["zone"]["country"] == "Nigeria"
        listed = client.get("/api/v1/admin/delivery-zones", params={"q": "yaba"})
        assert [zone["zone"] for zone in listed.json()["items"]] == ["Yaba"]
