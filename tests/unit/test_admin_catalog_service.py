"""Unit tests for AdminCatalogService."""

from typing import Any
from uuid import uuid4

import pytest
from sqlalchemy import select
from sqlalchemy.orm import Session

from src.api.middleware.error_handler import CatalogEntryInUse, DuplicateSlug, NotFoundError, ValidationError
from src.models import AdminAuditLog, Category, DeliveryZone, Order, Product, ProductImage, UserProfile
from src.schemas.catalog import (
    CategorySort,
    CategoryWriteRequest,
    DeliveryZoneWriteRequest,
    ProductSort,
    ProductWriteRequest,
)
from src.services.admin_catalog_service import AdminCatalogService


def product_payload(category_id: Any, **overrides: Any) -> ProductWriteRequest:
    data = {
        "name": "Tiger Nut Drink",
        "slug": "tiger-nut-drink",
        "description": "Chilled kunu aya",
        "base_price": 220000,
        "category_id": category_id,
    }
    data.update(overrides)
    return ProductWriteRequest(**data)


def zone_payload(**overrides: Any) -> DeliveryZoneWriteRequest:
    data = {"state": "Lagos", "city": "Lagos", "zone": "Yaba", "fee": 150000, "eta_text": "30-45 mins"}
    data.update(overrides)
    return DeliveryZoneWriteRequest(**data)


def audit_trail(db: Session) -> list[tuple[str, str]]:
    rows = db.execute(select(AdminAuditLog.action, AdminAuditLog.entity).order_by(AdminAuditLog.created_at)).all()
    return [tuple(row) for row in rows]


@pytest.fixture
def category(db_session: Session, catalog: dict[str, Any]) -> Category:
    return db_session.execute(select(Category)).scalar_one()


class TestProducts:
    """Tests for product management."""

    @pytest.mark.asyncio
    async def test_create_product_is_audited(
        self, db_session: Session, category: Category, profile: UserProfile
    ) -> None:
        product = await AdminCatalogService(db_session).create_product(product_payload(category.id), profile.id)

        assert product.id is not None
        assert product.created_at is not None
        assert db_session.get(Product, product.id).slug == "tiger-nut-drink"

        entry = db_session.execute(select(AdminAuditLog)).scalar_one()
        assert (entry.action, entry.entity) == ("create", "product")
        assert entry.entity_id == str(product.id)
        assert entry.actor_user_profile_id == profile.id
        assert entry.meta_json == {"slug": "tiger-nut-drink"}

    @pytest.mark.asyncio
    async def test_duplicate_slug_rejected(
        self, db_session: Session, category: Category, profile: UserProfile
    ) -> None:
        with pytest.raises(DuplicateSlug):
            await AdminCatalogService(db_session).create_product(
                product_payload(category.id, slug="fruity-zobo"), profile.id
            )

        assert audit_trail(db_session) == []
        slugs = db_session.execute(select(Product.slug).where(Product.slug == "fruity-zobo")).scalars().all()
        assert slugs == ["fruity-zobo"]

    @pytest.mark.asyncio
    async def test_unknown_category_rejected(self, db_session: Session, catalog: dict[str, Any]) -> None:
        with pytest.raises(ValidationError):
            await AdminCatalogService(db_session).create_product(product_payload(uuid4()), None)

    @pytest.mark.asyncio
    async def test_update_replaces_fields(
        self, db_session: Session, catalog: dict[str, Any], category: Category, profile: UserProfile
    ) -> None:
        shawarma = catalog["shawarma"]

        updated = await AdminCatalogService(db_session).update_product(
            shawarma.id,
            product_payload(
                category.id,
                name="Chicken Shawarma",
                slug="chicken-shawarma",
                base_price=450000,
                in_stock=False,
            ),
            profile.id,
        )

        assert updated.name == "Chicken Shawarma"
        assert updated.base_price == 450000
        assert updated.in_stock is False
        assert updated.category_id == category.id
        assert audit_trail(db_session) == [("update", "product")]

    @pytest.mark.asyncio
    async def test_update_to_taken_slug_rejected(
        self, db_session: Session, catalog: dict[str, Any], category: Category
    ) -> None:
        with pytest.raises(DuplicateSlug):
            await AdminCatalogService(db_session).update_product(
                catalog["shawarma"].id, product_payload(category.id, slug="fruity-zobo"), None
            )

        assert db_session.get(Product, catalog["shawarma"].id).slug == "classic-beef-shawarma"

    @pytest.mark.asyncio
    async def test_update_missing_product(self, db_session: Session, category: Category) -> None:
        with pytest.raises(NotFoundError):
            await AdminCatalogService(db_session).update_product(uuid4(), product_payload(category.id), None)

    @pytest.mark.asyncio
    async def test_delete_removes_product_and_images(
        self, db_session: Session, catalog: dict[str, Any], profile: UserProfile
    ) -> None:
        shawarma_id = catalog["shawarma"].id
        db_session.add(ProductImage(product_id=shawarma_id, storage_path="shawarma/front.jpg"))
        db_session.commit()

        await AdminCatalogService(db_session).delete_product(shawarma_id, profile.id)

        assert db_session.execute(select(Product.id).where(Product.id == shawarma_id)).first() is None
        assert db_session.execute(select(ProductImage.id)).first() is None
        entry = db_session.execute(select(AdminAuditLog)).scalar_one()
        assert (entry.action, entry.entity, entry.meta_json) == ("delete", "product", {"slug": "classic-beef-shawarma"})

    @pytest.mark.asyncio
    async def test_ordered_product_cannot_be_deleted(
        self, db_session: Session, catalog: dict[str, Any], placed_order: Order
    ) -> None:
        with pytest.raises(CatalogEntryInUse):
            await AdminCatalogService(db_session).delete_product(catalog["zobo"].id, None)

        assert db_session.get(Product, catalog["zobo"].id) is not None
        assert audit_trail(db_session) == []


class TestListProducts:
    """Tests for list_products."""

    @pytest.mark.asyncio
    async def test_includes_inactive_products(self, db_session: Session, catalog: dict[str, Any]) -> None:
        items, pagination = await AdminCatalogService(db_session).list_products(sort=ProductSort.NAME_ASC)

        assert [item["slug"] for item in items] == [
            "berry-beet-smoothie",
            "classic-beef-shawarma",
            "fruity-zobo",
            "palm-wine-punch",
        ]
        assert pagination.total == 4

    @pytest.mark.asyncio
    async def test_filters(self, db_session: Session, catalog: dict[str, Any], category: Category) -> None:
        service = AdminCatalogService(db_session)

        inactive, _ = await service.list_products(active=False)
        sold_out, _ = await service.list_products(in_stock=False)
        searched, _ = await service.list_products(q="  ZOBO ")
        filed, _ = await service.list_products(category_id=category.id)

        assert [item["slug"] for item in inactive] == ["palm-wine-punch"]
        assert [item["slug"] for item in sold_out] == ["berry-beet-smoothie"]
        assert [item["slug"] for item in searched] == ["fruity-zobo"]
        assert [item["category_name"] for item in filed] == ["Smoothies & Juices"]

    @pytest.mark.asyncio
    async def test_price_sort_and_pages(self, db_session: Session, catalog: dict[str, Any]) -> None:
        service = AdminCatalogService(db_session)

        first, pagination = await service.list_products(page=1, page_size=3, sort=ProductSort.PRICE_DESC)
        second, _ = await service.list_products(page=2, page_size=3, sort=ProductSort.PRICE_DESC)

        assert [item["base_price"] for item in first] == [480000, 300000, 250000]
        assert [item["base_price"] for item in second] == [200000]
        assert pagination.total_pages == 2
        assert first[0]["thumbnail_url"] is None


class TestDeliveryZones:
    """Tests for delivery zone management."""

    @pytest.mark.asyncio
    async def test_create_and_update_zone(self, db_session: Session, profile: UserProfile) -> None:
        service = AdminCatalogService(db_session)

        zone = await service.create_zone(zone_payload(), profile.id)
        await service.update_zone(zone.id, zone_payload(fee=170000, active=False), profile.id)

        stored = db_session.get(DeliveryZone, zone.id)
        assert stored.country == "Nigeria"
        assert stored.fee == 170000
        assert stored.active is False
        assert audit_trail(db_session) == [("create", "delivery_zone"), ("update", "delivery_zone")]

    @pytest.mark.asyncio
    async def test_zone_with_orders_cannot_be_deleted(
        self, db_session: Session, catalog: dict[str, Any], placed_order: Order
    ) -> None:
        with pytest.raises(CatalogEntryInUse):
            await AdminCatalogService(db_session).delete_zone(catalog["ikeja"].id, None)

    @pytest.mark.asyncio
    async def test_unused_zone_is_deleted(
        self, db_session: Session, catalog: dict[str, Any], placed_order: Order
    ) -> None:
        closed_id = catalog["closed_zone"].id

        await AdminCatalogService(db_session).delete_zone(closed_id, None)

        assert db_session.get(DeliveryZone, closed_id) is None
        assert audit_trail(db_session) == [("delete", "delivery_zone")]

    @pytest.mark.asyncio
    async def test_list_zones_filters(self, db_session: Session, catalog: dict[str, Any]) -> None:
        service = AdminCatalogService(db_session)

        everything, pagination = await service.list_zones()
        active, _ = await service.list_zones(active=True)
        searched, _ = await service.list_zones(q="koro", city="Lagos")

        assert [zone.zone for zone in everything] == ["Ikeja", "Ikorodu"]
        assert pagination.total == 2
        assert [zone.zone for zone in active] == ["Ikeja"]
        assert [zone.zone for zone in searched] == ["Ikorodu"]


class TestCategories:
    """Tests for category management."""

    @pytest.mark.asyncio
    async def test_create_update_and_list(self, db_session: Session, catalog: dict[str, Any]) -> None:
        service = AdminCatalogService(db_session)

        grills = await service.create_category(CategoryWriteRequest(name="Grills", slug="grills"), None)
        await service.update_category(grills.id, CategoryWriteRequest(name="Grills & Suya", slug="grills-suya"), None)
        categories, _ = await service.list_categories(sort=CategorySort.NAME_DESC)

        assert [category.slug for category in categories] == ["smoothies-juices", "grills-suya"]
        assert audit_trail(db_session) == [("create", "category"), ("update", "category")]

    @pytest.mark.asyncio
    async def test_duplicate_category_slug(self, db_session: Session, catalog: dict[str, Any]) -> None:
        with pytest.raises(DuplicateSlug):
            await AdminCatalogService(db_session).create_category(
                CategoryWriteRequest(name="Juices", slug="smoothies-juices"), None
            )

    @pytest.mark.asyncio
    async def test_category_with_products_cannot_be_deleted(self, db_session: Session, category: Category) -> None:
        with pytest.raises(CatalogEntryInUse):
            await AdminCatalogService(db_session).delete_category(category.id, None)

    @pytest.mark.asyncio
    async def test_empty_category_is_deleted(self, db_session: Session, catalog: dict[str, Any]) -> None:
        service = AdminCatalogService(db_session)
        grills = await service.create_category(CategoryWriteRequest(name="Grills", slug="grills"), None)

        await service.delete_category(grills.id, None)

        assert db_session.get(Category, grills.id) is None
        assert audit_trail(db_session)[-1] == ("delete", "category")
