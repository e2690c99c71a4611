"""Storefront catalog reads: products, delivery zones and categories."""

import logging
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from src.api.middleware.error_handler import NotFoundError
from src.core.config import get_settings
from src.core.supabase import get_public_url
from src.models import Category, DeliveryZone, Product

logger = logging.getLogger(__name__)


def first_image_path(product: Product) -> str | None:
    """Storage path of the product's lowest sort_order image."""
    if not product.images:
        return None
    return min(product.images, key=lambda image: image.sort_order).storage_path


def product_image_url(product: Product) -> str:
    """Public URL of the product's first image, or the placeholder."""
    path = first_image_path(product)
    if path is None:
        return get_settings().placeholder_image_url
    return get_public_url(path)


class CatalogService:
    """Read-only catalog access for the storefront.

    Only active products and zones are exposed. Out-of-stock products stay
    listed with ``in_stock`` false.
    """

    def __init__(self, db: Session) -> None:
        self.db = db

    def _product_card(self, product: Product, category_name: str | None) -> dict[str, Any]:
        return {
            "id": product.id,
            "name": product.name,
            "slug": product.slug,
            "description": product.description,
            "base_price": product.base_price,
            "in_stock": product.in_stock,
            "category_name": category_name,
            "image_url": product_image_url(product),
        }

    def _product_query(self) -> Any:
        return (
            select(Product, Category.name)
            .outerjoin(Category, Category.id == Product.category_id)
            .options(selectinload(Product.images))
            .where(Product.active.is_(True))
        )

    async def list_active_products(self, category_slug: str | None = None) -> list[dict[str, Any]]:
        """List active products newest first.

        Args:
            category_slug: Only products in this category.
        """
        stmt = self._product_query()
        if category_slug:
            stmt = stmt.where(Category.slug == category_slug)
        rows = self.db.execute(stmt.order_by(Product.created_at.desc(), Product.name)).all()
        return [self._product_card(product, category_name) for product, category_name in rows]

    async def get_product_by_slug(self, slug: str) -> dict[str, Any]:
        """Get one active product.

        Raises:
            NotFoundError: No active product has this slug.
        """
        row = self.db.execute(self._product_query().where(Product.slug == slug)).first()
        if row is None:
            raise NotFoundError("Product not found")
        product, category_name = row
        return self._product_card(product, category_name)

    async def list_delivery_zones(self) -> list[DeliveryZone]:
        return list(
            self.db.execute(
                select(DeliveryZone).where(DeliveryZone.active.is_(True)).order_by(DeliveryZone.zone)
            ).scalars()
        )

    async def list_categories(self) -> list[Category]:
        return list(self.db.execute(select(Category).order_by(Category.name)).scalars())
