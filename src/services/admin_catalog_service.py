"""Backoffice catalog management: products, delivery zones and categories."""

import logging
from typing import Any
from uuid import UUID

from sqlalchemy import delete, func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from src.api.middleware.error_handler import CatalogEntryInUse, DuplicateSlug, NotFoundError, ValidationError
from src.core.database import conflict_from_integrity_error
from src.core.supabase import get_public_url
from src.models import Category, DeliveryZone, Order, OrderItem, Product, ProductImage
from src.schemas.catalog import (
    CategorySort,
    CategoryWriteRequest,
    DeliveryZoneWriteRequest,
    ProductSort,
    ProductWriteRequest,
)
from src.schemas.common import PaginationMeta
from src.services.audit_service import AuditService
from src.services.catalog_service import first_image_path

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 100

PRODUCT_ORDERING = {
    ProductSort.NEWEST: (Product.created_at.desc(), Product.name),
    ProductSort.PRICE_ASC: (Product.base_price.asc(), Product.name),
    ProductSort.PRICE_DESC: (Product.base_price.desc(), Product.name),
    ProductSort.NAME_ASC: (Product.name.asc(),),
    ProductSort.NAME_DESC: (Product.name.desc(),),
}

CATEGORY_ORDERING = {
    CategorySort.NAME_ASC: (Category.name.asc(),),
    CategorySort.NAME_DESC: (Category.name.desc(),),
}


def _page_window(page: int, page_size: int, total: int) -> PaginationMeta:
    return PaginationMeta.build(page=max(page, 1), page_size=min(max(page_size, 1), MAX_PAGE_SIZE), total=total)


class AdminCatalogService:
    """Create, edit, list and hard-delete catalog rows.

    Every write is audited in the same transaction. Rows still referenced by
    orders or products cannot be deleted; deactivate them instead.
    """

    def __init__(self, db: Session) -> None:
        self.db = db
        self.audit = AuditService(db)

    def _flush(self) -> None:
        """Flush pending writes, reporting slug collisions as DuplicateSlug."""
        try:
            self.db.flush()
        except IntegrityError as e:
            self.db.rollback()
            conflict = conflict_from_integrity_error(e)
            if conflict is None:
                raise
            if conflict.constraint and conflict.constraint.endswith("_slug_key"):
                raise DuplicateSlug() from e
            raise conflict from e

    def _require_category(self, category_id: UUID) -> None:
        if self.db.get(Category, category_id) is None:
            raise ValidationError("Category does not exist")

    def _get_or_404(self, model: Any, entity_id: UUID, label: str) -> Any:
        row = self.db.get(model, entity_id)
        if row is None:
            raise NotFoundError(f"{label} not found")
        return row

    # Products

    async def list_products(
        self,
        page: int = 1,
        page_size: int = 20,
        q: str | None = None,
        category_id: UUID | None = None,
        active: bool | None = None,
        in_stock: bool | None = None,
        sort: ProductSort = ProductSort.NEWEST,
    ) -> tuple[list[dict[str, Any]], PaginationMeta]:
        """List products, including inactive ones.

        Args:
            q: Case-insensitive search over name and slug.
            category_id: Only products in this category.
            active: Filter on the active flag.
            in_stock: Filter on the in_stock flag.
            sort: Ordering of the listing.

        Returns:
            Tuple of (rows, pagination meta).
        """
        filters = []
        if q and q.strip():
            pattern = f"%{q.strip()}%"
            filters.append(or_(Product.name.ilike(pattern), Product.slug.ilike(pattern)))
        if category_id is not None:
            filters.append(Product.category_id == category_id)
        if active is not None:
            filters.append(Product.active.is_(active))
        if in_stock is not None:
            filters.append(Product.in_stock.is_(in_stock))

        total = self.db.execute(select(func.count()).select_from(Product).where(*filters)).scalar_one()
        pagination = _page_window(page, page_size, total)

        rows = self.db.execute(
            select(Product, Category.name)
            .outerjoin(Category, Category.id == Product.category_id)
            .options(selectinload(Product.images))
            .where(*filters)
            .order_by(*PRODUCT_ORDERING[sort])
            .offset(pagination.offset)
            .limit(pagination.page_size)
        ).all()

        items = []
        for product, category_name in rows:
            thumbnail = first_image_path(product)
            items.append(
                {
                    "id": product.id,
                    "name": product.name,
                    "slug": product.slug,
                    "description": product.description,
                    "base_price": product.base_price,
                    "active": product.active,
                    "in_stock": product.in_stock,
                    "category_id": product.category_id,
                    "created_at": product.created_at,
                    "category_name": category_name,
                    "thumbnail_url": get_public_url(thumbnail) if thumbnail else None,
                }
            )
        return items, pagination

    async def create_product(self, data: ProductWriteRequest, actor_user_profile_id: UUID | None) -> Product:
        """Create a product.

        Raises:
            ValidationError: Category does not exist.
            DuplicateSlug: Another product uses the slug.
        """
        self._require_category(data.category_id)
        product = Product(**data.model_dump())
        self.db.add(product)
        self._flush()
        self.audit.record(actor_user_profile_id, "create", "product", product.id, meta={"slug": product.slug})
        self.db.commit()
        logger.info("Product %s created", product.slug)
        return product

    async def update_product(
        self,
        product_id: UUID,
        data: ProductWriteRequest,
        actor_user_profile_id: UUID | None,
    ) -> Product:
        """Replace a product's editable fields.

        Raises:
            NotFoundError: Product does not exist.
            ValidationError: Category does not exist.
            DuplicateSlug: Another product uses the slug.
        """
        product = self._get_or_404(Product, product_id, "Product")
        self._require_category(data.category_id)
        for field, value in data.model_dump().items():
            setattr(product, field, value)
        self._flush()
        self.audit.record(actor_user_profile_id, "update", "product", product.id, meta={"slug": data.slug})
        self.db.commit()
        return product

    async def delete_product(self, product_id: UUID, actor_user_profile_id: UUID | None) -> None:
        """Hard-delete a product and its images.

        Raises:
            NotFoundError: Product does not exist.
            CatalogEntryInUse: Orders reference the product.
        """
        product = self._get_or_404(Product, product_id, "Product")
        slug = product.slug
        ordered = self.db.execute(select(OrderItem.id).where(OrderItem.product_id == product_id).limit(1)).first()
        if ordered is not None:
            raise CatalogEntryInUse("Product has been ordered. Deactivate it instead.")

        self.db.execute(delete(ProductImage).where(ProductImage.product_id == product_id))
        self.db.execute(delete(Product).where(Product.id == product_id))
        self.audit.record(actor_user_profile_id, "delete", "product", product_id, meta={"slug": slug})
        self.db.commit()
        logger.info("Product %s deleted", slug)

    # Delivery zones

    async def list_zones(
        self,
        page: int = 1,
        page_size: int = 20,
        q: str | None = None,
        active: bool | None = None,
        state: str | None = None,
        city: str | None = None,
    ) -> tuple[list[DeliveryZone], PaginationMeta]:
        """List delivery zones ordered by zone name.

        Args:
            q: Case-insensitive search over zone, city and state.
        """
        filters = []
        if q and q.strip():
            pattern = f"%{q.strip()}%"
            filters.append(
                or_(
                    DeliveryZone.zone.ilike(pattern),
                    DeliveryZone.city.ilike(pattern),
                    DeliveryZone.state.ilike(pattern),
                )
            )
        if active is not None:
            filters.append(DeliveryZone.active.is_(active))
        if state:
            filters.append(DeliveryZone.state == state.strip())
        if city:
            filters.append(DeliveryZone.city == city.strip())

        total = self.db.execute(select(func.count()).select_from(DeliveryZone).where(*filters)).scalar_one()
        pagination = _page_window(page, page_size, total)

        zones = self.db.execute(
            select(DeliveryZone)
            .where(*filters)
            .order_by(DeliveryZone.zone)
            .offset(pagination.offset)
            .limit(pagination.page_size)
        ).scalars()
        return list(zones), pagination

    async def create_zone(self, data: DeliveryZoneWriteRequest, actor_user_profile_id: UUID | None) -> DeliveryZone:
        zone = DeliveryZone(**data.model_dump())
        self.db.add(zone)
        self._flush()
        self.audit.record(actor_user_profile_id, "create", "delivery_zone", zone.id)
        self.db.commit()
        return zone

    async def update_zone(
        self,
        zone_id: UUID,
        data: DeliveryZoneWriteRequest,
        actor_user_profile_id: UUID | None,
    ) -> DeliveryZone:
        """Replace a zone's fields. Existing orders keep the fee they were quoted.

        Raises:
            NotFoundError: Zone does not exist.
        """
        zone = self._get_or_404(DeliveryZone, zone_id, "Delivery zone")
        for field, value in data.model_dump().items():
            setattr(zone, field, value)
        self._flush()
        self.audit.record(actor_user_profile_id, "update", "delivery_zone", zone.id)
        self.db.commit()
        return zone

    async def delete_zone(self, zone_id: UUID, actor_user_profile_id: UUID | None) -> None:
        """Hard-delete a delivery zone.

        Raises:
            NotFoundError: Zone does not exist.
            CatalogEntryInUse: Orders reference the zone.
        """
        zone = self._get_or_404(DeliveryZone, zone_id, "Delivery zone")
        used = self.db.execute(select(Order.id).where(Order.delivery_zone_id == zone_id).limit(1)).first()
        if used is not None:
            raise CatalogEntryInUse("Delivery zone has orders. Deactivate it instead.")

        self.db.delete(zone)
        self.audit.record(actor_user_profile_id, "delete", "delivery_zone", zone_id)
        self.db.commit()

    # Categories

    async def list_categories(
        self,
        page: int = 1,
        page_size: int = 20,
        q: str | None = None,
        sort: CategorySort = CategorySort.NAME_ASC,
    ) -> tuple[list[Category], PaginationMeta]:
        filters = []
        if q and q.strip():
            pattern = f"%{q.strip()}%"
            filters.append(or_(Category.name.ilike(pattern), Category.slug.ilike(pattern)))

        total = self.db.execute(select(func.count()).select_from(Category).where(*filters)).scalar_one()
        pagination = _page_window(page, page_size, total)

        categories = self.db.execute(
            select(Category)
            .where(*filters)
            .order_by(*CATEGORY_ORDERING[sort])
            .offset(pagination.offset)
            .limit(pagination.page_size)
        ).scalars()
        return list(categories), pagination

    async def create_category(self, data: CategoryWriteRequest, actor_user_profile_id: UUID | None) -> Category:
        category = Category(**data.model_dump())
        self.db.add(category)
        self._flush()
        self.audit.record(actor_user_profile_id, "create", "category", category.id, meta={"slug": category.slug})
        self.db.commit()
        return category

    async def update_category(
        self,
        category_id: UUID,
        data: CategoryWriteRequest,
        actor_user_profile_id: UUID | None,
    ) -> Category:
        category = self._get_or_404(Category, category_id, "Category")
        category.name = data.name
        category.slug = data.slug
        self._flush()
        self.audit.record(actor_user_profile_id, "update", "category", category.id, meta={"slug": data.slug})
        self.db.commit()
        return category

    async def delete_category(self, category_id: UUID, actor_user_profile_id: UUID | None) -> None:
        """Hard-delete a category.

        Raises:
            NotFoundError: Category does not exist.
            CatalogEntryInUse: Products are still filed under it.
        """
        category = self._get_or_404(Category, category_id, "Category")
        used = self.db.execute(select(Product.id).where(Product.category_id == category_id).limit(1)).first()
        if used is not None:
            raise CatalogEntryInUse("Category still has products")

        self.db.delete(category)
        self.audit.record(actor_user_profile_id, "delete", "category", category_id, meta={"slug": category.slug})
        self.db.commit()
