"""Backoffice catalog routes: products, delivery zones and categories (admin)."""

import logging
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Query, status

from src.api.deps import AdminAccess, DbSession
from src.schemas.catalog import (
    AdminCategoryListResponse,
    AdminDeliveryZoneListResponse,
    AdminProductListItem,
    AdminProductListResponse,
    AdminProductResponse,
    CategoryEnvelope,
    CategoryResponse,
    CategorySort,
    CategoryWriteRequest,
    DeleteResponse,
    DeliveryZoneEnvelope,
    DeliveryZoneResponse,
    DeliveryZoneWriteRequest,
    ProductEnvelope,
    ProductSort,
    ProductWriteRequest,
)
from src.services.admin_catalog_service import MAX_PAGE_SIZE, AdminCatalogService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin-catalog"])

Page = Annotated[int, Query(ge=1)]
PageSize = Annotated[int, Query(alias="pageSize", ge=1, le=MAX_PAGE_SIZE)]
Search = Annotated[str | None, Query(max_length=200)]


# Products


@router.get(
    "/products",
    response_model=AdminProductListResponse,
    response_model_by_alias=True,
    summary="List products",
    description="Paginated product listing including inactive products.",
)
async def list_products(
    access: AdminAccess,
    db: DbSession,
    page: Page = 1,
    page_size: PageSize = 20,
    q: Search = None,
    category_id: Annotated[UUID | None, Query(alias="categoryId")] = None,
    active: bool | None = None,
    in_stock: Annotated[bool | None, Query(alias="inStock")] = None,
    sort: ProductSort = ProductSort.NEWEST,
) -> AdminProductListResponse:
    items, pagination = await AdminCatalogService(db).list_products(
        page=page,
        page_size=page_size,
        q=q,
        category_id=category_id,
        active=active,
        in_stock=in_stock,
        sort=sort,
    )
    return AdminProductListResponse(
        items=[AdminProductListItem.model_validate(item) for item in items],
        pagination=pagination,
    )


@router.post(
    "/products",
    response_model=ProductEnvelope,
    response_model_by_alias=True,
    status_code=status.HTTP_201_CREATED,
    summary="Create a product",
)
async def create_product(data: ProductWriteRequest, access: AdminAccess, db: DbSession) -> ProductEnvelope:
    """Create a product.

    Raises:
        ValidationError: Category does not exist.
        DuplicateSlug: Another product uses the slug.
    """
    product = await AdminCatalogService(db).create_product(data, access.user_profile_id)
    return ProductEnvelope(product=AdminProductResponse.model_validate(product))


@router.put(
    "/products/{product_id}",
    response_model=ProductEnvelope,
    response_model_by_alias=True,
    summary="Update a product",
)
async def update_product(
    product_id: UUID,
    data: ProductWriteRequest,
    access: AdminAccess,
    db: DbSession,
) -> ProductEnvelope:
    product = await AdminCatalogService(db).update_product(product_id, data, access.user_profile_id)
    return ProductEnvelope(product=AdminProductResponse.model_validate(product))


@router.delete(
    "/products/{product_id}",
    response_model=DeleteResponse,
    response_model_by_alias=True,
    summary="Delete a product",
    description="Refused with catalog_entry_in_use once the product has been ordered.",
)
async def delete_product(product_id: UUID, access: AdminAccess, db: DbSession) -> DeleteResponse:
    await AdminCatalogService(db).delete_product(product_id, access.user_profile_id)
    logger.info("Product %s deleted by %s", product_id, access.user_profile_id)
    return DeleteResponse()


# Delivery zones


@router.get(
    "/delivery-zones",
    response_model=AdminDeliveryZoneListResponse,
    response_model_by_alias=True,
    summary="List delivery zones",
)
async def list_zones(
    access: AdminAccess,
    db: DbSession,
    page: Page = 1,
    page_size: PageSize = 20,
    q: Search = None,
    active: bool | None = None,
    state: Annotated[str | None, Query(max_length=80)] = None,
    city: Annotated[str | None, Query(max_length=80)] = None,
) -> AdminDeliveryZoneListResponse:
    zones, pagination = await AdminCatalogService(db).list_zones(
        page=page, page_size=page_size, q=q, active=active, state=state, city=city
    )
    return AdminDeliveryZoneListResponse(
        items=[DeliveryZoneResponse.model_validate(zone) for zone in zones],
        pagination=pagination,
    )


@router.post(
    "/delivery-zones",
    response_model=DeliveryZoneEnvelope,
    response_model_by_alias=True,
    status_code=status.HTTP_201_CREATED,
    summary="Create a delivery zone",
)
async def create_zone(data: DeliveryZoneWriteRequest, access: AdminAccess, db: DbSession) -> DeliveryZoneEnvelope:
    zone = await AdminCatalogService(db).create_zone(data, access.user_profile_id)
    return DeliveryZoneEnvelope(zone=DeliveryZoneResponse.model_validate(zone))


@router.put(
    "/delivery-zones/{zone_id}",
    response_model=DeliveryZoneEnvelope,
    response_model_by_alias=True,
    summary="Update a delivery zone",
)
async def update_zone(
    zone_id: UUID,
    data: DeliveryZoneWriteRequest,
    access: AdminAccess,
    db: DbSession,
) -> DeliveryZoneEnvelope:
    zone = await AdminCatalogService(db).update_zone(zone_id, data, access.user_profile_id)
    return DeliveryZoneEnvelope(zone=DeliveryZoneResponse.model_validate(zone))


@router.delete(
    "/delivery-zones/{zone_id}",
    response_model=DeleteResponse,
    response_model_by_alias=True,
    summary="Delete a delivery zone",
)
async def delete_zone(zone_id: UUID, access: AdminAccess, db: DbSession) -> DeleteResponse:
    await AdminCatalogService(db).delete_zone(zone_id, access.user_profile_id)
    return DeleteResponse()


# Categories


@router.get(
    "/categories",
    response_model=AdminCategoryListResponse,
    response_model_by_alias=True,
    summary="List categories",
)
async def list_categories(
    access: AdminAccess,
    db: DbSession,
    page: Page = 1,
    page_size: PageSize = 20,
    q: Search = None,
    sort: CategorySort = CategorySort.NAME_ASC,
) -> AdminCategoryListResponse:
    categories, pagination = await AdminCatalogService(db).list_categories(
        page=page, page_size=page_size, q=q, sort=sort
    )
    return AdminCategoryListResponse(
        items=[CategoryResponse.model_validate(category) for category in categories],
        pagination=pagination,
    )


@router.post(
    "/categories",
    response_model=CategoryEnvelope,
    response_model_by_alias=True,
    status_code=status.HTTP_201_CREATED,
    summary="Create a category",
)
async def create_category(data: CategoryWriteRequest, access: AdminAccess, db: DbSession) -> CategoryEnvelope:
    category = await AdminCatalogService(db).create_category(data, access.user_profile_id)
    return CategoryEnvelope(category=CategoryResponse.model_validate(category))


@router.put(
    "/categories/{category_id}",
    response_model=CategoryEnvelope,
    response_model_by_alias=True,
    summary="Update a category",
)
async def update_category(
    category_id: UUID,
    data: CategoryWriteRequest,
    access: AdminAccess,
    db: DbSession,
) -> CategoryEnvelope:
    category = await AdminCatalogService(db).update_category(category_id, data, access.user_profile_id)
    return CategoryEnvelope(category=CategoryResponse.model_validate(category))


@router.delete(
    "/categories/{category_id}",
    response_model=DeleteResponse,
    response_model_by_alias=True,
    summary="Delete a category",
    description="Refused with catalog_entry_in_use while products are filed under the category.",
)
async def delete_category(category_id: UUID, access: AdminAccess, db: DbSession) -> DeleteResponse:
    await AdminCatalogService(db).delete_category(category_id, access.user_profile_id)
    return DeleteResponse()
