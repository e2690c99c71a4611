"""Storefront catalog routes."""

from typing import Annotated

from fastapi import APIRouter, Query

from src.api.deps import DbSession
from src.schemas.catalog import (
    CategoryListResponse,
    CategoryResponse,
    DeliveryZoneListResponse,
    DeliveryZoneResponse,
    ProductCard,
    ProductDetailResponse,
    ProductListResponse,
)
from src.services.catalog_service import CatalogService

router = APIRouter(tags=["catalog"])


@router.get(
    "/products",
    response_model=ProductListResponse,
    response_model_by_alias=True,
    summary="List products",
    description="Active products, newest first. Sold-out products are listed with inStock false.",
)
async def list_products(
    db: DbSession,
    category: Annotated[str | None, Query(max_length=160, description="Category slug")] = None,
) -> ProductListResponse:
    products = await CatalogService(db).list_active_products(category_slug=category)
    return ProductListResponse(products=[ProductCard.model_validate(product) for product in products])


@router.get(
    "/products/{slug}",
    response_model=ProductDetailResponse,
    response_model_by_alias=True,
    summary="Get a product",
)
async def get_product(slug: str, db: DbSession) -> ProductDetailResponse:
    """Get an active product by slug.

    Raises:
        NotFoundError: No active product has this slug.
    """
    product = await CatalogService(db).get_product_by_slug(slug)
    return ProductDetailResponse(product=ProductCard.model_validate(product))


@router.get(
    "/delivery-zones",
    response_model=DeliveryZoneListResponse,
    response_model_by_alias=True,
    summary="List delivery zones",
)
async def list_delivery_zones(db: DbSession) -> DeliveryZoneListResponse:
    zones = await CatalogService(db).list_delivery_zones()
    return DeliveryZoneListResponse(zones=[DeliveryZoneResponse.model_validate(zone) for zone in zones])


@router.get(
    "/categories",
    response_model=CategoryListResponse,
    response_model_by_alias=True,
    summary="List categories",
)
async def list_categories(db: DbSession) -> CategoryListResponse:
    categories = await CatalogService(db).list_categories()
    return CategoryListResponse(categories=[CategoryResponse.model_validate(category) for category in categories])
