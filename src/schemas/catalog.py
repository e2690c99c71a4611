"""Catalog schemas: storefront listings and backoffice catalog management."""

from datetime import datetime
from enum import Enum
from uuid import UUID

from pydantic import Field

from src.schemas.common import CamelModel, PaginationMeta

SLUG_PATTERN = r"^[a-z0-9]+(?:-[a-z0-9]+)*$"


# Storefront


class ProductCard(CamelModel):
    """Active product as shown on the storefront."""

    id: UUID
    name: str
    slug: str
    description: str
    base_price: int = Field(description="Unit price in minor units")
    in_stock: bool
    category_name: str | None = None
    image_url: str


class ProductListResponse(CamelModel):
    products: list[ProductCard]


class ProductDetailResponse(CamelModel):
    product: ProductCard


class DeliveryZoneResponse(CamelModel):
    id: UUID
    country: str
    state: str
    city: str
    zone: str
    fee: int = Field(description="Delivery fee in minor units")
    eta_text: str
    active: bool


class DeliveryZoneListResponse(CamelModel):
    zones: list[DeliveryZoneResponse]


class CategoryResponse(CamelModel):
    id: UUID
    name: str
    slug: str


class CategoryListResponse(CamelModel):
    categories: list[CategoryResponse]


# Backoffice


class ProductSort(str, Enum):
    NEWEST = "newest"
    PRICE_ASC = "price_asc"
    PRICE_DESC = "price_desc"
    NAME_ASC = "name_asc"
    NAME_DESC = "name_desc"


class CategorySort(str, Enum):
    NAME_ASC = "name_asc"
    NAME_DESC = "name_desc"


class ProductWriteRequest(CamelModel):
    """Full product payload for create and replace."""

    name: str = Field(min_length=2, max_length=200)
    slug: str = Field(min_length=2, max_length=220, pattern=SLUG_PATTERN)
    description: str = Field(min_length=6)
    base_price: int = Field(ge=0, description="Unit price in minor units")
    active: bool = True
    in_stock: bool = True
    category_id: UUID


class DeliveryZoneWriteRequest(CamelModel):
    country: str = Field(default="Nigeria", min_length=2, max_length=80)
    state: str = Field(min_length=2, max_length=80)
    city: str = Field(min_length=2, max_length=80)
    zone: str = Field(min_length=2, max_length=120)
    fee: int = Field(ge=0, description="Delivery fee in minor units")
    eta_text: str = Field(min_length=3, max_length=120)
    active: bool = True


class CategoryWriteRequest(CamelModel):
    name: str = Field(min_length=2, max_length=120)
    slug: str = Field(min_length=2, max_length=160, pattern=SLUG_PATTERN)


class AdminProductResponse(CamelModel):
    id: UUID
    name: str
    slug: str
    description: str
    base_price: int
    active: bool
    in_stock: bool
    category_id: UUID | None = None
    created_at: datetime


class AdminProductListItem(AdminProductResponse):
    category_name: str | None = None
    thumbnail_url: str | None = None


class AdminProductListResponse(CamelModel):
    items: list[AdminProductListItem]
    pagination: PaginationMeta


class AdminDeliveryZoneListResponse(CamelModel):
    items: list[DeliveryZoneResponse]
    pagination: PaginationMeta


class AdminCategoryListResponse(CamelModel):
    items: list[CategoryResponse]
    pagination: PaginationMeta


class ProductEnvelope(CamelModel):
    product: AdminProductResponse


class DeliveryZoneEnvelope(CamelModel):
    zone: DeliveryZoneResponse


class CategoryEnvelope(CamelModel):
    category: CategoryResponse


class DeleteResponse(CamelModel):
    ok: bool = True
