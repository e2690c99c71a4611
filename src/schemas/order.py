"""Order lookup, claim and admin management schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import Field

from src.models import OrderStatus
from src.schemas.common import CamelModel, PaginationMeta

ORDER_CODE_PATTERN = r"^AT-[A-Z0-9]{8}$"


class OrderLookupRequest(CamelModel):
    """Guest order lookup by code plus contact detail."""

    order_code: str = Field(pattern=ORDER_CODE_PATTERN, description="Order code, e.g. AT-1A2B3C4D")
    email_or_phone: str = Field(min_length=5, max_length=320, description="Email or phone used at checkout")


class OrderSummary(CamelModel):
    order_code: str
    status: str
    total: int
    currency: str
    created_at: datetime


class OrderItemResponse(CamelModel):
    id: UUID
    product_id: UUID
    name_snapshot: str
    unit_price_snapshot: int
    qty: int
    line_total: int


class OrderLookupResponse(CamelModel):
    order: OrderSummary
    items: list[OrderItemResponse]


class ClaimOrdersRequest(CamelModel):
    phone_hint: str | None = Field(default=None, max_length=40, description="Only claim orders with this phone")


class ClaimOrdersResponse(CamelModel):
    linked_count: int


class AdminOrderListItem(CamelModel):
    id: UUID
    order_code: str
    status: str
    total: int
    currency: str
    guest_email: str | None = None
    guest_phone: str | None = None
    created_at: datetime
    delivery_zone: str | None = None


class AdminOrderListResponse(CamelModel):
    items: list[AdminOrderListItem]
    pagination: PaginationMeta


class OrderStatusUpdateRequest(CamelModel):
    status: OrderStatus


class AdminOrderResponse(CamelModel):
    id: UUID
    order_code: str
    status: str
    total: int
    currency: str
    guest_email: str | None = None
    guest_phone: str | None = None
    user_profile_id: UUID | None = None
    created_at: datetime
