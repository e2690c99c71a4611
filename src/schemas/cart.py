"""Cart quote schemas."""

from uuid import UUID

from pydantic import Field

from src.schemas.common import CamelModel

MAX_LINE_QUANTITY = 25


class CartItemInput(CamelModel):
    """One cart line as submitted by the storefront."""

    product_id: UUID = Field(description="Product to price")
    quantity: int = Field(ge=1, le=MAX_LINE_QUANTITY, description="Units of the product")


class QuoteRequest(CamelModel):
    """Request schema for pricing a cart."""

    delivery_zone_id: UUID = Field(description="Delivery zone the order ships to")
    items: list[CartItemInput] = Field(min_length=1, description="Cart lines")


class QuoteLine(CamelModel):
    product_id: UUID
    name: str
    slug: str
    unit_price: int = Field(description="Unit price in minor units")
    qty: int
    line_total: int = Field(description="unit_price x qty in minor units")
    image_url: str


class DeliveryZoneSummary(CamelModel):
    id: UUID
    zone: str
    eta_text: str


class Quote(CamelModel):
    """Server-computed price quote.

    ``total`` is always ``subtotal + delivery_fee`` and ``subtotal`` is the sum
    of the line totals.
    """

    subtotal: int
    delivery_fee: int
    total: int
    currency: str
    lines: list[QuoteLine]
    delivery_zone: DeliveryZoneSummary


class QuoteResponse(CamelModel):
    quote: Quote
