"""Checkout and payment initiation schemas."""

from enum import Enum
from uuid import UUID

from pydantic import Field

from src.schemas.cart import QuoteRequest
from src.schemas.common import CamelModel

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"


class PaymentMethod(str, Enum):
    """Payment methods offered at checkout."""

    CARD = "card"
    PAYPAL = "paypal"


class CustomerInput(CamelModel):
    name: str = Field(min_length=2, max_length=200, description="Recipient name")
    email: str = Field(pattern=EMAIL_PATTERN, max_length=320, description="Contact email")
    phone: str = Field(min_length=7, max_length=40, description="Contact phone")


class AddressInput(CamelModel):
    street: str = Field(min_length=3, max_length=300)
    area: str = Field(min_length=2, max_length=200)
    landmark: str = Field(default="", max_length=300)
    notes: str = Field(default="", max_length=1000)


class CheckoutOrderRequest(QuoteRequest):
    """Full checkout payload used to create an order."""

    customer: CustomerInput
    address: AddressInput
    payment_method: PaymentMethod = Field(description="Chosen payment method")


class CheckoutOrderResponse(CamelModel):
    order_code: str
    order_id: UUID
    total: int
    currency: str
    payment_method: PaymentMethod


class StartPaymentRequest(CamelModel):
    """Start a payment for an order using a payment method."""

    order_code: str = Field(min_length=3, max_length=32)
    payment_method: PaymentMethod


class ProviderCheckoutRequest(CamelModel):
    """Start a payment for an order with an explicit provider."""

    order_code: str = Field(min_length=3, max_length=32)


class PaymentCheckoutResponse(CamelModel):
    checkout_url: str = Field(description="URL the shopper is redirected to")
    provider_ref: str = Field(description="Provider reference for the payment attempt")
    provider: str
