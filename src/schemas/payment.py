"""Payment provider contract and webhook schemas."""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from src.schemas.common import CamelModel

PaymentEventStatus = Literal["paid", "failed", "pending"]


class CheckoutRequest(BaseModel):
    """Input to a provider's hosted checkout."""

    order_code: str
    amount: int = Field(description="Amount in minor units")
    currency: str
    customer_email: str
    callback_url: str
    metadata: dict[str, Any] = Field(default_factory=dict)


class CheckoutSession(BaseModel):
    """Hosted checkout created by a provider."""

    checkout_url: str
    provider_ref: str


class CanonicalWebhookEvent(BaseModel):
    """Provider-independent payment notification.

    Adapters produce this after verifying authenticity; nothing downstream
    reads provider payloads directly.
    """

    model_config = ConfigDict(frozen=True)

    event_id: str = Field(min_length=1)
    event_type: str
    order_code: str
    provider_ref: str
    amount: int = Field(description="Amount in minor units")
    currency: str
    status: PaymentEventStatus
    raw_payload: dict[str, Any] = Field(default_factory=dict)


class WebhookResult(BaseModel):
    """Outcome of applying a webhook event."""

    duplicated: bool
    order_code: str
    updated_to_paid: bool = False
    recipient_email: str | None = None
    amount: int
    currency: str


class WebhookAck(CamelModel):
    ok: bool = True
    duplicated: bool
    order_code: str
