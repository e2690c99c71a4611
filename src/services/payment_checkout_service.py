"""Payment initiation for existing orders."""

import asyncio
import logging
from urllib.parse import urlencode

import httpx
import stripe
from sqlalchemy.orm import Session

from src.api.middleware.error_handler import (
    OrderAlreadyPaid,
    OrderNotFound,
    PaymentProviderError,
    ProviderDisabled,
)
from src.core.config import get_settings
from src.core.provider_http import ProviderHTTPError
from src.models import SETTLED_ORDER_STATUSES, PaymentStatus
from src.payments.registry import (
    PAYPAL,
    get_payment_provider,
    is_provider_enabled,
    resolve_card_payment_provider,
)
from src.schemas.checkout import PaymentCheckoutResponse, PaymentMethod
from src.schemas.payment import CheckoutRequest
from src.services.order_service import OrderService

logger = logging.getLogger(__name__)

GUEST_EMAIL_FALLBACK = "guest@atthrill.local"

PROVIDER_FAILURES: tuple[type[Exception], ...] = (
    ProviderHTTPError,
    httpx.HTTPError,
    asyncio.TimeoutError,
    stripe.error.StripeError,
)


def resolve_provider_for_method(payment_method: PaymentMethod) -> str:
    """Map a storefront payment method to the provider that serves it.

    Raises:
        ProviderDisabled: No enabled provider serves the method.
    """
    if payment_method == PaymentMethod.PAYPAL:
        if not is_provider_enabled(PAYPAL):
            raise ProviderDisabled("PayPal payments are not available right now")
        return PAYPAL
    return resolve_card_payment_provider()


class PaymentCheckoutService:
    """Starts hosted checkouts and records the payment attempt."""

    def __init__(self, db: Session) -> None:
        self.db = db
        self.settings = get_settings()
        self.orders = OrderService(db)

    async def start_checkout(self, order_code: str, provider_name: str) -> PaymentCheckoutResponse:
        """Create a provider checkout for an unpaid order.

        Args:
            order_code: Public order code.
            provider_name: Provider to use. Must be enabled.

        Returns:
            PaymentCheckoutResponse: Redirect URL and provider reference.

        Raises:
            NotFoundError: Unknown provider name.
            ProviderDisabled: Provider is not enabled.
            OrderNotFound: No order has this code.
            OrderAlreadyPaid: Order was already paid.
            PaymentProviderError: The provider call failed.
        """
        provider = get_payment_provider(provider_name)
        if not is_provider_enabled(provider.name):
            raise ProviderDisabled()

        order = await self.orders.find_order_by_code(order_code.strip().upper())
        if order is None:
            raise OrderNotFound()
        if order.status in SETTLED_ORDER_STATUSES:
            raise OrderAlreadyPaid()

        callback_query = urlencode({"orderCode": order.order_code, "provider": provider.name})
        request = CheckoutRequest(
            order_code=order.order_code,
            amount=order.total,
            currency=order.currency,
            customer_email=order.guest_email or GUEST_EMAIL_FALLBACK,
            callback_url=f"{self.settings.app_base_url.rstrip('/')}/payment/callback?{callback_query}",
            metadata={"orderId": str(order.id)},
        )

        try:
            session = await provider.create_checkout(request)
        except PROVIDER_FAILURES as e:
            logger.error(
                "Checkout creation failed for %s via %s: %s",
                order.order_code,
                provider.name,
                str(e),
                extra={"provider": provider.name},
            )
            raise PaymentProviderError() from e

        try:
            self.orders.upsert_payment(
                order_id=order.id,
                provider=provider.name,
                provider_ref=session.provider_ref,
                status=PaymentStatus.INITIATED,
                amount=order.total,
                currency=order.currency,
                raw_payload={"type": "checkout_created", "providerRef": session.provider_ref},
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info("Checkout started for %s via %s", order.order_code, provider.name)
        return PaymentCheckoutResponse(
            checkout_url=session.checkout_url,
            provider_ref=session.provider_ref,
            provider=provider.name,
        )

    async def start_checkout_for_method(
        self,
        order_code: str,
        payment_method: PaymentMethod,
    ) -> PaymentCheckoutResponse:
        provider_name = resolve_provider_for_method(payment_method)
        return await self.start_checkout(order_code, provider_name)
