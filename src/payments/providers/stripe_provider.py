"""Stripe Checkout adapter."""

import asyncio
import logging
from collections.abc import Mapping
from urllib.parse import urlencode

import stripe

from src.api.middleware.error_handler import WebhookVerificationError
from src.core.provider_http import ProviderHTTPError
from src.core.stripe import get_stripe
from src.payments.base import PaymentProvider
from src.payments.signatures import as_dict, parse_json_object
from src.schemas.payment import CanonicalWebhookEvent, CheckoutRequest, CheckoutSession

logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "stripe-signature"
ACCEPTED_EVENT_TYPES = frozenset({"checkout.session.completed", "payment_intent.succeeded"})


class StripeProvider(PaymentProvider):
    name = "stripe"

    async def create_checkout(self, request: CheckoutRequest) -> CheckoutSession:
        """Create a Stripe Checkout Session for the full order amount.

        The SDK call is blocking, so it runs in a worker thread under the
        provider timeout. Network retries come from ``stripe.max_network_retries``.
        """
        if not self.settings.stripe_secret_key:
            return self.mock_checkout(request)

        base_url = self.settings.app_base_url.rstrip("/")
        order_query = {"orderCode": request.order_code}
        params = {
            "mode": "payment",
            "customer_email": request.customer_email,
            "success_url": f"{base_url}/order-success?{urlencode({**order_query, 'provider': self.name})}",
            "cancel_url": f"{base_url}/checkout?{urlencode(order_query)}",
            "line_items": [
                {
                    "quantity": 1,
                    "price_data": {
                        "currency": request.currency.lower(),
                        "unit_amount": request.amount,
                        "product_data": {"name": f"AT Thrill Order {request.order_code}"},
                    },
                }
            ],
            "metadata": {
                "orderCode": request.order_code,
                **{key: str(value) for key, value in request.metadata.items()},
            },
        }

        client = get_stripe()
        session = await asyncio.wait_for(
            asyncio.to_thread(client.checkout.Session.create, **params),
            timeout=self.settings.payment_provider_timeout_seconds,
        )

        if not session.url or not session.id:
            raise ProviderHTTPError(self.name, "Unable to initialize checkout")

        logger.info("Stripe checkout session %s created for %s", session.id, request.order_code)
        return CheckoutSession(checkout_url=session.url, provider_ref=session.id)

    async def verify_webhook(self, headers: Mapping[str, str], raw_body: bytes) -> CanonicalWebhookEvent:
        """Verify the ``stripe-signature`` header and normalize paid events.

        Only completed checkout sessions and succeeded payment intents are
        accepted; other event types raise.
        """
        secret = self.settings.stripe_webhook_secret
        if secret:
            signature = self.header(headers, SIGNATURE_HEADER)
            if not signature:
                raise WebhookVerificationError("Missing stripe signature")
            try:
                get_stripe().Webhook.construct_event(raw_body, signature, secret)
            except stripe.error.SignatureVerificationError as e:
                raise WebhookVerificationError("Invalid stripe signature") from e
            except ValueError as e:
                raise WebhookVerificationError("Invalid stripe payload") from e
        else:
            self.allow_unsigned()

        payload = parse_json_object(raw_body)
        event_type = str(payload.get("type") or "")
        if event_type not in ACCEPTED_EVENT_TYPES:
            raise WebhookVerificationError(f"Unhandled stripe event: {event_type or 'unknown'}")

        obj = as_dict(as_dict(payload.get("data")).get("object"))
        metadata = as_dict(obj.get("metadata"))
        amount = obj.get("amount_total")
        if amount is None:
            amount = obj.get("amount_received")

        return self.build_event(
            event_id=str(payload.get("id") or ""),
            event_type=event_type,
            order_code=str(metadata.get("orderCode") or ""),
            provider_ref=str(obj.get("id") or ""),
            amount=int(amount or 0),
            currency=str(obj.get("currency") or self.settings.default_currency).upper(),
            status="paid",
            raw_payload=payload,
        )
