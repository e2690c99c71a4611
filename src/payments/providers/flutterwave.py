"""Flutterwave adapter."""

import time
from collections.abc import Mapping

from src.api.middleware.error_handler import WebhookVerificationError
from src.core.config import Settings
from src.core.provider_http import ProviderHTTPClient, ProviderHTTPError
from src.payments.base import PaymentProvider, to_minor_units
from src.payments.signatures import as_dict, parse_json_object, signatures_match
from src.schemas.payment import CanonicalWebhookEvent, CheckoutRequest, CheckoutSession

SIGNATURE_HEADER = "verif-hash"
CHECKOUT_TITLE = "AT Thrill Checkout"

STATUS_MAP = {"successful": "paid", "failed": "failed"}


class FlutterwaveProvider(PaymentProvider):
    name = "flutterwave"

    def __init__(self, settings: Settings | None = None) -> None:
        super().__init__(settings)
        self.http = ProviderHTTPClient(self.name, self.settings.flutterwave_base_url)

    async def create_checkout(self, request: CheckoutRequest) -> CheckoutSession:
        # Flutterwave takes our reference as tx_ref, so it exists before the call
        provider_ref = f"FLW-{request.order_code}-{int(time.time() * 1000)}"

        secret_key = self.settings.flutterwave_secret_key
        if not secret_key:
            return self.mock_checkout(request, provider_ref=provider_ref)

        payload = await self.http.post(
            "/payments",
            json={
                "tx_ref": provider_ref,
                "amount": request.amount / 100,
                "currency": request.currency,
                "redirect_url": request.callback_url,
                "customer": {"email": request.customer_email},
                "customizations": {"title": CHECKOUT_TITLE},
                "meta": {"orderCode": request.order_code, **request.metadata},
            },
            headers={"Authorization": f"Bearer {secret_key}"},
        )

        link = as_dict(payload.get("data")).get("link")
        if not link:
            raise ProviderHTTPError(self.name, str(payload.get("message") or "Unable to initialize checkout"))

        return CheckoutSession(checkout_url=link, provider_ref=provider_ref)

    async def verify_webhook(self, headers: Mapping[str, str], raw_body: bytes) -> CanonicalWebhookEvent:
        secret = self.settings.flutterwave_webhook_secret
        if secret:
            if not signatures_match(secret, self.header(headers, SIGNATURE_HEADER)):
                raise WebhookVerificationError("Invalid flutterwave signature")
        else:
            self.allow_unsigned()

        payload = parse_json_object(raw_body)
        data = as_dict(payload.get("data"))
        meta = as_dict(data.get("meta"))
        status_raw = str(data.get("status") or "pending").lower()

        return self.build_event(
            event_id=str(data.get("id") or ""),
            event_type=str(payload.get("event") or "flutterwave.unknown"),
            order_code=str(meta.get("orderCode") or ""),
            provider_ref=str(data.get("tx_ref") or ""),
            amount=to_minor_units(data.get("amount")),
            currency=str(data.get("currency") or self.settings.default_currency).upper(),
            status=STATUS_MAP.get(status_raw, "pending"),
            raw_payload=payload,
        )
