"""Paystack adapter."""

from collections.abc import Mapping

from src.api.middleware.error_handler import WebhookVerificationError
from src.core.config import Settings
from src.core.provider_http import ProviderHTTPClient, ProviderHTTPError
from src.payments.base import PaymentProvider
from src.payments.signatures import as_dict, hmac_sha512_hex, parse_json_object, signatures_match
from src.schemas.payment import CanonicalWebhookEvent, CheckoutRequest, CheckoutSession

SIGNATURE_HEADER = "x-paystack-signature"

STATUS_MAP = {"success": "paid", "failed": "failed"}


class PaystackProvider(PaymentProvider):
    name = "paystack"

    def __init__(self, settings: Settings | None = None) -> None:
        super().__init__(settings)
        self.http = ProviderHTTPClient(self.name, self.settings.paystack_base_url)

    async def create_checkout(self, request: CheckoutRequest) -> CheckoutSession:
        secret_key = self.settings.paystack_secret_key
        if not secret_key:
            return self.mock_checkout(request)

        payload = await self.http.post(
            "/transaction/initialize",
            json={
                "email": request.customer_email,
                "amount": request.amount,
                "currency": request.currency,
                "callback_url": request.callback_url,
                "metadata": {"orderCode": request.order_code, **request.metadata},
            },
            headers={"Authorization": f"Bearer {secret_key}"},
        )

        data = as_dict(payload.get("data"))
        if not data.get("authorization_url") or not data.get("reference"):
            raise ProviderHTTPError(self.name, str(payload.get("message") or "Unable to initialize checkout"))

        return CheckoutSession(checkout_url=data["authorization_url"], provider_ref=str(data["reference"]))

    async def verify_webhook(self, headers: Mapping[str, str], raw_body: bytes) -> CanonicalWebhookEvent:
        """Check ``x-paystack-signature`` (HMAC-SHA512 of the raw body) and normalize.

        Amounts from Paystack are already in minor units.
        """
        secret = self.settings.paystack_webhook_secret
        if secret:
            signature = self.header(headers, SIGNATURE_HEADER)
            if not signature:
                raise WebhookVerificationError("Missing paystack signature")
            if not signatures_match(hmac_sha512_hex(raw_body, secret), signature):
                raise WebhookVerificationError("Invalid paystack signature")
        else:
            self.allow_unsigned()

        payload = parse_json_object(raw_body)
        data = as_dict(payload.get("data"))
        metadata = as_dict(data.get("metadata"))
        status_raw = str(data.get("status") or "pending").lower()
        event_id = data.get("id") or payload.get("event")

        return self.build_event(
            event_id=str(event_id) if event_id else "",
            event_type=str(payload.get("event") or "paystack.unknown"),
            order_code=str(metadata.get("orderCode") or metadata.get("order_code") or ""),
            provider_ref=str(data.get("reference") or ""),
            amount=int(data.get("amount") or 0),
            currency=str(data.get("currency") or self.settings.default_currency).upper(),
            status=STATUS_MAP.get(status_raw, "pending"),
            raw_payload=payload,
        )
