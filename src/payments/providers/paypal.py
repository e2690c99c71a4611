"""PayPal Orders v2 adapter."""

import logging
from collections.abc import Mapping
from urllib.parse import urlencode

from src.api.middleware.error_handler import WebhookVerificationError
from src.core.config import Settings
from src.core.provider_http import ProviderHTTPClient, ProviderHTTPError
from src.payments.base import PaymentProvider, to_minor_units
from src.payments.signatures import as_dict, parse_json_object
from src.schemas.payment import CanonicalWebhookEvent, CheckoutRequest, CheckoutSession

logger = logging.getLogger(__name__)

VERIFICATION_HEADERS = {
    "auth_algo": "paypal-auth-algo",
    "cert_url": "paypal-cert-url",
    "transmission_id": "paypal-transmission-id",
    "transmission_sig": "paypal-transmission-sig",
    "transmission_time": "paypal-transmission-time",
}


def map_event_status(event_type: str) -> str:
    event_type = event_type.upper()
    if event_type.endswith("COMPLETED"):
        return "paid"
    if event_type.endswith("DENIED") or event_type.endswith("FAILED"):
        return "failed"
    return "pending"


class PayPalProvider(PaymentProvider):
    name = "paypal"

    def __init__(self, settings: Settings | None = None) -> None:
        super().__init__(settings)
        self.http = ProviderHTTPClient(self.name, self.settings.paypal_base_url)

    @property
    def has_credentials(self) -> bool:
        return bool(self.settings.paypal_client_id and self.settings.paypal_client_secret)

    async def get_access_token(self) -> str:
        """Fetch an OAuth token with client credentials."""
        payload = await self.http.post(
            "/v1/oauth2/token",
            data={"grant_type": "client_credentials"},
            auth=(self.settings.paypal_client_id, self.settings.paypal_client_secret),
            idempotent=True,
        )
        token = payload.get("access_token")
        if not token:
            raise ProviderHTTPError(self.name, str(payload.get("error_description") or "No access token returned"))
        return str(token)

    async def create_checkout(self, request: CheckoutRequest) -> CheckoutSession:
        if not self.has_credentials:
            return self.mock_checkout(request)

        token = await self.get_access_token()
        cancel_url = f"{self.settings.app_base_url.rstrip('/')}/checkout?{urlencode({'orderCode': request.order_code})}"

        payload = await self.http.post(
            "/v2/checkout/orders",
            json={
                "intent": "CAPTURE",
                "purchase_units": [
                    {
                        "reference_id": request.order_code,
                        "amount": {
                            "currency_code": request.currency,
                            "value": f"{request.amount / 100:.2f}",
                        },
                        "custom_id": request.order_code,
                    }
                ],
                "application_context": {
                    "return_url": request.callback_url,
                    "cancel_url": cancel_url,
                },
            },
            headers={"Authorization": f"Bearer {token}"},
        )

        approve_url = next(
            (link.get("href") for link in payload.get("links") or [] if as_dict(link).get("rel") == "approve"),
            None,
        )
        if not payload.get("id") or not approve_url:
            raise ProviderHTTPError(self.name, str(payload.get("message") or "Unable to initialize checkout"))

        return CheckoutSession(checkout_url=approve_url, provider_ref=str(payload["id"]))

    async def _verify_signature(self, headers: Mapping[str, str], webhook_event: dict) -> bool:
        token = await self.get_access_token()
        body = {field: self.header(headers, name) for field, name in VERIFICATION_HEADERS.items()}
        body["webhook_id"] = self.settings.paypal_webhook_id
        body["webhook_event"] = webhook_event

        payload = await self.http.post(
            "/v1/notifications/verify-webhook-signature",
            json=body,
            headers={"Authorization": f"Bearer {token}"},
            idempotent=True,
        )
        return payload.get("verification_status") == "SUCCESS"

    async def verify_webhook(self, headers: Mapping[str, str], raw_body: bytes) -> CanonicalWebhookEvent:
        """Verify through PayPal's verification API and normalize the event."""
        payload = parse_json_object(raw_body)

        if self.settings.paypal_webhook_id and self.has_credentials:
            try:
                verified = await self._verify_signature(headers, payload)
            except ProviderHTTPError as e:
                logger.warning("PayPal signature verification call failed: %s", str(e))
                verified = False
            if not verified:
                raise WebhookVerificationError("Invalid PayPal webhook signature")
        else:
            self.allow_unsigned()

        resource = as_dict(payload.get("resource"))
        units = resource.get("purchase_units") or [{}]
        first_unit = as_dict(units[0])
        order_code = resource.get("custom_id") or first_unit.get("custom_id") or first_unit.get("reference_id")
        amount = as_dict(resource.get("amount"))
        event_type = str(payload.get("event_type") or "paypal.unknown")

        return self.build_event(
            event_id=str(payload.get("id") or ""),
            event_type=event_type,
            order_code=str(order_code or ""),
            provider_ref=str(resource.get("id") or ""),
            amount=to_minor_units(amount.get("value")),
            currency=str(amount.get("currency_code") or self.settings.default_currency).upper(),
            status=map_event_status(event_type),
            raw_payload=payload,
        )
