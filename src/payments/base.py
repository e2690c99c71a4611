"""Payment provider contract shared by every adapter."""

import logging
from abc import ABC, abstractmethod
from collections.abc import Mapping
from urllib.parse import urlencode

from src.api.middleware.error_handler import WebhookVerificationError
from src.core.config import Settings, get_settings
from src.schemas.payment import CanonicalWebhookEvent, CheckoutRequest, CheckoutSession

logger = logging.getLogger(__name__)


def to_minor_units(amount: float | int | str | None) -> int:
    """Convert a major-unit amount (e.g. ``68.5``) to minor units."""
    if amount is None or amount == "":
        return 0
    return int(round(float(amount) * 100))


class PaymentProvider(ABC):
    """Hosted checkout plus webhook verification for one provider.

    Adapters are the only code that reads provider payloads. Everything
    downstream works with CanonicalWebhookEvent.
    """

    name: str = ""

    def __init__(self, settings: Settings | None = None) -> None:
        self.settings = settings or get_settings()

    @abstractmethod
    async def create_checkout(self, request: CheckoutRequest) -> CheckoutSession:
        """Create a hosted checkout tagged with the order code."""

    @abstractmethod
    async def verify_webhook(self, headers: Mapping[str, str], raw_body: bytes) -> CanonicalWebhookEvent:
        """Authenticate a webhook and normalize it.

        Raises:
            WebhookVerificationError: Signature or payload is not acceptable.
        """

    def mock_checkout(self, request: CheckoutRequest, provider_ref: str | None = None) -> CheckoutSession:
        """Checkout used when the provider has no credentials configured."""
        query = urlencode({"orderCode": request.order_code, "provider": self.name, "mock": "1"})
        logger.info("%s credentials not configured, returning mock checkout for %s", self.name, request.order_code)
        return CheckoutSession(
            checkout_url=f"{self.settings.app_base_url.rstrip('/')}/order-success?{query}",
            provider_ref=provider_ref or f"mock-{request.order_code}",
        )

    def allow_unsigned(self) -> None:
        """Gate for webhooks arriving while no verification secret is configured.

        Raises:
            WebhookVerificationError: Always in production.
        """
        if self.settings.is_production:
            raise WebhookVerificationError(f"{self.name} webhook verification is not configured")
        logger.warning("%s webhook secret not configured, accepting unsigned event (non-production)", self.name)

    def build_event(self, **fields: object) -> CanonicalWebhookEvent:
        """Create the canonical event, rejecting payloads that cannot be correlated."""
        if not fields.get("event_id"):
            raise WebhookVerificationError(f"{self.name} webhook has no event id")
        if not fields.get("order_code"):
            raise WebhookVerificationError(f"{self.name} webhook has no order code")
        return CanonicalWebhookEvent(**fields)

    @staticmethod
    def header(headers: Mapping[str, str], name: str) -> str | None:
        """Case-insensitive header lookup that works for plain dicts too."""
        value = headers.get(name)
        if value is not None:
            return value
        lowered = name.lower()
        for key, candidate in headers.items():
            if key.lower() == lowered:
                return candidate
        return None
