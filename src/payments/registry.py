"""Lookup of payment adapters by provider name."""

from src.api.middleware.error_handler import NotFoundError, ProviderDisabled
from src.core.config import KNOWN_PAYMENT_PROVIDERS, get_settings
from src.payments.base import PaymentProvider
from src.payments.providers.flutterwave import FlutterwaveProvider
from src.payments.providers.paypal import PayPalProvider
from src.payments.providers.paystack import PaystackProvider
from src.payments.providers.stripe_provider import StripeProvider

PROVIDER_CLASSES: dict[str, type[PaymentProvider]] = {
    "paystack": PaystackProvider,
    "flutterwave": FlutterwaveProvider,
    "stripe": StripeProvider,
    "paypal": PayPalProvider,
}

PAYPAL = "paypal"


def get_payment_provider(name: str) -> PaymentProvider:
    """Build the adapter for a provider name.

    Raises:
        NotFoundError: The name is not a known provider.
    """
    provider_cls = PROVIDER_CLASSES.get(name.strip().lower())
    if provider_cls is None:
        raise NotFoundError("Unsupported payment provider")
    return provider_cls()


def get_enabled_payment_providers() -> list[str]:
    """Enabled providers in configured order, falling back to the primary provider."""
    settings = get_settings()
    enabled = settings.enabled_payment_providers_list
    if enabled:
        return enabled
    primary = settings.primary_payment_provider.strip().lower()
    return [primary] if primary in KNOWN_PAYMENT_PROVIDERS else []


def is_provider_enabled(name: str) -> bool:
    return name.strip().lower() in get_enabled_payment_providers()


def resolve_card_payment_provider() -> str:
    """Pick the provider that handles card payments.

    Raises:
        ProviderDisabled: No enabled provider takes cards.
    """
    settings = get_settings()
    enabled = get_enabled_payment_providers()
    primary = settings.primary_payment_provider.strip().lower()
    if primary in enabled and primary != PAYPAL:
        return primary
    for name in enabled:
        if name != PAYPAL:
            return name
    raise ProviderDisabled("No card payment provider is enabled")
