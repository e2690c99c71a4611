"""Application configuration management using Pydantic Settings."""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

KNOWN_PAYMENT_PROVIDERS = ("paystack", "flutterwave", "stripe", "paypal")


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    All settings can be overridden via environment variables.
    Required settings will raise validation errors if not provided.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = Field(default="at-thrill-backend", description="Application name")
    app_env: str = Field(default="development", description="Environment (development/staging/production)")
    debug: bool = Field(default=False, description="Enable debug mode")

    # Server
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=8080, description="Server port")
    max_request_body_size: int = Field(default=1_048_576, description="Maximum accepted request body in bytes")

    # CORS
    cors_origins: str = Field(
        default="http://localhost:3000",
        description="Comma-separated list of allowed CORS origins",
    )

    # Storefront
    app_base_url: str = Field(
        default="http://localhost:3000",
        description="Public storefront URL used for callback, return and invite links",
    )
    default_currency: str = Field(default="NGN", description="Currency for quotes and orders")
    placeholder_image_url: str = Field(
        default="/images/placeholder.jpg",
        description="Image shown for products without uploaded images",
    )

    # Database
    database_url: str = Field(..., description="SQLAlchemy database URL")
    database_echo: bool = Field(default=False, description="Log emitted SQL statements")
    database_create_tables: bool = Field(
        default=False,
        description="Create missing tables from model metadata at startup",
    )
    database_pool_size: int = Field(default=5, description="Connection pool size (server databases only)")

    # Supabase (storage public URLs and access token verification)
    supabase_url: str = Field(default="", description="Supabase project URL")
    supabase_secret_key: str = Field(default="", description="Supabase secret key for backend operations")
    supabase_storage_bucket: str = Field(default="product-images", description="Bucket holding product images")
    supabase_signing_key_jwk: str = Field(
        default="",
        description="Supabase signing key JWK (JSON string) for JWT token verification",
    )

    # Payments
    enabled_payment_providers: str = Field(
        default="paystack,stripe,paypal,flutterwave",
        description="Comma-separated list of enabled payment providers",
    )
    primary_payment_provider: str = Field(default="paystack", description="Default provider for card payments")
    payment_provider_timeout_seconds: float = Field(
        default=15.0,
        description="Timeout applied to every outbound payment provider call",
    )
    payment_provider_max_retries: int = Field(
        default=2,
        description="Retries for outbound payment provider calls that are safe to repeat",
    )

    stripe_secret_key: str = Field(default="", description="Stripe secret API key")
    stripe_webhook_secret: str = Field(default="", description="Stripe webhook signing secret")

    paystack_secret_key: str = Field(default="", description="Paystack secret key")
    paystack_webhook_secret: str = Field(default="", description="Paystack webhook HMAC secret")
    paystack_base_url: str = Field(default="https://api.paystack.co", description="Paystack API base URL")

    flutterwave_secret_key: str = Field(default="", description="Flutterwave secret key")
    flutterwave_webhook_secret: str = Field(default="", description="Flutterwave verif-hash secret")
    flutterwave_base_url: str = Field(default="https://api.flutterwave.com/v3", description="Flutterwave API base URL")

    paypal_client_id: str = Field(default="", description="PayPal REST client ID")
    paypal_client_secret: str = Field(default="", description="PayPal REST client secret")
    paypal_webhook_id: str = Field(default="", description="PayPal webhook ID used for signature verification")
    paypal_base_url: str = Field(default="https://api-m.sandbox.paypal.com", description="PayPal API base URL")

    # Email (Resend)
    resend_api_key: str = Field(default="", description="Resend API key for sending emails")
    email_from_address: str = Field(
        default="AT Thrill <orders@atthrill.local>",
        description="From address for transactional emails",
    )
    backoffice_invite_from: str = Field(
        default="",
        description="From address for backoffice invites (defaults to email_from_address)",
    )

    # Backoffice
    backoffice_invite_ttl_hours: int = Field(default=72, description="Hours until an invite expires")
    superadmin_email: str = Field(default="", description="Email seeded as superadmin")
    superadmin_initial_password: str = Field(default="", description="Initial password for the seeded superadmin")
    superadmin_name: str = Field(default="AT Thrill Superadmin", description="Display name for the seeded superadmin")
    admin_emails: str = Field(default="", description="Comma-separated emails granted superadmin via fallback")
    enable_admin_emails_fallback: bool = Field(default=True, description="Honor admin_emails when no role row exists")

    # Rate limiting
    rate_limit_window_seconds: int = Field(default=60, description="Fixed window length in seconds")
    rate_limit_max_attempts: int = Field(default=8, description="Attempts allowed per window")

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS origins string into a list."""
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def enabled_payment_providers_list(self) -> list[str]:
        """Known provider names from the enabled list, lowercased, in configured order."""
        names = [name.strip().lower() for name in self.enabled_payment_providers.split(",")]
        return [name for name in names if name in KNOWN_PAYMENT_PROVIDERS]

    @property
    def admin_emails_list(self) -> list[str]:
        """Parse admin fallback emails into a normalized list."""
        return [email.strip().lower() for email in self.admin_emails.split(",") if email.strip()]

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.app_env == "production"

    @property
    def is_stripe_test_mode(self) -> bool:
        """Check if using Stripe test keys."""
        return self.stripe_secret_key.startswith("sk_test_")


@lru_cache
def get_settings() -> Settings:
    """Get cached settings singleton.

    Returns:
        Settings: Application settings instance.

    Note:
        Settings are cached using lru_cache for performance.
        Call get_settings.cache_clear() to reload settings.
    """
    return Settings()
