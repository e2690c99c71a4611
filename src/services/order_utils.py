"""Order code generation and contact normalization."""

import re
import secrets

ORDER_CODE_PREFIX = "AT-"
ORDER_CODE_CONSTRAINT = "orders_order_code_key"
MAX_ORDER_CODE_ATTEMPTS = 6

_PHONE_STRIP = re.compile(r"[^0-9+]")


def generate_order_code() -> str:
    """Return a fresh code like ``AT-1A2B3C4D`` (32 random bits).

    Uniqueness is enforced by the database; callers retry on conflict.
    """
    return f"{ORDER_CODE_PREFIX}{secrets.token_hex(4).upper()}"


def normalize_email(email: str) -> str:
    return email.strip().lower()


def normalize_phone(phone: str) -> str:
    """Keep only digits and ``+``."""
    return _PHONE_STRIP.sub("", phone)
