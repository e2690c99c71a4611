"""Database models."""

from src.models.backoffice import (
    PENDING_INVITE_EMAIL_INDEX,
    AdminAuditLog,
    BackofficeInvite,
    BackofficeRole,
    BackofficeUser,
    BackofficeUserStatus,
    InviteStatus,
    RateLimitBucket,
)
from src.models.base import Base, utcnow
from src.models.catalog import Category, DeliveryZone, Product, ProductImage
from src.models.order import (
    SETTLED_ORDER_STATUSES,
    Order,
    OrderItem,
    OrderStatus,
    Payment,
    PaymentStatus,
    WebhookEvent,
)
from src.models.user import AuthIdentity, UserCredential, UserProfile

__all__ = [
    "Base",
    "utcnow",
    "Category",
    "Product",
    "ProductImage",
    "DeliveryZone",
    "Order",
    "OrderItem",
    "OrderStatus",
    "SETTLED_ORDER_STATUSES",
    "Payment",
    "PaymentStatus",
    "WebhookEvent",
    "UserProfile",
    "AuthIdentity",
    "UserCredential",
    "BackofficeUser",
    "BackofficeRole",
    "BackofficeUserStatus",
    "BackofficeInvite",
    "InviteStatus",
    "PENDING_INVITE_EMAIL_INDEX",
    "AdminAuditLog",
    "RateLimitBucket",
]
