"""Order, payment and webhook ledger models."""

import uuid
from datetime import datetime
from enum import Enum
from typing import Any

from sqlalchemy import JSON, DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.models.base import Base, UUIDPrimaryKey, utcnow


class OrderStatus(str, Enum):
    """Order status values stored in orders.status."""

    PENDING_PAYMENT = "pending_payment"
    PAID = "paid"
    PROCESSING = "processing"
    DISPATCHED = "dispatched"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


# Statuses reached only after a successful payment
SETTLED_ORDER_STATUSES = frozenset(
    {
        OrderStatus.PAID.value,
        OrderStatus.PROCESSING.value,
        OrderStatus.DISPATCHED.value,
        OrderStatus.DELIVERED.value,
    }
)


class PaymentStatus(str, Enum):
    """Payment attempt status values stored in payments.status."""

    INITIATED = "initiated"
    PAID = "paid"
    FAILED = "failed"
    PENDING = "pending"


class Order(UUIDPrimaryKey, Base):
    """Customer order.

    Totals are copied from the quote computed at creation time. ``status``
    only becomes ``paid`` through webhook reconciliation.
    """

    __tablename__ = "orders"

    order_code: Mapped[str] = mapped_column(String(16), unique=True)
    user_profile_id: Mapped[uuid.UUID | None] = mapped_column(ForeignKey("users_profile.id"), nullable=True)
    guest_email: Mapped[str | None] = mapped_column(String(320), nullable=True)
    guest_phone: Mapped[str | None] = mapped_column(String(40), nullable=True)
    status: Mapped[str] = mapped_column(String(32), default=OrderStatus.PENDING_PAYMENT.value)
    subtotal: Mapped[int] = mapped_column(Integer)
    delivery_fee: Mapped[int] = mapped_column(Integer)
    total: Mapped[int] = mapped_column(Integer)
    currency: Mapped[str] = mapped_column(String(8))
    delivery_zone_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("delivery_zones.id"))
    delivery_address_json: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)

    items: Mapped[list["OrderItem"]] = relationship(back_populates="order", order_by="OrderItem.id")


class OrderItem(UUIDPrimaryKey, Base):
    """Immutable line snapshot captured when the order is created."""

    __tablename__ = "order_items"

    order_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("orders.id", ondelete="CASCADE"))
    product_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("products.id"))
    name_snapshot: Mapped[str] = mapped_column(String(200))
    unit_price_snapshot: Mapped[int] = mapped_column(Integer)
    qty: Mapped[int] = mapped_column(Integer)
    line_total: Mapped[int] = mapped_column(Integer)

    order: Mapped[Order] = relationship(back_populates="items")


class Payment(UUIDPrimaryKey, Base):
    """Latest known state of one provider payment attempt."""

    __tablename__ = "payments"
    __table_args__ = (UniqueConstraint("provider", "provider_ref"),)

    order_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("orders.id", ondelete="CASCADE"))
    provider: Mapped[str] = mapped_column(String(32))
    provider_ref: Mapped[str] = mapped_column(String(200))
    status: Mapped[str] = mapped_column(String(32), default=PaymentStatus.INITIATED.value)
    amount: Mapped[int] = mapped_column(Integer)
    currency: Mapped[str] = mapped_column(String(8))
    raw_payload_json: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)


class WebhookEvent(UUIDPrimaryKey, Base):
    """Write-once ledger of processed provider events."""

    __tablename__ = "webhook_events"

    provider: Mapped[str] = mapped_column(String(32))
    event_id: Mapped[str] = mapped_column(String(255), unique=True)
    received_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow)
    raw_payload_json: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict)
