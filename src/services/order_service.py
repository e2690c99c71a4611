"""Order creation, lookup and guest claim business logic."""

import logging
from dataclasses import dataclass
from typing import Any
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from src.api.middleware.error_handler import EmailNotVerified, OrderIdentityMismatch, OrderNotFound
from src.core.database import conflict_from_integrity_error, dialect_insert
from src.models import Order, OrderItem, OrderStatus, Payment, PaymentStatus
from src.schemas.cart import Quote
from src.schemas.checkout import CheckoutOrderRequest, PaymentMethod
from src.services.audit_service import AuditService
from src.services.order_utils import (
    MAX_ORDER_CODE_ATTEMPTS,
    ORDER_CODE_CONSTRAINT,
    generate_order_code,
    normalize_email,
    normalize_phone,
)
from src.services.quote_service import QuoteService

logger = logging.getLogger(__name__)


class CodeAllocationExhausted(Exception):
    """No free order code was found within the attempt budget."""


@dataclass
class CreatedOrder:
    order_id: UUID
    order_code: str
    quote: Quote
    customer: dict[str, str]
    payment_method: PaymentMethod


class OrderService:
    """Service for creating and reading customer orders."""

    def __init__(self, db: Session) -> None:
        self.db = db

    async def create_order(
        self,
        payload: CheckoutOrderRequest,
        user_profile_id: UUID | None = None,
    ) -> CreatedOrder:
        """Create a pending order priced from a fresh quote.

        The order row and its item snapshots are committed together. A clash on
        the order code is retried with a new code.

        Args:
            payload: Validated checkout payload.
            user_profile_id: Profile of an authenticated shopper, if any.

        Returns:
            CreatedOrder: Identifiers, the quote and the normalized customer.

        Raises:
            InvalidDeliveryZone: Zone is missing or inactive.
            ProductUnavailable: A product cannot be sold.
            CodeAllocationExhausted: Every generated code was already taken.
        """
        quote = await QuoteService(self.db).calculate_quote(payload.delivery_zone_id, payload.items)

        customer = {
            "name": payload.customer.name.strip(),
            "email": normalize_email(payload.customer.email),
            "phone": normalize_phone(payload.customer.phone),
        }
        address = {
            "street": payload.address.street,
            "area": payload.address.area,
            "landmark": payload.address.landmark,
            "notes": payload.address.notes,
            "recipient_name": customer["name"],
            "recipient_phone": customer["phone"],
            "recipient_email": customer["email"],
        }

        order: Order | None = None
        for attempt in range(1, MAX_ORDER_CODE_ATTEMPTS + 1):
            candidate = Order(
                order_code=generate_order_code(),
                user_profile_id=user_profile_id,
                guest_email=customer["email"],
                guest_phone=customer["phone"],
                status=OrderStatus.PENDING_PAYMENT.value,
                subtotal=quote.subtotal,
                delivery_fee=quote.delivery_fee,
                total=quote.total,
                currency=quote.currency,
                delivery_zone_id=quote.delivery_zone.id,
                delivery_address_json=address,
            )
            self.db.add(candidate)
            try:
                self.db.flush()
            except IntegrityError as e:
                self.db.rollback()
                conflict = conflict_from_integrity_error(e)
                if conflict is None:
                    raise
                if conflict.constraint != ORDER_CODE_CONSTRAINT:
                    raise conflict from e
                logger.warning("Order code collision on attempt %d, retrying", attempt)
                continue
            order = candidate
            break

        if order is None:
            raise CodeAllocationExhausted(f"Could not allocate an order code after {MAX_ORDER_CODE_ATTEMPTS} attempts")

        try:
            for line in quote.lines:
                self.db.add(
                    OrderItem(
                        order_id=order.id,
                        product_id=line.product_id,
                        name_snapshot=line.name,
                        unit_price_snapshot=line.unit_price,
                        qty=line.qty,
                        line_total=line.line_total,
                    )
                )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(
            "Order %s created",
            order.order_code,
            extra={"order_id": str(order.id), "total": order.total, "linked": user_profile_id is not None},
        )

        return CreatedOrder(
            order_id=order.id,
            order_code=order.order_code,
            quote=quote,
            customer=customer,
            payment_method=payload.payment_method,
        )

    async def find_order_by_code(self, order_code: str) -> Order | None:
        return self.db.execute(select(Order).where(Order.order_code == order_code)).scalar_one_or_none()

    def upsert_payment(
        self,
        order_id: UUID,
        provider: str,
        provider_ref: str,
        status: PaymentStatus,
        amount: int,
        currency: str,
        raw_payload: dict[str, Any],
    ) -> None:
        """Insert or refresh the payment attempt for (provider, provider_ref). Does not commit."""
        stmt = dialect_insert(self.db, Payment).values(
            order_id=order_id,
            provider=provider,
            provider_ref=provider_ref,
            status=status.value,
            amount=amount,
            currency=currency,
            raw_payload_json=raw_payload,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=["provider", "provider_ref"],
            set_={
                "status": status.value,
                "amount": amount,
                "currency": currency,
                "raw_payload_json": raw_payload,
            },
        )
        self.db.execute(stmt)

    async def lookup_order(self, order_code: str, email_or_phone: str) -> tuple[Order, list[OrderItem]]:
        """Fetch an order for a guest who proves they placed it.

        The contact detail must match the stored guest email (case-insensitive)
        or the stored phone after normalization.

        Raises:
            OrderNotFound: No order has this code.
            OrderIdentityMismatch: Contact detail does not match.
        """
        order = await self.find_order_by_code(order_code.strip().upper())
        if order is None:
            raise OrderNotFound()

        candidate_email = normalize_email(email_or_phone)
        candidate_phone = normalize_phone(email_or_phone)

        email_matches = bool(order.guest_email) and order.guest_email.lower() == candidate_email
        phone_matches = bool(candidate_phone) and normalize_phone(order.guest_phone or "") == candidate_phone
        if not (email_matches or phone_matches):
            raise OrderIdentityMismatch()

        items = list(
            self.db.execute(select(OrderItem).where(OrderItem.order_id == order.id).order_by(OrderItem.id))
            .scalars()
            .all()
        )
        return order, items

    async def claim_guest_orders(
        self,
        user_profile_id: UUID,
        email: str | None,
        email_verified: bool,
        phone_hint: str | None = None,
    ) -> int:
        """Link unowned guest orders to a verified account.

        Returns:
            int: Number of orders linked.

        Raises:
            EmailNotVerified: The account email is missing or unverified.
        """
        if not email or not email_verified:
            raise EmailNotVerified()

        normalized_email = normalize_email(email)
        stmt = update(Order).where(
            Order.user_profile_id.is_(None),
            func.lower(Order.guest_email) == normalized_email,
        )
        if phone_hint and normalize_phone(phone_hint):
            stmt = stmt.where(Order.guest_phone == normalize_phone(phone_hint))
        stmt = (
            stmt.values(user_profile_id=user_profile_id)
            .returning(Order.id)
        )

        try:
            linked_ids = self.db.execute(stmt).scalars().all()
            AuditService(self.db).record(
                actor_user_profile_id=user_profile_id,
                action="claim_guest_orders",
                entity="orders",
                entity_id=user_profile_id,
                meta={"count": len(linked_ids), "email": normalized_email},
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        return len(linked_ids)
