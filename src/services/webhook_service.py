"""Payment webhook reconciliation."""

import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from src.core.database import dialect_insert
from src.models import (
    SETTLED_ORDER_STATUSES,
    Order,
    OrderStatus,
    PaymentStatus,
    UserProfile,
    WebhookEvent,
    utcnow,
)
from src.schemas.payment import CanonicalWebhookEvent, WebhookResult
from src.services.email_service import EmailService
from src.services.order_service import OrderService

logger = logging.getLogger(__name__)

EVENT_TO_PAYMENT_STATUS = {
    "paid": PaymentStatus.PAID,
    "failed": PaymentStatus.FAILED,
    "pending": PaymentStatus.PENDING,
}


class WebhookCorrelationError(Exception):
    """A verified event references an order that does not exist."""


class WebhookService:
    """Applies verified provider events to orders and payments exactly once."""

    def __init__(self, db: Session, email_service: EmailService | None = None) -> None:
        self.db = db
        self.email_service = email_service or EmailService()

    async def apply_webhook_event(self, provider: str, event: CanonicalWebhookEvent) -> WebhookResult:
        """Record an event and reconcile its order in one transaction.

        The event id is claimed first; a replay finds it taken and changes
        nothing. The confirmation email goes out after commit and only for the
        event that moved the order to paid.

        Args:
            provider: Provider that delivered the event.
            event: Verified canonical event.

        Returns:
            WebhookResult: What happened.

        Raises:
            WebhookCorrelationError: No order matches ``event.order_code``.
        """
        try:
            claim = (
                dialect_insert(self.db, WebhookEvent)
                .values(
                    provider=provider,
                    event_id=event.event_id,
                    received_at=utcnow(),
                    raw_payload_json=event.raw_payload,
                )
                .on_conflict_do_nothing(index_elements=["event_id"])
                .returning(WebhookEvent.id)
            )
            if self.db.execute(claim).scalar_one_or_none() is None:
                self.db.rollback()
                logger.info("Duplicate %s webhook event %s ignored", provider, event.event_id)
                return WebhookResult(
                    duplicated=True,
                    order_code=event.order_code,
                    amount=event.amount,
                    currency=event.currency,
                )

            order = self.db.execute(
                select(Order).where(Order.order_code == event.order_code).with_for_update()
            ).scalar_one_or_none()
            if order is None:
                raise WebhookCorrelationError(
                    f"{provider} event {event.event_id} references unknown order {event.order_code}"
                )

            OrderService(self.db).upsert_payment(
                order_id=order.id,
                provider=provider,
                provider_ref=event.provider_ref,
                status=EVENT_TO_PAYMENT_STATUS[event.status],
                amount=event.amount,
                currency=event.currency,
                raw_payload=event.raw_payload,
            )

            updated_to_paid = False
            if event.status == "paid" and order.status not in SETTLED_ORDER_STATUSES:
                order.status = OrderStatus.PAID.value
                updated_to_paid = True

            recipient_email = order.guest_email
            if not recipient_email and order.user_profile_id:
                recipient_email = self.db.execute(
                    select(UserProfile.email).where(UserProfile.id == order.user_profile_id)
                ).scalar_one_or_none()

            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info(
            "Applied %s webhook %s to order %s",
            provider,
            event.event_id,
            event.order_code,
            extra={"status": event.status, "updated_to_paid": updated_to_paid},
        )

        if updated_to_paid and recipient_email:
            await self.email_service.send_order_paid_email(
                to_email=recipient_email,
                order_code=event.order_code,
                amount=event.amount,
                currency=event.currency,
            )

        return WebhookResult(
            duplicated=False,
            order_code=event.order_code,
            updated_to_paid=updated_to_paid,
            recipient_email=recipient_email,
            amount=event.amount,
            currency=event.currency,
        )
