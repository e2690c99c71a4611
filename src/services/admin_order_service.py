"""Backoffice order management."""

import logging
from typing import Any
from uuid import UUID

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from src.api.middleware.error_handler import InvalidStatusTransition, NotFoundError
from src.models import DeliveryZone, Order, OrderStatus
from src.schemas.common import PaginationMeta
from src.services.audit_service import AuditService

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 100

# Fulfillment moves forward only; "paid" is set by payment reconciliation
ALLOWED_TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.PENDING_PAYMENT: frozenset({OrderStatus.CANCELLED}),
    OrderStatus.PAID: frozenset({OrderStatus.PROCESSING, OrderStatus.CANCELLED}),
    OrderStatus.PROCESSING: frozenset({OrderStatus.DISPATCHED, OrderStatus.CANCELLED}),
    OrderStatus.DISPATCHED: frozenset({OrderStatus.DELIVERED}),
    OrderStatus.DELIVERED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
}


def is_transition_allowed(current: OrderStatus, target: OrderStatus) -> bool:
    return target in ALLOWED_TRANSITIONS.get(current, frozenset())


class AdminOrderService:
    """Order listing and fulfillment updates for backoffice staff."""

    def __init__(self, db: Session) -> None:
        self.db = db

    async def list_orders(
        self,
        page: int = 1,
        page_size: int = 20,
        q: str | None = None,
        status: OrderStatus | None = None,
    ) -> tuple[list[dict[str, Any]], PaginationMeta]:
        """List orders newest first.

        Args:
            page: 1-based page number.
            page_size: Rows per page, capped at 100.
            q: Case-insensitive search over code, guest email and phone.
            status: Only orders in this status.

        Returns:
            Tuple of (rows, pagination meta).
        """
        page = max(page, 1)
        page_size = min(max(page_size, 1), MAX_PAGE_SIZE)

        filters = []
        if q and q.strip():
            pattern = f"%{q.strip()}%"
            filters.append(
                or_(
                    Order.order_code.ilike(pattern),
                    Order.guest_email.ilike(pattern),
                    Order.guest_phone.ilike(pattern),
                )
            )
        if status is not None:
            filters.append(Order.status == status.value)

        total = self.db.execute(select(func.count()).select_from(Order).where(*filters)).scalar_one()
        pagination = PaginationMeta.build(page=page, page_size=page_size, total=total)

        rows = self.db.execute(
            select(Order, DeliveryZone.zone)
            .outerjoin(DeliveryZone, DeliveryZone.id == Order.delivery_zone_id)
            .where(*filters)
            .order_by(Order.created_at.desc())
            .offset(pagination.offset)
            .limit(page_size)
        ).all()

        items = [
            {
                "id": order.id,
                "order_code": order.order_code,
                "status": order.status,
                "total": order.total,
                "currency": order.currency,
                "guest_email": order.guest_email,
                "guest_phone": order.guest_phone,
                "created_at": order.created_at,
                "delivery_zone": zone,
            }
            for order, zone in rows
        ]
        return items, pagination

    async def update_order_status(
        self,
        order_id: UUID,
        status: OrderStatus,
        actor_user_profile_id: UUID | None,
    ) -> Order:
        """Move an order along the fulfillment flow.

        Raises:
            NotFoundError: Order does not exist.
            InvalidStatusTransition: Target is not reachable from the current status.
        """
        order = self.db.execute(select(Order).where(Order.id == order_id).with_for_update()).scalar_one_or_none()
        if order is None:
            raise NotFoundError("Order not found")

        current = OrderStatus(order.status)
        if not is_transition_allowed(current, status):
            self.db.rollback()
            raise InvalidStatusTransition(f"Cannot change order status from {current.value} to {status.value}")

        try:
            order.status = status.value
            AuditService(self.db).record(
                actor_user_profile_id=actor_user_profile_id,
                action="update_status",
                entity="order",
                entity_id=order.id,
                meta={"status": status.value, "from": current.value},
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        logger.info("Order %s moved %s -> %s", order.order_code, current.value, status.value)
        return order
