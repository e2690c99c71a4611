"""Checkout routes: turn a cart into a pending order."""

import logging

from fastapi import APIRouter, status

from src.api.deps import DbSession, OptionalProfile
from src.schemas.checkout import CheckoutOrderRequest, CheckoutOrderResponse
from src.services.order_service import OrderService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/checkout", tags=["checkout"])


@router.post(
    "/order",
    response_model=CheckoutOrderResponse,
    response_model_by_alias=True,
    status_code=status.HTTP_201_CREATED,
    summary="Create order",
    description=(
        "Creates a pending order priced from a fresh quote. "
        "A bearer token, when present, links the order to the caller's profile."
    ),
)
async def create_order(
    data: CheckoutOrderRequest,
    db: DbSession,
    profile: OptionalProfile,
) -> CheckoutOrderResponse:
    """Create an order awaiting payment.

    Args:
        data: Cart, delivery zone, customer, address and payment method.
        db: Request-scoped database session.
        profile: Profile of the authenticated caller, if any.

    Returns:
        CheckoutOrderResponse: Order code and total to pay.
    """
    created = await OrderService(db).create_order(
        data,
        user_profile_id=profile.id if profile else None,
    )

    return CheckoutOrderResponse(
        order_code=created.order_code,
        order_id=created.order_id,
        total=created.quote.total,
        currency=created.quote.currency,
        payment_method=created.payment_method,
    )
