"""Order lookup and claim routes."""

from fastapi import APIRouter

from src.api.deps import CurrentProfile, CurrentUser, DbSession, OrderLookupRateLimit
from src.schemas.order import (
    ClaimOrdersRequest,
    ClaimOrdersResponse,
    OrderItemResponse,
    OrderLookupRequest,
    OrderLookupResponse,
    OrderSummary,
)
from src.services.order_service import OrderService

router = APIRouter(prefix="/orders", tags=["orders"])


@router.post(
    "/lookup",
    response_model=OrderLookupResponse,
    response_model_by_alias=True,
    summary="Look up an order",
    description="Returns an order for a guest who supplies its code and the email or phone used at checkout.",
)
async def lookup_order(
    data: OrderLookupRequest,
    db: DbSession,
    _rate_limit: OrderLookupRateLimit,
) -> OrderLookupResponse:
    """Fetch an order by code and contact detail.

    Raises:
        RateLimitError: 429 when the caller's IP exhausted its lookups.
        OrderNotFound: Unknown order code.
        OrderIdentityMismatch: Contact detail does not match the order.
    """
    order, items = await OrderService(db).lookup_order(data.order_code, data.email_or_phone)
    return OrderLookupResponse(
        order=OrderSummary.model_validate(order),
        items=[OrderItemResponse.model_validate(item) for item in items],
    )


@router.post(
    "/claim",
    response_model=ClaimOrdersResponse,
    response_model_by_alias=True,
    summary="Claim guest orders",
    description="Links guest orders placed with the caller's verified email to their account.",
)
async def claim_orders(
    user: CurrentUser,
    profile: CurrentProfile,
    db: DbSession,
    data: ClaimOrdersRequest | None = None,
) -> ClaimOrdersResponse:
    """Attach unowned guest orders to the authenticated profile.

    Raises:
        EmailNotVerified: The account email is missing or unverified.
    """
    linked = await OrderService(db).claim_guest_orders(
        user_profile_id=profile.id,
        email=user.email or profile.email,
        email_verified=user.email_verified,
        phone_hint=data.phone_hint if data else None,
    )
    return ClaimOrdersResponse(linked_count=linked)
