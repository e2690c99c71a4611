"""Payment initiation routes."""

from fastapi import APIRouter

from src.api.deps import DbSession
from src.schemas.checkout import PaymentCheckoutResponse, ProviderCheckoutRequest, StartPaymentRequest
from src.services.payment_checkout_service import PaymentCheckoutService

router = APIRouter(prefix="/payments", tags=["payments"])


@router.post(
    "/checkout",
    response_model=PaymentCheckoutResponse,
    response_model_by_alias=True,
    summary="Start payment by method",
    description="Starts a hosted checkout for an order. Card payments use the first enabled card provider.",
)
async def start_payment(data: StartPaymentRequest, db: DbSession) -> PaymentCheckoutResponse:
    """Resolve a provider for the payment method and start its checkout.

    Raises:
        ProviderDisabled: No enabled provider serves the method.
        OrderNotFound: Unknown order code.
        OrderAlreadyPaid: The order is already settled.
        PaymentProviderError: The provider rejected or timed out the request.
    """
    return await PaymentCheckoutService(db).start_checkout_for_method(data.order_code, data.payment_method)


@router.post(
    "/{provider}/checkout",
    response_model=PaymentCheckoutResponse,
    response_model_by_alias=True,
    summary="Start payment with a provider",
    description="Starts a hosted checkout for an order with an explicitly named provider.",
)
async def start_provider_payment(
    provider: str,
    data: ProviderCheckoutRequest,
    db: DbSession,
) -> PaymentCheckoutResponse:
    """Start a checkout with the named provider.

    Raises:
        NotFoundError: Unknown provider name.
        ProviderDisabled: Provider is not enabled.
    """
    return await PaymentCheckoutService(db).start_checkout(data.order_code, provider)
