"""Cart pricing routes."""

from fastapi import APIRouter

from src.api.deps import DbSession
from src.schemas.cart import QuoteRequest, QuoteResponse
from src.services.quote_service import QuoteService

router = APIRouter(prefix="/cart", tags=["cart"])


@router.post(
    "/quote",
    response_model=QuoteResponse,
    response_model_by_alias=True,
    summary="Price a cart",
    description="Prices cart lines against current catalog prices and the chosen delivery zone.",
)
async def quote_cart(data: QuoteRequest, db: DbSession) -> QuoteResponse:
    """Return a server-computed quote.

    Raises:
        InvalidDeliveryZone: Zone is missing or inactive.
        ProductUnavailable: A product is missing, inactive or out of stock.
    """
    quote = await QuoteService(db).calculate_quote(data.delivery_zone_id, data.items)
    return QuoteResponse(quote=quote)
