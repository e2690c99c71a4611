"""Webhook API routes for payment provider notifications."""

import logging

from fastapi import APIRouter, Request, status

from src.api.deps import DbSession
from src.payments.registry import get_payment_provider
from src.schemas.payment import WebhookAck
from src.services.webhook_service import WebhookService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/webhooks", tags=["webhooks"])


@router.post(
    "/{provider}",
    response_model=WebhookAck,
    response_model_by_alias=True,
    status_code=status.HTTP_200_OK,
    summary="Handle payment webhooks",
    description="Receives payment notifications from a provider. The provider's signature is verified first.",
)
async def payment_webhook(provider: str, request: Request, db: DbSession) -> WebhookAck:
    """Verify and apply a payment notification.

    Replays of an event already applied are acknowledged with
    ``duplicated=true`` and change nothing.

    Args:
        provider: Provider name from the path.
        request: FastAPI request object for reading raw body and headers.
        db: Request-scoped database session.

    Returns:
        WebhookAck: Acknowledgment with the order code.

    Raises:
        NotFoundError: 404 for an unsupported provider.
        WebhookVerificationError: 400 if the signature or payload is invalid.
    """
    adapter = get_payment_provider(provider)

    # Signatures are computed over the exact bytes received
    payload = await request.body()
    logger.debug("Payload size: %d bytes", len(payload))

    event = await adapter.verify_webhook(request.headers, payload)
    logger.info(
        "Processing %s webhook event %s (%s) for %s",
        adapter.name,
        event.event_id,
        event.event_type,
        event.order_code,
    )

    result = await WebhookService(db).apply_webhook_event(adapter.name, event)

    return WebhookAck(ok=True, duplicated=result.duplicated, order_code=result.order_code)
