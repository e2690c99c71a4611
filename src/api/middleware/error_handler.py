"""Global error handling middleware for consistent error responses."""

import logging
import time
import traceback
import uuid
from typing import Any, Callable

from fastapi import HTTPException, Request, Response, status
from fastapi.responses import JSONResponse

from src.core.config import get_settings
from src.schemas.common import ErrorResponse

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


class APIError(Exception):
    """Base exception for API errors.

    Use this class to raise application-specific errors that should
    be returned to the client with a specific status code and message.
    """

    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        error_type: str = "api_error",
        details: list[dict[str, Any]] | None = None,
    ) -> None:
        """Initialize API error.

        Args:
            message: Human-readable error message.
            status_code: HTTP status code to return.
            error_type: Error category/type for client handling.
            details: Optional additional error details.
        """
        self.message = message
        self.status_code = status_code
        self.error_type = error_type
        self.details = details
        super().__init__(message)


class NotFoundError(APIError):
    """Resource not found error."""

    def __init__(self, message: str = "Resource not found", details: list[dict[str, Any]] | None = None) -> None:
        super().__init__(
            message=message,
            status_code=status.HTTP_404_NOT_FOUND,
            error_type="not_found",
            details=details,
        )


class ValidationError(APIError):
    """Request validation error."""

    def __init__(self, message: str = "Validation error", details: list[dict[str, Any]] | None = None) -> None:
        super().__init__(
            message=message,
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            error_type="validation_error",
            details=details,
        )


class AuthenticationError(APIError):
    """Authentication failure error."""

    def __init__(self, message: str = "Authentication required", details: list[dict[str, Any]] | None = None) -> None:
        super().__init__(
            message=message,
            status_code=status.HTTP_401_UNAUTHORIZED,
            error_type="authentication_error",
            details=details,
        )


class AuthorizationError(APIError):
    """Authorization failure error."""

    def __init__(self, message: str = "Access denied", details: list[dict[str, Any]] | None = None) -> None:
        super().__init__(
            message=message,
            status_code=status.HTTP_403_FORBIDDEN,
            error_type="authorization_error",
            details=details,
        )


class RateLimitError(APIError):
    """Rate limit exceeded error."""

    def __init__(
        self,
        message: str = "Too many requests. Try again soon.",
        retry_after: int = 60,
        limit: int | None = None,
        details: list[dict[str, Any]] | None = None,
    ) -> None:
        super().__init__(
            message=message,
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            error_type="rate_limit_exceeded",
            details=details,
        )
        self.retry_after = retry_after
        self.limit = limit


class WebhookVerificationError(APIError):
    """A provider webhook failed signature or payload verification."""

    def __init__(self, message: str = "Invalid webhook signature") -> None:
        super().__init__(
            message=message,
            status_code=status.HTTP_400_BAD_REQUEST,
            error_type="webhook_verification_failed",
        )


class PaymentProviderError(APIError):
    """A payment provider could not create a checkout."""

    def __init__(self, message: str = "We could not start your payment. Please try again.") -> None:
        super().__init__(
            message=message,
            status_code=status.HTTP_502_BAD_GATEWAY,
            error_type="payment_provider_error",
        )


# Domain errors. All are client errors rendered as 400 with a stable error_type.


class DomainError(APIError):
    """Business rule violation reported back to the caller."""

    error_type = "domain_error"
    default_message = "Request could not be completed"

    def __init__(self, message: str | None = None, details: list[dict[str, Any]] | None = None) -> None:
        super().__init__(
            message=message or self.default_message,
            status_code=status.HTTP_400_BAD_REQUEST,
            error_type=type(self).error_type,
            details=details,
        )


class InvalidDeliveryZone(DomainError):
    error_type = "invalid_delivery_zone"
    default_message = "Delivery zone is invalid"


class ProductUnavailable(DomainError):
    error_type = "product_unavailable"
    default_message = "One or more products are unavailable"


class OrderNotFound(DomainError):
    error_type = "order_not_found"
    default_message = "Order not found"


class OrderAlreadyPaid(DomainError):
    error_type = "order_already_paid"
    default_message = "Order is already paid"


class ProviderDisabled(DomainError):
    error_type = "provider_disabled"
    default_message = "Selected payment provider is disabled"


class OrderIdentityMismatch(DomainError):
    error_type = "order_identity_mismatch"
    default_message = "Order identity verification failed"


class EmailNotVerified(DomainError):
    error_type = "email_not_verified"
    default_message = "Verified email is required before claiming orders"


class InvalidStatusTransition(DomainError):
    error_type = "invalid_status_transition"
    default_message = "Order status change is not allowed"


class DuplicatePendingInvite(DomainError):
    error_type = "duplicate_pending_invite"
    default_message = "A pending invite already exists for this email"


class InviteTokenError(DomainError):
    """Invite token is unusable. ``reason`` is one of invalid/expired/accepted/revoked/not_pending."""

    error_type = "invite_token_error"
    default_message = "Invite link is invalid."

    def __init__(self, message: str | None = None, reason: str = "invalid") -> None:
        super().__init__(message, details=[{"loc": ["token"], "msg": reason, "type": "invite_status"}])
        self.reason = reason


class InviteNotPendingOrMissing(DomainError):
    error_type = "invite_not_pending"
    default_message = "Invite not found or no longer pending"


class EmailDeliveryNotConfigured(DomainError):
    error_type = "email_delivery_not_configured"
    default_message = "Email delivery is not configured"


class DuplicateSlug(DomainError):
    error_type = "duplicate_slug"
    default_message = "Slug is already in use"


class CatalogEntryInUse(DomainError):
    """Hard delete refused because orders or products still reference the row."""

    error_type = "catalog_entry_in_use"
    default_message = "Entry is still referenced. Deactivate it instead."


def create_error_response(
    error_type: str,
    message: str,
    status_code: int,
    details: list[dict[str, Any]] | None = None,
    request_id: str | None = None,
) -> JSONResponse:
    """Create a standardized JSON error response.

    Args:
        error_type: Error category for client handling.
        message: Human-readable error description.
        status_code: HTTP status code.
        details: Optional error details.
        request_id: Optional request ID for tracing.

    Returns:
        JSONResponse: Formatted error response.
    """
    error_response = ErrorResponse.from_exception(
        error_type=error_type,
        message=message,
        details=details,
        request_id=request_id,
    )
    response = JSONResponse(
        status_code=status_code,
        content=error_response.model_dump(mode="json", exclude_none=True, by_alias=True),
    )
    if request_id:
        response.headers[REQUEST_ID_HEADER] = request_id
    return response


async def error_handler_middleware(request: Request, call_next: Callable[[Request], Any]) -> Response:
    """Middleware to catch and format all exceptions.

    Ensures consistent error response format across the application.
    Logs full stack traces for debugging while returning safe messages to clients.

    Args:
        request: The incoming request.
        call_next: Next middleware or route handler.

    Returns:
        Response: Either the successful response or formatted error response.
    """
    # Honor an upstream request ID, otherwise mint one so 500s are traceable
    request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
    request.state.request_id = request_id

    try:
        response = await call_next(request)
        response.headers[REQUEST_ID_HEADER] = request_id
        return response

    except RateLimitError as e:
        logger.warning(
            "Rate limit exceeded: %s",
            e.message,
            extra={"request_id": request_id, "retry_after": e.retry_after},
        )
        response = create_error_response(
            error_type=e.error_type,
            message=e.message,
            status_code=e.status_code,
            details=e.details,
            request_id=request_id,
        )
        limit = e.limit if e.limit is not None else get_settings().rate_limit_max_attempts
        response.headers["Retry-After"] = str(e.retry_after)
        response.headers["X-RateLimit-Limit"] = str(limit)
        response.headers["X-RateLimit-Remaining"] = "0"
        response.headers["X-RateLimit-Reset"] = str(int(time.time()) + e.retry_after)
        return response

    except APIError as e:
        logger.warning(
            "API error: %s - %s",
            e.error_type,
            e.message,
            extra={"request_id": request_id, "status_code": e.status_code},
        )
        return create_error_response(
            error_type=e.error_type,
            message=e.message,
            status_code=e.status_code,
            details=e.details,
            request_id=request_id,
        )

    except HTTPException as e:
        logger.warning(
            "HTTP exception: %s - %s",
            e.status_code,
            e.detail,
            extra={"request_id": request_id},
        )
        response = create_error_response(
            error_type="http_error",
            message=str(e.detail),
            status_code=e.status_code,
            request_id=request_id,
        )
        for name, value in (e.headers or {}).items():
            response.headers[name] = value
        return response

    except Exception as e:
        # Unexpected exceptions (webhook correlation, infrastructure) - log full stack trace
        logger.error(
            "Unhandled exception: %s\n%s",
            str(e),
            traceback.format_exc(),
            extra={"request_id": request_id},
        )
        return create_error_response(
            error_type="internal_error",
            message="An unexpected error occurred",
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            request_id=request_id,
        )
