"""HTTP client for payment provider APIs with timeouts, retries and latency logging."""

import logging
import time
from typing import Any

import httpx
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from src.core.config import get_settings

logger = logging.getLogger(__name__)

# Retry backoff bounds (seconds)
MIN_WAIT_SECONDS = 0.2
MAX_WAIT_SECONDS = 2

SLOW_CALL_THRESHOLD_MS = 2000

# A POST that never reached the provider can be resent safely; one that timed
# out mid-flight may already have created a checkout.
CONNECT_ERRORS: tuple[type[Exception], ...] = (httpx.ConnectError, httpx.ConnectTimeout)
TRANSPORT_ERRORS: tuple[type[Exception], ...] = (httpx.TransportError,)


class ProviderHTTPError(Exception):
    """A payment provider answered with an error or an unreadable body."""

    def __init__(self, provider: str, message: str, status_code: int | None = None, payload: Any = None) -> None:
        self.provider = provider
        self.status_code = status_code
        self.payload = payload
        super().__init__(f"{provider}: {message}")


class ProviderHTTPClient:
    """Thin httpx wrapper bound to one provider's API.

    Every call carries the configured timeout. Retries follow the call's
    idempotency: non-idempotent calls only retry connection failures.
    """

    def __init__(
        self,
        provider: str,
        base_url: str,
        timeout: float | None = None,
        max_retries: int | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        settings = get_settings()
        self.provider = provider
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout if timeout is not None else settings.payment_provider_timeout_seconds
        self.max_retries = max_retries if max_retries is not None else settings.payment_provider_max_retries
        self._transport = transport

    async def post(
        self,
        path: str,
        *,
        json: Any = None,
        data: Any = None,
        headers: dict[str, str] | None = None,
        auth: httpx.Auth | tuple[str, str] | None = None,
        idempotent: bool = False,
    ) -> dict[str, Any]:
        """POST to the provider and return the decoded JSON body.

        Args:
            path: Path relative to the provider base URL.
            json: JSON body.
            data: Form body.
            headers: Extra request headers.
            auth: Optional basic auth credentials.
            idempotent: Whether repeating the call has no side effects.

        Returns:
            dict: Decoded response body.

        Raises:
            ProviderHTTPError: On a non-2xx status or a non-JSON body.
            httpx.HTTPError: When transport errors persist after retries.
        """
        retryable = TRANSPORT_ERRORS if idempotent else CONNECT_ERRORS
        retrying = AsyncRetrying(
            retry=retry_if_exception_type(retryable),
            stop=stop_after_attempt(self.max_retries + 1),
            wait=wait_exponential(multiplier=MIN_WAIT_SECONDS, min=MIN_WAIT_SECONDS, max=MAX_WAIT_SECONDS),
            reraise=True,
        )

        start_time = time.perf_counter()
        status_code: int | None = None
        try:
            async with httpx.AsyncClient(
                base_url=self.base_url,
                timeout=httpx.Timeout(self.timeout),
                transport=self._transport,
            ) as client:
                async for attempt in retrying:
                    with attempt:
                        response = await client.post(path, json=json, data=data, headers=headers, auth=auth)
            status_code = response.status_code
        except httpx.HTTPError as e:
            logger.error("%s POST %s failed: %s: %s", self.provider, path, type(e).__name__, str(e))
            raise
        finally:
            latency_ms = (time.perf_counter() - start_time) * 1000
            log_msg = f"{self.provider} POST {path}: status={status_code or 'N/A'}, latency={latency_ms:.2f}ms"
            if latency_ms > SLOW_CALL_THRESHOLD_MS:
                logger.warning(f"SLOW provider call: {log_msg}")
            else:
                logger.info(log_msg)

        try:
            payload = response.json()
        except ValueError as e:
            raise ProviderHTTPError(self.provider, "Response body is not JSON", status_code) from e

        if not response.is_success:
            message = "Request failed"
            if isinstance(payload, dict):
                message = str(payload.get("message") or payload.get("error_description") or message)
            raise ProviderHTTPError(self.provider, message, status_code, payload)

        if not isinstance(payload, dict):
            raise ProviderHTTPError(self.provider, "Unexpected response shape", status_code, payload)
        return payload
