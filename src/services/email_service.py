"""Email service using Resend for transactional emails."""

import asyncio
import logging
from datetime import datetime
from typing import Any
from urllib.parse import quote

import resend

from src.api.middleware.error_handler import EmailDeliveryNotConfigured
from src.core.config import get_settings

logger = logging.getLogger(__name__)


def format_amount(amount: int, currency: str) -> str:
    """Render minor units for humans, e.g. ``NGN 6,800.00``."""
    return f"{currency} {amount / 100:,.2f}"


class EmailService:
    """Service for sending transactional emails via Resend."""

    def __init__(self) -> None:
        """Initialize email service with Resend API key."""
        settings = get_settings()
        resend.api_key = settings.resend_api_key
        self.configured = bool(settings.resend_api_key)
        self.from_email = settings.email_from_address
        self.invite_from_email = settings.backoffice_invite_from or settings.email_from_address
        self.app_base_url = settings.app_base_url.rstrip("/")

    async def _send(self, params: dict[str, Any]) -> dict[str, Any]:
        # The Resend SDK is synchronous
        return await asyncio.to_thread(resend.Emails.send, params)

    async def send_order_paid_email(
        self,
        to_email: str,
        order_code: str,
        amount: int,
        currency: str,
    ) -> dict[str, Any]:
        """Send a payment confirmation. Best-effort: failures are logged, never raised.

        Args:
            to_email: Recipient email address.
            order_code: Public order code.
            amount: Paid amount in minor units.
            currency: ISO currency code.

        Returns:
            dict: ``success`` flag with the email ID or error.
        """
        if not self.configured:
            logger.info("Resend API key not configured, skipping paid email for %s", order_code)
            return {"success": False, "skipped": True}

        formatted = format_amount(amount, currency)
        lookup_url = f"{self.app_base_url}/order-lookup?orderCode={order_code}"

        html_content = f"""
<!DOCTYPE html>
<html>
<body style="font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif; line-height: 1.6; color: #222; max-width: 600px; margin: 0 auto; padding: 20px;">
    <h1 style="font-size: 22px;">Payment confirmed</h1>
    <p>We received your payment of <strong>{formatted}</strong> for order <strong>{order_code}</strong>.</p>
    <p>We are preparing your order and will let you know when it ships.</p>
    <p><a href="{lookup_url}" style="color: #111;">Track your order</a></p>
</body>
</html>
"""

        text_content = f"""
Payment confirmed for {order_code}

We received your payment of {formatted}.
Track your order: {lookup_url}
"""

        try:
            response = await self._send({
                "from": self.from_email,
                "to": [to_email],
                "subject": f"Payment confirmed for {order_code}",
                "html": html_content,
                "text": text_content,
            })

            logger.info("Paid email sent to %s for %s, id: %s", to_email, order_code, response.get("id"))
            return {"success": True, "email_id": response.get("id")}

        except Exception as e:
            logger.error("Failed to send paid email for %s to %s: %s", order_code, to_email, str(e))
            return {"success": False, "error": str(e)}

    async def send_backoffice_invite_email(
        self,
        to_email: str,
        role: str,
        token: str,
        expires_at: datetime,
        invited_by_email: str | None = None,
    ) -> dict[str, Any]:
        """Send a backoffice invite link.

        Send failures propagate to the caller.

        Raises:
            EmailDeliveryNotConfigured: No Resend API key is set.
        """
        if not self.configured:
            raise EmailDeliveryNotConfigured("Backoffice invite email delivery is not configured")

        accept_url = f"{self.app_base_url}/backoffice/invite/accept?token={quote(token)}"
        inviter = invited_by_email or "An administrator"
        expires_text = expires_at.strftime("%Y-%m-%d %H:%M UTC")

        html_content = f"""
<!DOCTYPE html>
<html>
<body style="font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif; line-height: 1.6; color: #222; max-width: 600px; margin: 0 auto; padding: 20px;">
    <h1 style="font-size: 22px;">You're invited to the AT Thrill backoffice</h1>
    <p><strong>{inviter}</strong> invited you to join as <strong>{role}</strong>.</p>
    <div style="text-align: center; margin: 30px 0;">
        <a href="{accept_url}" style="background: #111; color: white; padding: 12px 28px; text-decoration: none; border-radius: 6px; font-weight: 600;">
            Accept invite
        </a>
    </div>
    <p style="font-size: 12px; color: #6b7280;">This link expires {expires_text}. If you didn't expect it, ignore this email.</p>
</body>
</html>
"""

        text_content = f"""
{inviter} invited you to join the AT Thrill backoffice as {role}.

Accept your invite here:
{accept_url}

This link expires {expires_text}.
"""

        response = await self._send({
            "from": self.invite_from_email,
            "to": [to_email],
            "subject": "You're invited to the AT Thrill backoffice",
            "html": html_content,
            "text": text_content,
        })

        logger.info("Backoffice invite email sent to %s, id: %s", to_email, response.get("id"))
        return {"success": True, "email_id": response.get("id")}
