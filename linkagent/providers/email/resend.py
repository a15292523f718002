"""
Resend Email Provider - Outbound email via the Resend REST API
"""

import logging
from typing import Any, Dict, Optional

import httpx

from .base import BaseEmailProvider

logger = logging.getLogger(__name__)

API_URL = "https://api.resend.com/emails"
DEFAULT_FROM = "onboarding@resend.dev"


class ResendProvider(BaseEmailProvider):
    """
    Resend email provider.

    Requires configuration:
    - api_key: Resend API key

    Optional:
    - from_email: Default sender address
    """

    def __init__(
        self,
        api_key: str,
        from_email: str = DEFAULT_FROM,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        super().__init__()
        self.api_key = api_key
        self.from_email = from_email or DEFAULT_FROM
        self._transport = transport

        if self.is_enabled():
            logger.info(f"Resend Email Provider initialized (from: {self.from_email})")
        else:
            logger.warning("Resend Email Provider disabled - missing api_key")

    def is_enabled(self) -> bool:
        return bool(self.api_key)

    async def send_email(
        self,
        to: str,
        subject: str,
        html: str,
        sender: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Send email via Resend."""
        if not self.is_enabled():
            return {"success": False, "error": "Resend API key not configured"}

        logger.info(f"[Resend] Sending email to {to}: {subject[:100]}")

        try:
            async with httpx.AsyncClient(transport=self._transport) as client:
                response = await client.post(
                    API_URL,
                    headers={
                        "Authorization": f"Bearer {self.api_key}",
                        "Content-Type": "application/json",
                    },
                    json={
                        "from": sender or self.from_email,
                        "to": to,
                        "subject": subject,
                        "html": html,
                    },
                    timeout=30.0,
                )

                if response.status_code not in (200, 201):
                    logger.error(f"[Resend] API error: {response.status_code} - {response.text}")
                    return {"success": False, "error": f"Resend API error: {response.status_code}"}

                email_id = response.json().get("id")
                logger.info(f"[Resend] Email sent - ID: {email_id}")
                return {"success": True, "id": email_id}

        except Exception as e:
            logger.error(f"[Resend] Failed to send email: {e}", exc_info=True)
            return {"success": False, "error": str(e)}
