# backend/personalhub/services/email/brevo.py
import logging

import httpx

from personalhub.config import settings
from personalhub.services.email.base import EmailService

logger = logging.getLogger(__name__)

_EMAIL_TIMEOUT = httpx.Timeout(connect=5.0, read=15.0, write=15.0, pool=5.0)


class BrevoEmailService(EmailService):
    """Transactional email through the Brevo (Sendinblue) HTTP API"""

    def __init__(self, api_key: str, transport: httpx.AsyncBaseTransport | None = None):
        self.api_key = api_key
        self._transport = transport

    async def send(self, to: str, subject: str, text_body: str, html_body: str | None = None):
        if not self.api_key:
            raise ValueError("BREVO_API_KEY not configured")

        payload = {
            "sender": {"email": settings.EMAIL_FROM_ADDRESS, "name": settings.EMAIL_FROM_NAME},
            "to": [{"email": to}],
            "subject": subject,
            "textContent": text_body,
        }
        if html_body:
            payload["htmlContent"] = html_body

        headers = {
            "api-key": self.api_key,
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

        async with httpx.AsyncClient(timeout=_EMAIL_TIMEOUT, transport=self._transport) as client:
            response = await client.post(settings.BREVO_API_URL, json=payload, headers=headers)
            response.raise_for_status()

        logger.info("EMAIL_SENT to=%s subject=%s provider=brevo", to, subject)
