# backend/personalhub/services/email/mock.py
import logging
from collections import deque
from typing import Deque, Dict

from personalhub.services.email.base import EmailService

logger = logging.getLogger(__name__)

OUTBOX_SIZE = 50


class MockEmailService(EmailService):
    """Logs messages instead of sending them; keeps the most recent ones for inspection"""

    def __init__(self, outbox_size: int = OUTBOX_SIZE):
        self.outbox: Deque[Dict[str, str]] = deque(maxlen=outbox_size)

    async def send(self, to: str, subject: str, text_body: str, html_body: str | None = None):
        self.outbox.append({"to": to, "subject": subject, "body": text_body})
        logger.info("EMAIL_MOCK_SENT to=%s subject=%s\n%s", to, subject, text_body)
