# backend/personalhub/services/email/sender.py
import logging

from personalhub.config import settings
from personalhub.services.email.base import EmailService
from personalhub.services.email.brevo import BrevoEmailService
from personalhub.services.email.mock import MockEmailService

logger = logging.getLogger(__name__)


def build_email_service() -> EmailService:
    if settings.EMAIL_MODE == "brevo":
        return BrevoEmailService(settings.BREVO_API_KEY)
    return MockEmailService()


email_service = build_email_service()


def get_email_service() -> EmailService:
    """FastAPI dependency (overridable in tests)"""
    return email_service


async def deliver_password_reset(service: EmailService, to: str, token: str):
    """Background task: delivery failures are logged, the request already returned."""
    try:
        await service.send_password_reset_email(to, token)
    except Exception:
        logger.exception("EMAIL_SEND_FAILED to=%s kind=password_reset", to)


async def deliver_welcome(service: EmailService, to: str, username: str):
    try:
        await service.send_welcome_email(to, username)
    except Exception:
        logger.exception("EMAIL_SEND_FAILED to=%s kind=welcome", to)
