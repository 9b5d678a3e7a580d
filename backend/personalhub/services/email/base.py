# backend/personalhub/services/email/base.py
from abc import ABC, abstractmethod

from personalhub.config import settings


class EmailService(ABC):
    """Abstract base class for outgoing email transports"""

    @abstractmethod
    async def send(self, to: str, subject: str, text_body: str, html_body: str | None = None):
        """
        Deliver one message

        Args:
            to: Recipient address
            subject: Subject line
            text_body: Plain-text content
            html_body: Optional HTML alternative
        """
        pass

    async def send_password_reset_email(self, to: str, token: str):
        reset_link = f"{settings.FRONTEND_URL.rstrip('/')}/reset-password?token={token}"
        text = (
            "We received a request to reset your Personal Hub password.\n\n"
            f"Open this link to choose a new password (valid for 1 hour):\n{reset_link}\n\n"
            "If you did not request this, you can ignore this email."
        )
        html = (
            "<p>We received a request to reset your Personal Hub password.</p>"
            f'<p><a href="{reset_link}">Choose a new password</a> (valid for 1 hour).</p>'
            "<p>If you did not request this, you can ignore this email.</p>"
        )
        await self.send(to, "Reset your Personal Hub password", text, html)

    async def send_welcome_email(self, to: str, username: str):
        text = f"Hi {username},\n\nWelcome to Personal Hub!"
        await self.send(to, "Welcome to Personal Hub", text)
