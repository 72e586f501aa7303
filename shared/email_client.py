"""
SMTP email client for one-time-password delivery.

Sending is blocking (smtplib) so it runs in a worker thread via
asyncio.to_thread(). When SMTP credentials are not configured the send is
skipped with a warning instead of failing.
"""

import asyncio
import logging
import smtplib
import ssl
from email.mime.text import MIMEText

from salon.errors import InfrastructureError
from shared.config import Settings, get_settings

logger = logging.getLogger(__name__)


class EmailDeliveryError(InfrastructureError):
    """Raised when an email could not be handed to the SMTP server."""

    default_code = "DELIVERY_FAILED"


class EmailClient:
    """
    Thin SMTP wrapper used by the OTP authenticator.

    Usage:
        client = EmailClient()
        await client.send_otp("customer@example.com", "4821")
    """

    def __init__(self, settings: Settings | None = None):
        self._settings = settings or get_settings()

    @property
    def is_configured(self) -> bool:
        return bool(self._settings.SMTP_USERNAME and self._settings.SMTP_PASSWORD)

    def _from_address(self) -> str:
        if self._settings.SMTP_FROM:
            return self._settings.SMTP_FROM
        return f'"{self._settings.SALON_NAME}" <{self._settings.SMTP_USERNAME}>'

    def build_otp_message(self, to: str, code: str, ttl_minutes: int) -> MIMEText:
        msg = MIMEText(
            f"Your OTP code is {code}. Please do not share this with anyone. "
            f"It expires in {ttl_minutes} minutes."
        )
        msg["Subject"] = "Your OTP Code"
        msg["From"] = self._from_address()
        msg["To"] = to
        return msg

    def _send_blocking(self, to: str, msg: MIMEText) -> None:
        settings = self._settings
        envelope_from = self._from_address().split("<")[-1].rstrip(">")

        try:
            if settings.SMTP_USE_SSL:
                context = ssl.create_default_context()
                server = smtplib.SMTP_SSL(
                    settings.SMTP_HOST, settings.SMTP_PORT,
                    context=context, timeout=settings.SMTP_TIMEOUT_SECONDS,
                )
            else:
                server = smtplib.SMTP(
                    settings.SMTP_HOST, settings.SMTP_PORT,
                    timeout=settings.SMTP_TIMEOUT_SECONDS,
                )
                server.starttls(context=ssl.create_default_context())

            try:
                server.login(settings.SMTP_USERNAME, settings.SMTP_PASSWORD)
                server.sendmail(envelope_from, [to], msg.as_string())
            finally:
                server.quit()

        except (smtplib.SMTPException, ssl.SSLError, OSError) as e:
            raise EmailDeliveryError(f"SMTP send to {to} failed: {e}") from e

    async def send_otp(self, to: str, code: str) -> bool:
        """
        Send an OTP code by email.

        Returns:
            True if the message was accepted by the SMTP server,
            False if SMTP is not configured (send skipped)

        Raises:
            EmailDeliveryError: If the SMTP conversation fails
        """
        if not self.is_configured:
            logger.warning(
                "SMTP is not configured; skipping OTP email",
                extra={"email": to},
            )
            return False

        msg = self.build_otp_message(to, code, self._settings.OTP_TTL_MINUTES)
        await asyncio.to_thread(self._send_blocking, to, msg)
        logger.info("OTP email sent", extra={"email": to})
        return True
