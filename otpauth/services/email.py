"""SMTP email sender for delivering OTP codes."""

import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Awaitable, Callable

import anyio

from otpauth.core.config import settings

logger = logging.getLogger(__name__)

EmailSender = Callable[[str, str], Awaitable[None]]


class EmailDeliveryError(RuntimeError):
    pass


def _build_message(email: str, otp_code: str) -> MIMEMultipart:
    minutes = max(1, settings.OTP_EXPIRE_SECONDS // 60)
    message = MIMEMultipart("alternative")
    message["From"] = settings.FROM_EMAIL
    message["To"] = email
    message["Subject"] = settings.OTP_EMAIL_SUBJECT

    text = f"Your OTP is {otp_code}. It expires in {minutes} minutes."
    html = f"""
    <div>
        <h2>Email verification code</h2>
        <p>Use the following one-time code to finish creating your account:</p>
        <h3 style="color: #2563eb; font-size: 24px; text-align: center;">{otp_code}</h3>
        <p>The code expires in {minutes} minutes.</p>
    </div>
    """
    message.attach(MIMEText(text, "plain"))
    message.attach(MIMEText(html, "html"))
    return message


async def send_otp_email(email: str, otp_code: str) -> None:
    """Send the OTP code to the provided email address via SMTP.

    Blocking SMTP calls run in a worker thread so the event loop is not held
    up. In development mode the code is logged instead of mailed. Raises
    `EmailDeliveryError` on any failure.
    """

    if settings.is_development:
        logger.info("[dev] OTP for %s is %s", email, otp_code)
        return

    def _send() -> None:
        """Inner sync function executed in a thread."""
        if not all([settings.SMTP_SERVER, settings.SMTP_USERNAME, settings.SMTP_PASSWORD, settings.FROM_EMAIL]):
            raise EmailDeliveryError("SMTP settings are incomplete.")

        message = _build_message(email, otp_code)
        with smtplib.SMTP(settings.SMTP_SERVER, int(settings.SMTP_PORT), timeout=settings.SMTP_TIMEOUT_SECONDS) as server:
            server.ehlo()
            server.starttls()
            server.ehlo()
            server.login(settings.SMTP_USERNAME, settings.SMTP_PASSWORD)
            server.send_message(message)

    try:
        await anyio.to_thread.run_sync(_send)
    except EmailDeliveryError:
        raise
    except (smtplib.SMTPException, OSError) as exc:
        raise EmailDeliveryError(f"Failed to send OTP email: {exc}") from exc


async def deliver_otp_email(email: str, otp_code: str, sender: EmailSender = send_otp_email) -> None:
    """Background task run after the /send-otp response is already on the wire.

    Nothing is reported back to the caller and no OTP state is touched; the
    outcome is only logged. A user whose email never arrives requests a new OTP.
    """

    try:
        await sender(email, otp_code)
    except Exception:
        logger.exception("Failed to deliver OTP email to %s", email)
        return
    logger.info("OTP email sent to %s", email)
