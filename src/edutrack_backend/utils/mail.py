import logging
import smtplib
import ssl
from email.message import EmailMessage
from typing import Optional

from edutrack_backend.settings import settings

logger = logging.getLogger(__name__)


def mail_enabled() -> bool:
    return bool(settings.SMTP_HOST)


def send_email(to: str, subject: str, body_html: str, body_text: Optional[str] = None):
    """Send one email through the configured SMTP relay. No-op when SMTP_HOST is unset."""
    if not mail_enabled():
        logger.debug(f"SMTP not configured, dropping mail to {to}: {subject}")
        return

    msg = EmailMessage()
    msg["From"] = settings.MAIL_FROM
    msg["To"] = to
    msg["Subject"] = subject
    msg.set_content(body_text or subject)
    msg.add_alternative(body_html, subtype="html")

    try:
        with smtplib.SMTP(settings.SMTP_HOST, settings.SMTP_PORT) as server:
            if settings.SMTP_STARTTLS:
                server.starttls(context=ssl.create_default_context())
            if settings.SMTP_USER and settings.SMTP_PASSWORD:
                server.login(settings.SMTP_USER, settings.SMTP_PASSWORD)
            server.send_message(msg)
    except (smtplib.SMTPException, OSError) as e:
        logger.error(f"SMTP: failed to send '{subject}' to {to}: {e}")
        raise

    logger.info(f"SMTP: Email sent to {to}")


def send_progress_notification(to: str, course_title: str, progress: float):
    send_email(
        to,
        "Progress Updated",
        f"<p>Your progress in <b>{course_title}</b> has been updated to {progress:.0f}%.</p>",
        f"Your progress in {course_title} has been updated to {progress:.0f}%."
    )
