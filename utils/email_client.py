# utils/email_client.py

import smtplib
from email.message import EmailMessage
from typing import Optional

from utils import app_config
from utils.logger import logger


def send_email(
    to: str,
    subject: str,
    html: str,
    text: Optional[str] = None,
) -> bool:
    """
    Send one transactional email over SMTP.

    Returns True when the server accepted the message. Never raises:
    failures are logged and reported as False so callers can carry on.
    """
    if not to:
        logger.warning(f"Email '{subject}' skipped: no recipient")
        return False

    if not app_config.EMAIL_HOST:
        logger.warning(f"Email '{subject}' to {to} skipped: EMAIL_HOST not configured")
        return False

    message = EmailMessage()
    message["From"] = app_config.EMAIL_FROM
    message["To"] = to
    message["Subject"] = subject
    message.set_content(text or subject)
    message.add_alternative(html, subtype="html")

    try:
        with smtplib.SMTP(app_config.EMAIL_HOST, app_config.EMAIL_PORT, timeout=10) as smtp:
            if app_config.EMAIL_USE_TLS:
                smtp.starttls()
            if app_config.EMAIL_USERNAME:
                smtp.login(app_config.EMAIL_USERNAME, app_config.EMAIL_PASSWORD)
            smtp.send_message(message)
    except (smtplib.SMTPException, OSError) as e:
        logger.error(f"Email '{subject}' to {to} failed: {e}")
        return False

    logger.info(f"Email '{subject}' sent to {to}")
    return True
