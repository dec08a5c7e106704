"""SMTP email client wrapper."""

import html
import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

from app.config import settings

logger = logging.getLogger(__name__)


def send_email(
    to_addresses: list[str],
    subject: str,
    body_html: str,
    body_text: str | None = None,
) -> bool:
    """Send a multipart (text + HTML) email via SMTP. Returns True on success."""
    if not settings.SMTP_HOST or not settings.SMTP_USER:
        logger.warning("SMTP not configured. Skipping email %r.", subject)
        return False

    msg = MIMEMultipart("alternative")
    msg["Subject"] = subject
    msg["From"] = f"{settings.SMTP_FROM_NAME} <{settings.SMTP_USER}>"
    msg["To"] = ", ".join(to_addresses)
    if body_text:
        msg.attach(MIMEText(body_text, "plain"))
    msg.attach(MIMEText(body_html, "html"))

    try:
        with smtplib.SMTP(settings.SMTP_HOST, settings.SMTP_PORT, timeout=30) as server:
            if settings.SMTP_USE_TLS:
                server.starttls()
            server.login(settings.SMTP_USER, settings.SMTP_PASSWORD)
            server.sendmail(settings.SMTP_USER, to_addresses, msg.as_string())
    except (smtplib.SMTPException, OSError):
        logger.exception("Failed to send email to %s", to_addresses)
        return False
    return True


def render_password_reset_email(reset_url: str) -> str:
    """Render the HTML body of the password reset email."""
    safe_url = html.escape(reset_url, quote=True)

    return f"""
    <html>
    <body style="font-family: Inter, Arial, sans-serif; margin: 0; padding: 20px; background: #f8fafc;">
        <div style="max-width: 600px; margin: 0 auto; background: white; border-radius: 8px; padding: 24px;">
            <h2 style="color: #0f172a; margin: 0 0 16px 0; font-size: 18px;">Reset your password</h2>
            <p style="color: #334155; line-height: 1.6;">Click the link below to reset your password:</p>
            <p><a href="{safe_url}">{safe_url}</a></p>
            <p style="color: #334155;">This link will expire in 1 hour.</p>
            <p style="color: #94a3b8; font-size: 12px; margin: 16px 0 0 0;">
                If you did not request this reset, you can ignore this email.
            </p>
        </div>
    </body>
    </html>
    """
