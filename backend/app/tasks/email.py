"""Celery tasks for sending transactional email off the request path."""

from app.celery_app import celery
from app.core.email import render_password_reset_email, send_email


@celery.task(name="app.tasks.email.send_password_reset_email", bind=True, max_retries=3)
def send_password_reset_email(self, recipient: str, reset_url: str) -> bool:
    """Send the password reset link asynchronously."""
    try:
        html = render_password_reset_email(reset_url)
        return send_email(
            [recipient],
            "Reset your password",
            html,
            body_text=f"Reset your password: {reset_url}\nThis link expires in 1 hour.",
        )
    except Exception as exc:
        raise self.retry(exc=exc, countdown=60 * (self.request.retries + 1))
