import smtplib
import unittest
from unittest.mock import MagicMock, patch

from app.config import settings
from app.core.email import render_password_reset_email, send_email
from app.tasks.email import send_password_reset_email


class EmailTests(unittest.TestCase):
    def setUp(self):
        self._backup = {
            "SMTP_HOST": settings.SMTP_HOST,
            "SMTP_USER": settings.SMTP_USER,
            "SMTP_PASSWORD": settings.SMTP_PASSWORD,
            "SMTP_USE_TLS": settings.SMTP_USE_TLS,
        }

    def tearDown(self):
        for key, value in self._backup.items():
            setattr(settings, key, value)

    def _configure_smtp(self):
        settings.SMTP_HOST = "smtp.example.com"
        settings.SMTP_USER = "noreply@example.com"
        settings.SMTP_PASSWORD = "secret"
        settings.SMTP_USE_TLS = True

    def test_unconfigured_smtp_skips_delivery(self):
        settings.SMTP_HOST = ""
        with patch("app.core.email.smtplib.SMTP") as smtp:
            self.assertFalse(send_email(["a@example.com"], "Hi", "<p>Hi</p>"))
        smtp.assert_not_called()

    def test_configured_smtp_sends_message(self):
        self._configure_smtp()
        server = MagicMock()
        with patch("app.core.email.smtplib.SMTP") as smtp:
            smtp.return_value.__enter__.return_value = server
            self.assertTrue(send_email(["a@example.com"], "Hi", "<p>Hi</p>", body_text="Hi"))

        server.starttls.assert_called_once()
        server.login.assert_called_once_with("noreply@example.com", "secret")
        args = server.sendmail.call_args.args
        self.assertEqual(args[1], ["a@example.com"])

    def test_smtp_failure_returns_false(self):
        self._configure_smtp()
        with patch("app.core.email.smtplib.SMTP", side_effect=smtplib.SMTPConnectError(421, "busy")):
            self.assertFalse(send_email(["a@example.com"], "Hi", "<p>Hi</p>"))

    def test_reset_email_escapes_the_link(self):
        body = render_password_reset_email('http://x/reset-password?token=a"b&c=<d>')
        self.assertIn("token=a&quot;b&amp;c=&lt;d&gt;", body)
        self.assertNotIn("<d>", body)

    def test_reset_task_runs_eagerly(self):
        with patch("app.tasks.email.send_email", return_value=True) as sender:
            result = send_password_reset_email.delay("a@example.com", "http://x/reset-password?token=t")
        self.assertTrue(result.get())
        recipients, subject, html = sender.call_args.args
        self.assertEqual(recipients, ["a@example.com"])
        self.assertIn("token=t", html)


if __name__ == "__main__":
    unittest.main()
