"""
Transactional email through the Resend REST API. Sending is best-effort: failures are logged
and reported as False, never raised, so account flows keep working when mail is down.
"""
import html
import logging

import httpx

from settings import Settings

logger = logging.getLogger(__name__)

RESEND_URL = "https://api.resend.com/emails"
MAIL_TIMEOUT_SECONDS = 10.0


class Mailer:
    def __init__(self, settings: Settings, url: str = RESEND_URL):
        self._api_key = settings.resend_api_key
        self._from = settings.mail_from
        self._frontend_url = settings.frontend_url.rstrip("/")
        self._url = url

    def send(self, to: str, subject: str, body_html: str) -> bool:
        if not self._api_key:
            logger.warning("telemetry mail_skipped reason=missing_api_key subject=%s", subject)
            return False
        try:
            with httpx.Client(timeout=MAIL_TIMEOUT_SECONDS) as client:
                resp = client.post(
                    self._url,
                    headers={"Authorization": f"Bearer {self._api_key}"},
                    json={"from": self._from, "to": [to], "subject": subject, "html": body_html},
                )
                resp.raise_for_status()
        except httpx.HTTPError as e:
            logger.error("telemetry mail_failed subject=%s error=%s", subject, str(e))
            return False
        logger.info("telemetry mail_sent subject=%s", subject)
        return True

    def send_verification(self, to: str, name: str, token: str) -> bool:
        link = f"{self._frontend_url}/verify-email?token={token}"
        body = (
            "<h1>HospitoFind</h1>"
            f"<h2>Welcome, {html.escape(name)}!</h2>"
            "<p>Please click the link below to verify your email address:</p>"
            f'<p><a href="{html.escape(link)}">Verify Email Address</a></p>'
            "<p>This link expires in 24 hours.</p>"
        )
        return self.send(to, "Verify your HospitoFind Account", body)

    def send_password_reset(self, to: str, token: str) -> bool:
        link = f"{self._frontend_url}/reset-password/{token}"
        body = (
            "<h1>Password Reset Request</h1>"
            "<p>You requested a password reset. Please click the link below:</p>"
            f'<p><a href="{html.escape(link)}">{html.escape(link)}</a></p>'
            "<p>This link expires in 1 hour. If you did not make this request, please ignore this email.</p>"
        )
        return self.send(to, "Password Reset Token", body)
