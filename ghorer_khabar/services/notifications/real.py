"""
Real Notification Service

Twilio carries SMS and SendGrid carries email. Each channel is enabled
only when its credentials are configured; a disabled channel reports a
failed result instead of raising.

Both SDKs are blocking, so calls run in a worker thread.
"""

import asyncio
import logging
from typing import Optional

from sendgrid import SendGridAPIClient
from sendgrid.helpers.mail import Category, From, Mail
from twilio.base.exceptions import TwilioException, TwilioRestException
from twilio.rest import Client as TwilioClient

from ghorer_khabar.core.config import get_settings
from ghorer_khabar.services.notifications.base import (
    BaseNotificationService,
    NotificationResult,
)

logger = logging.getLogger(__name__)

SENDGRID_ACCEPTED = (200, 201, 202)


class RealNotificationService(BaseNotificationService):
    """Production notifier backed by Twilio and SendGrid."""

    def __init__(self):
        settings = get_settings()
        self.sms_from = settings.twilio_phone_number
        self.sender = From(settings.sendgrid_from_email, settings.app_name)

        self.twilio_client = None
        if settings.twilio_account_sid and settings.twilio_auth_token and self.sms_from:
            self.twilio_client = TwilioClient(settings.twilio_account_sid, settings.twilio_auth_token)
        else:
            logger.warning("Twilio not configured; order SMS is disabled")

        self.sendgrid_client = None
        if settings.sendgrid_api_key:
            self.sendgrid_client = SendGridAPIClient(settings.sendgrid_api_key)
        else:
            logger.warning("SendGrid not configured; email is disabled")

    @property
    def provider_name(self) -> str:
        return "real"

    @staticmethod
    def _disabled(provider: str) -> NotificationResult:
        return NotificationResult(success=False, error_message=f"{provider} not configured", provider=provider)

    async def send_sms(self, to_phone: str, message: str) -> NotificationResult:
        if self.twilio_client is None:
            return self._disabled("twilio")

        try:
            sent = await asyncio.to_thread(
                self.twilio_client.messages.create,
                body=message,
                from_=self.sms_from,
                to=to_phone,
            )
        except TwilioRestException as e:
            logger.error(f"Twilio rejected SMS to {to_phone}: [{e.code}] {e.msg}")
            return NotificationResult(success=False, error_message=f"[{e.code}] {e.msg}", provider="twilio")
        except TwilioException as e:
            logger.error(f"Twilio error for {to_phone}: {e}")
            return NotificationResult(success=False, error_message=str(e), provider="twilio")

        logger.info(f"SMS to {to_phone} queued: {sent.sid} ({sent.status})")
        return NotificationResult(success=True, message_id=sent.sid, provider="twilio")

    async def send_email(
        self,
        to_email: str,
        subject: str,
        body_html: str,
        body_text: Optional[str] = None,
        category: Optional[str] = None,
    ) -> NotificationResult:
        if self.sendgrid_client is None:
            return self._disabled("sendgrid")

        mail = Mail(
            from_email=self.sender,
            to_emails=to_email,
            subject=subject,
            html_content=body_html,
            plain_text_content=body_text,
        )
        if category:
            mail.category = Category(category)

        try:
            response = await asyncio.to_thread(self.sendgrid_client.send, mail)
        except Exception as e:
            # The client raises python_http_client errors for 4xx/5xx
            logger.error(f"SendGrid error for {to_email} ({category or 'uncategorized'}): {e}")
            return NotificationResult(success=False, error_message=str(e), provider="sendgrid")

        if response.status_code not in SENDGRID_ACCEPTED:
            logger.warning(f"SendGrid returned {response.status_code} for {to_email}")
            return NotificationResult(
                success=False,
                error_message=f"SendGrid returned {response.status_code}",
                provider="sendgrid",
            )

        logger.info(f"Email '{subject}' sent to {to_email}")
        return NotificationResult(
            success=True,
            message_id=response.headers.get("X-Message-Id"),
            provider="sendgrid",
        )

    async def health_check(self) -> bool:
        """Healthy when at least one channel is enabled."""
        return self.sendgrid_client is not None or self.twilio_client is not None
