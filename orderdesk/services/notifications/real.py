"""
Real Notification Service

Production implementation sending WhatsApp messages through Twilio's
WhatsApp channel ("whatsapp:+<number>" addresses).
"""

import logging

from twilio.base.exceptions import TwilioException
from twilio.rest import Client as TwilioClient

from orderdesk.services.notifications.base import (
    BaseNotificationService,
    NotificationResult,
    to_e164,
)

logger = logging.getLogger(__name__)


class RealNotificationService(BaseNotificationService):
    """Production notification service using Twilio WhatsApp."""

    def __init__(self):
        super().__init__()
        settings = self.settings

        if settings.twilio_account_sid and settings.twilio_auth_token:
            self.twilio_client = TwilioClient(
                settings.twilio_account_sid,
                settings.twilio_auth_token
            )
            self.from_number = settings.twilio_whatsapp_number
        else:
            self.twilio_client = None
            self.from_number = None
            logger.warning("Twilio credentials not configured")

        logger.info("RealNotificationService initialized")

    @property
    def provider_name(self) -> str:
        return "twilio"

    def send_whatsapp(self, to_number: str, message: str) -> NotificationResult:
        """Send a WhatsApp message via Twilio."""
        if not self.twilio_client or not self.from_number:
            return NotificationResult(
                success=False,
                error_message="Twilio not configured",
                provider="twilio"
            )

        recipient = to_e164(to_number, self.settings.whatsapp_default_country_code)
        try:
            result = self.twilio_client.messages.create(
                body=message,
                from_=f"whatsapp:{self.from_number}",
                to=f"whatsapp:{recipient}",
            )

            logger.info(f"WhatsApp sent to {recipient}: {result.sid}")

            return NotificationResult(
                success=True,
                message_id=result.sid,
                provider="twilio"
            )

        except TwilioException as e:
            logger.error(f"Twilio error: {e}")
            return NotificationResult(
                success=False,
                error_message=str(e),
                provider="twilio"
            )

    def health_check(self) -> bool:
        """Check that the Twilio account is reachable."""
        if not self.twilio_client:
            return False
        try:
            self.twilio_client.api.accounts(self.settings.twilio_account_sid).fetch()
            return True
        except TwilioException as e:
            logger.error(f"Twilio health check failed: {e}")
            return False
