"""
Mock Notification Service

Simulates WhatsApp sending for development.
No actual messages are sent - just logged.
"""

import logging
import random
import time
import uuid

from orderdesk.services.notifications.base import (
    BaseNotificationService,
    NotificationResult,
    to_e164,
)

logger = logging.getLogger(__name__)


class MockNotificationService(BaseNotificationService):
    """Mock notification service for development."""

    def __init__(
        self,
        failure_rate: float = 0.05,
        min_latency: float = 0.1,
        max_latency: float = 0.3,
    ):
        super().__init__()
        self.failure_rate = failure_rate
        self.min_latency = min_latency
        self.max_latency = max(min_latency, max_latency)
        self.sent: list[tuple[str, str]] = []
        logger.info(f"MockNotificationService initialized (failure_rate={failure_rate:.0%})")

    @property
    def provider_name(self) -> str:
        return "mock"

    def _simulate_latency(self) -> None:
        """Simulate network latency."""
        if self.max_latency > 0:
            time.sleep(random.uniform(self.min_latency, self.max_latency))

    def _should_fail(self) -> bool:
        return random.random() < self.failure_rate

    def send_whatsapp(self, to_number: str, message: str) -> NotificationResult:
        """Simulate sending a WhatsApp message."""
        self._simulate_latency()
        recipient = to_e164(to_number, self.settings.whatsapp_default_country_code)

        if self._should_fail():
            logger.warning(f"Mock WhatsApp failed (simulated) to {recipient}")
            return NotificationResult(
                success=False,
                error_message="Simulated WhatsApp failure",
                provider="mock"
            )

        message_id = f"wa_mock_{uuid.uuid4().hex[:12]}"
        self.sent.append((recipient, message))
        logger.info(f"Mock WhatsApp sent to {recipient}: {message[:50]!r} (ID: {message_id})")

        return NotificationResult(
            success=True,
            message_id=message_id,
            provider="mock"
        )

    def health_check(self) -> bool:
        """Mock always returns healthy."""
        return True
