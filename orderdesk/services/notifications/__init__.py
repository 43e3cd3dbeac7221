"""
WhatsApp Notifier Factory

Picks the customer WhatsApp channel for order events: the logging mock in
development, Twilio in staging and production. One instance per process;
tests call reset_notification_service() to rebuild it from fresh settings.
"""

import logging
from functools import lru_cache

from orderdesk.core.config import get_settings
from orderdesk.services.notifications.base import (
    BaseNotificationService,
    NotificationResult,
)
from orderdesk.services.notifications.mock import MockNotificationService

logger = logging.getLogger(__name__)


@lru_cache()
def get_notification_service() -> BaseNotificationService:
    """Return the process-wide notifier for the current ENV_MODE."""
    settings = get_settings()

    if settings.is_development:
        logger.info("Notification Service: Using MockNotificationService (development mode)")
        return MockNotificationService(
            failure_rate=settings.mock_failure_rate,
            min_latency=settings.mock_min_latency,
            max_latency=settings.mock_max_latency,
        )
    else:
        # Twilio is only imported where it is used
        from orderdesk.services.notifications.real import RealNotificationService

        logger.info(f"Notification Service: Using RealNotificationService ({settings.env_mode.value} mode)")
        return RealNotificationService()


def reset_notification_service() -> None:
    """Clear the cached service instance."""
    get_notification_service.cache_clear()


__all__ = [
    "get_notification_service",
    "reset_notification_service",
    "BaseNotificationService",
    "NotificationResult",
]
