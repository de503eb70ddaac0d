"""
Notification Service Factory

Order confirmations go out by SMS and email; subscription and kitchen
verification decisions by email. Development uses the in-memory mock,
every other ENV_MODE uses Twilio and SendGrid.

In-app notifications (the bell feed) are rows, see ``inbox``.
"""

import logging
from functools import lru_cache

from ghorer_khabar.core.config import get_settings
from ghorer_khabar.services.notifications.base import (
    BaseNotificationService,
    NotificationResult,
    normalize_phone,
)
from ghorer_khabar.services.notifications.mock import MockNotificationService
from ghorer_khabar.services.notifications.real import RealNotificationService

logger = logging.getLogger(__name__)


@lru_cache()
def get_notification_service() -> BaseNotificationService:
    """Get the configured notification service."""
    settings = get_settings()

    if settings.is_development:
        logger.info("Notification Service: Using MockNotificationService (development mode)")
        return MockNotificationService(failure_rate=0.05)

    logger.info(f"Notification Service: Using Twilio/SendGrid ({settings.env_mode.value} mode)")
    return RealNotificationService()


__all__ = [
    "get_notification_service",
    "normalize_phone",
    "BaseNotificationService",
    "NotificationResult",
    "MockNotificationService",
    "RealNotificationService",
]
