"""
Notification Service Factory

Returns Mock or Real notification transport based on ENV_MODE, and the
new-order dispatcher wired with the channels enabled in settings.

Version: 1.0.0
"""

import logging
from functools import lru_cache
from typing import List, Optional

from foodhub.core.config import Settings, get_settings
from foodhub.services.notifications.base import (
    BaseNotificationService,
    NotificationResult,
)
from foodhub.services.notifications.channels import (
    CustomerConfirmationEmailChannel,
    NotifyChannel,
    RestaurantEmailChannel,
    RestaurantSmsChannel,
)
from foodhub.services.notifications.dispatcher import ChannelOutcome, NotificationDispatcher
from foodhub.services.notifications.mock import MockNotificationService
from foodhub.services.notifications.real import RealNotificationService
from foodhub.services.notifications.templates import (
    NotificationLine,
    OrderNotification,
    PaymentDetails,
)

logger = logging.getLogger(__name__)


@lru_cache()
def get_notification_service() -> BaseNotificationService:
    """Get the configured notification service."""
    settings = get_settings()

    if settings.use_real_services:
        logger.info(f"Notification Service: Using RealNotificationService ({settings.env_mode.value} mode)")
        return RealNotificationService(settings)

    logger.info("Notification Service: Using MockNotificationService (development mode)")
    return MockNotificationService(
        failure_rate=settings.mock_notification_failure_rate,
        latency=(0.05, 0.2),
    )


def build_channels(
    transport: BaseNotificationService,
    settings: Optional[Settings] = None,
) -> List[NotifyChannel]:
    """Channels for a new order: restaurant email, then the optional ones."""
    settings = settings or get_settings()
    currency = settings.currency_symbol

    channels: List[NotifyChannel] = [RestaurantEmailChannel(transport, currency)]
    if settings.sms_notifications_enabled:
        channels.append(RestaurantSmsChannel(transport, currency))
    if settings.customer_confirmation_enabled:
        channels.append(CustomerConfirmationEmailChannel(transport, currency))
    return channels


@lru_cache()
def get_notification_dispatcher() -> NotificationDispatcher:
    transport = get_notification_service()
    return NotificationDispatcher(build_channels(transport))


__all__ = [
    "get_notification_service",
    "get_notification_dispatcher",
    "build_channels",
    "BaseNotificationService",
    "NotificationResult",
    "NotificationDispatcher",
    "ChannelOutcome",
    "OrderNotification",
    "NotificationLine",
    "PaymentDetails",
]
