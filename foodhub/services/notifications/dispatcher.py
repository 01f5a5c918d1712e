"""
New-order notification fan-out.

Runs every configured channel for a committed order. A channel with no
contact point is skipped with a warning; a channel that fails is logged.
Neither affects the other channels or the order itself, so
``notify_new_order`` never raises.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence

from foodhub.services.notifications.channels import NotifyChannel
from foodhub.services.notifications.templates import OrderNotification

logger = logging.getLogger(__name__)

SENT = "sent"
SKIPPED = "skipped"
FAILED = "failed"


@dataclass
class ChannelOutcome:
    """What happened on one channel for one order."""
    channel: str
    status: str
    message_id: Optional[str] = None
    error_message: Optional[str] = None

    @property
    def delivered(self) -> bool:
        return self.status == SENT


class NotificationDispatcher:
    """Sends the new-order messages over each channel independently."""

    def __init__(self, channels: Sequence[NotifyChannel]):
        self.channels = list(channels)

    async def notify_new_order(self, notification: OrderNotification) -> List[ChannelOutcome]:
        if not self.channels:
            return []
        return list(await asyncio.gather(
            *(self._run_channel(channel, notification) for channel in self.channels)
        ))

    async def _run_channel(self, channel: NotifyChannel, notification: OrderNotification) -> ChannelOutcome:
        order_number = notification.order_number

        if not channel.is_available(notification):
            logger.warning(
                f"No contact for {channel.name}; notification for order {order_number} not sent"
            )
            return ChannelOutcome(channel=channel.name, status=SKIPPED)

        try:
            result = await channel.send(notification)
        except Exception as e:
            logger.exception(f"{channel.name} notification for order {order_number} failed: {e}")
            return ChannelOutcome(channel=channel.name, status=FAILED, error_message=str(e))

        if not result.success:
            logger.error(
                f"{channel.name} notification for order {order_number} failed "
                f"({result.provider}): {result.error_message}"
            )
            return ChannelOutcome(
                channel=channel.name,
                status=FAILED,
                error_message=result.error_message,
            )

        logger.info(f"{channel.name} notification sent for order {order_number} (ID: {result.message_id})")
        return ChannelOutcome(channel=channel.name, status=SENT, message_id=result.message_id)
