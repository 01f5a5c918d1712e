"""
Notification channels for new orders.

A channel decides whether it can reach its recipient for a given order and,
if so, renders and sends one message through the transport.
"""

from abc import ABC, abstractmethod

from foodhub.services.notifications.base import BaseNotificationService, NotificationResult
from foodhub.services.notifications.templates import (
    OrderNotification,
    render_customer_email,
    render_restaurant_email,
    render_restaurant_sms,
)


class NotifyChannel(ABC):
    """One way of telling someone about a new order."""

    def __init__(self, transport: BaseNotificationService, currency: str = "$"):
        self.transport = transport
        self.currency = currency

    @property
    @abstractmethod
    def name(self) -> str:
        pass

    @abstractmethod
    def is_available(self, notification: OrderNotification) -> bool:
        """False when the recipient has no contact point for this channel."""
        pass

    @abstractmethod
    async def send(self, notification: OrderNotification) -> NotificationResult:
        pass


class RestaurantEmailChannel(NotifyChannel):

    @property
    def name(self) -> str:
        return "restaurant_email"

    def is_available(self, notification: OrderNotification) -> bool:
        return bool(notification.restaurant_email)

    async def send(self, notification: OrderNotification) -> NotificationResult:
        subject, html, text = render_restaurant_email(notification, self.currency)
        return await self.transport.send_email(
            to_email=notification.restaurant_email,
            subject=subject,
            body_html=html,
            body_text=text,
        )


class RestaurantSmsChannel(NotifyChannel):

    @property
    def name(self) -> str:
        return "restaurant_sms"

    def is_available(self, notification: OrderNotification) -> bool:
        return bool(notification.restaurant_phone)

    async def send(self, notification: OrderNotification) -> NotificationResult:
        return await self.transport.send_sms(
            notification.restaurant_phone,
            render_restaurant_sms(notification, self.currency),
        )


class CustomerConfirmationEmailChannel(NotifyChannel):

    @property
    def name(self) -> str:
        return "customer_email"

    def is_available(self, notification: OrderNotification) -> bool:
        return bool(notification.customer_email)

    async def send(self, notification: OrderNotification) -> NotificationResult:
        subject, html, text = render_customer_email(notification, self.currency)
        return await self.transport.send_email(
            to_email=notification.customer_email,
            subject=subject,
            body_html=html,
            body_text=text,
        )
