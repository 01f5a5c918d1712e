"""Notification channels, dispatcher fan-out and message templates."""

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from foodhub.core.config import Settings
from foodhub.services.notifications import (
    NotificationDispatcher,
    NotificationLine,
    OrderNotification,
    PaymentDetails,
    build_channels,
)
from foodhub.services.notifications.base import NotificationResult
from foodhub.services.notifications.channels import (
    CustomerConfirmationEmailChannel,
    NotifyChannel,
    RestaurantEmailChannel,
    RestaurantSmsChannel,
)
from foodhub.services.notifications.mock import MockNotificationService
from foodhub.services.notifications.templates import (
    SMS_MAX_LENGTH,
    render_customer_email,
    render_restaurant_email,
    render_restaurant_sms,
)


@pytest.fixture
def notification():
    return OrderNotification(
        order_id="o1",
        order_number="#4821",
        order_date=datetime(2024, 6, 17, 12, 30, tzinfo=timezone.utc),
        customer_name="Amani",
        customer_email="amani@example.test",
        customer_phone="+243820000002",
        customer_notes="Ring twice",
        restaurant_name="Chez Mama",
        restaurant_email="kitchen@chezmama.test",
        restaurant_phone="+243810000001",
        preparation_time="30-45 min",
        total_amount=Decimal("13.50"),
        delivery_address="12 Avenue Kasa-Vubu",
        items=[
            NotificationLine(name="Chicken Moambe", quantity=2, price=Decimal("5.00")),
            NotificationLine(name="Pondu", quantity=1, price=Decimal("3.50")),
        ],
    )


class BrokenChannel(NotifyChannel):

    @property
    def name(self):
        return "broken"

    def is_available(self, notification):
        return True

    async def send(self, notification):
        raise RuntimeError("boom")


class TestDispatcher:

    async def test_all_channels_sent(self, notification):
        transport = MockNotificationService()
        dispatcher = NotificationDispatcher(build_channels(transport, Settings()))

        outcomes = await dispatcher.notify_new_order(notification)

        assert {o.channel: o.status for o in outcomes} == {
            "restaurant_email": "sent",
            "restaurant_sms": "sent",
            "customer_email": "sent",
        }
        assert len(transport.sent_to("kitchen@chezmama.test")) == 1
        assert len(transport.sent_to("+243810000001")) == 1
        assert len(transport.sent_to("amani@example.test")) == 1

    async def test_missing_contacts_are_skipped(self, notification):
        notification.restaurant_email = None
        notification.restaurant_phone = None
        transport = MockNotificationService()
        dispatcher = NotificationDispatcher(build_channels(transport, Settings()))

        outcomes = await dispatcher.notify_new_order(notification)

        statuses = {o.channel: o.status for o in outcomes}
        assert statuses["restaurant_email"] == "skipped"
        assert statuses["restaurant_sms"] == "skipped"
        assert statuses["customer_email"] == "sent"

    async def test_one_failure_does_not_suppress_others(self, notification):
        transport = MockNotificationService()
        dispatcher = NotificationDispatcher([BrokenChannel(transport), RestaurantSmsChannel(transport)])

        outcomes = await dispatcher.notify_new_order(notification)

        assert outcomes[0].status == "failed"
        assert outcomes[0].error_message == "boom"
        assert outcomes[1].delivered
        assert len(transport.sent_to("+243810000001")) == 1

    async def test_transport_failures_are_reported_not_raised(self, notification):
        transport = MockNotificationService(failure_rate=1.0)
        dispatcher = NotificationDispatcher(build_channels(transport, Settings()))

        outcomes = await dispatcher.notify_new_order(notification)

        assert all(o.status == "failed" for o in outcomes)
        assert transport.outbox == []

    async def test_no_channels(self, notification):
        assert await NotificationDispatcher([]).notify_new_order(notification) == []

    def test_channel_selection_follows_settings(self):
        transport = MockNotificationService()
        names = [c.name for c in build_channels(
            transport,
            Settings(sms_notifications_enabled=False, customer_confirmation_enabled=False),
        )]
        assert names == ["restaurant_email"]

        channels = build_channels(transport, Settings())
        assert [type(c) for c in channels] == [
            RestaurantEmailChannel,
            RestaurantSmsChannel,
            CustomerConfirmationEmailChannel,
        ]


class TestTemplates:

    def test_restaurant_email(self, notification):
        subject, html, text = render_restaurant_email(notification)

        assert "#4821" in subject
        assert "Chez Mama" in subject
        for fragment in ("Amani", "amani@example.test", "+243820000002", "12 Avenue Kasa-Vubu",
                         "Ring twice", "Chicken Moambe", "$10.00", "$3.50", "$13.50", "2024-06-17 12:30"):
            assert fragment in html
            assert fragment in text

    def test_restaurant_email_payment_details(self, notification):
        notification.payment = PaymentDetails(
            method="mobile_money", mobile_number="0812345678", provider_name="M-Pesa", transaction_id="MP240617"
        )
        _, html, text = render_restaurant_email(notification)
        for fragment in ("mobile_money", "0812345678", "M-Pesa", "MP240617"):
            assert fragment in html
            assert fragment in text

    def test_user_text_is_escaped_in_html(self, notification):
        notification.customer_notes = "<script>alert(1)</script>"
        _, html, text = render_restaurant_email(notification)
        assert "<script>" not in html
        assert "&lt;script&gt;" in html
        assert "<script>" in text

    def test_sms(self, notification):
        message = render_restaurant_sms(notification, currency="FC ")
        assert "#4821" in message
        assert "3 item(s)" in message
        assert "FC 13.50" in message

        notification.delivery_address = "x" * 500
        assert len(render_restaurant_sms(notification)) == SMS_MAX_LENGTH

    def test_customer_email(self, notification):
        subject, html, text = render_customer_email(notification)
        assert "#4821" in subject
        assert "30-45 min" in html
        assert "+243810000001" in text
        assert "$13.50" in text


class TestMockTransport:

    async def test_records_messages(self):
        transport = MockNotificationService()
        result = await transport.send_email("a@b.test", "Hi", "<p>Hi</p>", "Hi")

        assert isinstance(result, NotificationResult)
        assert result.success
        assert result.message_id.startswith("email_mock_")
        assert transport.outbox[0].subject == "Hi"
        assert await transport.health_check()
