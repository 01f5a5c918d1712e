"""
Notification Message Templates

Renders the new-order alert sent to restaurants (email and SMS) and the
confirmation email sent to customers. Every template works from an
``OrderNotification`` snapshot captured when the order was committed, so
rendering never touches the database.

Version: 1.0.0
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from html import escape
from typing import List, Optional, Tuple

SMS_MAX_LENGTH = 320


@dataclass
class NotificationLine:
    name: str
    quantity: int
    price: Decimal

    @property
    def line_total(self) -> Decimal:
        return self.price * self.quantity


@dataclass
class PaymentDetails:
    method: str
    mobile_number: Optional[str] = None
    provider_name: Optional[str] = None
    transaction_id: Optional[str] = None


@dataclass
class OrderNotification:
    """Everything the new-order messages need, captured at commit time."""
    order_id: str
    order_number: str
    order_date: datetime
    customer_name: str
    restaurant_name: str
    total_amount: Decimal
    delivery_address: str
    items: List[NotificationLine] = field(default_factory=list)
    customer_email: Optional[str] = None
    customer_phone: Optional[str] = None
    customer_notes: Optional[str] = None
    restaurant_email: Optional[str] = None
    restaurant_phone: Optional[str] = None
    preparation_time: Optional[str] = None
    payment: Optional[PaymentDetails] = None

    @property
    def item_count(self) -> int:
        return sum(line.quantity for line in self.items)


def _money(amount: Decimal, currency: str) -> str:
    return f"{currency}{Decimal(amount):.2f}"


def _order_date(n: OrderNotification) -> str:
    return n.order_date.strftime("%Y-%m-%d %H:%M")


# =============================================================================
# RESTAURANT NEW-ORDER ALERT
# =============================================================================

def render_restaurant_email(n: OrderNotification, currency: str = "$") -> Tuple[str, str, str]:
    """
    Build the restaurant's new-order email.

    Returns:
        (subject, html body, plain-text body)
    """
    subject = f"New Order {n.order_number} - {n.restaurant_name}"

    rows = "".join(
        "<tr>"
        f"<td>{escape(line.name)}</td>"
        f"<td style=\"text-align:center\">{line.quantity}</td>"
        f"<td style=\"text-align:right\">{_money(line.price, currency)}</td>"
        f"<td style=\"text-align:right\">{_money(line.line_total, currency)}</td>"
        "</tr>"
        for line in n.items
    )

    contact = [f"<p><strong>Name:</strong> {escape(n.customer_name)}</p>"]
    if n.customer_email:
        contact.append(f"<p><strong>Email:</strong> {escape(n.customer_email)}</p>")
    if n.customer_phone:
        contact.append(f"<p><strong>Phone:</strong> {escape(n.customer_phone)}</p>")
    contact.append(f"<p><strong>Delivery Address:</strong> {escape(n.delivery_address)}</p>")
    if n.customer_notes:
        contact.append(f"<p><strong>Special Instructions:</strong> {escape(n.customer_notes)}</p>")

    payment_html = ""
    if n.payment:
        payment_lines = [f"<p><strong>Payment Method:</strong> {escape(n.payment.method)}</p>"]
        if n.payment.mobile_number:
            payment_lines.append(f"<p><strong>Mobile Number:</strong> {escape(n.payment.mobile_number)}</p>")
        if n.payment.provider_name:
            payment_lines.append(f"<p><strong>Operator:</strong> {escape(n.payment.provider_name)}</p>")
        if n.payment.transaction_id:
            payment_lines.append(f"<p><strong>Reference Number:</strong> {escape(n.payment.transaction_id)}</p>")
        payment_html = "<h3>Payment Information</h3>" + "".join(payment_lines)

    html = f"""
    <div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
        <h1 style="color: #f97316;">New Order Alert!</h1>
        <p><strong>Order Number:</strong> {escape(n.order_number)}</p>
        <p><strong>Restaurant:</strong> {escape(n.restaurant_name)}</p>
        <p><strong>Order Date:</strong> {_order_date(n)}</p>
        <h3>Customer Information</h3>
        {"".join(contact)}
        {payment_html}
        <h3>Order Items</h3>
        <table style="width: 100%; border-collapse: collapse;">
            <tr><th>Item</th><th>Qty</th><th>Price</th><th>Total</th></tr>
            {rows}
        </table>
        <p style="text-align: right; font-weight: bold;">Total Amount: {_money(n.total_amount, currency)}</p>
        <p>Please log in to your restaurant dashboard to confirm this order and update its status.</p>
    </div>
    """

    text_lines = [
        f"New order {n.order_number} for {n.restaurant_name}",
        f"Order date: {_order_date(n)}",
        "",
        f"Customer: {n.customer_name}",
    ]
    if n.customer_email:
        text_lines.append(f"Email: {n.customer_email}")
    if n.customer_phone:
        text_lines.append(f"Phone: {n.customer_phone}")
    text_lines.append(f"Delivery address: {n.delivery_address}")
    if n.customer_notes:
        text_lines.append(f"Special instructions: {n.customer_notes}")
    if n.payment:
        text_lines.append(f"Payment method: {n.payment.method}")
        if n.payment.mobile_number:
            text_lines.append(f"Mobile number: {n.payment.mobile_number}")
        if n.payment.provider_name:
            text_lines.append(f"Operator: {n.payment.provider_name}")
        if n.payment.transaction_id:
            text_lines.append(f"Reference number: {n.payment.transaction_id}")
    text_lines.append("")
    for line in n.items:
        text_lines.append(
            f"{line.quantity} x {line.name} @ {_money(line.price, currency)}"
            f" = {_money(line.line_total, currency)}"
        )
    text_lines.append(f"Total: {_money(n.total_amount, currency)}")

    return subject, html, "\n".join(text_lines)


def render_restaurant_sms(n: OrderNotification, currency: str = "$") -> str:
    message = (
        f"New order {n.order_number} for {n.restaurant_name}: "
        f"{n.item_count} item(s), total {_money(n.total_amount, currency)}. "
        f"Customer: {n.customer_name}. Deliver to: {n.delivery_address}"
    )
    if len(message) > SMS_MAX_LENGTH:
        message = message[:SMS_MAX_LENGTH - 3] + "..."
    return message


# =============================================================================
# CUSTOMER CONFIRMATION
# =============================================================================

def render_customer_email(n: OrderNotification, currency: str = "$") -> Tuple[str, str, str]:
    subject = f"Order Confirmed {n.order_number} - {n.restaurant_name}"

    eta = f"<p>Estimated preparation time: {escape(n.preparation_time)}</p>" if n.preparation_time else ""
    phone = (
        f"<p>Questions about your order? Call {escape(n.restaurant_name)} at {escape(n.restaurant_phone)}.</p>"
        if n.restaurant_phone else ""
    )
    rows = "".join(
        f"<li>{line.quantity} x {escape(line.name)} - {_money(line.line_total, currency)}</li>"
        for line in n.items
    )

    html = f"""
    <div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
        <h1 style="color: #f97316;">Order Confirmed!</h1>
        <p>Hi {escape(n.customer_name)},</p>
        <p>Your order <strong>{escape(n.order_number)}</strong> from {escape(n.restaurant_name)} has been received.</p>
        <ul>{rows}</ul>
        <div style="background: #f8f9fa; padding: 15px; border-radius: 8px; margin: 20px 0;">
            <p><strong>Delivery to: {escape(n.delivery_address)}</strong></p>
            <p>Total: <strong>{_money(n.total_amount, currency)}</strong></p>
        </div>
        {eta}
        {phone}
        <p>Thank you for ordering with us!</p>
    </div>
    """

    text_lines = [
        f"Hi {n.customer_name}! Your order {n.order_number} from {n.restaurant_name} has been received.",
    ]
    for line in n.items:
        text_lines.append(f"{line.quantity} x {line.name} - {_money(line.line_total, currency)}")
    text_lines.append(f"Delivery to: {n.delivery_address}")
    text_lines.append(f"Total: {_money(n.total_amount, currency)}")
    if n.preparation_time:
        text_lines.append(f"Estimated preparation time: {n.preparation_time}")
    if n.restaurant_phone:
        text_lines.append(f"Restaurant phone: {n.restaurant_phone}")

    return subject, html, "\n".join(text_lines)
