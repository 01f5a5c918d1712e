"""
Order Placement

Persists a new order together with its lines and, for mobile money, its
payment record. Every attempt runs in its own transaction: the order row is
inserted with a candidate display number, and if that insert trips the
display-number unique constraint the whole attempt is rolled back and
retried with a fresh number. Nothing from a failed attempt is ever visible.

Restaurant notifications are sent only after the order has committed, and
their outcome never changes the result of placement.

Version: 1.0.0
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Dict, Optional, Sequence, Tuple

from sqlalchemy import insert, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from foodhub.core.exceptions import (
    Internal,
    NotFound,
    OrderingError,
    ResourceExhausted,
    ValidationError,
)
from foodhub.models import (
    Customer,
    MenuItem,
    Order,
    OrderItem,
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
    PaymentTransaction,
    Restaurant,
    User,
)
from foodhub.schemas import CartItem, DeliveryInfo, PaymentInfo
from foodhub.services.access import require_customer
from foodhub.services.notifications import (
    NotificationDispatcher,
    NotificationLine,
    OrderNotification,
    PaymentDetails,
)
from foodhub.services.orders.numbering import (
    DisplayNumber,
    OrderNumberAllocator,
    is_display_number_collision,
)
from foodhub.services.orders.pricing import ClientPricePolicy, PricePolicy

logger = logging.getLogger(__name__)


@dataclass
class OrderConfirmation:
    """What the customer gets back once the order is committed."""
    order_id: str
    display_order_number: str
    created_at: datetime


class OrderWriter:
    """
    Places orders.

    Attributes:
        session_factory: Opens one session per transaction
        allocator: Draws candidate display numbers and bounds the retries
        dispatcher: New-order notifications (optional)
        price_policy: Decides whether submitted prices are accepted
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        allocator: OrderNumberAllocator,
        dispatcher: Optional[NotificationDispatcher] = None,
        price_policy: Optional[PricePolicy] = None,
    ):
        self.session_factory = session_factory
        self.allocator = allocator
        self.dispatcher = dispatcher
        self.price_policy = price_policy or ClientPricePolicy()

    # =========================================================================
    # PUBLIC API
    # =========================================================================

    async def place_order(
        self,
        caller: Optional[User],
        restaurant_id: str,
        delivery: DeliveryInfo,
        items: Sequence[CartItem],
        declared_total: Decimal,
        payment: Optional[PaymentInfo] = None,
    ) -> OrderConfirmation:
        """
        Persist a new PLACED order and notify the restaurant.

        Raises:
            Unauthorized: No authenticated caller
            Forbidden: Caller is not a customer
            NotFound: Restaurant missing or inactive, or an unknown menu item
            ValidationError: Empty cart or rejected prices
            ResourceExhausted: Every display-number attempt collided
            Internal: Unexpected persistence failure
        """
        customer = require_customer(caller)

        if not items:
            raise ValidationError("An order must contain at least one item")

        try:
            restaurant, menu_items = await self._load_references(restaurant_id, items)
            self.price_policy.check(items, menu_items, declared_total)

            order = await self._insert_with_unique_number(
                customer, restaurant, delivery, items, declared_total, payment
            )
        except OrderingError:
            raise
        except Exception as e:
            logger.exception(f"Failed to place order for customer {customer.id}: {e}")
            raise Internal("Failed to place order") from e

        logger.info(
            f"Order {order.display_order_number} placed by customer {customer.id} "
            f"at restaurant {restaurant.id} (total {declared_total})"
        )

        await self._notify(caller, customer, restaurant, order, menu_items, delivery, items, payment)

        return OrderConfirmation(
            order_id=order.id,
            display_order_number=order.display_order_number,
            created_at=order.created_at,
        )

    # =========================================================================
    # READS
    # =========================================================================

    async def _load_references(
        self,
        restaurant_id: str,
        items: Sequence[CartItem],
    ) -> Tuple[Restaurant, Dict[str, MenuItem]]:
        async with self.session_factory() as session:
            restaurant = await session.get(Restaurant, restaurant_id)
            if restaurant is None or not restaurant.is_active:
                raise NotFound("Restaurant not found")

            ids = {item.id for item in items}
            result = await session.execute(select(MenuItem).where(MenuItem.id.in_(ids)))
            menu_items = {m.id: m for m in result.scalars()}

        # Lines may only reference this restaurant's menu
        missing = sorted(
            item_id for item_id in ids
            if item_id not in menu_items or menu_items[item_id].restaurant_id != restaurant.id
        )
        if missing:
            raise NotFound(f"Menu item not found: {', '.join(missing)}")

        return restaurant, menu_items

    # =========================================================================
    # WRITES
    # =========================================================================

    async def _insert_with_unique_number(
        self,
        customer: Customer,
        restaurant: Restaurant,
        delivery: DeliveryInfo,
        items: Sequence[CartItem],
        declared_total: Decimal,
        payment: Optional[PaymentInfo],
    ) -> Order:
        attempts = self.allocator.max_attempts

        for attempt in range(1, attempts + 1):
            candidate = self.allocator.allocate()
            try:
                async with self.session_factory() as session:
                    async with session.begin():
                        order = await self._insert_order(
                            session, candidate, customer, restaurant, delivery, declared_total
                        )
                        await self._insert_items(session, order, items)
                        if payment is not None and payment.is_mobile_money:
                            await self._insert_payment(session, order, payment)
                return order
            except IntegrityError as e:
                if not is_display_number_collision(e):
                    raise
                logger.warning(
                    f"Order number {candidate} already taken "
                    f"(attempt {attempt}/{attempts}), retrying"
                )

        logger.error(f"No free order number after {attempts} attempts")
        raise ResourceExhausted("Could not allocate an order number, please try again")

    async def _insert_order(
        self,
        session: AsyncSession,
        candidate: DisplayNumber,
        customer: Customer,
        restaurant: Restaurant,
        delivery: DeliveryInfo,
        declared_total: Decimal,
    ) -> Order:
        order = Order(
            display_order_number=candidate.display,
            order_number=candidate.number,
            customer_id=customer.id,
            restaurant_id=restaurant.id,
            status=OrderStatus.PLACED,
            total_amount=declared_total,
            delivery_address=delivery.delivery_address,
            customer_notes=delivery.notes,
        )
        session.add(order)
        await session.flush()
        return order

    async def _insert_items(
        self,
        session: AsyncSession,
        order: Order,
        items: Sequence[CartItem],
    ) -> None:
        await session.execute(
            insert(OrderItem),
            [
                {
                    "order_id": order.id,
                    "menu_item_id": item.id,
                    "position": position,
                    "quantity": item.quantity,
                    "price": item.price,
                }
                for position, item in enumerate(items)
            ],
        )

    async def _insert_payment(
        self,
        session: AsyncSession,
        order: Order,
        payment: PaymentInfo,
    ) -> PaymentTransaction:
        record = PaymentTransaction(
            order_id=order.id,
            amount=order.total_amount,
            payment_method=PaymentMethod.MOBILE_MONEY,
            status=PaymentStatus.PENDING,
            transaction_id=payment.transaction_id,
            mobile_number=payment.mobile_number,
            provider_name=payment.provider_name,
            customer_id=order.customer_id,
            restaurant_id=order.restaurant_id,
        )
        session.add(record)
        await session.flush()
        return record

    # =========================================================================
    # NOTIFICATIONS
    # =========================================================================

    async def _notify(
        self,
        caller: User,
        customer: Customer,
        restaurant: Restaurant,
        order: Order,
        menu_items: Dict[str, MenuItem],
        delivery: DeliveryInfo,
        items: Sequence[CartItem],
        payment: Optional[PaymentInfo],
    ) -> None:
        if self.dispatcher is None:
            return

        # The order is committed; a notification problem must not surface
        try:
            notification = OrderNotification(
                order_id=order.id,
                order_number=order.display_order_number,
                order_date=order.created_at,
                customer_name=caller.name or "Customer",
                customer_email=caller.email,
                customer_phone=customer.phone_number,
                customer_notes=delivery.notes,
                restaurant_name=restaurant.name,
                restaurant_email=restaurant.email,
                restaurant_phone=restaurant.phone_number,
                preparation_time=restaurant.preparation_time,
                total_amount=order.total_amount,
                delivery_address=order.delivery_address,
                items=[
                    NotificationLine(
                        name=menu_items[item.id].name,
                        quantity=item.quantity,
                        price=item.price,
                    )
                    for item in items
                ],
                payment=PaymentDetails(
                    method=payment.payment_method,
                    mobile_number=payment.mobile_number,
                    provider_name=payment.provider_name,
                    transaction_id=payment.transaction_id,
                ) if payment is not None else None,
            )
            await self.dispatcher.notify_new_order(notification)
        except Exception as e:
            logger.exception(f"Notifications for order {order.display_order_number} failed: {e}")
