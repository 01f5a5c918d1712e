"""
Order Status Machine

Moves an order between PLACED, PREPARING, DISPATCHED, DELIVERED and
CANCELLED. Cancellation is final and needs a reason; which other moves are
allowed is decided by a ``TransitionPolicy``.

Version: 1.0.0
"""

import logging
from typing import Iterable, Mapping, Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from foodhub.core.exceptions import (
    Internal,
    InvalidStateTransition,
    NotFound,
    OrderingError,
    ValidationError,
)
from foodhub.models import Order, OrderStatus, User
from foodhub.services.access import ensure_restaurant_access, require_caller

logger = logging.getLogger(__name__)


FORWARD_TRANSITIONS = {
    OrderStatus.PLACED: {OrderStatus.PREPARING, OrderStatus.CANCELLED},
    OrderStatus.PREPARING: {OrderStatus.DISPATCHED, OrderStatus.CANCELLED},
    OrderStatus.DISPATCHED: {OrderStatus.DELIVERED, OrderStatus.CANCELLED},
    OrderStatus.DELIVERED: set(),
}


class TransitionPolicy:
    """
    Which status changes are allowed, given the current status.

    The loose policy (no table) allows any move out of a non-cancelled
    status, including setting the same status again and moving backwards.
    Cancellation finality is enforced by the machine itself, not here.
    """

    def __init__(self, allowed: Optional[Mapping[OrderStatus, Iterable[OrderStatus]]] = None):
        self.allowed = (
            {status: frozenset(targets) for status, targets in allowed.items()}
            if allowed is not None else None
        )

    @classmethod
    def loose(cls) -> "TransitionPolicy":
        return cls()

    @classmethod
    def strict(cls) -> "TransitionPolicy":
        """Forward adjacency only; cancellation from any active status."""
        return cls(FORWARD_TRANSITIONS)

    @property
    def is_strict(self) -> bool:
        return self.allowed is not None

    def is_allowed(self, current: OrderStatus, new: OrderStatus) -> bool:
        if self.allowed is None:
            return True
        return new in self.allowed.get(current, frozenset())


class OrderStatusMachine:
    """Applies status updates on behalf of restaurant staff and admins."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        policy: Optional[TransitionPolicy] = None,
    ):
        self.session_factory = session_factory
        self.policy = policy or TransitionPolicy.loose()

    async def update_status(
        self,
        order_id: str,
        caller: Optional[User],
        new_status: OrderStatus,
        cancellation_reason: Optional[str] = None,
    ) -> Order:
        """
        Set the order's status and return the updated order with its items
        and payment record.

        Moving to CANCELLED stores the trimmed reason; any other status
        clears a previously stored reason.

        Raises:
            Unauthorized: No authenticated caller
            NotFound: Unknown order
            Forbidden: Caller neither admin nor staff of the order's restaurant
            InvalidStateTransition: Order already cancelled, or move not allowed
            ValidationError: CANCELLED without a non-blank reason
        """
        user = require_caller(caller)
        reason = (cancellation_reason or "").strip()

        try:
            async with self.session_factory() as session:
                async with session.begin():
                    order = await self._load_for_update(session, order_id)

                    ensure_restaurant_access(
                        user, order.restaurant_id, "You cannot update orders for other restaurants"
                    )
                    current = order.status
                    self._check_transition(current, new_status, reason)

                    result = await session.execute(
                        update(Order)
                        .where(Order.id == order_id, Order.status != OrderStatus.CANCELLED)
                        .values(
                            status=new_status,
                            cancellation_reason=reason if new_status == OrderStatus.CANCELLED else None,
                        )
                        .execution_options(synchronize_session=False)
                    )
                    # Lost a race with a concurrent cancellation
                    if result.rowcount == 0:
                        raise InvalidStateTransition(
                            "This order has already been cancelled and cannot be updated"
                        )

                    order = await self._reload(session, order_id)
        except OrderingError:
            raise
        except Exception as e:
            logger.exception(f"Failed to update status of order {order_id}: {e}")
            raise Internal("Failed to update order status") from e

        logger.info(
            f"Order {order.display_order_number} moved {current.value} -> {new_status.value} by user {user.id}"
        )
        return order

    def _check_transition(self, current: OrderStatus, new_status: OrderStatus, reason: str) -> None:
        if current == OrderStatus.CANCELLED:
            raise InvalidStateTransition("This order has already been cancelled and cannot be updated")

        if new_status == OrderStatus.CANCELLED and not reason:
            raise ValidationError("A cancellation reason is required to cancel an order")

        if not self.policy.is_allowed(current, new_status):
            raise InvalidStateTransition(
                f"Cannot move an order from {current.value} to {new_status.value}"
            )

    async def _load_for_update(self, session: AsyncSession, order_id: str) -> Order:
        result = await session.execute(
            select(Order).where(Order.id == order_id).with_for_update()
        )
        order = result.scalar_one_or_none()
        if order is None:
            raise NotFound("Order not found")
        return order

    async def _reload(self, session: AsyncSession, order_id: str) -> Order:
        result = await session.execute(
            select(Order)
            .where(Order.id == order_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one()
