"""
Order listings and lookups, scoped to what the caller may see:
customers their own orders, restaurant staff their restaurant's orders,
admins everything.
"""

import logging
import math
from dataclasses import dataclass
from datetime import datetime, time, timedelta, timezone
from typing import List, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from foodhub.core.exceptions import Forbidden, NotFound, ValidationError
from foodhub.models import Order, Restaurant, User
from foodhub.schemas import ListParams, OrderFilters, SortOrder
from foodhub.services.access import (
    ensure_admin,
    ensure_restaurant_access,
    is_admin,
    manages_restaurant,
    require_caller,
    require_customer,
)

logger = logging.getLogger(__name__)

SORTABLE_FIELDS = {
    "created_at": Order.created_at,
    "updated_at": Order.updated_at,
    "total_amount": Order.total_amount,
    "status": Order.status,
    "display_order_number": Order.display_order_number,
}


@dataclass
class OrderPage:
    orders: List[Order]
    total: int
    page: int
    page_size: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.page_size) if self.total else 0


def _start_of_day(day) -> datetime:
    return datetime.combine(day, time.min, tzinfo=timezone.utc)


class OrderQueryService:
    """Read side of the order core."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        default_page_size: int = 10,
        max_page_size: int = 100,
    ):
        self.session_factory = session_factory
        self.default_page_size = default_page_size
        self.max_page_size = max_page_size

    async def list_customer_orders(
        self,
        caller: Optional[User],
        params: Optional[ListParams] = None,
        filters: Optional[OrderFilters] = None,
    ) -> OrderPage:
        customer = require_customer(caller, "Only customers can view their order history")
        return await self._list([Order.customer_id == customer.id], params, filters)

    async def list_restaurant_orders(
        self,
        caller: Optional[User],
        restaurant_id: str,
        params: Optional[ListParams] = None,
        filters: Optional[OrderFilters] = None,
    ) -> OrderPage:
        ensure_restaurant_access(caller, restaurant_id, "You cannot view orders for other restaurants")
        return await self._list([Order.restaurant_id == restaurant_id], params, filters)

    async def list_all_orders(
        self,
        caller: Optional[User],
        params: Optional[ListParams] = None,
        filters: Optional[OrderFilters] = None,
    ) -> OrderPage:
        ensure_admin(caller, "Only administrators can view all orders")
        return await self._list([], params, filters, allow_restaurant_name=True)

    async def get_order_by_display_number(self, caller: Optional[User], display_number: str) -> Order:
        """The order behind a customer-facing number such as ``#1234``."""
        user = require_caller(caller)

        async with self.session_factory() as session:
            result = await session.execute(
                select(Order).where(Order.display_order_number == display_number)
            )
            order = result.scalar_one_or_none()

        if order is None:
            raise NotFound("Order not found")

        owns = user.customer is not None and order.customer_id == user.customer.id
        if not (owns or is_admin(user) or manages_restaurant(user, order.restaurant_id)):
            raise Forbidden("You are not authorized to view this order")
        return order

    # =========================================================================
    # SHARED LISTING
    # =========================================================================

    async def _list(
        self,
        scope: list,
        params: Optional[ListParams],
        filters: Optional[OrderFilters],
        allow_restaurant_name: bool = False,
    ) -> OrderPage:
        params = params or ListParams()
        filters = filters or OrderFilters()

        page_size = params.page_size or self.default_page_size
        if page_size > self.max_page_size:
            raise ValidationError(f"page_size cannot exceed {self.max_page_size}")

        sort_column = SORTABLE_FIELDS.get(params.sort_field)
        if sort_column is None:
            raise ValidationError(
                f"Cannot sort by {params.sort_field}; choose one of {', '.join(SORTABLE_FIELDS)}"
            )

        conditions = list(scope)
        if filters.order_number:
            conditions.append(
                Order.display_order_number.icontains(filters.order_number.strip(), autoescape=True)
            )
        if filters.status and filters.status != "ALL":
            conditions.append(Order.status == filters.status)
        if filters.start_date:
            conditions.append(Order.created_at >= _start_of_day(filters.start_date))
        if filters.end_date:
            # end date covers the whole day
            conditions.append(Order.created_at < _start_of_day(filters.end_date + timedelta(days=1)))

        base = select(Order)
        count = select(func.count()).select_from(Order)
        if allow_restaurant_name and filters.restaurant_name:
            conditions.append(
                Restaurant.name.icontains(filters.restaurant_name.strip(), autoescape=True)
            )
            base = base.join(Restaurant, Order.restaurant_id == Restaurant.id)
            count = count.join(Restaurant, Order.restaurant_id == Restaurant.id)

        ordering = sort_column.asc() if params.sort_order == SortOrder.ASC else sort_column.desc()

        async with self.session_factory() as session:
            total = (await session.execute(count.where(*conditions))).scalar_one()
            result = await session.execute(
                base.where(*conditions)
                .order_by(ordering, Order.id)
                .offset((params.page - 1) * page_size)
                .limit(page_size)
            )
            orders = list(result.scalars().all())

        logger.debug(f"Order listing matched {total} orders (page {params.page}, size {page_size})")
        return OrderPage(orders=orders, total=total, page=params.page, page_size=page_size)
