"""
Order Services Factory

Builds the order-core services from settings. Each service receives the
session factory so tests can point it at their own database.

Version: 1.0.0
"""

from functools import lru_cache
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from foodhub.core.config import Settings, get_settings
from foodhub.services.notifications import NotificationDispatcher
from foodhub.services.orders.numbering import (
    DisplayNumber,
    OrderNumberAllocator,
    is_display_number_collision,
)
from foodhub.services.orders.payments import PaymentPage, PaymentRecordService
from foodhub.services.orders.pricing import (
    ClientPricePolicy,
    MenuPricePolicy,
    PricePolicy,
    build_price_policy,
)
from foodhub.services.orders.queries import OrderPage, OrderQueryService
from foodhub.services.orders.status import OrderStatusMachine, TransitionPolicy
from foodhub.services.orders.writer import OrderConfirmation, OrderWriter


@lru_cache()
def get_order_number_allocator() -> OrderNumberAllocator:
    settings = get_settings()
    return OrderNumberAllocator(
        prefix=settings.order_number_prefix,
        low=settings.order_number_min,
        high=settings.order_number_max,
        max_attempts=settings.order_number_max_attempts,
    )


def build_order_writer(
    session_factory: async_sessionmaker[AsyncSession],
    dispatcher: Optional[NotificationDispatcher] = None,
    settings: Optional[Settings] = None,
) -> OrderWriter:
    settings = settings or get_settings()
    return OrderWriter(
        session_factory,
        allocator=get_order_number_allocator(),
        dispatcher=dispatcher,
        price_policy=build_price_policy(settings.price_policy),
    )


def build_status_machine(
    session_factory: async_sessionmaker[AsyncSession],
    settings: Optional[Settings] = None,
) -> OrderStatusMachine:
    settings = settings or get_settings()
    policy = TransitionPolicy.strict() if settings.strict_status_transitions else TransitionPolicy.loose()
    return OrderStatusMachine(session_factory, policy=policy)


def build_query_service(
    session_factory: async_sessionmaker[AsyncSession],
    settings: Optional[Settings] = None,
) -> OrderQueryService:
    settings = settings or get_settings()
    return OrderQueryService(
        session_factory,
        default_page_size=settings.default_page_size,
        max_page_size=settings.max_page_size,
    )


__all__ = [
    "get_order_number_allocator",
    "build_order_writer",
    "build_status_machine",
    "build_query_service",
    "OrderNumberAllocator",
    "DisplayNumber",
    "is_display_number_collision",
    "OrderWriter",
    "OrderConfirmation",
    "OrderStatusMachine",
    "TransitionPolicy",
    "OrderQueryService",
    "OrderPage",
    "PaymentRecordService",
    "PaymentPage",
    "PricePolicy",
    "ClientPricePolicy",
    "MenuPricePolicy",
    "build_price_policy",
]
