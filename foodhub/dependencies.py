"""
FastAPI dependencies: caller resolution and service wiring.
"""

from typing import Optional

from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from foodhub.database import get_session_factory
from foodhub.models import User
from foodhub.services.notifications import NotificationDispatcher, get_notification_dispatcher
from foodhub.services.orders import (
    OrderQueryService,
    OrderStatusMachine,
    OrderWriter,
    PaymentRecordService,
    build_order_writer,
    build_query_service,
    build_status_machine,
)


async def get_current_user(
    x_user_id: Optional[str] = Header(None, alias="X-User-Id"),
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
) -> Optional[User]:
    """
    The user behind the session id set by the auth gateway.

    Returns None rather than failing, so each operation decides how to
    treat an anonymous caller.
    """
    if not x_user_id:
        return None
    async with session_factory() as session:
        return await session.get(User, x_user_id)


def get_dispatcher() -> NotificationDispatcher:
    return get_notification_dispatcher()


def get_order_writer(
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
) -> OrderWriter:
    return build_order_writer(session_factory, dispatcher=dispatcher)


def get_status_machine(
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
) -> OrderStatusMachine:
    return build_status_machine(session_factory)


def get_query_service(
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
) -> OrderQueryService:
    return build_query_service(session_factory)


def get_payment_records(
    session_factory: async_sessionmaker[AsyncSession] = Depends(get_session_factory),
) -> PaymentRecordService:
    return PaymentRecordService(session_factory)
