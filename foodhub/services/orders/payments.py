"""
Payment record management for restaurants.

Payment records are created by order placement (mobile money only). Staff
confirm the payment out of band and then mark the record COMPLETED, FAILED
or REFUNDED; notes accumulate rather than being overwritten. The record's
status is independent of the order status.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional

from sqlalchemy import and_, or_, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from foodhub.core.exceptions import NotFound, ValidationError
from foodhub.models import PaymentStatus, PaymentTransaction, User
from foodhub.services.access import ensure_restaurant_access, require_caller

logger = logging.getLogger(__name__)

MAX_PAGE_LIMIT = 100


@dataclass
class PaymentPage:
    transactions: List[PaymentTransaction]
    next_cursor: Optional[str] = None


class PaymentRecordService:

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def list_restaurant_transactions(
        self,
        caller: Optional[User],
        restaurant_id: str,
        status: Optional[PaymentStatus] = None,
        limit: int = 50,
        cursor: Optional[str] = None,
    ) -> PaymentPage:
        """
        Newest first. ``cursor`` is the id of the last record of the previous
        page; ``next_cursor`` is None on the last page.
        """
        ensure_restaurant_access(caller, restaurant_id, "You cannot view payments for other restaurants")
        if not 1 <= limit <= MAX_PAGE_LIMIT:
            raise ValidationError(f"limit must be between 1 and {MAX_PAGE_LIMIT}")

        conditions = [PaymentTransaction.restaurant_id == restaurant_id]
        if status is not None:
            conditions.append(PaymentTransaction.status == status)

        async with self.session_factory() as session:
            if cursor:
                anchor = await session.get(PaymentTransaction, cursor)
                if anchor is None or anchor.restaurant_id != restaurant_id:
                    raise ValidationError("Invalid cursor")
                conditions.append(
                    or_(
                        PaymentTransaction.created_at < anchor.created_at,
                        and_(
                            PaymentTransaction.created_at == anchor.created_at,
                            PaymentTransaction.id < anchor.id,
                        ),
                    )
                )

            result = await session.execute(
                select(PaymentTransaction)
                .where(*conditions)
                .order_by(PaymentTransaction.created_at.desc(), PaymentTransaction.id.desc())
                .limit(limit + 1)
            )
            rows = list(result.scalars().all())

        next_cursor = None
        if len(rows) > limit:
            rows = rows[:limit]
            next_cursor = rows[-1].id
        return PaymentPage(transactions=rows, next_cursor=next_cursor)

    async def update_transaction_status(
        self,
        caller: Optional[User],
        transaction_id: str,
        status: PaymentStatus,
        notes: Optional[str] = None,
    ) -> PaymentTransaction:
        user = require_caller(caller)

        async with self.session_factory() as session:
            async with session.begin():
                record = await session.get(PaymentTransaction, transaction_id, with_for_update=True)
                if record is None:
                    raise NotFound("Payment transaction not found")

                ensure_restaurant_access(
                    user, record.restaurant_id, "You cannot update payments for other restaurants"
                )

                record.status = status
                notes = (notes or "").strip()
                if notes:
                    record.notes = f"{record.notes}\n{notes}" if record.notes else notes

        logger.info(f"Payment {transaction_id} marked {status.value} by user {user.id}")
        return record
