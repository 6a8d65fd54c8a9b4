"""
PaymentLedger - authoritative record of payment attempts and their outcomes
"""

import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from database_models import Payment, utcnow
from services.errors import DuplicateOrderError, InvalidTransitionError, NotFoundError

logger = logging.getLogger(__name__)

STATUS_PENDING = "pending"
STATUS_COMPLETED = "completed"
STATUS_FAILED = "failed"


class PaymentLedger:
    """
    Repository for Payment rows.

    Records are created pending and leave pending at most once. Both status
    transitions are single conditional UPDATEs keyed on the current status, so
    two concurrent resolutions of the same order cannot both succeed.
    """

    def __init__(self, db: AsyncSession):
        """
        Args:
            db: AsyncSession instance for database operations
        """
        self.db = db

    async def create_pending_payment(
        self,
        user_id: int,
        order_id: str,
        amount: int,
        currency: str,
        plan_type: str,
        plan_duration_days: int,
        allowed_watch_duration: int,
        notes: Optional[str] = None,
    ) -> Payment:
        """
        Persist a pending payment for a freshly created order.

        Raises:
            DuplicateOrderError: a record with order_id already exists
        """
        existing = await self._get(order_id)
        if existing is not None:
            raise DuplicateOrderError(order_id)

        payment = Payment(
            user_id=user_id,
            order_id=order_id,
            amount=amount,
            currency=currency,
            status=STATUS_PENDING,
            plan_type=plan_type,
            plan_duration_days=plan_duration_days,
            allowed_watch_duration=allowed_watch_duration,
            notes=notes,
        )
        # The unique index on order_id settles races the pre-check can't see
        try:
            async with self.db.begin_nested():
                self.db.add(payment)
                await self.db.flush()
        except IntegrityError as e:
            raise DuplicateOrderError(order_id) from e

        await self.db.refresh(payment)
        logger.info(f"Pending payment recorded: order={order_id} user={user_id} plan={plan_type}")
        return payment

    async def mark_completed(
        self,
        order_id: str,
        payment_id: str,
        signature: str,
        expiry_date: datetime,
    ) -> Payment:
        """
        Move a pending payment to completed.

        Raises:
            NotFoundError: no record for order_id
            InvalidTransitionError: the record is no longer pending
        """
        result = await self.db.execute(
            update(Payment)
            .where(Payment.order_id == order_id, Payment.status == STATUS_PENDING)
            .values(
                status=STATUS_COMPLETED,
                payment_id=payment_id,
                signature=signature,
                expiry_date=expiry_date,
                payment_date=utcnow(),
                updated_at=utcnow(),
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            await self._raise_for_transition(order_id, STATUS_COMPLETED)

        payment = await self.find_by_order_id(order_id)
        await self.db.refresh(payment)
        return payment

    async def mark_failed(self, order_id: str, notes: Optional[str] = None) -> None:
        """
        Move a pending payment to failed.

        Raises:
            NotFoundError: no record for order_id
            InvalidTransitionError: the record is no longer pending
        """
        values = {"status": STATUS_FAILED, "updated_at": utcnow()}
        if notes is not None:
            values["notes"] = notes

        result = await self.db.execute(
            update(Payment)
            .where(Payment.order_id == order_id, Payment.status == STATUS_PENDING)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            await self._raise_for_transition(order_id, STATUS_FAILED)

    async def find_by_order_id(self, order_id: str) -> Payment:
        """
        Raises:
            NotFoundError: no record for order_id
        """
        payment = await self._get(order_id)
        if payment is None:
            raise NotFoundError(f"Payment for order {order_id} not found")
        return payment

    async def list_for_user(self, user_id: int, status: Optional[str] = None) -> List[Payment]:
        """Payments for a user, newest first, optionally filtered by status."""
        stmt = select(Payment).where(Payment.user_id == user_id)
        if status is not None:
            stmt = stmt.where(Payment.status == status)
        stmt = stmt.order_by(Payment.created_at.desc(), Payment.id.desc())
        result = await self.db.execute(stmt)
        return list(result.scalars().all())

    async def _get(self, order_id: str) -> Optional[Payment]:
        result = await self.db.execute(select(Payment).where(Payment.order_id == order_id))
        return result.scalar_one_or_none()

    async def _raise_for_transition(self, order_id: str, target_status: str) -> None:
        payment = await self.find_by_order_id(order_id)
        await self.db.refresh(payment)
        raise InvalidTransitionError(order_id, payment.status, target_status)
