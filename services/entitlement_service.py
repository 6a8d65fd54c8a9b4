"""
Entitlement Service - turns verified payments into time-bounded plan entitlements
"""

import hashlib
import hmac
import logging
import math
import time
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from config.settings import PLAN_FREE, settings
from crud.payment import STATUS_COMPLETED, STATUS_PENDING, PaymentLedger
from crud.user import UserRepository
from database_models import User, utcnow
from services.errors import (
    ForbiddenError,
    InvalidInputError,
    InvalidTransitionError,
    NotFoundError,
    ServiceError,
    UpstreamError,
    VerificationFailedError,
)
from services.gateways import RazorpayGateway
from services.notification_service import Notifier
from services.plan_catalog import DEFAULT_PLAN_CATALOG, PlanCatalog

logger = logging.getLogger(__name__)

DEMO_MARKER = "demo"
DEMO_ORDER_PREFIX = f"order_{DEMO_MARKER}_"


def is_demo_identifier(value: Optional[str]) -> bool:
    return bool(value) and DEMO_MARKER in value


def make_demo_order_id() -> str:
    return f"{DEMO_ORDER_PREFIX}{int(time.time() * 1000)}_{uuid.uuid4().hex[:8]}"


def compute_signature(secret: str, order_id: str, payment_id: str) -> str:
    """Hex HMAC-SHA256 of "order_id|payment_id", the gateway's checkout signature."""
    body = f"{order_id}|{payment_id}".encode("utf-8")
    return hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()


@dataclass(frozen=True)
class OrderDescriptor:
    order_id: str
    amount: int
    currency: str
    plan_type: str
    description: str
    demo: bool

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.order_id,
            "amount": self.amount,
            "currency": self.currency,
            "plan_type": self.plan_type,
            "description": self.description,
            "demo": self.demo,
        }


@dataclass(frozen=True)
class EntitlementSnapshot:
    """
    Plan state of a user as of `evaluated_at`.

    `plan` is what storage holds; `effective_plan` is free once the stored plan
    has expired, since expiry is only ever evaluated on read.
    """

    user_id: int
    plan: str
    effective_plan: str
    plan_expiry: Optional[datetime]
    allowed_watch_duration: int
    is_active: bool
    days_remaining: int
    evaluated_at: datetime

    @property
    def unlimited_watch(self) -> bool:
        return self.is_active and self.allowed_watch_duration == 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "user_id": self.user_id,
            "plan": self.plan,
            "effective_plan": self.effective_plan,
            "plan_expiry": self.plan_expiry.isoformat() if self.plan_expiry else None,
            "allowed_watch_duration": self.allowed_watch_duration,
            "is_active": self.is_active,
            "days_remaining": self.days_remaining,
        }


class EntitlementService:
    """
    Service class for plan ordering, payment verification and entitlement reads.

    Collaborators are injected. With no gateway every order is a demo order;
    with no gateway secret only demo payments can be verified.
    """

    def __init__(
        self,
        db: AsyncSession,
        catalog: Optional[PlanCatalog] = None,
        gateway: Optional[RazorpayGateway] = None,
        notifier: Optional[Notifier] = None,
        gateway_secret: Optional[str] = None,
        currency: Optional[str] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """
        Args:
            db: AsyncSession instance for database operations
            catalog: Plan table; defaults to DEFAULT_PLAN_CATALOG
            gateway: Order-creation collaborator, or None for demo mode
            notifier: Receipt sender, or None to skip receipts
            gateway_secret: Shared secret for checkout signature verification
            currency: Order currency; defaults to settings.payment_currency
            clock: Returns naive UTC "now"; injectable for tests
        """
        self.db = db
        self.catalog = catalog or DEFAULT_PLAN_CATALOG
        self.gateway = gateway
        self.notifier = notifier
        self.gateway_secret = gateway_secret
        self.currency = currency or settings.payment_currency
        self.clock = clock or utcnow
        self.users = UserRepository(db)
        self.ledger = PaymentLedger(db)

    async def request_plan_order(self, user_id: int, plan_type: Optional[str]) -> OrderDescriptor:
        """
        Create a gateway order for a plan and record it as a pending payment.

        A gateway failure is not an error: the order degrades to a locally
        generated demo order that verify_and_activate recognizes.

        Raises:
            InvalidInputError: user_id missing
            NotFoundError: user does not exist
        """
        if not user_id:
            raise InvalidInputError("Invalid user ID", field="user_id")
        user = await self.users.get_user_by_id(user_id)
        if user is None:
            raise NotFoundError("User not found")

        plan = self.catalog.resolve(plan_type)
        receipt = f"premium_{user_id}_{int(time.time() * 1000)}"

        order = None
        if self.gateway is not None:
            try:
                order = await self.gateway.create_order(
                    amount=plan.amount,
                    currency=self.currency,
                    receipt=receipt,
                    description=plan.description,
                )
            except UpstreamError as e:
                logger.warning(f"Payment gateway error, using demo mode: {e}")

        demo = order is None
        if demo:
            order = {"id": make_demo_order_id(), "amount": plan.amount, "currency": self.currency}

        await self.ledger.create_pending_payment(
            user_id=user_id,
            order_id=order["id"],
            amount=plan.amount,
            currency=order.get("currency") or self.currency,
            plan_type=plan.key,
            plan_duration_days=plan.duration_days,
            allowed_watch_duration=plan.allowed_watch_duration,
            notes=plan.description,
        )

        return OrderDescriptor(
            order_id=order["id"],
            amount=order.get("amount", plan.amount),
            currency=order.get("currency") or self.currency,
            plan_type=plan.key,
            description=plan.description,
            demo=demo,
        )

    def is_payment_valid(self, order_id: str, payment_id: str, signature: str) -> bool:
        """
        Check a checkout result, in priority order: demo identifiers, then the
        HMAC signature when a secret is configured.

        Raises:
            VerificationFailedError: neither path is available
        """
        if is_demo_identifier(order_id) and is_demo_identifier(payment_id):
            logger.info(f"Processing demo payment: order={order_id} payment={payment_id}")
            return True

        if not self.gateway_secret:
            logger.warning("No gateway secret available for real payment verification")
            raise VerificationFailedError("Payment cannot be verified: no verification method configured")

        expected = compute_signature(self.gateway_secret, order_id, payment_id)
        return hmac.compare_digest(expected.encode("utf-8"), str(signature).encode("utf-8"))

    async def verify_and_activate(
        self,
        user_id: int,
        order_id: str,
        payment_id: str,
        signature: str,
        plan_type: Optional[str] = None,
        email: Optional[str] = None,
    ) -> EntitlementSnapshot:
        """
        Verify a checkout result and activate the plan it paid for.

        The user's plan fields are written first, in one statement. The ledger
        update that follows is best-effort: access has already been granted,
        so a failure there is logged for reconciliation rather than raised.

        plan_type only applies to orders with no ledger record (demo orders);
        a recorded order always activates the plan stored with it.

        Raises:
            InvalidInputError: any identifier missing
            InvalidTransitionError: the order was already completed or failed
            ForbiddenError: the order belongs to another user
            VerificationFailedError: signature mismatch or no way to verify
            NotFoundError: user does not exist
        """
        missing = [
            name
            for name, value in (
                ("user_id", user_id),
                ("order_id", order_id),
                ("payment_id", payment_id),
                ("signature", signature),
            )
            if not value
        ]
        if missing:
            raise InvalidInputError(f"Missing payment details: {', '.join(missing)}")

        try:
            payment = await self.ledger.find_by_order_id(order_id)
        except NotFoundError:
            payment = None

        if payment is not None:
            if payment.status != STATUS_PENDING:
                raise InvalidTransitionError(order_id, payment.status, STATUS_COMPLETED)
            if payment.user_id != user_id:
                raise ForbiddenError("Order belongs to a different user")

        if not self.is_payment_valid(order_id, payment_id, signature):
            logger.warning(f"Payment verification failed: order={order_id} payment={payment_id}")
            if payment is not None:
                await self.ledger.mark_failed(order_id, notes="signature mismatch")
            raise VerificationFailedError("Payment verification failed")

        # A recorded order activates the plan it was priced for, whatever the client claims
        if payment is not None:
            if plan_type and self.catalog.resolve(plan_type).key != payment.plan_type:
                logger.warning(
                    f"Ignoring requested plan {plan_type} for order {order_id} recorded as {payment.plan_type}"
                )
            plan = self.catalog.resolve(payment.plan_type)
        else:
            plan = self.catalog.resolve(plan_type)
        now = self.clock()
        plan_expiry = now + timedelta(days=plan.duration_days)

        user = await self.users.set_plan(
            user_id,
            plan=plan.key,
            plan_expiry=plan_expiry,
            allowed_watch_duration=plan.allowed_watch_duration,
        )
        if user is None:
            raise NotFoundError("User not found")

        try:
            async with self.db.begin_nested():
                await self.ledger.mark_completed(order_id, payment_id, signature, plan_expiry)
        except (ServiceError, SQLAlchemyError) as e:
            logger.warning(f"Failed to update payment record for order {order_id}: {e}")

        logger.info(f"Plan activated: user={user_id} plan={plan.key} expires={plan_expiry.isoformat()}")

        if self.notifier is not None:
            await self.notifier.send(
                email or user.email,
                f"YourTube - Payment Receipt ({plan.key})",
                self._receipt_html(user, plan.key, plan.amount, order_id, payment_id, plan_expiry),
            )

        return self._snapshot(user, now)

    async def get_entitlement(self, user_id: int) -> EntitlementSnapshot:
        """
        Read a user's entitlement, evaluating expiry against the clock.

        Raises:
            InvalidInputError: user_id missing
            NotFoundError: user does not exist
        """
        if not user_id:
            raise InvalidInputError("Invalid user ID", field="user_id")
        user = await self.users.get_user_by_id(user_id)
        if user is None:
            raise NotFoundError("User not found")
        return self._snapshot(user, self.clock())

    def _snapshot(self, user: User, now: datetime) -> EntitlementSnapshot:
        is_active = (
            user.plan != PLAN_FREE
            and user.plan_expiry is not None
            and user.plan_expiry > now
        )
        if is_active:
            days_remaining = math.ceil((user.plan_expiry - now).total_seconds() / 86400)
            watch = user.allowed_watch_duration
        else:
            days_remaining = 0
            watch = settings.free_watch_duration_seconds

        return EntitlementSnapshot(
            user_id=user.id,
            plan=user.plan,
            effective_plan=user.plan if is_active else PLAN_FREE,
            plan_expiry=user.plan_expiry,
            allowed_watch_duration=watch,
            is_active=is_active,
            days_remaining=days_remaining,
            evaluated_at=now,
        )

    @staticmethod
    def _receipt_html(
        user: User,
        plan_key: str,
        amount: int,
        order_id: str,
        payment_id: str,
        plan_expiry: datetime,
    ) -> str:
        return (
            f"<h2>Payment Receipt - {plan_key.upper()}</h2>"
            f"<p>Hi {user.name or user.email},</p>"
            f"<p>Thank you for upgrading to the <strong>{plan_key}</strong> plan.</p>"
            f"<p>Amount: {amount / 100:.2f}</p>"
            f"<p>Order ID: {order_id}</p>"
            f"<p>Payment ID: {payment_id}</p>"
            f"<p>Plan valid until: {plan_expiry.isoformat()}</p>"
        )
