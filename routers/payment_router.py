"""
Payment Router - plan orders, payment verification and premium status
"""

import logging
from typing import Optional

from fastapi import APIRouter, Body, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from backend.utils.responses import service_error_response, success_response
from config.settings import settings
from crud.payment import PaymentLedger
from database import get_db
from models.payment_models import CreateOrderRequest, VerifyPaymentRequest
from services.entitlement_service import EntitlementService
from services.errors import InvalidInputError, ServiceError
from services.gateways import RazorpayGateway
from services.notification_service import Notifier

logger = logging.getLogger(__name__)

payment_router = APIRouter(prefix="/api/payment", tags=["payment"])


def get_entitlement_service(db: AsyncSession = Depends(get_db)) -> EntitlementService:
    """Per-request service wired to the gateway, mailer and secret from settings."""
    return EntitlementService(
        db,
        gateway=RazorpayGateway.from_settings(),
        notifier=Notifier(),
        gateway_secret=settings.razorpay_key_secret,
    )


@payment_router.post("/create-order")
async def create_order(
    request: Optional[CreateOrderRequest] = Body(default=None),
    service: EntitlementService = Depends(get_entitlement_service),
):
    """Create a gateway order (or a demo order) for a plan and record it as pending."""
    request = request or CreateOrderRequest()
    try:
        order = await service.request_plan_order(request.user_id, request.plan_type)
    except ServiceError as e:
        return service_error_response(e)
    return success_response(data={"order": order.to_dict()}, message="Order created")


@payment_router.post("/verify-payment")
async def verify_payment(
    request: Optional[VerifyPaymentRequest] = Body(default=None),
    service: EntitlementService = Depends(get_entitlement_service),
):
    """Verify a checkout result and activate the purchased plan."""
    request = request or VerifyPaymentRequest()
    try:
        entitlement = await service.verify_and_activate(
            user_id=request.user_id,
            order_id=request.order_id,
            payment_id=request.payment_id,
            signature=request.signature,
            plan_type=request.plan_type,
            email=request.email,
        )
    except ServiceError as e:
        return service_error_response(e)
    return success_response(
        data={"user": entitlement.to_dict()},
        message="Payment verified and plan activated",
    )


@payment_router.get("/premium-status/{user_id}")
async def premium_status(
    user_id: int,
    service: EntitlementService = Depends(get_entitlement_service),
):
    try:
        entitlement = await service.get_entitlement(user_id)
    except ServiceError as e:
        return service_error_response(e)
    return success_response(data=entitlement.to_dict())


@payment_router.get("/history/{user_id}")
async def payment_history(
    user_id: int,
    status: Optional[str] = None,
    db: AsyncSession = Depends(get_db),
):
    """A user's payment attempts, newest first."""
    if status is not None and status not in ("pending", "completed", "failed"):
        return service_error_response(InvalidInputError("Invalid status filter", field="status"))
    payments = await PaymentLedger(db).list_for_user(user_id, status=status)
    return success_response(data={
        "payments": [
            {
                "order_id": p.order_id,
                "payment_id": p.payment_id,
                "amount": p.amount,
                "currency": p.currency,
                "status": p.status,
                "plan_type": p.plan_type,
                "plan_duration_days": p.plan_duration_days,
                "expiry_date": p.expiry_date.isoformat() if p.expiry_date else None,
                "created_at": p.created_at.isoformat() if p.created_at else None,
            }
            for p in payments
        ],
        "total": len(payments),
    })
