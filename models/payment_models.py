"""
Payment request models
"""
from typing import Optional
from pydantic import BaseModel, Field


class CreateOrderRequest(BaseModel):
    user_id: Optional[int] = Field(default=None, alias="userid")
    plan_type: Optional[str] = Field(default=None, alias="planType")

    model_config = {"populate_by_name": True}


class VerifyPaymentRequest(BaseModel):
    user_id: Optional[int] = Field(default=None, alias="userid")
    order_id: Optional[str] = Field(default=None, alias="razorpay_order_id")
    payment_id: Optional[str] = Field(default=None, alias="razorpay_payment_id")
    signature: Optional[str] = Field(default=None, alias="razorpay_signature")
    plan_type: Optional[str] = Field(default=None, alias="planType")
    email: Optional[str] = None

    model_config = {"populate_by_name": True}
