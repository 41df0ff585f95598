"""
Payment Schemas - bKash make-payment wire format, callback and admin corrections
"""

from pydantic import BaseModel, Field, field_serializer
from typing import Optional, Any, Dict
from datetime import datetime
from uuid import UUID

from app.models.payment import PaymentStatus, PaymentChannel


class MakePaymentRequest(BaseModel):
    """
    Body of POST /bkash/make-payment. Fields are optional at the schema level
    so that missing values are reported with bKash-style ``statusCode`` 2065
    instead of a 422.
    """
    user_id: Optional[str] = None
    course_id: Optional[str] = None
    workshop_id: Optional[str] = None
    amount: Optional[float] = None
    email: Optional[str] = None
    name: Optional[str] = None
    phone: Optional[str] = None
    coupon_id: Optional[str] = None
    coupon_code: Optional[str] = None
    discount_amount: Optional[float] = None


class BkashCallbackRequest(BaseModel):
    paymentID: str
    status: str = Field(..., description="success, failure or cancel")


class PaymentResponse(BaseModel):
    id: UUID
    purpose: str
    course_id: Optional[str] = None
    workshop_id: Optional[str] = None
    amount: float
    currency: str
    payment_channel: str
    status: str
    is_verified: bool
    transaction_id: str
    bkash_payment_id: Optional[str] = None
    trx_id: Optional[str] = None
    coupon_code: Optional[str] = None
    discount_amount: float = 0
    paid_at: Optional[datetime] = None
    created_at: datetime

    @field_serializer('id')
    def serialize_id(self, value: UUID) -> str:
        return str(value)

    @field_serializer('purpose', 'payment_channel', 'status')
    def serialize_enum(self, value) -> str:
        return getattr(value, "value", value)

    class Config:
        from_attributes = True


class AdminPaymentResponse(PaymentResponse):
    user_id: str
    bkash_url: Optional[str] = None
    gateway_response: Optional[Dict[str, Any]] = None
    updated_at: Optional[datetime] = None


class PaymentStatusUpdate(BaseModel):
    status: PaymentStatus


class PaymentDetailsUpdate(BaseModel):
    """Admin correction of a payment record; omitted fields are left untouched"""
    transaction_id: Optional[str] = Field(None, max_length=64)
    bkash_payment_id: Optional[str] = Field(None, max_length=128)
    trx_id: Optional[str] = Field(None, max_length=64)
    payment_channel: Optional[PaymentChannel] = None
    amount: Optional[float] = Field(None, ge=0)
    currency: Optional[str] = Field(None, max_length=10)
    paid_at: Optional[datetime] = None
    is_verified: Optional[bool] = None
    status: Optional[PaymentStatus] = None


class PaymentListResponse(BaseModel):
    payments: list[AdminPaymentResponse]
    total: int
    page: int
    page_size: int
