"""
Coupon Schemas - Request/Response models for checkout coupons
"""

from pydantic import BaseModel, Field, field_validator, model_validator
from typing import Optional
from datetime import datetime

from app.models.coupon import DiscountType, CouponScope


class CouponCreate(BaseModel):
    """Schema for creating a coupon (Admin only)"""
    code: str = Field(..., min_length=3, max_length=50, description="Unique coupon code")
    description: Optional[str] = Field(None, max_length=255)
    discount_type: DiscountType
    discount_value: float = Field(..., gt=0)
    applies_to: CouponScope = CouponScope.ANY
    course_id: Optional[str] = None
    workshop_id: Optional[str] = None
    min_order_amount: Optional[float] = Field(None, ge=0)
    valid_until: Optional[datetime] = None

    @field_validator('code')
    @classmethod
    def uppercase_code(cls, v):
        return v.upper().strip()

    @model_validator(mode='after')
    def validate_discount(self):
        if self.discount_type == DiscountType.PERCENTAGE and self.discount_value > 100:
            raise ValueError("Percentage discount cannot exceed 100")
        return self


class CouponValidateRequest(BaseModel):
    code: str = Field(..., min_length=1, max_length=50)
    workshop_id: Optional[str] = None
    course_id: Optional[str] = None


class CouponValidateResponse(BaseModel):
    valid: bool
    code: str
    message: str
    original_amount: float = 0
    discount_amount: float = 0
    final_amount: float = 0


class CouponResponse(BaseModel):
    id: str
    code: str
    description: Optional[str] = None
    discount_type: DiscountType
    discount_value: float
    applies_to: CouponScope
    course_id: Optional[str] = None
    workshop_id: Optional[str] = None
    min_order_amount: Optional[float] = None
    is_active: bool
    valid_until: Optional[datetime] = None

    class Config:
        from_attributes = True
