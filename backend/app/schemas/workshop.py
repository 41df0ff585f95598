from pydantic import BaseModel, Field, field_serializer, model_validator
from typing import Optional
from datetime import datetime
from uuid import UUID

from app.models.workshop import WorkshopCategory, WorkshopStatus


class WorkshopCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    slug: str = Field(..., min_length=1, max_length=255, pattern=r'^[a-z0-9]+(?:-[a-z0-9]+)*$')
    description: Optional[str] = None
    speaker_name: Optional[str] = None
    group_link: Optional[str] = None
    category: WorkshopCategory = WorkshopCategory.OTHER
    status: WorkshopStatus = WorkshopStatus.PUBLISHED
    price_regular: float = Field(..., ge=0)
    price_offer: Optional[float] = Field(None, ge=0)
    price_earlybirds: Optional[float] = Field(None, ge=0)
    earlybirds_count: Optional[int] = Field(None, ge=0)
    capacity: Optional[int] = Field(None, ge=0)
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None

    @model_validator(mode='after')
    def validate_prices(self):
        if self.price_offer is not None and self.price_offer > self.price_regular:
            raise ValueError("Offer price must not exceed the regular price")
        if self.start_time and self.end_time and self.end_time < self.start_time:
            raise ValueError("Workshop cannot end before it starts")
        return self


class WorkshopResponse(BaseModel):
    id: UUID
    title: str
    slug: str
    description: Optional[str] = None
    speaker_name: Optional[str] = None
    category: str
    status: str
    price_regular: float
    price_offer: Optional[float] = None
    price_earlybirds: Optional[float] = None
    earlybirds_count: Optional[int] = None
    capacity: Optional[int] = None
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None

    @field_serializer('id')
    def serialize_id(self, value: UUID) -> str:
        return str(value)

    @field_serializer('category', 'status')
    def serialize_enum(self, value) -> str:
        return getattr(value, "value", value)

    class Config:
        from_attributes = True


class PriceDisplay(BaseModel):
    main_price: str
    original_price: Optional[str] = None
    badge: Optional[str] = None
    description: Optional[str] = None


class WorkshopPricingResponse(BaseModel):
    workshop_id: str
    current_price: float
    original_price: float
    is_earlybird: bool
    earlybird_spots_left: int
    total_enrollments: int
    is_free: bool
    # False when pricing could not be computed and the regular price is shown instead
    resolved: bool = True
    display: PriceDisplay


class EnrollmentSignup(BaseModel):
    """Enrollment form for anonymous visitors. Academic fields are checked per workshop category."""
    email: str = Field(..., max_length=255)
    password: str = Field(..., min_length=6)
    confirm_password: str
    name: Optional[str] = Field(None, max_length=255)
    phone: str = Field(..., min_length=6, max_length=20)
    university: Optional[str] = Field(None, max_length=255)
    department: Optional[str] = Field(None, max_length=255)
    academic_year: Optional[str] = Field(None, max_length=50)
    academic_session: Optional[str] = Field(None, max_length=50)


class EnrollmentLogin(BaseModel):
    email: str
    password: str


class EnrollmentGateResponse(BaseModel):
    state: str
    next_step: str
    signup_mode: str
    workshop_slug: str
    required_fields: list[str] = []
    access_token: Optional[str] = None
    message: Optional[str] = None


class CheckoutRequest(BaseModel):
    coupon_code: Optional[str] = Field(None, max_length=50)
    phone: Optional[str] = Field(None, max_length=20)


class CheckoutResponse(BaseModel):
    """``redirect`` carries the bKash URL; ``enrolled`` means a free seat was written directly"""
    status: str
    redirect_url: Optional[str] = None
    amount: float = 0
    discount_amount: float = 0
    message: Optional[str] = None
