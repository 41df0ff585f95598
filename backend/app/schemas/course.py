from pydantic import BaseModel, Field, field_serializer, model_validator
from typing import Optional
from uuid import UUID

from app.models.course import CourseType, CourseStatus


class CourseCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    slug: str = Field(..., min_length=1, max_length=255, pattern=r'^[a-z0-9]+(?:-[a-z0-9]+)*$')
    description: Optional[str] = None
    type: CourseType = CourseType.RECORDED
    duration: Optional[str] = None
    status: CourseStatus = CourseStatus.PUBLISHED
    price_regular: float = Field(..., ge=0)
    price_offer: Optional[float] = Field(None, ge=0)

    @model_validator(mode='after')
    def validate_prices(self):
        if self.price_offer is not None and self.price_offer > self.price_regular:
            raise ValueError("Offer price must not exceed the regular price")
        return self


class CourseResponse(BaseModel):
    id: UUID
    title: str
    slug: str
    description: Optional[str] = None
    type: str
    duration: Optional[str] = None
    status: str
    price_regular: float
    price_offer: Optional[float] = None
    current_price: float

    @field_serializer('id')
    def serialize_id(self, value: UUID) -> str:
        return str(value)

    @field_serializer('type', 'status')
    def serialize_enum(self, value) -> str:
        return getattr(value, "value", value)

    class Config:
        from_attributes = True
