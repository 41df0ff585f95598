from pydantic import BaseModel, EmailStr, Field, field_serializer
from typing import Optional
from datetime import datetime
from uuid import UUID


class JobResponse(BaseModel):
    id: UUID
    title: str
    company: str
    location: Optional[str] = None
    employment_type: Optional[str] = None
    description: Optional[str] = None
    deadline: Optional[datetime] = None

    @field_serializer('id')
    def serialize_id(self, value: UUID) -> str:
        return str(value)

    class Config:
        from_attributes = True


class JobApplicationCreate(BaseModel):
    full_name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    phone: str = Field(..., min_length=6, max_length=20)
    resume_url: Optional[str] = Field(None, max_length=1000)
    portfolio_url: Optional[str] = Field(None, max_length=1000)
    cover_letter: Optional[str] = None


class CampusAmbassadorCreate(BaseModel):
    full_name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    phone: str = Field(..., min_length=6, max_length=20)
    university_name: str = Field(..., min_length=1, max_length=255)
    department: Optional[str] = Field(None, max_length=255)
    academic_year: Optional[str] = Field(None, max_length=50)
    motivation: Optional[str] = None


class ApplicationResult(BaseModel):
    success: bool
    error: Optional[str] = None
