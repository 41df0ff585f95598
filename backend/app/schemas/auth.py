from pydantic import BaseModel, EmailStr, Field, field_serializer
from typing import Optional
from datetime import datetime
from uuid import UUID


class UserSignup(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=6)
    confirm_password: str
    name: Optional[str] = Field(None, max_length=255)
    phone: Optional[str] = Field(None, max_length=20, description="Bangladeshi mobile number, country code optional")

    # Academic profile, required for academic workshops
    university: Optional[str] = Field(None, max_length=255)
    department: Optional[str] = Field(None, max_length=255)
    academic_year: Optional[str] = Field(None, max_length=50)
    academic_session: Optional[str] = Field(None, max_length=50)


class UserLogin(BaseModel):
    email: EmailStr
    password: str


class Token(BaseModel):
    access_token: str
    token_type: str = "bearer"


class UserResponse(BaseModel):
    id: UUID
    email: str
    name: Optional[str] = None
    phone: Optional[str] = None
    role: str
    is_active: bool
    is_verified: bool
    university: Optional[str] = None
    department: Optional[str] = None
    academic_year: Optional[str] = None
    academic_session: Optional[str] = None
    created_at: datetime

    @field_serializer('id')
    def serialize_id(self, value: UUID) -> str:
        return str(value)

    @field_serializer('role')
    def serialize_role(self, value) -> str:
        return getattr(value, "value", value)

    class Config:
        from_attributes = True


class LoginResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserResponse


class SignupResponse(BaseModel):
    """Signup never returns a session until the email is confirmed (when required)"""
    message: str
    user: UserResponse
    access_token: Optional[str] = None
    requires_email_verification: bool


class ProfileUpdate(BaseModel):
    name: Optional[str] = Field(None, max_length=255)
    phone: Optional[str] = Field(None, max_length=20)
    university: Optional[str] = Field(None, max_length=255)
    department: Optional[str] = Field(None, max_length=255)
    academic_year: Optional[str] = Field(None, max_length=50)
    academic_session: Optional[str] = Field(None, max_length=50)


class VerifyEmailRequest(BaseModel):
    token: str


class ForgotPasswordRequest(BaseModel):
    email: EmailStr


class ResetPasswordRequest(BaseModel):
    token: str
    new_password: str = Field(..., min_length=6)
    confirm_password: str


class MessageResponse(BaseModel):
    message: str
    success: bool = True
