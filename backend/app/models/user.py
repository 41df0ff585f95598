from sqlalchemy import Column, String, Boolean, DateTime, Enum as SQLEnum
from sqlalchemy.orm import relationship
from datetime import datetime
import enum

from app.core.database import Base
from app.core.types import GUID, generate_uuid


class UserRole(str, enum.Enum):
    """User roles"""
    STUDENT = "student"
    ADMIN = "admin"


class User(Base):
    """Account plus the student profile collected at signup"""
    __tablename__ = "users"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    email = Column(String(255), unique=True, index=True, nullable=False)
    name = Column(String(255), nullable=True)
    hashed_password = Column(String(255), nullable=False)

    role = Column(SQLEnum(UserRole), default=UserRole.STUDENT, nullable=False)
    is_active = Column(Boolean, default=True)
    is_verified = Column(Boolean, default=False)

    # Stored with country code, e.g. +8801XXXXXXXXX
    phone = Column(String(20), nullable=True)

    # Academic profile (required by academic workshop signup)
    university = Column(String(255), nullable=True)
    department = Column(String(255), nullable=True)
    academic_year = Column(String(50), nullable=True)
    academic_session = Column(String(50), nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    last_login = Column(DateTime, nullable=True)

    payments = relationship("Payment", back_populates="user")
    workshop_enrollments = relationship("UserWorkshop", back_populates="user", cascade="all, delete-orphan")
    course_enrollments = relationship("UserCourse", back_populates="user", cascade="all, delete-orphan")

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    @property
    def display_name(self) -> str:
        """Name for greetings; falls back to the email local part"""
        return self.name or self.email.split("@")[0]

    def __repr__(self):
        return f"<User {self.email}>"
