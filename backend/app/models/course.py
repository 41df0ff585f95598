from sqlalchemy import (
    Column, String, DateTime, Text, ForeignKey, Enum as SQLEnum, UniqueConstraint,
)
from sqlalchemy.orm import relationship
from datetime import datetime
import enum

from app.core.database import Base
from app.core.types import GUID, Money, generate_uuid


class CourseType(str, enum.Enum):
    LIVE = "live"
    RECORDED = "recorded"


class CourseStatus(str, enum.Enum):
    DRAFT = "draft"
    PUBLISHED = "published"
    ARCHIVED = "archived"


class Course(Base):
    __tablename__ = "courses"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    title = Column(String(255), nullable=False)
    slug = Column(String(255), unique=True, index=True, nullable=False)
    description = Column(Text, nullable=True)
    type = Column(SQLEnum(CourseType), default=CourseType.RECORDED, nullable=False)
    duration = Column(String(100), nullable=True)  # free text, e.g. "8 weeks"
    status = Column(SQLEnum(CourseStatus), default=CourseStatus.PUBLISHED, nullable=False)

    price_regular = Column(Money, nullable=False, default=0)
    price_offer = Column(Money, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    enrollments = relationship("UserCourse", back_populates="course", cascade="all, delete-orphan")

    @property
    def current_price(self) -> float:
        if self.price_offer and self.price_offer > 0:
            return float(self.price_offer)
        return float(self.price_regular or 0)

    def __repr__(self):
        return f"<Course {self.slug}>"


class UserCourse(Base):
    __tablename__ = "user_courses"
    __table_args__ = (
        UniqueConstraint("user_id", "course_id", name="uq_user_courses_user_course"),
    )

    id = Column(GUID, primary_key=True, default=generate_uuid)
    user_id = Column(GUID, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    course_id = Column(GUID, ForeignKey("courses.id", ondelete="CASCADE"), nullable=False, index=True)
    payment_id = Column(GUID, ForeignKey("payments.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    user = relationship("User", back_populates="course_enrollments")
    course = relationship("Course", back_populates="enrollments")
