"""
Workshop and workshop enrollment models.

A workshop can carry three prices: regular, offer and earlybird. The
earlybird price only holds while confirmed enrollments are below
``earlybirds_count``; see ``app.services.pricing_service``.
"""

from sqlalchemy import (
    Column, String, DateTime, Integer, Text, ForeignKey, Enum as SQLEnum,
    UniqueConstraint, CheckConstraint,
)
from sqlalchemy.orm import relationship
from datetime import datetime
import enum

from app.core.database import Base
from app.core.types import GUID, Money, generate_uuid


class WorkshopCategory(str, enum.Enum):
    ACADEMIC = "academic"
    OTHER = "other"


class WorkshopStatus(str, enum.Enum):
    DRAFT = "draft"
    PUBLISHED = "published"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class Workshop(Base):
    __tablename__ = "workshops"
    __table_args__ = (
        CheckConstraint(
            "price_offer IS NULL OR price_offer <= price_regular",
            name="ck_workshops_offer_le_regular",
        ),
    )

    id = Column(GUID, primary_key=True, default=generate_uuid)
    title = Column(String(255), nullable=False)
    slug = Column(String(255), unique=True, index=True, nullable=False)
    description = Column(Text, nullable=True)
    speaker_name = Column(String(255), nullable=True)
    # WhatsApp/Telegram group shared in the confirmation email
    group_link = Column(String(500), nullable=True)

    category = Column(SQLEnum(WorkshopCategory), default=WorkshopCategory.OTHER, nullable=False)
    status = Column(SQLEnum(WorkshopStatus), default=WorkshopStatus.PUBLISHED, nullable=False)

    price_regular = Column(Money, nullable=False, default=0)
    price_offer = Column(Money, nullable=True)
    price_earlybirds = Column(Money, nullable=True)
    earlybirds_count = Column(Integer, nullable=True)
    capacity = Column(Integer, nullable=True)

    start_time = Column(DateTime, nullable=True)
    end_time = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    enrollments = relationship("UserWorkshop", back_populates="workshop", cascade="all, delete-orphan")

    @property
    def is_academic(self) -> bool:
        return self.category == WorkshopCategory.ACADEMIC

    def __repr__(self):
        return f"<Workshop {self.slug}>"


class UserWorkshop(Base):
    """Confirmed workshop seat. Written only by payment confirmation or free enrollment."""
    __tablename__ = "user_workshops"
    __table_args__ = (
        UniqueConstraint("user_id", "workshop_id", name="uq_user_workshops_user_workshop"),
    )

    id = Column(GUID, primary_key=True, default=generate_uuid)
    user_id = Column(GUID, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    workshop_id = Column(GUID, ForeignKey("workshops.id", ondelete="CASCADE"), nullable=False, index=True)
    payment_id = Column(GUID, ForeignKey("payments.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    user = relationship("User", back_populates="workshop_enrollments")
    workshop = relationship("Workshop", back_populates="enrollments")

    def __repr__(self):
        return f"<UserWorkshop {self.user_id} -> {self.workshop_id}>"
