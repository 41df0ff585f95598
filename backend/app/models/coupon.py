"""
Discount coupons applied at checkout.

A coupon gives either a percentage or a fixed taka discount and can be
limited to one workshop, one course, or left open for any purchase.
"""

from sqlalchemy import Column, String, DateTime, Boolean, ForeignKey, Enum as SQLEnum, Index
from datetime import datetime
import enum

from app.core.database import Base
from app.core.types import GUID, Money, generate_uuid


class DiscountType(str, enum.Enum):
    PERCENTAGE = "percentage"
    AMOUNT = "amount"


class CouponScope(str, enum.Enum):
    ANY = "any"
    COURSE = "course"
    WORKSHOP = "workshop"


class Coupon(Base):
    __tablename__ = "coupons"
    __table_args__ = (
        Index('ix_coupons_code', 'code'),
    )

    id = Column(GUID, primary_key=True, default=generate_uuid)
    # Stored upper-case; lookups are case-insensitive
    code = Column(String(50), unique=True, nullable=False)
    description = Column(String(255), nullable=True)

    discount_type = Column(SQLEnum(DiscountType), nullable=False)
    discount_value = Column(Money, nullable=False)
    applies_to = Column(SQLEnum(CouponScope), default=CouponScope.ANY, nullable=False)
    course_id = Column(GUID, ForeignKey("courses.id", ondelete="CASCADE"), nullable=True)
    workshop_id = Column(GUID, ForeignKey("workshops.id", ondelete="CASCADE"), nullable=True)
    min_order_amount = Column(Money, nullable=True)

    is_active = Column(Boolean, default=True, nullable=False)
    valid_until = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f"<Coupon {self.code}>"


class CouponUsage(Base):
    """One row per successful payment that used a coupon"""
    __tablename__ = "user_coupons"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    user_id = Column(GUID, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    coupon_id = Column(GUID, ForeignKey("coupons.id", ondelete="CASCADE"), nullable=False, index=True)
    payment_id = Column(GUID, ForeignKey("payments.id", ondelete="CASCADE"), unique=True, nullable=False)

    original_amount = Column(Money, nullable=False)
    discount_amount = Column(Money, nullable=False)
    final_amount = Column(Money, nullable=False)

    used_at = Column(DateTime, default=datetime.utcnow, nullable=False)
