"""
Payment record for a bKash (or free) checkout.

Lifecycle: created ``pending`` when the gateway session is requested,
moved to ``successful`` or ``failed`` by the gateway callback, and
afterwards only changed through the admin correction endpoints.
"""

from sqlalchemy import (
    Column, String, Boolean, DateTime, ForeignKey, Enum as SQLEnum, JSON,
)
from sqlalchemy.orm import relationship
from datetime import datetime
import enum

from app.core.database import Base
from app.core.types import GUID, Money, generate_uuid


class PaymentStatus(str, enum.Enum):
    PENDING = "pending"
    SUCCESSFUL = "successful"
    FAILED = "failed"
    REFUNDED = "refunded"


class PaymentPurpose(str, enum.Enum):
    """What the payment buys; exactly one matching foreign key is set"""
    COURSE = "course"
    WORKSHOP = "workshop"
    BOOK = "book"
    OTHER = "other"


class PaymentChannel(str, enum.Enum):
    BKASH = "bkash"
    FREE = "free"
    MANUAL = "manual"


class Payment(Base):
    __tablename__ = "payments"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    user_id = Column(GUID, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    purpose = Column(SQLEnum(PaymentPurpose), nullable=False)
    course_id = Column(GUID, ForeignKey("courses.id", ondelete="SET NULL"), nullable=True)
    workshop_id = Column(GUID, ForeignKey("workshops.id", ondelete="SET NULL"), nullable=True)
    book_id = Column(GUID, nullable=True)

    amount = Column(Money, nullable=False)
    currency = Column(String(10), default="BDT", nullable=False)
    payment_channel = Column(SQLEnum(PaymentChannel), default=PaymentChannel.BKASH, nullable=False)
    status = Column(SQLEnum(PaymentStatus), default=PaymentStatus.PENDING, nullable=False, index=True)
    is_verified = Column(Boolean, default=False, nullable=False)

    # Merchant order id sent to bKash as merchantInvoiceNumber
    transaction_id = Column(String(64), unique=True, nullable=False)
    # bKash identifiers
    bkash_payment_id = Column(String(128), unique=True, nullable=True)
    bkash_url = Column(String(1000), nullable=True)
    trx_id = Column(String(64), nullable=True)
    payer_phone = Column(String(20), nullable=True)
    # Last raw gateway answer (create or execute), kept for support
    gateway_response = Column(JSON, nullable=True)

    coupon_id = Column(GUID, ForeignKey("coupons.id", ondelete="SET NULL"), nullable=True)
    coupon_code = Column(String(50), nullable=True)
    discount_amount = Column(Money, nullable=False, default=0)

    paid_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    user = relationship("User", back_populates="payments")
    workshop = relationship("Workshop")
    course = relationship("Course")

    @property
    def original_amount(self) -> float:
        """Amount before the coupon discount"""
        return float(self.amount or 0) + float(self.discount_amount or 0)

    def __repr__(self):
        return f"<Payment {self.transaction_id} {self.status}>"
