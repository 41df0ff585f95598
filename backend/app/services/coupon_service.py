"""
Coupon Service - checkout discount coupons

Handles:
- Case-insensitive coupon lookup
- Scope checks (any / workshop / course) and minimum order amount
- Discount calculation, capped at the base price
- Recording coupon usage once per successful payment
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlalchemy import select, func, or_
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import InvalidCouponError
from app.core.logging_config import logger
from app.models.coupon import Coupon, CouponUsage, CouponScope, DiscountType
from app.models.payment import Payment, PaymentPurpose
from app.schemas.coupon import CouponCreate, CouponValidateResponse
from app.services.pricing_service import format_price


MSG_INVALID = "কুপনটি অবৈধ বা মেয়াদোত্তীর্ণ"
MSG_COURSE_ONLY = "এই কুপনটি শুধুমাত্র কোর্সের জন্য প্রযোজ্য"
MSG_WORKSHOP_ONLY = "এই কুপনটি শুধুমাত্র ওয়ার্কশপের জন্য প্রযোজ্য"
MSG_OTHER_WORKSHOP = "এই কুপনটি এই ওয়ার্কশপে প্রযোজ্য নয়"
MSG_OTHER_COURSE = "এই কুপনটি এই কোর্সে প্রযোজ্য নয়"
MSG_APPLIED = "কুপন প্রয়োগ হয়েছে"


@dataclass(frozen=True)
class CouponQuote:
    coupon: Optional[Coupon]
    original_amount: float
    discount_amount: float = 0.0

    @property
    def final_amount(self) -> float:
        return round(max(self.original_amount - self.discount_amount, 0.0), 2)


def calculate_discount(coupon: Coupon, base_amount: float) -> float:
    if coupon.discount_type == DiscountType.PERCENTAGE:
        discount = round(base_amount * float(coupon.discount_value) / 100, 2)
    else:
        discount = float(coupon.discount_value)
    return min(discount, base_amount)


def check_applicable(
    coupon: Coupon,
    purpose: PaymentPurpose,
    item_id: str,
    base_amount: float
) -> None:
    """Raise InvalidCouponError when the coupon cannot be used for this purchase"""
    if coupon.applies_to == CouponScope.COURSE:
        if purpose != PaymentPurpose.COURSE:
            raise InvalidCouponError(MSG_COURSE_ONLY)
        if coupon.course_id and str(coupon.course_id) != str(item_id):
            raise InvalidCouponError(MSG_OTHER_COURSE)
    elif coupon.applies_to == CouponScope.WORKSHOP:
        if purpose != PaymentPurpose.WORKSHOP:
            raise InvalidCouponError(MSG_WORKSHOP_ONLY)
        if str(coupon.workshop_id) != str(item_id):
            raise InvalidCouponError(MSG_OTHER_WORKSHOP)

    if coupon.min_order_amount is not None and base_amount < float(coupon.min_order_amount):
        raise InvalidCouponError(
            f"ন্যূনতম {format_price(coupon.min_order_amount)} টাকা ক্রয়ে প্রযোজ্য"
        )


class CouponService:
    """Service for checkout coupons"""

    async def get_coupon_by_code(self, db: AsyncSession, code: str) -> Optional[Coupon]:
        """Active, unexpired coupon matching the code in any letter case"""
        now = datetime.utcnow()
        result = await db.execute(
            select(Coupon).where(
                func.upper(Coupon.code) == code.strip().upper(),
                Coupon.is_active.is_(True),
                or_(Coupon.valid_until.is_(None), Coupon.valid_until > now),
            ).limit(1)
        )
        return result.scalar_one_or_none()

    async def quote(
        self,
        db: AsyncSession,
        code: Optional[str],
        purpose: PaymentPurpose,
        item_id: str,
        base_amount: float
    ) -> CouponQuote:
        """Discount for a purchase; no code means no discount"""
        if not code or not code.strip():
            return CouponQuote(coupon=None, original_amount=base_amount)

        coupon = await self.get_coupon_by_code(db, code)
        if coupon is None:
            raise InvalidCouponError(MSG_INVALID)

        check_applicable(coupon, purpose, item_id, base_amount)
        return CouponQuote(
            coupon=coupon,
            original_amount=base_amount,
            discount_amount=calculate_discount(coupon, base_amount),
        )

    async def validate_coupon(
        self,
        db: AsyncSession,
        code: str,
        purpose: PaymentPurpose,
        item_id: str,
        base_amount: float
    ) -> CouponValidateResponse:
        try:
            quote = await self.quote(db, code, purpose, item_id, base_amount)
        except InvalidCouponError as e:
            return CouponValidateResponse(valid=False, code=code.upper(), message=e.message)

        return CouponValidateResponse(
            valid=True,
            code=quote.coupon.code,
            message=MSG_APPLIED,
            original_amount=quote.original_amount,
            discount_amount=quote.discount_amount,
            final_amount=quote.final_amount,
        )

    async def record_usage(self, db: AsyncSession, payment: Payment) -> Optional[CouponUsage]:
        """Write the usage row for a successful coupon payment; no-op if already written"""
        if not payment.coupon_id:
            return None

        existing = await db.execute(
            select(CouponUsage).where(CouponUsage.payment_id == payment.id)
        )
        usage = existing.scalar_one_or_none()
        if usage:
            return usage

        usage = CouponUsage(
            user_id=payment.user_id,
            coupon_id=payment.coupon_id,
            payment_id=payment.id,
            original_amount=payment.original_amount,
            discount_amount=float(payment.discount_amount or 0),
            final_amount=float(payment.amount),
        )
        db.add(usage)
        logger.info(f"[Coupon] Recorded usage of {payment.coupon_code} for payment {payment.id}")
        return usage

    async def create_coupon(self, db: AsyncSession, coupon_data: CouponCreate) -> Coupon:
        """Create a coupon (Admin only)"""
        existing = await db.execute(
            select(Coupon).where(func.upper(Coupon.code) == coupon_data.code)
        )
        if existing.scalar_one_or_none():
            raise ValueError(f"Coupon code '{coupon_data.code}' already exists")

        coupon = Coupon(**coupon_data.model_dump())
        db.add(coupon)
        await db.commit()
        await db.refresh(coupon)
        logger.info(f"[Coupon] Created coupon {coupon.code}")
        return coupon


coupon_service = CouponService()
