"""
Coupon API Endpoints - checkout coupon validation

Endpoints:
- POST /coupons/validate - Check a code against a workshop or course and preview the discount
"""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.exceptions import ValidationError
from app.models.payment import PaymentPurpose
from app.models.user import User
from app.modules.auth.dependencies import get_current_user
from app.schemas.coupon import CouponValidateRequest, CouponValidateResponse
from app.services.coupon_service import coupon_service
from app.services.payment_service import payment_service

router = APIRouter(prefix="/coupons", tags=["Coupons"])


@router.post("/validate", response_model=CouponValidateResponse)
async def validate_coupon(
    request: CouponValidateRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """
    Validate a coupon code before payment.

    The discount is computed on the current server-side price, the same
    amount make-payment will later require.
    """
    if request.workshop_id:
        purpose, item_id = PaymentPurpose.WORKSHOP, request.workshop_id
    elif request.course_id:
        purpose, item_id = PaymentPurpose.COURSE, request.course_id
    else:
        raise ValidationError("workshop_id or course_id required", field="workshop_id")

    item = await payment_service.get_item(db, purpose, item_id)
    base = await payment_service.base_price(db, item)
    return await coupon_service.validate_coupon(db, request.code, purpose, item.id, base)
