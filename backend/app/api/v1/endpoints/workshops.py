"""
Workshop API - listing, pricing, the enrollment gate and checkout
"""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from typing import List, Optional

from app.core.database import get_db
from app.core.exceptions import WorkshopNotFoundError
from app.core.rate_limiter import auth_rate_limit, payment_rate_limit, strict_rate_limit
from app.models.user import User
from app.models.workshop import Workshop, WorkshopStatus
from app.modules.auth.dependencies import get_current_user, get_optional_current_user
from app.schemas.workshop import (
    CheckoutRequest,
    CheckoutResponse,
    EnrollmentGateResponse,
    EnrollmentLogin,
    EnrollmentSignup,
    PriceDisplay,
    WorkshopPricingResponse,
    WorkshopResponse,
)
from app.services.enrollment_gate import enrollment_gate
from app.services.payment_initiator import payment_initiator
from app.services.pricing_service import price_display, pricing_service

router = APIRouter(prefix="/workshops", tags=["Workshops"])


async def get_workshop_by_slug(slug: str, db: AsyncSession) -> Workshop:
    result = await db.execute(
        select(Workshop).where(Workshop.slug == slug, Workshop.status != WorkshopStatus.DRAFT)
    )
    workshop = result.scalar_one_or_none()
    if workshop is None:
        raise WorkshopNotFoundError(slug)
    return workshop


@router.get("", response_model=List[WorkshopResponse])
async def list_workshops(
    status: Optional[WorkshopStatus] = None,
    db: AsyncSession = Depends(get_db)
):
    query = select(Workshop).where(Workshop.status != WorkshopStatus.DRAFT)
    if status is not None:
        query = query.where(Workshop.status == status)
    result = await db.execute(query.order_by(Workshop.start_time.desc()))
    return result.scalars().all()


@router.get("/{slug}", response_model=WorkshopResponse)
async def get_workshop(slug: str, db: AsyncSession = Depends(get_db)):
    return await get_workshop_by_slug(slug, db)


@router.get("/{slug}/pricing", response_model=WorkshopPricingResponse)
async def get_workshop_pricing(slug: str, db: AsyncSession = Depends(get_db)):
    """
    Price a buyer pays right now.

    ``resolved`` is False when the enrollment count could not be read and
    the regular price is shown instead.
    """
    workshop = await get_workshop_by_slug(slug, db)
    pricing, resolved = await pricing_service.get_pricing_or_regular(db, workshop)
    return WorkshopPricingResponse(
        workshop_id=str(workshop.id),
        current_price=pricing.current_price,
        original_price=pricing.original_price,
        is_earlybird=pricing.is_earlybird,
        earlybird_spots_left=pricing.earlybird_spots_left,
        total_enrollments=pricing.total_enrollments,
        is_free=pricing.is_free,
        resolved=resolved,
        display=PriceDisplay(**price_display(pricing)),
    )


@router.get("/{slug}/enroll", response_model=EnrollmentGateResponse)
async def enrollment_state(
    slug: str,
    current_user: Optional[User] = Depends(get_optional_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Signed-in visitors skip straight to payment"""
    workshop = await get_workshop_by_slug(slug, db)
    return enrollment_gate.describe(workshop, current_user).as_dict()


@router.post("/{slug}/enroll", response_model=EnrollmentGateResponse)
@strict_rate_limit()
async def enroll_signup(
    request: Request,
    slug: str,
    form: EnrollmentSignup,
    db: AsyncSession = Depends(get_db)
):
    workshop = await get_workshop_by_slug(slug, db)
    outcome = await enrollment_gate.signup(db, workshop, form)
    return outcome.as_dict()


@router.post("/{slug}/enroll/login", response_model=EnrollmentGateResponse)
@auth_rate_limit()
async def enroll_login(
    request: Request,
    slug: str,
    form: EnrollmentLogin,
    db: AsyncSession = Depends(get_db)
):
    workshop = await get_workshop_by_slug(slug, db)
    outcome = await enrollment_gate.login(db, workshop, form)
    return outcome.as_dict()


@router.post("/{slug}/checkout", response_model=CheckoutResponse)
@payment_rate_limit()
async def checkout_workshop(
    request: Request,
    slug: str,
    payload: CheckoutRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Returns the bKash URL to redirect to, or ``enrolled`` for free workshops"""
    workshop = await get_workshop_by_slug(slug, db)
    return await payment_initiator.checkout(
        db, current_user, workshop, phone=payload.phone, coupon_code=payload.coupon_code
    )
