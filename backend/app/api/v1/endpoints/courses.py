from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from typing import List

from app.core.database import get_db
from app.core.exceptions import CourseNotFoundError
from app.core.rate_limiter import payment_rate_limit
from app.models.course import Course, CourseStatus
from app.models.user import User
from app.modules.auth.dependencies import get_current_user
from app.schemas.course import CourseResponse
from app.schemas.workshop import CheckoutRequest, CheckoutResponse
from app.services.payment_initiator import payment_initiator

router = APIRouter(prefix="/courses", tags=["Courses"])


async def get_course_by_slug(slug: str, db: AsyncSession) -> Course:
    result = await db.execute(
        select(Course).where(Course.slug == slug, Course.status == CourseStatus.PUBLISHED)
    )
    course = result.scalar_one_or_none()
    if course is None:
        raise CourseNotFoundError(slug)
    return course


@router.get("", response_model=List[CourseResponse])
async def list_courses(db: AsyncSession = Depends(get_db)):
    result = await db.execute(
        select(Course).where(Course.status == CourseStatus.PUBLISHED).order_by(Course.created_at.desc())
    )
    return result.scalars().all()


@router.get("/{slug}", response_model=CourseResponse)
async def get_course(slug: str, db: AsyncSession = Depends(get_db)):
    return await get_course_by_slug(slug, db)


@router.post("/{slug}/checkout", response_model=CheckoutResponse)
@payment_rate_limit()
async def checkout_course(
    request: Request,
    slug: str,
    payload: CheckoutRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    course = await get_course_by_slug(slug, db)
    return await payment_initiator.checkout(
        db, current_user, course, phone=payload.phone, coupon_code=payload.coupon_code
    )
