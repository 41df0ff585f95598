"""
Dashboard Service - per-student counters and enrolled items
"""

from dataclasses import dataclass, asdict
from datetime import datetime
from typing import Optional

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.course import Course, CourseType, UserCourse
from app.models.payment import Payment
from app.models.workshop import UserWorkshop, Workshop


@dataclass
class DashboardStats:
    enrolled_courses: int = 0
    live_courses: int = 0
    recorded_courses: int = 0
    enrolled_workshops: int = 0
    payments: int = 0
    workshop_progress_percent: int = 0

    def as_dict(self) -> dict:
        return asdict(self)


def progress_percent(start: Optional[datetime], end: Optional[datetime], now: Optional[datetime] = None) -> int:
    """Elapsed share of a workshop, clamped to 0..100"""
    if start is None or end is None or end <= start:
        return 0
    now = now or datetime.utcnow()
    raw = (now - start).total_seconds() / (end - start).total_seconds() * 100
    return max(0, min(100, round(raw)))


class DashboardService:
    async def get_stats(self, db: AsyncSession, user_id: str, now: Optional[datetime] = None) -> DashboardStats:
        course_rows = await db.execute(
            select(Course.type)
            .join(UserCourse, UserCourse.course_id == Course.id)
            .where(UserCourse.user_id == user_id)
        )
        course_types = [row[0] for row in course_rows.all()]

        workshop_rows = await db.execute(
            select(Workshop.start_time, Workshop.end_time, UserWorkshop.created_at)
            .join(UserWorkshop, UserWorkshop.workshop_id == Workshop.id)
            .where(UserWorkshop.user_id == user_id)
        )
        workshops = workshop_rows.all()

        payments = await db.execute(
            select(func.count(Payment.id)).where(Payment.user_id == user_id)
        )

        # Latest workshop by start time, newest enrollment breaks ties
        dated = [w for w in workshops if w.start_time and w.end_time]
        latest = max(dated, key=lambda w: (w.start_time, w.created_at), default=None)

        return DashboardStats(
            enrolled_courses=len(course_types),
            live_courses=sum(1 for t in course_types if t == CourseType.LIVE),
            recorded_courses=sum(1 for t in course_types if t == CourseType.RECORDED),
            enrolled_workshops=len(workshops),
            payments=payments.scalar() or 0,
            workshop_progress_percent=progress_percent(latest.start_time, latest.end_time, now) if latest else 0,
        )

    async def my_workshops(self, db: AsyncSession, user_id: str) -> list[Workshop]:
        result = await db.execute(
            select(Workshop)
            .join(UserWorkshop, UserWorkshop.workshop_id == Workshop.id)
            .where(UserWorkshop.user_id == user_id)
            .order_by(UserWorkshop.created_at.desc())
        )
        return list(result.scalars().all())

    async def my_courses(self, db: AsyncSession, user_id: str) -> list[Course]:
        result = await db.execute(
            select(Course)
            .join(UserCourse, UserCourse.course_id == Course.id)
            .where(UserCourse.user_id == user_id)
            .order_by(UserCourse.created_at.desc())
        )
        return list(result.scalars().all())


dashboard_service = DashboardService()
