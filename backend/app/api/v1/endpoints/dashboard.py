from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List

from app.core.database import get_db
from app.models.user import User
from app.modules.auth.dependencies import get_current_user
from app.schemas.course import CourseResponse
from app.schemas.workshop import WorkshopResponse
from app.services.dashboard_service import dashboard_service

router = APIRouter(prefix="/dashboard", tags=["Dashboard"])


@router.get("/stats")
async def get_stats(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    stats = await dashboard_service.get_stats(db, current_user.id)
    return stats.as_dict()


@router.get("/my-workshops", response_model=List[WorkshopResponse])
async def my_workshops(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await dashboard_service.my_workshops(db, current_user.id)


@router.get("/my-courses", response_model=List[CourseResponse])
async def my_courses(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    return await dashboard_service.my_courses(db, current_user.id)
