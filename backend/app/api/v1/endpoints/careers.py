from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List

from app.core.database import get_db
from app.core.rate_limiter import strict_rate_limit
from app.schemas.career import (
    ApplicationResult,
    CampusAmbassadorCreate,
    JobApplicationCreate,
    JobResponse,
)
from app.services.career_service import career_service

router = APIRouter(prefix="/careers", tags=["Careers"])


@router.get("/jobs", response_model=List[JobResponse])
async def list_jobs(db: AsyncSession = Depends(get_db)):
    return await career_service.list_jobs(db)


@router.get("/jobs/{job_id}", response_model=JobResponse)
async def get_job(job_id: str, db: AsyncSession = Depends(get_db)):
    return await career_service.get_job(db, job_id)


@router.post("/jobs/{job_id}/apply", response_model=ApplicationResult, status_code=status.HTTP_201_CREATED)
@strict_rate_limit()
async def apply_for_job(
    request: Request,
    job_id: str,
    application: JobApplicationCreate,
    db: AsyncSession = Depends(get_db)
):
    """A second application with the same email for the same job answers 409"""
    await career_service.submit_job_application(db, job_id, application)
    return ApplicationResult(success=True)


@router.post("/campus-ambassador", response_model=ApplicationResult, status_code=status.HTTP_201_CREATED)
@strict_rate_limit()
async def apply_campus_ambassador(
    request: Request,
    application: CampusAmbassadorCreate,
    db: AsyncSession = Depends(get_db)
):
    await career_service.submit_campus_ambassador(db, application)
    return ApplicationResult(success=True)
