"""
Career Service - job and campus ambassador applications

One application per (job, email) and one ambassador application per email,
both enforced by unique constraints. A constraint conflict becomes a
``DuplicateApplicationError`` with its own message; other store failures
become ``DataStoreError``. The receipt email is best effort.
"""

from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import DataStoreError, DuplicateApplicationError, JobNotFoundError
from app.core.logging_config import logger
from app.models.career import CampusAmbassador, Job, JobApplication
from app.schemas.career import CampusAmbassadorCreate, JobApplicationCreate
from app.services.email_service import EmailService, email_service


MSG_DUPLICATE_JOB_APPLICATION = (
    "An application with this email already exists for this position. "
    "Please use a different email address or contact us if you need to update your application."
)
MSG_DUPLICATE_AMBASSADOR = (
    "An application with this email already exists. "
    "Please use a different email address or contact us if you need to update your application."
)


class CareerService:
    def __init__(self, emails: Optional[EmailService] = None):
        self.emails = emails or email_service

    async def list_jobs(self, db: AsyncSession) -> list[Job]:
        result = await db.execute(
            select(Job).where(Job.is_active.is_(True)).order_by(Job.created_at.desc())
        )
        return list(result.scalars().all())

    async def get_job(self, db: AsyncSession, job_id: str) -> Job:
        job = await db.get(Job, str(job_id))
        if job is None or not job.is_active:
            raise JobNotFoundError(job_id)
        return job

    async def _insert(self, db: AsyncSession, row, duplicate_message: str) -> None:
        db.add(row)
        try:
            await db.commit()
        except IntegrityError as e:
            await db.rollback()
            logger.warning(f"[Career] Duplicate application from {row.email}: {e.orig}")
            raise DuplicateApplicationError(duplicate_message)
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error(f"[Career] Failed to store application from {row.email}: {e}", exc_info=True)
            raise DataStoreError(str(e))

    async def submit_job_application(
        self,
        db: AsyncSession,
        job_id: str,
        data: JobApplicationCreate
    ) -> JobApplication:
        job = await self.get_job(db, job_id)
        application = JobApplication(job_id=job.id, **data.model_dump())
        await self._insert(db, application, MSG_DUPLICATE_JOB_APPLICATION)
        logger.info(f"[Career] Application {application.id} for job {job.title}")

        sent = await self.emails.send_job_application_confirmation(
            data.full_name, data.email, job.title, job.company
        )
        if not sent:
            logger.warning(f"[Career] Confirmation email to {data.email} was not delivered")
        return application

    async def submit_campus_ambassador(self, db: AsyncSession, data: CampusAmbassadorCreate) -> CampusAmbassador:
        ambassador = CampusAmbassador(**data.model_dump())
        await self._insert(db, ambassador, MSG_DUPLICATE_AMBASSADOR)
        logger.info(f"[Career] Campus ambassador application from {data.university_name}")

        sent = await self.emails.send_campus_ambassador_confirmation(
            data.full_name, data.email, data.university_name
        )
        if not sent:
            logger.warning(f"[Career] Confirmation email to {data.email} was not delivered")
        return ambassador


career_service = CareerService()
