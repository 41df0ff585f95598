"""Job postings, job applications and campus ambassador applications"""

from sqlalchemy import Column, String, Boolean, DateTime, Text, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from datetime import datetime

from app.core.database import Base
from app.core.types import GUID, generate_uuid


class Job(Base):
    __tablename__ = "jobs"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    title = Column(String(255), nullable=False)
    company = Column(String(255), default="Skilltori", nullable=False)
    location = Column(String(255), nullable=True)
    employment_type = Column(String(50), nullable=True)  # full-time, part-time, internship
    description = Column(Text, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    deadline = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    applications = relationship("JobApplication", back_populates="job", cascade="all, delete-orphan")


class JobApplication(Base):
    __tablename__ = "applications"
    __table_args__ = (
        UniqueConstraint("job_id", "email", name="uq_applications_job_email"),
    )

    id = Column(GUID, primary_key=True, default=generate_uuid)
    job_id = Column(GUID, ForeignKey("jobs.id", ondelete="CASCADE"), nullable=False, index=True)
    full_name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False)
    phone = Column(String(20), nullable=False)
    resume_url = Column(String(1000), nullable=True)
    portfolio_url = Column(String(1000), nullable=True)
    cover_letter = Column(Text, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    job = relationship("Job", back_populates="applications")


class CampusAmbassador(Base):
    __tablename__ = "campus_ambassadors"

    id = Column(GUID, primary_key=True, default=generate_uuid)
    full_name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, nullable=False)
    phone = Column(String(20), nullable=False)
    university_name = Column(String(255), nullable=False)
    department = Column(String(255), nullable=True)
    academic_year = Column(String(50), nullable=True)
    motivation = Column(Text, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
