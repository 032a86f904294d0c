"""
Job Board API endpoints.
"""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from careconnect.api.v1.auth import get_current_user
from careconnect.core.config import settings
from careconnect.db.session import get_db
from careconnect.models import User
from careconnect.schemas.common import CamelModel, Pagination, UserPublic
from careconnect.services import job_board

router = APIRouter()


# ============== Pydantic Schemas ==============


class SalaryRange(CamelModel):
    min: int
    max: int
    currency: str = "USD"


class JobResponse(CamelModel):
    id: int
    title: str
    company: str
    location: str
    description: str
    requirements: list[str]
    type: str
    experience: str
    salary: Optional[SalaryRange] = None
    posted_by: int
    applicants: list[int]
    status: str
    created_at: datetime
    updated_at: datetime
    poster: Optional[UserPublic] = None


class JobListResponse(CamelModel):
    jobs: list[JobResponse]
    pagination: Pagination


class JobCreate(CamelModel):
    title: Optional[str] = None
    company: Optional[str] = None
    location: Optional[str] = None
    description: Optional[str] = None
    requirements: list[str] = []
    type: Optional[str] = None  # 'full-time' | 'part-time' | 'contract' | 'temporary' | 'internship'
    experience: Optional[str] = None  # 'entry' | 'associate' | 'mid-senior' | 'director' | 'executive'
    salary: Optional[SalaryRange] = None


class JobUpdate(JobCreate):
    requirements: Optional[list[str]] = None
    status: Optional[str] = None  # 'active' | 'closed'


class JobMutationResponse(CamelModel):
    message: str
    job: JobResponse


# ============== API Endpoints ==============


@router.get("", response_model=JobListResponse)
async def list_jobs(
    search: str = "",
    location: str = "",
    job_type: str = Query("", alias="type"),
    experience: str = "",
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    page: int = Query(1, ge=1),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """List active jobs, optionally filtered by text, location, type and experience."""
    jobs, pagination = job_board.list_jobs(
        db, search, location, job_type, experience, page, limit
    )
    return JobListResponse(
        jobs=[JobResponse.model_validate(job) for job in jobs],
        pagination=pagination,
    )


@router.post("", response_model=JobMutationResponse, status_code=status.HTTP_201_CREATED)
async def create_job(
    data: JobCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Post a job. Title, company, location and description are required."""
    job = job_board.create_job(db, current_user.id, data.model_dump())
    return JobMutationResponse(
        message="Job posted successfully",
        job=JobResponse.model_validate(job),
    )


@router.get("/{job_id}", response_model=JobResponse)
async def get_job(
    job_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return JobResponse.model_validate(job_board.get_job(db, job_id))


@router.put("/{job_id}", response_model=JobMutationResponse)
async def update_job(
    job_id: int,
    data: JobUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Edit a job. Only the user who posted it may do this."""
    job = job_board.update_job(db, job_id, current_user.id, data.model_dump(exclude_unset=True))
    return JobMutationResponse(
        message="Job updated successfully",
        job=JobResponse.model_validate(job),
    )


@router.delete("/{job_id}")
async def delete_job(
    job_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    job_board.delete_job(db, job_id, current_user.id)
    return {"message": "Job deleted successfully"}
