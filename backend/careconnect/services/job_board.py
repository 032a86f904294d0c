"""
Job Board service.

CRUD over job listings. Only the poster may edit or delete a listing.
"""

import logging
from datetime import datetime
from typing import Any, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session, joinedload

from careconnect.core.exceptions import ForbiddenError, NotFoundError, ValidationError
from careconnect.models import Job
from careconnect.models.job import EXPERIENCE_LEVELS, JOB_STATUSES, JOB_TYPES
from careconnect.schemas.common import Pagination
from careconnect.utils.pagination import paginate

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("title", "company", "location", "description")
EDITABLE_JOB_FIELDS = {
    "title",
    "company",
    "location",
    "description",
    "requirements",
    "type",
    "experience",
    "salary",
    "status",
}


def _check_choice(field: str, value: Any, choices: tuple[str, ...]) -> None:
    if value not in choices:
        raise ValidationError(f"{field} must be one of: {', '.join(choices)}")


def _validate(data: dict[str, Any]) -> None:
    for field in REQUIRED_FIELDS:
        if field in data and not (data[field] and str(data[field]).strip()):
            raise ValidationError("Missing required fields")
    if "type" in data:
        _check_choice("type", data["type"], JOB_TYPES)
    if "experience" in data:
        _check_choice("experience", data["experience"], EXPERIENCE_LEVELS)
    if "status" in data:
        _check_choice("status", data["status"], JOB_STATUSES)


def get_job(db: Session, job_id: int) -> Job:
    job = db.query(Job).options(joinedload(Job.poster)).filter(Job.id == job_id).first()
    if job is None:
        raise NotFoundError("Job not found")
    return job


def list_jobs(
    db: Session,
    search: str = "",
    location: str = "",
    job_type: str = "",
    experience: str = "",
    page: int = 1,
    limit: int = 10,
) -> tuple[list[Job], Pagination]:
    """
    Active jobs matching the filters, newest first.

    ``search`` matches title, company or description and ``location`` the
    location, both as case-insensitive substrings; ``job_type`` and
    ``experience`` must match exactly.
    """
    query = db.query(Job).options(joinedload(Job.poster)).filter(Job.status == "active")

    if search:
        pattern = f"%{search}%"
        query = query.filter(
            or_(
                Job.title.ilike(pattern),
                Job.company.ilike(pattern),
                Job.description.ilike(pattern),
            )
        )
    if location:
        query = query.filter(Job.location.ilike(f"%{location}%"))
    if job_type:
        query = query.filter(Job.type == job_type)
    if experience:
        query = query.filter(Job.experience == experience)

    return paginate(query.order_by(Job.created_at.desc(), Job.id.desc()), page, limit)


def create_job(db: Session, poster_id: int, data: dict[str, Any]) -> Job:
    if any(not (data.get(field) and str(data[field]).strip()) for field in REQUIRED_FIELDS):
        raise ValidationError("Missing required fields")

    data = {key: value for key, value in data.items() if value is not None}
    data.setdefault("type", "full-time")
    data.setdefault("experience", "entry")
    _validate(data)

    now = datetime.utcnow()
    job = Job(
        title=data["title"],
        company=data["company"],
        location=data["location"],
        description=data["description"],
        requirements=list(data.get("requirements") or []),
        type=data["type"],
        experience=data["experience"],
        salary=data.get("salary"),
        posted_by=poster_id,
        applicants=[],
        status="active",
        created_at=now,
        updated_at=now,
    )
    db.add(job)
    db.commit()

    logger.info("Job %s posted by user %s", job.id, poster_id)
    return get_job(db, job.id)


def update_job(db: Session, job_id: int, caller_id: int, changes: dict[str, Any]) -> Job:
    job = get_job(db, job_id)
    if job.posted_by != caller_id:
        raise ForbiddenError()

    changes = {key: value for key, value in changes.items() if key in EDITABLE_JOB_FIELDS}
    _validate(changes)

    for field, value in changes.items():
        setattr(job, field, list(value or []) if field == "requirements" else value)

    job.updated_at = datetime.utcnow()
    db.commit()
    return get_job(db, job_id)


def delete_job(db: Session, job_id: int, caller_id: int) -> None:
    job = get_job(db, job_id)
    if job.posted_by != caller_id:
        raise ForbiddenError()

    db.delete(job)
    db.commit()
    logger.info("Job %s deleted by user %s", job_id, caller_id)
