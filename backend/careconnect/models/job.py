from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text, JSON
from sqlalchemy.ext.mutable import MutableList
from sqlalchemy.orm import relationship

from careconnect.db.base import Base

JOB_TYPES = ("full-time", "part-time", "contract", "temporary", "internship")
EXPERIENCE_LEVELS = ("entry", "associate", "mid-senior", "director", "executive")
JOB_STATUSES = ("active", "closed")


class Job(Base):
    """Job board listing owned by the user who posted it."""

    __tablename__ = "jobs"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String, nullable=False)
    company = Column(String, nullable=False)
    location = Column(String, nullable=False)
    description = Column(Text, nullable=False)
    requirements = Column(MutableList.as_mutable(JSON), default=list, nullable=False)
    type = Column(String, nullable=False, default="full-time")
    experience = Column(String, nullable=False, default="entry")

    # Format: {"min": int, "max": int, "currency": str}
    salary = Column(JSON, nullable=True)

    posted_by = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    applicants = Column(MutableList.as_mutable(JSON), default=list, nullable=False)
    status = Column(String, nullable=False, default="active", index=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    poster = relationship("User")
