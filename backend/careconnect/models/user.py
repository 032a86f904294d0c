from datetime import datetime

from sqlalchemy import Column, DateTime, Integer, String, Text, JSON
from sqlalchemy.ext.mutable import MutableList

from careconnect.db.base import Base


class User(Base):
    """Medical professional account and public profile."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    first_name = Column(String, nullable=False)
    last_name = Column(String, nullable=False)
    email = Column(String, unique=True, index=True, nullable=False)
    hashed_password = Column(String, nullable=False)
    phone = Column(String)
    role = Column(String, default="user")

    # Optional profile details
    specialty = Column(String)
    hospital = Column(String)
    location = Column(String)
    bio = Column(Text)
    profile_image = Column(String)
    cover_image = Column(String)

    # Denormalized mirror of the connections table:
    # ids with an accepted connection, and ids that sent this user a pending request
    connections = Column(MutableList.as_mutable(JSON), default=list, nullable=False)
    pending_connections = Column(MutableList.as_mutable(JSON), default=list, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    # Optimistic lock, incremented on every UPDATE
    version_id = Column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version_id}
