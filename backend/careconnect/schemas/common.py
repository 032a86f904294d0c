"""
Shared response schemas.

JSON payloads use camelCase field names; attributes stay snake_case.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base schema serializing to camelCase and reading ORM attributes."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class Pagination(CamelModel):
    """Pagination metadata; pages == ceil(total / limit)."""

    total: int
    page: int
    limit: int
    pages: int


class UserPublic(CamelModel):
    """Profile fields safe to show to any authenticated user."""

    id: int
    first_name: str
    last_name: str
    email: str
    role: Optional[str] = None
    specialty: Optional[str] = None
    hospital: Optional[str] = None
    location: Optional[str] = None
    bio: Optional[str] = None
    profile_image: Optional[str] = None
    cover_image: Optional[str] = None


class UserProfile(UserPublic):
    """Full user record without the password hash."""

    phone: Optional[str] = None
    connections: list[int] = []
    pending_connections: list[int] = []
    created_at: datetime
    updated_at: datetime
