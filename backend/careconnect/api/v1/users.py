"""
User API endpoints.

Directory search, profile lookup and self-service profile edits.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from careconnect.api.v1.auth import get_current_user
from careconnect.core.config import settings
from careconnect.db.session import get_db
from careconnect.models import User
from careconnect.schemas.common import CamelModel, Pagination, UserProfile
from careconnect.services import identity

router = APIRouter()


# ============== Pydantic Schemas ==============


class UserListResponse(CamelModel):
    users: list[UserProfile]
    pagination: Pagination


class UserUpdate(CamelModel):
    """Editable profile fields; anything else in the body is ignored."""

    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone: Optional[str] = None
    role: Optional[str] = None
    specialty: Optional[str] = None
    hospital: Optional[str] = None
    location: Optional[str] = None
    bio: Optional[str] = None
    profile_image: Optional[str] = None
    cover_image: Optional[str] = None


class UserUpdateResponse(CamelModel):
    message: str
    user: UserProfile


# ============== API Endpoints ==============


@router.get("", response_model=UserListResponse)
async def list_users(
    search: str = "",
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    page: int = Query(1, ge=1),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Search other users by name, role, specialty or hospital."""
    users, pagination = identity.search_users(db, current_user.id, search, page, limit)
    return UserListResponse(
        users=[UserProfile.model_validate(user) for user in users],
        pagination=pagination,
    )


@router.get("/{user_id}", response_model=UserProfile)
async def get_user(
    user_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return UserProfile.model_validate(identity.get_user(db, user_id))


@router.put("/{user_id}", response_model=UserUpdateResponse)
async def update_user(
    user_id: int,
    data: UserUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """
    Update the caller's own profile.

    Email, password and connection lists cannot be changed here.
    """
    user = identity.update_profile(
        db, user_id, current_user.id, data.model_dump(exclude_unset=True)
    )
    return UserUpdateResponse(
        message="User updated successfully",
        user=UserProfile.model_validate(user),
    )
