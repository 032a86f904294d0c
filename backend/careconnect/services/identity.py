"""
Identity service.

User registration, credential checks, lookup, search and profile edits.
"""

import logging
import re
from datetime import datetime
from typing import Any, Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from careconnect.core.exceptions import ConflictError, ForbiddenError, NotFoundError, ValidationError
from careconnect.core.security import get_password_hash, verify_password
from careconnect.db.session import commit_with_retry
from careconnect.models import User
from careconnect.schemas.common import Pagination
from careconnect.utils.pagination import paginate

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^[a-zA-Z0-9_.+-]+@[a-zA-Z0-9-]+\.[a-zA-Z0-9-.]+$")

# Profile fields a user may edit on their own record
EDITABLE_PROFILE_FIELDS = {
    "first_name",
    "last_name",
    "phone",
    "role",
    "specialty",
    "hospital",
    "location",
    "bio",
    "profile_image",
    "cover_image",
}

SEARCHABLE_FIELDS = ("first_name", "last_name", "role", "specialty", "hospital")


def get_user_by_email(db: Session, email: str) -> Optional[User]:
    """Get a user by email address (case-insensitive)."""
    return db.query(User).filter(User.email == email.strip().lower()).first()


def get_user(db: Session, user_id: int) -> User:
    user = db.get(User, user_id)
    if user is None:
        raise NotFoundError("User not found")
    return user


def register_user(
    db: Session,
    first_name: str,
    last_name: str,
    email: str,
    password: str,
    phone: Optional[str] = None,
    profile_image: Optional[str] = None,
) -> User:
    """
    Create a new account.

    Raises:
        ValidationError: a required field is blank or the email is malformed
        ConflictError: the email is already registered
    """
    if not all(value and value.strip() for value in (first_name, last_name, email, password)):
        raise ValidationError("Missing required fields")

    email = email.strip().lower()
    if not EMAIL_PATTERN.match(email):
        raise ValidationError("Invalid email format")

    if get_user_by_email(db, email):
        raise ConflictError("User already exists with this email")

    now = datetime.utcnow()
    user = User(
        first_name=first_name.strip(),
        last_name=last_name.strip(),
        email=email,
        hashed_password=get_password_hash(password),
        phone=phone,
        profile_image=profile_image,
        role="user",
        connections=[],
        pending_connections=[],
        created_at=now,
        updated_at=now,
    )
    db.add(user)
    db.commit()
    db.refresh(user)

    logger.info("Registered user %s", user.id)
    return user


def authenticate_user(db: Session, email: str, password: str) -> Optional[User]:
    """Return the user when the email/password pair is valid, else None."""
    user = get_user_by_email(db, email)
    if not user:
        return None
    if not verify_password(password, user.hashed_password):
        return None
    return user


def search_users(
    db: Session,
    viewer_id: int,
    search: str = "",
    page: int = 1,
    limit: int = 10,
) -> tuple[list[User], Pagination]:
    """
    Find other users whose name, role, specialty or hospital contains
    ``search`` (case-insensitive). The viewer is never included.
    """
    query = db.query(User).filter(User.id != viewer_id)

    if search:
        pattern = f"%{search}%"
        query = query.filter(
            or_(*(getattr(User, field).ilike(pattern) for field in SEARCHABLE_FIELDS))
        )

    return paginate(query.order_by(User.id), page, limit)


def update_profile(db: Session, user_id: int, caller_id: int, changes: dict[str, Any]) -> User:
    """
    Apply profile edits to the caller's own record.

    Only ``EDITABLE_PROFILE_FIELDS`` are written; identity, credentials and
    the connection lists are never touched here.
    """
    if user_id != caller_id:
        raise ForbiddenError()

    for field, value in changes.items():
        if field in ("first_name", "last_name") and not (value and value.strip()):
            raise ValidationError("Name fields cannot be empty")

    def apply() -> User:
        user = get_user(db, user_id)
        for field, value in changes.items():
            if field in EDITABLE_PROFILE_FIELDS:
                setattr(user, field, value)
        user.updated_at = datetime.utcnow()
        return user

    user = commit_with_retry(db, apply, f"update profile of user {user_id}")
    db.refresh(user)
    return user
