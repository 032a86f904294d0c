"""
Authentication API endpoints.

Handles registration, login and logout. The session token travels in an
http-only cookie; ``get_current_user`` resolves it on every protected route.
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from careconnect.core.config import settings
from careconnect.core.exceptions import AuthenticationError
from careconnect.core.security import (
    create_session_token,
    get_token_subject,
    remove_auth_cookie,
    set_auth_cookie,
)
from careconnect.db.session import get_db
from careconnect.models import User
from careconnect.schemas.common import CamelModel, UserProfile
from careconnect.services import identity

router = APIRouter()

# API clients may send the session token as "Authorization: Bearer <token>"
bearer_scheme = HTTPBearer(auto_error=False)


# ============== Pydantic Schemas ==============


class UserRegister(CamelModel):
    """Schema for user registration. Missing fields are reported as 400."""

    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None
    phone: Optional[str] = None
    profile_image: Optional[str] = None


class UserLogin(CamelModel):
    email: Optional[str] = None
    password: Optional[str] = None


class AuthResponse(CamelModel):
    """Schema for register/login responses (without password)."""

    message: str
    user: UserProfile


class MessageResponse(CamelModel):
    message: str


# ============== Dependencies ==============


async def get_current_user(
    request: Request,
    bearer: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> User:
    """
    Dependency to get the current authenticated user.

    The token is read from the session cookie, or from the Authorization
    header when no cookie is present.

    Raises HTTPException 401 if no token is supplied, the token is invalid
    or expired, or the user no longer exists.
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Unauthorized",
    )

    token = request.cookies.get(settings.AUTH_COOKIE_NAME)
    if not token and bearer is not None:
        token = bearer.credentials
    if not token:
        raise credentials_exception

    user_id = get_token_subject(token)
    if user_id is None:
        raise credentials_exception

    user = db.get(User, user_id)
    if user is None:
        raise credentials_exception

    return user


# ============== API Endpoints ==============


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def register(user_data: UserRegister, response: Response, db: Session = Depends(get_db)):
    """
    Register a new user and start a session.

    Returns 400 when a required field is missing and 409 when the email
    is already taken.
    """
    user = identity.register_user(
        db,
        first_name=user_data.first_name,
        last_name=user_data.last_name,
        email=user_data.email,
        password=user_data.password,
        phone=user_data.phone,
        profile_image=user_data.profile_image,
    )

    set_auth_cookie(response, create_session_token(user.id, user.email))

    return AuthResponse(
        message="User registered successfully",
        user=UserProfile.model_validate(user),
    )


@router.post("/login", response_model=AuthResponse)
async def login(credentials: UserLogin, response: Response, db: Session = Depends(get_db)):
    """Check email and password and set the session cookie."""
    if not credentials.email or not credentials.password:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Email and password are required",
        )

    user = identity.authenticate_user(db, credentials.email, credentials.password)
    if not user:
        raise AuthenticationError("Invalid email or password")

    set_auth_cookie(response, create_session_token(user.id, user.email))

    return AuthResponse(message="Login successful", user=UserProfile.model_validate(user))


@router.post("/logout", response_model=MessageResponse)
async def logout(response: Response):
    """Clear the session cookie."""
    remove_auth_cookie(response)
    return MessageResponse(message="Logged out successfully")


@router.get("/me", response_model=UserProfile)
async def get_me(current_user: User = Depends(get_current_user)):
    """Get the current authenticated user's profile."""
    return UserProfile.model_validate(current_user)
