"""
Post API endpoints.

Feed listing, post CRUD, likes and comments. Visibility rules live in the
Content Feed service; this module only shapes requests and responses.
"""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from careconnect.api.v1.auth import get_current_user
from careconnect.core.config import settings
from careconnect.db.session import get_db
from careconnect.models import Comment, Post, User
from careconnect.schemas.common import CamelModel, Pagination, UserPublic
from careconnect.services import content_feed

router = APIRouter()


# ============== Pydantic Schemas ==============


class CommentResponse(CamelModel):
    id: int
    post_id: int
    author_id: int
    content: str
    created_at: datetime
    author: Optional[UserPublic] = None


class PostResponse(CamelModel):
    """Post with its author, like state for the viewer and comments."""

    id: int
    author_id: int
    content: str
    images: list[str]
    likes: list[int]
    like_count: int
    liked_by_me: bool
    comments: list[CommentResponse]
    comment_count: int
    visibility: str
    created_at: datetime
    updated_at: datetime
    author: Optional[UserPublic] = None


class PostListResponse(CamelModel):
    posts: list[PostResponse]
    pagination: Pagination


class PostCreate(CamelModel):
    content: Optional[str] = None
    images: list[str] = []
    visibility: Optional[str] = "public"


class PostUpdate(CamelModel):
    """Writable post fields. Ids, author and timestamps are not accepted."""

    content: Optional[str] = None
    images: Optional[list[str]] = None
    visibility: Optional[str] = None


class PostMutationResponse(CamelModel):
    message: str
    post: PostResponse


class LikeResponse(CamelModel):
    message: str
    liked: bool


class CommentCreate(CamelModel):
    content: Optional[str] = None


class CommentCreatedResponse(CamelModel):
    message: str
    comment: CommentResponse


# ============== Helper Functions ==============


def serialize_post(post: Post, viewer_id: int) -> PostResponse:
    likes = list(post.likes or [])
    return PostResponse(
        id=post.id,
        author_id=post.author_id,
        content=post.content,
        images=list(post.images or []),
        likes=likes,
        like_count=len(likes),
        liked_by_me=viewer_id in likes,
        comments=[CommentResponse.model_validate(c) for c in post.comments],
        comment_count=len(post.comments),
        visibility=post.visibility,
        created_at=post.created_at,
        updated_at=post.updated_at,
        author=UserPublic.model_validate(post.author) if post.author else None,
    )


# ============== API Endpoints ==============


@router.get("", response_model=PostListResponse)
async def list_posts(
    user_id: Optional[int] = Query(None, alias="userId"),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    page: int = Query(1, ge=1),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """
    List posts visible to the caller, newest first.

    Without ``userId`` this is the home feed: the caller's posts, their
    connections' shared posts and every public post. With ``userId`` only
    that author's posts are returned, filtered by visibility.
    """
    posts, pagination = content_feed.list_feed(db, current_user.id, user_id, page, limit)
    return PostListResponse(
        posts=[serialize_post(post, current_user.id) for post in posts],
        pagination=pagination,
    )


@router.post("", response_model=PostMutationResponse, status_code=status.HTTP_201_CREATED)
async def create_post(
    data: PostCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    post = content_feed.create_post(
        db, current_user.id, data.content, data.images, data.visibility
    )
    return PostMutationResponse(
        message="Post created successfully",
        post=serialize_post(post, current_user.id),
    )


@router.get("/{post_id}", response_model=PostResponse)
async def get_post(
    post_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Fetch one post; 403 if its visibility hides it from the caller."""
    post = content_feed.get_post(db, post_id, current_user.id)
    return serialize_post(post, current_user.id)


@router.put("/{post_id}", response_model=PostMutationResponse)
async def update_post(
    post_id: int,
    data: PostUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    post = content_feed.update_post(
        db, post_id, current_user.id, data.model_dump(exclude_unset=True)
    )
    return PostMutationResponse(
        message="Post updated successfully",
        post=serialize_post(post, current_user.id),
    )


@router.delete("/{post_id}")
async def delete_post(
    post_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    content_feed.delete_post(db, post_id, current_user.id)
    return {"message": "Post deleted successfully"}


@router.post("/{post_id}/like", response_model=LikeResponse)
async def toggle_like(
    post_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Like the post, or unlike it when the caller already likes it."""
    liked = content_feed.toggle_like(db, post_id, current_user.id)
    return LikeResponse(
        message="Post liked successfully" if liked else "Post unliked successfully",
        liked=liked,
    )


@router.post(
    "/{post_id}/comment",
    response_model=CommentCreatedResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_comment(
    post_id: int,
    data: CommentCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    comment: Comment = content_feed.add_comment(db, post_id, current_user.id, data.content)
    return CommentCreatedResponse(
        message="Comment added successfully",
        comment=CommentResponse.model_validate(comment),
    )
