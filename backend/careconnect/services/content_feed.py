"""
Content Feed service.

Posts, their visibility policy, likes and comments. Read access is decided
against the Relationship Graph:

    public       -> anyone
    connections  -> the author and their accepted connections
    private      -> the author only

Feed listings are described by a ``FeedQuery`` value built by the pure
``build_feed_query`` and translated to SQL criteria by ``feed_criteria``.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional, Union

from sqlalchemy import and_, or_
from sqlalchemy.orm import Session, joinedload, selectinload

from careconnect.core.exceptions import ForbiddenError, NotFoundError, ValidationError
from careconnect.db.session import commit_with_retry
from careconnect.models import Comment, Post
from careconnect.models.post import VISIBILITIES
from careconnect.schemas.common import Pagination
from careconnect.services import relationship_graph
from careconnect.utils.pagination import paginate

logger = logging.getLogger(__name__)

SHARED_WITH_CONNECTIONS = frozenset({"public", "connections"})
PUBLIC_ONLY = frozenset({"public"})


# ============== Feed Queries ==============


@dataclass(frozen=True)
class AuthorFeed:
    """Posts by one author, restricted to ``visibilities`` (None means all)."""

    author_id: int
    visibilities: Optional[frozenset[str]] = None


@dataclass(frozen=True)
class HomeFeed:
    """The viewer's own posts, their connections' shared posts and all public posts."""

    viewer_id: int
    connection_ids: frozenset[int] = frozenset()


FeedQuery = Union[AuthorFeed, HomeFeed]


def build_feed_query(
    viewer_id: int,
    filter_user_id: Optional[int],
    connection_ids: frozenset[int],
) -> FeedQuery:
    """
    Decide what a feed listing may return.

    Args:
        viewer_id: The authenticated caller
        filter_user_id: Restrict to one author's posts, if given
        connection_ids: The viewer's accepted connections
    """
    if filter_user_id is None:
        return HomeFeed(viewer_id=viewer_id, connection_ids=frozenset(connection_ids))

    if filter_user_id == viewer_id:
        return AuthorFeed(author_id=viewer_id)

    if filter_user_id in connection_ids:
        return AuthorFeed(author_id=filter_user_id, visibilities=SHARED_WITH_CONNECTIONS)

    return AuthorFeed(author_id=filter_user_id, visibilities=PUBLIC_ONLY)


def feed_criteria(feed: FeedQuery):
    """Translate a ``FeedQuery`` into a SQLAlchemy filter over ``Post``."""
    if isinstance(feed, AuthorFeed):
        criteria = Post.author_id == feed.author_id
        if feed.visibilities is not None:
            criteria = and_(criteria, Post.visibility.in_(sorted(feed.visibilities)))
        return criteria

    if isinstance(feed, HomeFeed):
        clauses = [Post.author_id == feed.viewer_id]
        if feed.connection_ids:
            clauses.append(
                and_(
                    Post.author_id.in_(sorted(feed.connection_ids)),
                    Post.visibility.in_(sorted(SHARED_WITH_CONNECTIONS)),
                )
            )
        clauses.append(Post.visibility == "public")
        return or_(*clauses)

    raise TypeError(f"Unsupported feed query: {feed!r}")


# ============== Helper Functions ==============


def _validate_content(content: Optional[str], message: str = "Content is required") -> str:
    if content is None or not content.strip():
        raise ValidationError(message)
    return content


def _validate_visibility(visibility: Optional[str]) -> str:
    if visibility not in VISIBILITIES:
        raise ValidationError(f"Visibility must be one of: {', '.join(VISIBILITIES)}")
    return visibility


def _load_post(db: Session, post_id: int) -> Post:
    post = (
        db.query(Post)
        .options(
            joinedload(Post.author),
            selectinload(Post.comments).joinedload(Comment.author),
        )
        .filter(Post.id == post_id)
        .first()
    )
    if post is None:
        raise NotFoundError("Post not found")
    return post


def _ensure_author(post: Post, caller_id: int) -> None:
    if post.author_id != caller_id:
        raise ForbiddenError()


def can_view(db: Session, post: Post, viewer_id: int) -> bool:
    """Visibility predicate for a single post."""
    if post.visibility == "public" or post.author_id == viewer_id:
        return True
    if post.visibility == "connections":
        return relationship_graph.are_connected(db, viewer_id, post.author_id)
    return False


# ============== Operations ==============


def create_post(
    db: Session,
    author_id: int,
    content: Optional[str],
    images: Optional[list[str]] = None,
    visibility: Optional[str] = "public",
) -> Post:
    content = _validate_content(content)
    visibility = _validate_visibility(visibility or "public")

    now = datetime.utcnow()
    post = Post(
        author_id=author_id,
        content=content,
        images=list(images or []),
        likes=[],
        visibility=visibility,
        created_at=now,
        updated_at=now,
    )
    db.add(post)
    db.commit()

    logger.info("Post %s created by user %s (%s)", post.id, author_id, visibility)
    return _load_post(db, post.id)


def get_post(db: Session, post_id: int, viewer_id: int) -> Post:
    """
    Fetch a post the viewer is allowed to read.

    Raises:
        NotFoundError: no such post
        ForbiddenError: the visibility policy hides it from the viewer
    """
    post = _load_post(db, post_id)
    if not can_view(db, post, viewer_id):
        raise ForbiddenError()
    return post


def list_feed(
    db: Session,
    viewer_id: int,
    filter_user_id: Optional[int] = None,
    page: int = 1,
    limit: int = 10,
) -> tuple[list[Post], Pagination]:
    """Posts visible to the viewer, newest first."""
    connection_ids = frozenset(relationship_graph.accepted_connection_ids(db, viewer_id))
    feed = build_feed_query(viewer_id, filter_user_id, connection_ids)

    query = (
        db.query(Post)
        .options(
            joinedload(Post.author),
            selectinload(Post.comments).joinedload(Comment.author),
        )
        .filter(feed_criteria(feed))
        .order_by(Post.created_at.desc(), Post.id.desc())
    )
    return paginate(query, page, limit)


def toggle_like(db: Session, post_id: int, user_id: int) -> bool:
    """
    Like the post, or unlike it if already liked.

    Returns:
        True if the user now likes the post
    """

    def apply() -> bool:
        post = db.get(Post, post_id)
        if post is None:
            raise NotFoundError("Post not found")
        if not can_view(db, post, user_id):
            raise ForbiddenError()

        if user_id in post.likes:
            while user_id in post.likes:
                post.likes.remove(user_id)
            liked = False
        else:
            post.likes.append(user_id)
            liked = True

        post.updated_at = datetime.utcnow()
        return liked

    return commit_with_retry(db, apply, f"toggle like on post {post_id}")


def add_comment(db: Session, post_id: int, author_id: int, content: Optional[str]) -> Comment:
    content = _validate_content(content, "Comment content is required")

    def apply() -> Comment:
        post = db.get(Post, post_id)
        if post is None:
            raise NotFoundError("Post not found")
        if not can_view(db, post, author_id):
            raise ForbiddenError()

        now = datetime.utcnow()
        comment = Comment(post_id=post.id, author_id=author_id, content=content, created_at=now)
        db.add(comment)
        post.updated_at = now
        return comment

    comment = commit_with_retry(db, apply, f"comment on post {post_id}")

    return (
        db.query(Comment)
        .options(joinedload(Comment.author))
        .filter(Comment.id == comment.id)
        .one()
    )


def update_post(db: Session, post_id: int, caller_id: int, changes: dict[str, Any]) -> Post:
    """
    Edit the caller's own post.

    Only content, images and visibility are applied; id, author and
    creation time are never overwritten. ``updated_at`` is always stamped.
    """

    def apply() -> None:
        post = _load_post(db, post_id)
        _ensure_author(post, caller_id)

        if "content" in changes:
            post.content = _validate_content(changes["content"])
        if "images" in changes:
            post.images = list(changes["images"] or [])
        if "visibility" in changes:
            post.visibility = _validate_visibility(changes["visibility"])

        post.updated_at = datetime.utcnow()

    commit_with_retry(db, apply, f"update post {post_id}")
    return _load_post(db, post_id)


def delete_post(db: Session, post_id: int, caller_id: int) -> None:
    def apply() -> None:
        post = _load_post(db, post_id)
        _ensure_author(post, caller_id)
        db.delete(post)

    commit_with_retry(db, apply, f"delete post {post_id}")
    logger.info("Post %s deleted by user %s", post_id, caller_id)
