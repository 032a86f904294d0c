from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text, JSON
from sqlalchemy.ext.mutable import MutableList
from sqlalchemy.orm import relationship

from careconnect.db.base import Base

VISIBILITIES = ("public", "connections", "private")


class Post(Base):
    """Feed post with its access policy, likes and comments."""

    __tablename__ = "posts"

    id = Column(Integer, primary_key=True, index=True)
    author_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    content = Column(Text, nullable=False)
    images = Column(MutableList.as_mutable(JSON), default=list, nullable=False)
    # Set semantics: each user id at most once
    likes = Column(MutableList.as_mutable(JSON), default=list, nullable=False)
    visibility = Column(String, nullable=False, default="public", index=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    version_id = Column(Integer, nullable=False)

    # Relationships
    author = relationship("User")
    comments = relationship(
        "Comment",
        back_populates="post",
        order_by="Comment.id",
        cascade="all, delete-orphan",
    )

    __mapper_args__ = {"version_id_col": version_id}


class Comment(Base):
    """Append-only comment on a post, ordered by insertion."""

    __tablename__ = "comments"

    id = Column(Integer, primary_key=True)
    post_id = Column(Integer, ForeignKey("posts.id"), nullable=False, index=True)
    author_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    content = Column(Text, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    post = relationship("Post", back_populates="comments")
    author = relationship("User")
