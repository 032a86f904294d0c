from careconnect.models.user import User
from careconnect.models.connection import Connection
from careconnect.models.post import Post, Comment
from careconnect.models.job import Job

__all__ = ["User", "Connection", "Post", "Comment", "Job"]
