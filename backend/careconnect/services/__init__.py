from careconnect.services import relationship_graph, identity, content_feed, job_board, upload_relay
from careconnect.services.relationship_graph import (
    are_connected,
    accepted_connection_ids,
    rebuild_membership_lists,
)
from careconnect.services.content_feed import build_feed_query, feed_criteria, AuthorFeed, HomeFeed

__all__ = [
    "content_feed",
    "identity",
    "job_board",
    "relationship_graph",
    "upload_relay",
    "are_connected",
    "accepted_connection_ids",
    "rebuild_membership_lists",
    "build_feed_query",
    "feed_criteria",
    "AuthorFeed",
    "HomeFeed",
]
