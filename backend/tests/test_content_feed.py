"""
Content Feed service tests: feed query construction and visibility rules.
"""
import pytest
from sqlalchemy.orm.exc import StaleDataError

from careconnect.core.exceptions import ConflictError, ForbiddenError, NotFoundError, ValidationError
from careconnect.models import Post
from careconnect.services import content_feed, relationship_graph
from careconnect.services.content_feed import (
    PUBLIC_ONLY,
    SHARED_WITH_CONNECTIONS,
    AuthorFeed,
    HomeFeed,
    build_feed_query,
)


def connect(db_session, requester, recipient):
    connection = relationship_graph.send_request(db_session, requester.id, recipient.id)
    relationship_graph.respond_to_request(db_session, connection.id, recipient.id, accept=True)


class TestBuildFeedQuery:
    def test_home_feed_without_filter(self):
        feed = build_feed_query(1, None, frozenset({2, 3}))

        assert feed == HomeFeed(viewer_id=1, connection_ids=frozenset({2, 3}))

    def test_own_posts_are_unrestricted(self):
        assert build_feed_query(1, 1, frozenset({2})) == AuthorFeed(author_id=1)

    def test_connection_sees_shared_posts(self):
        feed = build_feed_query(1, 2, frozenset({2}))

        assert feed == AuthorFeed(author_id=2, visibilities=SHARED_WITH_CONNECTIONS)

    def test_stranger_sees_public_posts_only(self):
        feed = build_feed_query(1, 5, frozenset({2}))

        assert feed == AuthorFeed(author_id=5, visibilities=PUBLIC_ONLY)

    def test_private_never_shared(self):
        assert "private" not in SHARED_WITH_CONNECTIONS
        assert "private" not in PUBLIC_ONLY

    def test_feed_criteria_rejects_unknown_query(self):
        with pytest.raises(TypeError):
            content_feed.feed_criteria(object())


class TestVisibility:
    def test_feed_respects_visibility(self, db_session, alice, bob, carol):
        connect(db_session, alice, bob)
        public = content_feed.create_post(db_session, alice.id, "Public note", visibility="public")
        shared = content_feed.create_post(db_session, alice.id, "For colleagues", visibility="connections")
        private = content_feed.create_post(db_session, alice.id, "Just me", visibility="private")

        def feed_ids(viewer, filter_user_id=None):
            posts, _ = content_feed.list_feed(db_session, viewer.id, filter_user_id)
            return {post.id for post in posts}

        assert feed_ids(alice) == {public.id, shared.id, private.id}
        assert feed_ids(bob) == {public.id, shared.id}
        assert feed_ids(carol) == {public.id}
        assert feed_ids(bob, alice.id) == {public.id, shared.id}
        assert feed_ids(carol, alice.id) == {public.id}

    def test_feed_is_newest_first(self, db_session, alice):
        first = content_feed.create_post(db_session, alice.id, "first")
        second = content_feed.create_post(db_session, alice.id, "second")

        posts, pagination = content_feed.list_feed(db_session, alice.id)

        assert [post.id for post in posts] == [second.id, first.id]
        assert pagination.total == 2

    def test_get_post_enforces_visibility(self, db_session, alice, bob, carol):
        connect(db_session, alice, bob)
        post = content_feed.create_post(db_session, alice.id, "For colleagues", visibility="connections")

        assert content_feed.get_post(db_session, post.id, bob.id).id == post.id
        with pytest.raises(ForbiddenError):
            content_feed.get_post(db_session, post.id, carol.id)
        with pytest.raises(NotFoundError):
            content_feed.get_post(db_session, 999, alice.id)

    def test_hidden_post_cannot_be_liked_or_commented(self, db_session, alice, bob):
        post = content_feed.create_post(db_session, alice.id, "Just me", visibility="private")

        with pytest.raises(ForbiddenError):
            content_feed.toggle_like(db_session, post.id, bob.id)
        with pytest.raises(ForbiddenError):
            content_feed.add_comment(db_session, post.id, bob.id, "Nice")


class TestMutations:
    def test_toggle_like_twice_restores_likes(self, db_session, alice, bob):
        post = content_feed.create_post(db_session, alice.id, "Hello")

        assert content_feed.toggle_like(db_session, post.id, bob.id) is True
        assert content_feed.toggle_like(db_session, post.id, bob.id) is False

        db_session.expire_all()
        assert content_feed.get_post(db_session, post.id, alice.id).likes == []

    def test_create_post_validation(self, db_session, alice):
        with pytest.raises(ValidationError):
            content_feed.create_post(db_session, alice.id, "   ")
        with pytest.raises(ValidationError):
            content_feed.create_post(db_session, alice.id, "Hi", visibility="friends")

    def test_update_ignores_protected_fields(self, db_session, alice, bob):
        post = content_feed.create_post(db_session, alice.id, "Draft")
        created_at = post.created_at

        updated = content_feed.update_post(
            db_session,
            post.id,
            alice.id,
            {"content": "Final", "author_id": bob.id, "created_at": None},
        )

        assert updated.content == "Final"
        assert updated.author_id == alice.id
        assert updated.created_at == created_at
        assert updated.updated_at >= created_at

    def test_only_author_can_update_or_delete(self, db_session, alice, bob):
        post = content_feed.create_post(db_session, alice.id, "Mine")

        with pytest.raises(ForbiddenError):
            content_feed.update_post(db_session, post.id, bob.id, {"content": "Yours"})
        with pytest.raises(ForbiddenError):
            content_feed.delete_post(db_session, post.id, bob.id)

        content_feed.delete_post(db_session, post.id, alice.id)
        with pytest.raises(NotFoundError):
            content_feed.get_post(db_session, post.id, alice.id)


class TestConcurrentLikes:
    def test_likes_from_two_sessions_are_both_kept(self, session_factory, db_session, alice, bob, carol):
        post = content_feed.create_post(db_session, alice.id, "Grand rounds at noon")
        first, second = session_factory(), session_factory()
        try:
            # The second writer holds the post from before the first like
            assert second.get(Post, post.id).likes == []

            assert content_feed.toggle_like(first, post.id, bob.id) is True
            assert content_feed.toggle_like(second, post.id, carol.id) is True

            check = session_factory()
            assert sorted(check.get(Post, post.id).likes) == sorted([bob.id, carol.id])
            check.close()
        finally:
            first.close()
            second.close()

    def test_exhausted_retries_raise_conflict(self, db_session, monkeypatch, alice, bob):
        post = content_feed.create_post(db_session, alice.id, "Busy post")

        def always_stale():
            raise StaleDataError("row changed underneath")

        monkeypatch.setattr(db_session, "commit", always_stale)

        with pytest.raises(ConflictError):
            content_feed.toggle_like(db_session, post.id, bob.id)
