"""
Relationship Graph service tests.

Exercise the state machine and the denormalized lists directly against a
session, without the HTTP layer.
"""
import pytest

from careconnect.core.exceptions import ConflictError, ForbiddenError, NotFoundError, ValidationError
from careconnect.models import Connection, User
from careconnect.services import relationship_graph as graph


def reload(db_session, user: User) -> User:
    db_session.expire_all()
    return db_session.get(User, user.id)


class TestSendRequest:
    def test_creates_pending_record_and_pending_entry(self, db_session, alice, bob):
        connection = graph.send_request(db_session, alice.id, bob.id)

        assert connection.status == "pending"
        assert connection.requester_id == alice.id
        assert connection.recipient_id == bob.id
        assert reload(db_session, bob).pending_connections == [alice.id]
        assert reload(db_session, alice).pending_connections == []

    def test_unknown_recipient(self, db_session, alice):
        with pytest.raises(NotFoundError):
            graph.send_request(db_session, alice.id, 9999)

    def test_self_request_rejected(self, db_session, alice):
        with pytest.raises(ValidationError):
            graph.send_request(db_session, alice.id, alice.id)

    @pytest.mark.parametrize("reverse", [False, True])
    def test_duplicate_pending_conflicts_in_either_order(self, db_session, alice, bob, reverse):
        graph.send_request(db_session, alice.id, bob.id)

        requester, recipient = (bob, alice) if reverse else (alice, bob)
        with pytest.raises(ConflictError):
            graph.send_request(db_session, requester.id, recipient.id)

        assert db_session.query(Connection).count() == 1


class TestRespondToRequest:
    def test_accept_makes_both_users_connected(self, db_session, alice, bob):
        connection = graph.send_request(db_session, alice.id, bob.id)

        status = graph.respond_to_request(db_session, connection.id, bob.id, accept=True)

        assert status == "accepted"
        assert graph.are_connected(db_session, alice.id, bob.id)
        assert graph.are_connected(db_session, bob.id, alice.id)
        alice_row, bob_row = reload(db_session, alice), reload(db_session, bob)
        assert alice_row.connections == [bob.id]
        assert bob_row.connections == [alice.id]
        assert alice_row.pending_connections == []
        assert bob_row.pending_connections == []

    def test_reject_clears_pending_and_keeps_record(self, db_session, alice, bob):
        connection = graph.send_request(db_session, alice.id, bob.id)

        status = graph.respond_to_request(db_session, connection.id, bob.id, accept=False)

        assert status == "rejected"
        assert not graph.are_connected(db_session, alice.id, bob.id)
        assert reload(db_session, bob).pending_connections == []
        assert reload(db_session, bob).connections == []
        assert db_session.get(Connection, connection.id).status == "rejected"

    @pytest.mark.parametrize("reverse", [False, True])
    def test_rejected_record_blocks_resend(self, db_session, alice, bob, reverse):
        connection = graph.send_request(db_session, alice.id, bob.id)
        graph.respond_to_request(db_session, connection.id, bob.id, accept=False)

        requester, recipient = (bob, alice) if reverse else (alice, bob)
        with pytest.raises(ConflictError):
            graph.send_request(db_session, requester.id, recipient.id)

    def test_requester_cannot_accept(self, db_session, alice, bob):
        connection = graph.send_request(db_session, alice.id, bob.id)

        with pytest.raises(ForbiddenError):
            graph.respond_to_request(db_session, connection.id, alice.id, accept=True)

        assert db_session.get(Connection, connection.id).status == "pending"

    def test_outsider_cannot_reject(self, db_session, alice, bob, carol):
        connection = graph.send_request(db_session, alice.id, bob.id)

        with pytest.raises(ForbiddenError):
            graph.respond_to_request(db_session, connection.id, carol.id, accept=False)

    def test_terminal_states_cannot_change(self, db_session, alice, bob):
        connection = graph.send_request(db_session, alice.id, bob.id)
        graph.respond_to_request(db_session, connection.id, bob.id, accept=True)

        with pytest.raises(ConflictError):
            graph.respond_to_request(db_session, connection.id, bob.id, accept=False)

        assert graph.are_connected(db_session, alice.id, bob.id)

    def test_missing_record(self, db_session, bob):
        with pytest.raises(NotFoundError):
            graph.respond_to_request(db_session, 12345, bob.id, accept=True)


class TestRemoveConnection:
    def test_either_party_can_remove_accepted(self, db_session, alice, bob):
        connection = graph.send_request(db_session, alice.id, bob.id)
        graph.respond_to_request(db_session, connection.id, bob.id, accept=True)

        graph.remove_connection(db_session, connection.id, alice.id)

        assert db_session.query(Connection).count() == 0
        assert not graph.are_connected(db_session, alice.id, bob.id)
        assert reload(db_session, alice).connections == []
        assert reload(db_session, bob).connections == []

    def test_requester_can_cancel_pending(self, db_session, alice, bob):
        connection = graph.send_request(db_session, alice.id, bob.id)

        graph.remove_connection(db_session, connection.id, alice.id)

        assert reload(db_session, bob).pending_connections == []

    def test_removing_rejection_allows_new_request(self, db_session, alice, bob):
        connection = graph.send_request(db_session, alice.id, bob.id)
        graph.respond_to_request(db_session, connection.id, bob.id, accept=False)
        graph.remove_connection(db_session, connection.id, bob.id)

        again = graph.send_request(db_session, bob.id, alice.id)

        assert again.status == "pending"
        assert reload(db_session, alice).pending_connections == [bob.id]

    def test_outsider_forbidden(self, db_session, alice, bob, carol):
        connection = graph.send_request(db_session, alice.id, bob.id)

        with pytest.raises(ForbiddenError):
            graph.remove_connection(db_session, connection.id, carol.id)

        assert db_session.query(Connection).count() == 1


class TestQueries:
    def test_accepted_connection_ids(self, db_session, alice, bob, carol):
        first = graph.send_request(db_session, alice.id, bob.id)
        graph.respond_to_request(db_session, first.id, bob.id, accept=True)
        second = graph.send_request(db_session, carol.id, alice.id)
        graph.respond_to_request(db_session, second.id, alice.id, accept=True)
        graph.send_request(db_session, bob.id, carol.id)

        assert graph.accepted_connection_ids(db_session, alice.id) == {bob.id, carol.id}
        assert graph.accepted_connection_ids(db_session, bob.id) == {alice.id}

    def test_connection_status_labels(self, db_session, alice, bob, carol):
        graph.send_request(db_session, alice.id, bob.id)

        assert graph.connection_status(db_session, alice.id, alice.id) == ("self", None)
        assert graph.connection_status(db_session, alice.id, carol.id) == ("none", None)
        assert graph.connection_status(db_session, alice.id, bob.id)[0] == "pending_sent"
        assert graph.connection_status(db_session, bob.id, alice.id)[0] == "pending_received"

        with pytest.raises(NotFoundError):
            graph.connection_status(db_session, alice.id, 4242)

    def test_list_connections_newest_first(self, db_session, alice, bob, carol):
        first = graph.send_request(db_session, alice.id, bob.id)
        second = graph.send_request(db_session, carol.id, alice.id)
        graph.respond_to_request(db_session, first.id, bob.id, accept=True)
        graph.respond_to_request(db_session, second.id, alice.id, accept=True)

        connections, pagination = graph.list_connections(db_session, alice.id, "accepted", 1, 10)

        assert [c.id for c in connections] == [second.id, first.id]
        assert pagination.total == 2
        assert connections[0].requester.first_name == "Carol"

    def test_list_connections_rejects_unknown_status(self, db_session, alice):
        with pytest.raises(ValidationError):
            graph.list_connections(db_session, alice.id, "blocked")


class TestRebuildMembershipLists:
    def test_restores_drifted_lists(self, db_session, alice, bob, carol):
        accepted = graph.send_request(db_session, alice.id, bob.id)
        graph.respond_to_request(db_session, accepted.id, bob.id, accept=True)
        graph.send_request(db_session, carol.id, alice.id)

        # Simulate a half-applied update
        alice_row = reload(db_session, alice)
        alice_row.connections = []
        alice_row.pending_connections = [bob.id, bob.id]
        db_session.commit()

        changed = graph.rebuild_membership_lists(db_session)

        assert changed == 1
        alice_row = reload(db_session, alice)
        assert alice_row.connections == [bob.id]
        assert alice_row.pending_connections == [carol.id]
        assert reload(db_session, bob).connections == [alice.id]

    def test_consistent_graph_is_unchanged(self, db_session, alice, bob):
        connection = graph.send_request(db_session, alice.id, bob.id)
        graph.respond_to_request(db_session, connection.id, bob.id, accept=True)

        assert graph.rebuild_membership_lists(db_session, [alice.id, bob.id]) == 0


class TestConcurrentWriters:
    """Two sessions changing the same user's lists must not overwrite each other."""

    def test_requests_to_same_recipient_keep_both_pending_entries(
        self, session_factory, alice, bob, carol
    ):
        first, second = session_factory(), session_factory()
        try:
            # The second writer holds carol's row from before the first commit
            assert second.get(User, carol.id).pending_connections == []

            graph.send_request(first, alice.id, carol.id)
            graph.send_request(second, bob.id, carol.id)

            check = session_factory()
            assert sorted(check.get(User, carol.id).pending_connections) == sorted([alice.id, bob.id])
            assert check.query(Connection).count() == 2
            check.close()
        finally:
            first.close()
            second.close()

    def test_accepts_by_same_user_keep_both_connections(self, session_factory, alice, bob, carol):
        setup = session_factory()
        from_alice = graph.send_request(setup, alice.id, carol.id).id
        from_bob = graph.send_request(setup, bob.id, carol.id).id
        setup.close()

        first, second = session_factory(), session_factory()
        try:
            assert len(second.get(User, carol.id).pending_connections) == 2

            graph.respond_to_request(first, from_alice, carol.id, accept=True)
            graph.respond_to_request(second, from_bob, carol.id, accept=True)

            check = session_factory()
            carol_row = check.get(User, carol.id)
            assert sorted(carol_row.connections) == sorted([alice.id, bob.id])
            assert carol_row.pending_connections == []
            check.close()
        finally:
            first.close()
            second.close()

    def test_stale_response_sees_the_earlier_decision(self, session_factory, alice, bob):
        setup = session_factory()
        connection_id = graph.send_request(setup, alice.id, bob.id).id
        setup.close()

        first, second = session_factory(), session_factory()
        try:
            assert second.get(Connection, connection_id).status == "pending"

            graph.respond_to_request(first, connection_id, bob.id, accept=False)

            with pytest.raises(ConflictError):
                graph.respond_to_request(second, connection_id, bob.id, accept=True)
        finally:
            first.close()
            second.close()

        check = session_factory()
        assert check.get(Connection, connection_id).status == "rejected"
        assert check.get(User, alice.id).connections == []
        check.close()
