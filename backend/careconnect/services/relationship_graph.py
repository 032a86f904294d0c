"""
Relationship Graph service.

Owns the connection-request state machine and the denormalized membership
lists (``User.connections`` / ``User.pending_connections``).

State machine per Connection record:

    pending --accept--> accepted   (terminal)
    pending --reject--> rejected   (terminal)
    any     --remove--> deleted

The connections table is authoritative. Every transition updates the record
and both users' lists inside one session and commits once, so the record and
the lists change in the same transaction. Users and connections carry a
version column, so a transition computed from rows another request changed
meanwhile is retried against fresh rows rather than overwriting that change.
``rebuild_membership_lists`` recomputes the lists from the table if they
ever drift.
"""

import logging
from datetime import datetime
from typing import Iterable, Optional

from sqlalchemy import and_, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from careconnect.core.exceptions import ConflictError, ForbiddenError, NotFoundError, ValidationError
from careconnect.db.session import commit_with_retry
from careconnect.models import Connection, User
from careconnect.models.connection import CONNECTION_STATUSES
from careconnect.schemas.common import Pagination
from careconnect.utils.pagination import paginate

logger = logging.getLogger(__name__)


# ============== Helper Functions ==============


def _add_to_set(values: list, item: int) -> None:
    if item not in values:
        values.append(item)


def _discard(values: list, item: int) -> None:
    while item in values:
        values.remove(item)


def _between(user_a: int, user_b: int):
    """Criteria matching a record between the pair in either ordering."""
    return or_(
        and_(Connection.requester_id == user_a, Connection.recipient_id == user_b),
        and_(Connection.requester_id == user_b, Connection.recipient_id == user_a),
    )


def _involving(user_id: int):
    return or_(Connection.requester_id == user_id, Connection.recipient_id == user_id)


def get_connection(db: Session, connection_id: int) -> Connection:
    connection = db.get(Connection, connection_id)
    if connection is None:
        raise NotFoundError("Connection not found")
    return connection


def find_between(db: Session, user_a: int, user_b: int) -> Optional[Connection]:
    """Return the record between two users, whichever of them sent it."""
    return db.query(Connection).filter(_between(user_a, user_b)).first()


# ============== Transitions ==============


def send_request(db: Session, requester_id: int, recipient_id: int) -> Connection:
    """
    Create a pending request from ``requester_id`` to ``recipient_id``.

    Raises:
        ValidationError: the requester targets themselves
        NotFoundError: the recipient does not exist
        ConflictError: a record already exists between the pair (any status)
    """
    if requester_id == recipient_id:
        raise ValidationError("Cannot send a connection request to yourself")

    def apply() -> Connection:
        recipient = db.get(User, recipient_id)
        if recipient is None:
            raise NotFoundError("Recipient not found")

        if find_between(db, requester_id, recipient_id) is not None:
            raise ConflictError("Connection request already exists")

        now = datetime.utcnow()
        connection = Connection(
            requester_id=requester_id,
            recipient_id=recipient_id,
            status="pending",
            pair_key=Connection.pair_key_for(requester_id, recipient_id),
            created_at=now,
            updated_at=now,
        )
        db.add(connection)
        _add_to_set(recipient.pending_connections, requester_id)
        return connection

    try:
        connection = commit_with_retry(db, apply, "send connection request")
    except IntegrityError:
        # Lost a race with a concurrent request for the same pair
        raise ConflictError("Connection request already exists")

    db.refresh(connection)
    logger.info(
        "Connection %s requested: %s -> %s", connection.id, requester_id, recipient_id
    )
    return connection


def respond_to_request(db: Session, connection_id: int, responder_id: int, accept: bool) -> str:
    """
    Accept or reject a pending request. Only the recipient may respond.

    Returns:
        The new status, "accepted" or "rejected"
    """
    status = "accepted" if accept else "rejected"

    def apply() -> None:
        connection = get_connection(db, connection_id)

        if connection.recipient_id != responder_id:
            raise ForbiddenError()

        if connection.status != "pending":
            raise ConflictError(f"Connection request already {connection.status}")

        requester = db.get(User, connection.requester_id)
        recipient = db.get(User, connection.recipient_id)

        connection.status = status
        connection.updated_at = datetime.utcnow()

        if accept:
            if requester is not None:
                _add_to_set(requester.connections, recipient.id)
                _discard(requester.pending_connections, recipient.id)
            _add_to_set(recipient.connections, connection.requester_id)
            _discard(recipient.pending_connections, connection.requester_id)
        else:
            # Rejected records are kept; they block a resend until removed
            _discard(recipient.pending_connections, connection.requester_id)

    commit_with_retry(db, apply, f"mark connection {connection_id} {status}")

    logger.info("Connection %s %s by user %s", connection_id, status, responder_id)
    return status


def remove_connection(db: Session, connection_id: int, caller_id: int) -> None:
    """
    Delete a record in any state (unfriend, cancel or clear a rejection).

    Either party may remove it; both users' lists are cleaned up.
    """

    def apply() -> None:
        connection = get_connection(db, connection_id)

        if not connection.involves(caller_id):
            raise ForbiddenError()

        requester = db.get(User, connection.requester_id)
        recipient = db.get(User, connection.recipient_id)

        for user, other_id in ((requester, connection.recipient_id), (recipient, connection.requester_id)):
            if user is None:
                continue
            _discard(user.connections, other_id)
            _discard(user.pending_connections, other_id)

        db.delete(connection)

    commit_with_retry(db, apply, f"remove connection {connection_id}")

    logger.info("Connection %s removed by user %s", connection_id, caller_id)


# ============== Queries ==============


def are_connected(db: Session, user_a: int, user_b: int) -> bool:
    """True iff an accepted record exists between the pair in either ordering."""
    return (
        db.query(Connection.id)
        .filter(_between(user_a, user_b), Connection.status == "accepted")
        .first()
        is not None
    )


def accepted_connection_ids(db: Session, user_id: int) -> set[int]:
    """Ids of everyone with an accepted connection to ``user_id``."""
    rows = (
        db.query(Connection.requester_id, Connection.recipient_id)
        .filter(_involving(user_id), Connection.status == "accepted")
        .all()
    )
    return {recipient if requester == user_id else requester for requester, recipient in rows}


def connection_status(db: Session, viewer_id: int, other_id: int) -> tuple[str, Optional[Connection]]:
    """
    Describe the relationship between the viewer and another user.

    Returns:
        A label ("self", "none", "pending_sent", "pending_received",
        "accepted" or "rejected") and the record, if any
    """
    if viewer_id == other_id:
        return "self", None

    if db.get(User, other_id) is None:
        raise NotFoundError("User not found")

    connection = find_between(db, viewer_id, other_id)
    if connection is None:
        return "none", None

    if connection.status == "pending":
        label = "pending_sent" if connection.requester_id == viewer_id else "pending_received"
        return label, connection

    return connection.status, connection


def list_connections(
    db: Session,
    user_id: int,
    status: str = "accepted",
    page: int = 1,
    limit: int = 10,
) -> tuple[list[Connection], Pagination]:
    """Records with the given status involving the user, newest first."""
    if status not in CONNECTION_STATUSES:
        raise ValidationError(f"Status must be one of: {', '.join(CONNECTION_STATUSES)}")

    query = (
        db.query(Connection)
        .options(joinedload(Connection.requester), joinedload(Connection.recipient))
        .filter(_involving(user_id), Connection.status == status)
        .order_by(Connection.created_at.desc(), Connection.id.desc())
    )
    return paginate(query, page, limit)


# ============== Reconciliation ==============


def rebuild_membership_lists(db: Session, user_ids: Optional[Iterable[int]] = None) -> int:
    """
    Recompute ``connections`` and ``pending_connections`` from the
    connections table.

    Args:
        user_ids: Users to rebuild; all users when omitted

    Returns:
        Number of users whose lists changed
    """
    selected = list(user_ids) if user_ids is not None else None

    def apply() -> int:
        query = db.query(User)
        if selected is not None:
            query = query.filter(User.id.in_(selected))
        users = query.all()

        expected_connections: dict[int, set[int]] = {user.id: set() for user in users}
        expected_pending: dict[int, set[int]] = {user.id: set() for user in users}

        for connection in db.query(Connection).filter(Connection.status.in_(("accepted", "pending"))):
            if connection.status == "accepted":
                if connection.requester_id in expected_connections:
                    expected_connections[connection.requester_id].add(connection.recipient_id)
                if connection.recipient_id in expected_connections:
                    expected_connections[connection.recipient_id].add(connection.requester_id)
            elif connection.recipient_id in expected_pending:
                expected_pending[connection.recipient_id].add(connection.requester_id)

        changed = 0
        for user in users:
            connections = sorted(expected_connections[user.id])
            pending = sorted(expected_pending[user.id])
            if sorted(user.connections or []) != connections or sorted(user.pending_connections or []) != pending:
                user.connections = connections
                user.pending_connections = pending
                changed += 1
        return changed

    changed = commit_with_retry(db, apply, "rebuild membership lists")

    if changed:
        logger.warning("Rebuilt membership lists for %d user(s)", changed)
    return changed
