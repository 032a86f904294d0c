"""
Connection API endpoints.

Thin HTTP layer over the Relationship Graph service: list, send, respond
to and remove connection requests.
"""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from careconnect.api.v1.auth import get_current_user
from careconnect.core.config import settings
from careconnect.db.session import get_db
from careconnect.models import User
from careconnect.schemas.common import CamelModel, Pagination, UserPublic
from careconnect.services import relationship_graph

router = APIRouter()


# ============== Pydantic Schemas ==============


class ConnectionResponse(CamelModel):
    """Connection record with both parties' public profiles."""

    id: int
    requester_id: int
    recipient_id: int
    status: str
    created_at: datetime
    updated_at: datetime
    requester: Optional[UserPublic] = None
    recipient: Optional[UserPublic] = None


class ConnectionListResponse(CamelModel):
    connections: list[ConnectionResponse]
    pagination: Pagination


class ConnectionRequest(CamelModel):
    recipient_id: Optional[int] = None


class ConnectionCreatedResponse(CamelModel):
    message: str
    connection: ConnectionResponse


class ConnectionUpdateRequest(CamelModel):
    status: Optional[str] = None  # 'accepted' | 'rejected'


class ConnectionUpdateResponse(CamelModel):
    message: str
    status: str


class ConnectionStatusResponse(CamelModel):
    """Relationship between the caller and another user."""

    status: str  # 'self' | 'none' | 'pending_sent' | 'pending_received' | 'accepted' | 'rejected'
    connection: Optional[ConnectionResponse] = None


# ============== API Endpoints ==============


@router.get("", response_model=ConnectionListResponse)
async def list_connections(
    status_filter: str = Query("accepted", alias="status"),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    page: int = Query(1, ge=1),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """List the caller's connections with the given status, newest first."""
    connections, pagination = relationship_graph.list_connections(
        db, current_user.id, status_filter, page, limit
    )
    return ConnectionListResponse(
        connections=[ConnectionResponse.model_validate(c) for c in connections],
        pagination=pagination,
    )


@router.post("", response_model=ConnectionCreatedResponse, status_code=status.HTTP_201_CREATED)
async def send_connection_request(
    data: ConnectionRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """
    Send a connection request.

    404 if the recipient does not exist, 409 if a record already exists
    between the two users in either direction.
    """
    if data.recipient_id is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Recipient ID is required",
        )

    connection = relationship_graph.send_request(db, current_user.id, data.recipient_id)
    return ConnectionCreatedResponse(
        message="Connection request sent successfully",
        connection=ConnectionResponse.model_validate(connection),
    )


@router.get("/status/{user_id}", response_model=ConnectionStatusResponse)
async def get_connection_status(
    user_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    label, connection = relationship_graph.connection_status(db, current_user.id, user_id)
    return ConnectionStatusResponse(
        status=label,
        connection=ConnectionResponse.model_validate(connection) if connection else None,
    )


@router.put("/{connection_id}", response_model=ConnectionUpdateResponse)
async def respond_to_connection_request(
    connection_id: int,
    data: ConnectionUpdateRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Accept or reject a pending request. Only the recipient may respond."""
    if data.status not in ("accepted", "rejected"):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid status",
        )

    new_status = relationship_graph.respond_to_request(
        db, connection_id, current_user.id, accept=data.status == "accepted"
    )
    return ConnectionUpdateResponse(
        message=f"Connection request {new_status}",
        status=new_status,
    )


@router.delete("/{connection_id}")
async def remove_connection(
    connection_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """Remove a connection or cancel a request. Either party may do this."""
    relationship_graph.remove_connection(db, connection_id, current_user.id)
    return {"message": "Connection removed successfully"}
