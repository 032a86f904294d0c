from datetime import datetime

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Index, Integer, String
from sqlalchemy.orm import relationship

from careconnect.db.base import Base

CONNECTION_STATUSES = ("pending", "accepted", "rejected")


class Connection(Base):
    """
    Relationship record between two users.

    The requester initiated the request; only the recipient may accept or
    reject it. At most one record exists per unordered pair of users.
    """

    __tablename__ = "connections"

    id = Column(Integer, primary_key=True, index=True)
    requester_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    recipient_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    status = Column(String, nullable=False, default="pending")  # 'pending' | 'accepted' | 'rejected'
    # "<low id>:<high id>" so the store rejects a second record for the same pair
    pair_key = Column(String, nullable=False, unique=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    version_id = Column(Integer, nullable=False)

    requester = relationship("User", foreign_keys=[requester_id])
    recipient = relationship("User", foreign_keys=[recipient_id])

    __table_args__ = (
        CheckConstraint("requester_id != recipient_id", name="ck_connections_not_self"),
        Index("ix_connections_requester_status", "requester_id", "status"),
        Index("ix_connections_recipient_status", "recipient_id", "status"),
    )
    __mapper_args__ = {"version_id_col": version_id}

    @staticmethod
    def pair_key_for(user_a: int, user_b: int) -> str:
        low, high = sorted((user_a, user_b))
        return f"{low}:{high}"

    def involves(self, user_id: int) -> bool:
        return user_id in (self.requester_id, self.recipient_id)
