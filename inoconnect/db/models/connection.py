"""
Connection request model.
"""
from sqlalchemy import Column, String, DateTime, ForeignKey, Index, CheckConstraint, text

from ..base import Base, IdMixin, ID_LENGTH, utcnow
from .enums import RequestStatus


class ConnectionRequest(Base, IdMixin):
    """
    A request from one user to connect with another.

    ``pair_key`` is the order-independent identity of the two users; the partial
    unique index keeps at most one pending request per pair, whichever side sent it.
    """
    __tablename__ = "connection_requests"

    from_user_id = Column(String(ID_LENGTH), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    to_user_id = Column(String(ID_LENGTH), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    pair_key = Column(String(2 * ID_LENGTH + 1), nullable=False, index=True)
    status = Column(String(20), nullable=False, default=RequestStatus.PENDING.value, index=True)
    timestamp = Column(DateTime, nullable=False, default=utcnow, index=True)
    resolved_at = Column(DateTime)

    __table_args__ = (
        Index(
            "uq_connection_requests_pending_pair",
            "pair_key",
            unique=True,
            postgresql_where=text("status = 'pending'"),
            sqlite_where=text("status = 'pending'"),
        ),
        CheckConstraint("from_user_id <> to_user_id", name="not_self"),
    )
