"""
Pydantic schemas for connection requests.
"""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class ConnectionRequestCreate(BaseModel):
    to_user_id: str = Field(..., min_length=1, description="User to connect with")


class ConnectionRequestRead(BaseModel):
    id: str
    from_user_id: str
    to_user_id: str
    status: str
    timestamp: datetime
    resolved_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ConnectionRequestResult(BaseModel):
    """Outcome of a send; ``created`` is False when an identical pending request already existed."""
    created: bool
    request: ConnectionRequestRead


class RejectResult(BaseModel):
    request_id: str
    deleted: bool
