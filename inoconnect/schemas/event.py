"""
Pydantic schemas for organizer events.
"""
from datetime import datetime
from typing import List

from pydantic import BaseModel, Field


class EventCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: str = ""
    location: str = ""
    event_date: str = ""
    joining_deadline: str = ""
    image_url: str = ""


class EventRead(BaseModel):
    id: str
    organizer_id: str
    title: str
    description: str = ""
    location: str = ""
    event_date: str = ""
    joining_deadline: str = ""
    image_url: str = ""
    created_at: datetime
    participant_ids: List[str] = Field(default_factory=list)

    class Config:
        from_attributes = True
