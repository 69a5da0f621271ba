"""
Pydantic schemas for the application.
"""
from inoconnect.schemas import user
from inoconnect.schemas import connection
from inoconnect.schemas import project
from inoconnect.schemas import chat
from inoconnect.schemas import notification
from inoconnect.schemas import event

__all__ = ["user", "connection", "project", "chat", "notification", "event"]
