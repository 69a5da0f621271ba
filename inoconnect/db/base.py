"""
Base module for SQLAlchemy models.
"""
import uuid
from datetime import datetime, timezone

from sqlalchemy import MetaData, Column, DateTime, String, func
from sqlalchemy.orm import declarative_base, declared_attr

# Define naming convention for constraints
convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s"
}

# Create metadata with naming convention
db_metadata = MetaData(naming_convention=convention)

# Create base model class
Base = declarative_base(metadata=db_metadata)

# Ids are opaque strings; identity-provider ids can be longer than a UUID
ID_LENGTH = 128


def new_id() -> str:
    return str(uuid.uuid4())


def utcnow() -> datetime:
    """Current time as naive UTC, the format every DateTime column stores."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class TimestampMixin:
    @declared_attr
    def created_at(cls):
        return Column(DateTime, default=utcnow, server_default=func.now(), nullable=False)

    @declared_attr
    def updated_at(cls):
        # Client-side values keep the attributes loaded after a flush
        return Column(DateTime, default=utcnow, onupdate=utcnow, server_default=func.now(), nullable=False)


class IdMixin:
    @declared_attr
    def id(cls):
        return Column(String(ID_LENGTH), primary_key=True, default=new_id)
