"""
ORM models for the records the import collaborator creates and updates.

Entities and templates are identified for deduplication by name + owner;
attribute and value payloads are stored as JSON documents in the same
shape the import pipeline sends them.
"""
import uuid
from datetime import datetime, timezone

from sqlalchemy import JSON, Boolean, Column, DateTime, String, Text, UniqueConstraint

from entity_import.db.session import Base


def _utcnow() -> datetime:
    """Return a timezone-aware UTC timestamp."""
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return uuid.uuid4().hex


class Project(Base):
    """Project that imported entities can be associated with."""
    __tablename__ = "projects"

    id = Column(String(32), primary_key=True, default=_new_id)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=False, default="")
    owner = Column(String(255), nullable=False, default="")
    created_at = Column(DateTime, default=_utcnow)


class Entity(Base):
    __tablename__ = "entities"
    __table_args__ = (UniqueConstraint("name", "owner", name="uq_entities_name_owner"),)

    id = Column(String(32), primary_key=True, default=_new_id)
    name = Column(String(255), nullable=False, index=True)
    owner = Column(String(255), nullable=False, index=True)
    description = Column(Text, nullable=False, default="")
    created = Column(String(64), nullable=False, default=lambda: _utcnow().isoformat())
    archived = Column(Boolean, nullable=False, default=False)
    projects = Column(JSON, nullable=False, default=list)
    attributes = Column(JSON, nullable=False, default=list)
    updated_at = Column(DateTime, default=_utcnow, onupdate=_utcnow)


class Template(Base):
    """Reusable attribute definition that can be copied onto entities."""
    __tablename__ = "templates"
    __table_args__ = (UniqueConstraint("name", "owner", name="uq_templates_name_owner"),)

    id = Column(String(32), primary_key=True, default=_new_id)
    name = Column(String(255), nullable=False, index=True)
    owner = Column(String(255), nullable=False, default="")
    description = Column(Text, nullable=False, default="")
    timestamp = Column(String(64), nullable=False, default=lambda: _utcnow().isoformat())
    archived = Column(Boolean, nullable=False, default=False)
    values = Column(JSON, nullable=False, default=list)
