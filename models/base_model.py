#!/usr/bin/env python3
"""
Shared SQLAlchemy base and mixins for the EndlleesTube API.

- UUID primary key (String(36)) with defaults
- created_at / updated_at timestamps
- save() and delete() that use DBStorage
- SoftDeleteMixin that overrides delete() for soft-deletable models

Notes:
- Server-side defaults (func.now()) set timestamps consistently by the DB.
- For SQLite, func.now() maps to CURRENT_TIMESTAMP.
- SoftDelete: put mixin FIRST in the model's inheritance list to override BaseModel.delete via MRO.
  Example:
    class Video(SoftDeleteMixin, BaseModel, Base): ...
"""

from __future__ import annotations

from datetime import datetime, timezone
import uuid

# Importing 'models' gives access to the global 'storage' instance (DBStorage)
# defined in models/__init__.py
import models

from sqlalchemy import Column, String, DateTime
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import func

# Declarative base for all models
Base = declarative_base()


def _uuid_str() -> str:
    """Return a canonical UUIDv4 string (36 chars, with hyphens)."""
    return str(uuid.uuid4())


def utc_naive(dt: datetime | None = None) -> datetime:
    """UTC wall time without tzinfo; SQLite hands back naive datetimes."""
    dt = dt or datetime.now(timezone.utc)
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt


class BaseModel:
    """
    Base mixin for all persistent models: id, created_at, updated_at and
    save()/delete() wired to DBStorage.
    """

    id = Column(String(36), primary_key=True, default=_uuid_str, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def __init__(self, *args, **kwargs):
        """
        Allow attribute initialization via kwargs without requiring a session here.
        created_at/updated_at come from DB defaults unless passed explicitly (e.g., in tests).
        """
        for key, value in kwargs.items():
            if key != "__class__":
                setattr(self, key, value)
        # Ensure an id exists if caller passed none
        if getattr(self, "id", None) is None:
            self.id = _uuid_str()

    def __str__(self) -> str:
        return f"[{self.__class__.__name__}] ({self.id})"

    def save(self):
        """Update updated_at and commit the instance through DBStorage."""
        self.updated_at = utc_naive()
        models.storage.new(self)
        models.storage.save()

    def delete(self):
        """
        Hard delete the current instance using DBStorage.
        Not committed here; the caller decides when to commit.
        """
        models.storage.delete(self)


class SoftDeleteMixin:
    """
    Adds a deleted_at timestamp and overrides delete() to perform a soft delete.
    IMPORTANT: Place this mixin BEFORE BaseModel in the class base list so its delete() takes precedence.
    """

    deleted_at = Column(DateTime(timezone=True), nullable=True)

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    def soft_delete(self):
        """Sets deleted_at and commits."""
        self.deleted_at = utc_naive()
        models.storage.new(self)
        models.storage.save()

    def delete(self):  # type: ignore[override]
        """Soft delete by setting deleted_at; persists via DBStorage."""
        self.soft_delete()
