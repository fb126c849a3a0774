#!/usr/bin/env python3
"""
Shared SQLAlchemy base and mixins for the Auth API.

- Integer autoincrement primary key
- created_at (and updated_at where a model is mutable) in UTC

Notes:
- Timestamps default on the Python side so freshly flushed objects carry them
  without a round-trip.
- SQLite drops tzinfo on read; use utils.clock.as_utc before comparing.
"""

from __future__ import annotations

from sqlalchemy import Column, DateTime, Integer
from sqlalchemy.orm import declarative_base

from utils.clock import utcnow

# Declarative base for all models
Base = declarative_base()


class BaseModel:
    """
    Base mixin for all persistent models: id and created_at.
    """

    id = Column(Integer, primary_key=True, autoincrement=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    def __init__(self, *args, **kwargs):
        """
        Allow attribute initialization via kwargs without requiring a session here.
        """
        for key, value in kwargs.items():
            if key != "__class__":
                setattr(self, key, value)

    def __str__(self) -> str:
        """Human-friendly representation including id and fields."""
        return f"[{self.__class__.__name__}] ({self.id}) {self.__dict__}"


class TimestampMixin:
    """Adds updated_at, refreshed on every UPDATE."""

    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)
