"""
Base model classes and mixins for SQLAlchemy ORM.
Provides common functionality for all database models.
"""
from datetime import datetime

from sqlalchemy import func, String
from sqlalchemy.ext.asyncio import AsyncAttrs
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(AsyncAttrs, DeclarativeBase):
    """
    Base class for all SQLAlchemy models.

    Includes AsyncAttrs mixin for async relationship access.
    All models should inherit from this class.
    """
    pass


class TimestampMixin:
    """Mixin for created_at timestamp."""

    created_at: Mapped[datetime] = mapped_column(
        server_default=func.now(),
        nullable=False,
        doc="Timestamp when the record was created"
    )


class StringIDMixin:
    """
    Mixin for string ID primary key.

    Supabase hands out UUIDs; they are stored and compared as strings so the
    same identifiers flow unchanged through JWT claims, URLs and the call
    registry.
    """

    id: Mapped[str] = mapped_column(
        String(255),
        primary_key=True,
        doc="String ID primary key"
    )
