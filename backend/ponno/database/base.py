"""
SQLAlchemy declarative base and common model mixins.

This module provides the SQLAlchemy DeclarativeBase with async attribute
support, mixins for UUID primary keys and server-managed timestamps, and the
BaseModel every table model derives from.
"""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Optional

from sqlalchemy import DateTime, func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.ext.asyncio import AsyncAttrs
from sqlalchemy.orm import DeclarativeBase, Mapped, declared_attr, mapped_column


class Base(AsyncAttrs, DeclarativeBase):
    """
    Base class for all SQLAlchemy models with async support.

    Provides async attribute loading and serialization helpers shared by all
    database models.
    """

    __abstract__ = True

    def to_dict(self, exclude: Optional[set[str]] = None) -> Dict[str, Any]:
        """
        Convert model columns to a JSON-friendly dictionary.

        Datetimes become ISO strings, UUIDs strings and decimals floats.

        Args:
            exclude: Set of column names to exclude from output

        Returns:
            Dictionary representation of the model
        """
        exclude = exclude or set()
        result: Dict[str, Any] = {}

        for column in self.__table__.columns:
            if column.name in exclude:
                continue
            value = getattr(self, column.name)
            if isinstance(value, datetime):
                result[column.name] = value.isoformat()
            elif isinstance(value, uuid.UUID):
                result[column.name] = str(value)
            elif isinstance(value, Decimal):
                result[column.name] = float(value)
            elif hasattr(value, "value"):
                result[column.name] = value.value
            else:
                result[column.name] = value

        return result

    def __repr__(self) -> str:
        pk_values = []
        for column in self.__table__.primary_key.columns:
            value = getattr(self, column.name, None)
            if value is not None:
                pk_values.append(f"{column.name}={value!r}")

        pk_str = ", ".join(pk_values) if pk_values else "no primary key"
        return f"<{self.__class__.__name__}({pk_str})>"


class TimestampMixin:
    """
    Mixin for automatic timestamp management.

    Adds created_at and updated_at columns with server-side defaults.
    """

    @declared_attr
    def created_at(cls) -> Mapped[datetime]:
        return mapped_column(
            DateTime(timezone=True),
            nullable=False,
            server_default=func.now(),
            comment="Timestamp when record was created",
        )

    @declared_attr
    def updated_at(cls) -> Mapped[datetime]:
        return mapped_column(
            DateTime(timezone=True),
            nullable=False,
            server_default=func.now(),
            onupdate=func.now(),
            comment="Timestamp when record was last updated",
        )


class UUIDMixin:
    """Mixin for a UUID primary key generated with uuid4."""

    @declared_attr
    def id(cls) -> Mapped[uuid.UUID]:
        return mapped_column(
            UUID(as_uuid=True),
            primary_key=True,
            default=uuid.uuid4,
            nullable=False,
            comment="Unique identifier for the record",
        )


class BaseModel(Base, UUIDMixin, TimestampMixin):
    """
    Base model with UUID primary key and timestamps.

    Example:
        class District(BaseModel):
            __tablename__ = "districts"

            name: Mapped[str] = mapped_column(String(100), unique=True)
    """

    __abstract__ = True
