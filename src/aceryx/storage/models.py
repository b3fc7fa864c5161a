"""SQLAlchemy models for the persistent tool catalog."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Any

from sqlalchemy import JSON, DateTime, Index, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from aceryx.tools.base import (
    ToolCategory,
    ToolDefinition,
    execution_mode_from_dict,
    execution_mode_to_dict,
)


def _utcnow() -> datetime:
    """Current UTC time for timestamps."""
    return datetime.now(UTC)


def _aware(value: datetime) -> datetime:
    # SQLite drops tzinfo on the way back
    return value if value.tzinfo is not None else value.replace(tzinfo=UTC)


class Base(DeclarativeBase):
    """Declarative base for all aceryx models."""


class ToolRecord(Base):
    """One catalog entry, keyed by the protocol-assigned tool id."""

    __tablename__ = "tools"
    __table_args__ = (
        Index("ix_tools_category", "category"),
        Index("ix_tools_name", "name"),
    )

    id: Mapped[str] = mapped_column(String(255), primary_key=True)
    name: Mapped[str] = mapped_column(String(255))
    description: Mapped[str] = mapped_column(Text, default="")
    category: Mapped[str] = mapped_column(String(32))
    input_schema: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict)
    output_schema: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict)
    execution_mode: Mapped[dict[str, Any]] = mapped_column(JSON)
    # ``metadata`` is reserved on declarative classes
    extra: Mapped[dict[str, Any]] = mapped_column("metadata", JSON, default=dict)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utcnow, onupdate=_utcnow
    )

    @classmethod
    def from_definition(cls, definition: ToolDefinition) -> ToolRecord:
        record = cls(id=definition.id, created_at=definition.created_at)
        record.apply(definition)
        return record

    def apply(self, definition: ToolDefinition) -> None:
        """Copy every mutable field from *definition* onto this row."""
        self.name = definition.name
        self.description = definition.description
        self.category = definition.category.value
        self.input_schema = definition.input_schema
        self.output_schema = definition.output_schema
        self.execution_mode = execution_mode_to_dict(definition.execution_mode)
        self.extra = definition.metadata
        self.updated_at = definition.updated_at

    def to_definition(self) -> ToolDefinition:
        return ToolDefinition(
            id=self.id,
            name=self.name,
            description=self.description,
            category=ToolCategory.parse(self.category),
            input_schema=self.input_schema or {},
            output_schema=self.output_schema or {},
            execution_mode=execution_mode_from_dict(self.execution_mode),
            metadata=self.extra or {},
            created_at=_aware(self.created_at),
            updated_at=_aware(self.updated_at),
        )
